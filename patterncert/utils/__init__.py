"""Utility modules for the pattern certification engine."""

from .config import Settings, get_settings, configure_logging
from .helpers import round_half_up, clamp, mean

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    # Numeric helpers
    "round_half_up",
    "clamp",
    "mean",
]
