"""
Persistence Layer

Append-only assessment history and its file storage.
"""

from .history import AssessmentHistory
from .storage import FileHistoryStore

__all__ = [
    "AssessmentHistory",
    "FileHistoryStore",
]
