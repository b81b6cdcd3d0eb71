"""
Report Generation

Batch quality summaries and the markdown quality report.
"""

from .summary import QualitySummary, build_quality_summary, needs_attention, render_markdown_report

__all__ = [
    "QualitySummary",
    "build_quality_summary",
    "needs_attention",
    "render_markdown_report",
]
