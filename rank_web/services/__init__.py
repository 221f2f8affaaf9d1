from .report_service import TargetReportService, resolve_display
from .range_resolver import parse_day, resolve_window

__all__ = [
    "TargetReportService",
    "resolve_display",
    "parse_day",
    "resolve_window",
]
