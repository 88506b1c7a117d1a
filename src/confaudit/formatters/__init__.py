"""Output formatters for audit results."""

from confaudit.formatters.report import ReportBuilder, format_change_line, report_path

__all__ = [
    "ReportBuilder",
    "format_change_line",
    "report_path",
]
