"""Saved report persistence."""

from src.services.reports.models import SavedReport, SaveReportRequest
from src.services.reports.service import ReportService

__all__ = ["ReportService", "SaveReportRequest", "SavedReport"]
