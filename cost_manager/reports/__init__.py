"""Report building package."""

from cost_manager.reports.builder import ReportBuilder, round_money

__all__ = ["ReportBuilder", "round_money"]
