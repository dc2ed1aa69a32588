"""Reports module for generating portfolio reports.

Provides:
- SIP Portfolio Report (DataFrame / Excel)
"""

from .portfolio_report import PortfolioReport, PortfolioReportData

__all__ = [
    "PortfolioReport",
    "PortfolioReportData",
]
