"""SIP Portfolio Report Generator.

Builds a per-user portfolio report from the valuation service and exports
it as pandas DataFrames or an Excel workbook with Summary, Holdings and
Transactions sheets.
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from sipms.services.portfolio_service import (
    PortfolioSummary,
    PortfolioValuationService,
    SIPPortfolioItem,
)

HOLDINGS_COLUMNS = [
    "SIP", "Fund", "Frequency", "State", "Installments", "Invested",
    "Units", "NAV", "Current Value", "Gain/Loss", "Gain/Loss %",
    "Next Installment", "Next Date",
]

TRANSACTION_COLUMNS = ["Transaction", "SIP", "Date", "Type", "Status", "Amount", "NAV", "Units"]


@dataclass
class PortfolioReportData:
    """Portfolio report data."""

    user_id: str
    as_of_date: date
    summary: PortfolioSummary
    items: list[SIPPortfolioItem] = field(default_factory=list)


class PortfolioReport:
    """
    Generate SIP Portfolio Report.

    Usage:
        report = PortfolioReport(system.portfolio)
        data = report.generate("USER_000001")
        report.export_excel(data, Path("portfolio.xlsx"))
    """

    def __init__(self, valuation_service: PortfolioValuationService):
        """
        Initialize report generator.

        Args:
            valuation_service: Source of SIP valuations and transactions
        """
        self.valuation_service = valuation_service

    def generate(self, user_id: str, as_of_date: Optional[date] = None) -> PortfolioReportData:
        """
        Generate portfolio report for a user.

        Args:
            user_id: User ID
            as_of_date: Date printed on the report (default: today)

        Returns:
            PortfolioReportData with per-SIP items and summary
        """
        if as_of_date is None:
            as_of_date = date.today()

        items = self.valuation_service.get_user_portfolio(user_id)
        # One valuation pass, so the summary matches the rows
        summary = self.valuation_service.summarize(user_id, items)
        return PortfolioReportData(user_id=user_id, as_of_date=as_of_date, summary=summary, items=items)

    def to_dataframe(self, report: PortfolioReportData) -> pd.DataFrame:
        """One row per SIP with its valuation."""
        rows = [
            [
                item.sip.id,
                item.fund_name,
                item.sip.frequency.value,
                item.sip.state.value,
                item.sip.installment_count,
                float(item.total_invested),
                float(item.total_units),
                float(item.current_nav),
                float(item.current_value),
                float(item.gain_loss),
                round(float(item.gain_loss_percentage), 2),
                float(item.current_installment_amount),
                item.sip.next_execution_date,
            ]
            for item in report.items
        ]
        return pd.DataFrame(rows, columns=HOLDINGS_COLUMNS)

    def transactions_dataframe(self, sip_id: str) -> pd.DataFrame:
        """Transaction history of one SIP."""
        rows = [
            [
                txn.id,
                txn.sip_id,
                txn.execution_date,
                txn.transaction_type.value,
                txn.status.value,
                float(txn.amount),
                float(txn.nav),
                float(txn.units),
            ]
            for txn in self.valuation_service.get_transaction_history(sip_id)
        ]
        return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)

    def export_excel(self, report: PortfolioReportData, output_path: Path) -> Path:
        """
        Export portfolio report to Excel.

        Args:
            report: PortfolioReportData from generate()
            output_path: Output file path (.xlsx)

        Returns:
            Path to generated Excel file
        """
        wb = Workbook()

        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        header_font_white = Font(bold=True, color="FFFFFF")
        border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )
        money_format = '#,##0.00'
        units_format = '#,##0.0000'

        # Summary sheet
        ws = wb.active
        ws.title = "Summary"
        ws.cell(row=1, column=1, value=f"SIP Portfolio - {report.user_id} - As of {report.as_of_date.strftime('%d-%b-%Y')}")
        ws.cell(row=1, column=1).font = Font(bold=True, size=14)
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=4)

        summary = report.summary
        summary_rows = [
            ("Total Invested", summary.total_invested, money_format),
            ("Current Value", summary.total_current_value, money_format),
            ("Total Units", summary.total_units, units_format),
            ("Gain/Loss", summary.gain_loss, money_format),
            ("Gain/Loss %", summary.gain_loss_percentage, money_format),
            ("Active SIPs", summary.active_sip_count, None),
            ("Paused SIPs", summary.paused_sip_count, None),
            ("Stopped SIPs", summary.stopped_sip_count, None),
        ]
        row = 3
        for label, value, number_format in summary_rows:
            ws.cell(row=row, column=1, value=label).font = Font(bold=True)
            cell = ws.cell(row=row, column=2, value=value)
            if number_format:
                cell.number_format = number_format
            row += 1
        ws.column_dimensions["A"].width = 18
        ws.column_dimensions["B"].width = 18

        # Holdings sheet
        ws = wb.create_sheet("Holdings")
        self._write_header(ws, HOLDINGS_COLUMNS, header_font_white, header_fill, border)
        if report.items:
            for row, values in enumerate(self.to_dataframe(report).itertuples(index=False), 2):
                for col, value in enumerate(values, 1):
                    cell = ws.cell(row=row, column=col, value=value)
                    cell.border = border
                    if col in (6, 8, 9, 10, 11, 12):
                        cell.number_format = money_format
                    elif col == 7:
                        cell.number_format = units_format
        else:
            ws.cell(row=2, column=1, value="No SIPs found.")
        for col in range(1, len(HOLDINGS_COLUMNS) + 1):
            ws.column_dimensions[ws.cell(row=1, column=col).column_letter].width = 15
        ws.column_dimensions["B"].width = 30

        # Transactions sheet
        ws = wb.create_sheet("Transactions")
        self._write_header(ws, TRANSACTION_COLUMNS, header_font_white, header_fill, border)
        row = 2
        for item in report.items:
            for values in self.transactions_dataframe(item.sip.id).itertuples(index=False):
                for col, value in enumerate(values, 1):
                    cell = ws.cell(row=row, column=col, value=value)
                    cell.border = border
                    if col in (6, 7):
                        cell.number_format = money_format
                    elif col == 8:
                        cell.number_format = units_format
                row += 1
        for col in range(1, len(TRANSACTION_COLUMNS) + 1):
            ws.column_dimensions[ws.cell(row=1, column=col).column_letter].width = 15

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        return output_path

    @staticmethod
    def _write_header(ws, headers, font, fill, border) -> None:
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = font
            cell.fill = fill
            cell.border = border
            cell.alignment = Alignment(horizontal="center")
