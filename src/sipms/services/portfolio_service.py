"""
Portfolio Valuation Service.

Provides:
1. Per-SIP valuation: invested capital, units, current value, gain/loss
2. User-level summary with SIP counts per state
3. Installment projections using the step-up formula
4. Transaction history per SIP

Valuation is read-only: everything is derived from SUCCESS transactions in
the ledger and the current NAV from the market price service.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List

from sipms.core.exceptions import SIPError, SIPNotFoundError
from sipms.core.models import SIP, SIPState, Transaction
from sipms.repositories.base import FundRepository, SIPRepository, TransactionRepository
from sipms.services.market_price import MarketPriceService

logger = logging.getLogger(__name__)

UNKNOWN_FUND_NAME = "Unknown Fund"


def _gain_percentage(gain_loss: Decimal, invested: Decimal) -> Decimal:
    if invested > 0:
        return gain_loss / invested * 100
    return Decimal("0")


@dataclass
class SIPPortfolioItem:
    """Valuation of one SIP."""
    sip: SIP
    fund_name: str
    current_nav: Decimal
    total_invested: Decimal
    total_units: Decimal
    current_value: Decimal
    gain_loss: Decimal
    gain_loss_percentage: Decimal
    current_installment_amount: Decimal
    next_installment_amount: Decimal


@dataclass
class PortfolioSummary:
    """Totals across all SIPs of a user."""
    user_id: str
    total_invested: Decimal = Decimal("0")
    total_current_value: Decimal = Decimal("0")
    total_units: Decimal = Decimal("0")
    gain_loss: Decimal = Decimal("0")
    gain_loss_percentage: Decimal = Decimal("0")
    active_sip_count: int = 0
    paused_sip_count: int = 0
    stopped_sip_count: int = 0

    @property
    def total_sip_count(self) -> int:
        return self.active_sip_count + self.paused_sip_count + self.stopped_sip_count


class PortfolioValuationService:
    """
    Service for SIP portfolio valuation.

    Example:
        service = PortfolioValuationService(sips, transactions, funds, market)
        summary = service.get_portfolio_summary("USER_000001")
        print(f"Value: {summary.total_current_value}")
        print(f"Return: {summary.gain_loss_percentage:.2f}%")
    """

    def __init__(
        self,
        sip_repository: SIPRepository,
        transaction_repository: TransactionRepository,
        fund_repository: FundRepository,
        market_price_service: MarketPriceService,
    ):
        self.sip_repository = sip_repository
        self.transaction_repository = transaction_repository
        self.fund_repository = fund_repository
        self.market_price_service = market_price_service

    def get_user_portfolio(self, user_id: str) -> List[SIPPortfolioItem]:
        """Valuation of every SIP owned by the user."""
        return [self._build_item(sip) for sip in self.sip_repository.get_by_user_id(user_id)]

    def get_portfolio_summary(self, user_id: str) -> PortfolioSummary:
        """
        Aggregate valuation across the user's SIPs.

        Args:
            user_id: User whose SIPs are valued

        Returns:
            PortfolioSummary with totals and per-state SIP counts
        """
        return self.summarize(user_id, self.get_user_portfolio(user_id))

    def summarize(self, user_id: str, items: List[SIPPortfolioItem]) -> PortfolioSummary:
        """Totals and per-state counts of already valued items, without re-reading NAVs."""
        summary = PortfolioSummary(user_id=user_id)

        for item in items:
            summary.total_invested += item.total_invested
            summary.total_current_value += item.current_value
            summary.total_units += item.total_units

            if item.sip.state == SIPState.ACTIVE:
                summary.active_sip_count += 1
            elif item.sip.state == SIPState.PAUSED:
                summary.paused_sip_count += 1
            elif item.sip.state == SIPState.STOPPED:
                summary.stopped_sip_count += 1

        summary.gain_loss = summary.total_current_value - summary.total_invested
        summary.gain_loss_percentage = _gain_percentage(summary.gain_loss, summary.total_invested)
        return summary

    def filter_by_state(self, user_id: str, state: SIPState) -> List[SIPPortfolioItem]:
        return [
            self._build_item(sip)
            for sip in self.sip_repository.get_by_user_id_and_state(user_id, state)
        ]

    def get_transaction_history(self, sip_id: str) -> List[Transaction]:
        """All transactions of a SIP, whatever their status."""
        return self.transaction_repository.get_by_sip_id(sip_id)

    def calculate_total_invested(self, sip_id: str) -> Decimal:
        return sum(
            (txn.amount for txn in self.transaction_repository.get_successful_by_sip_id(sip_id)),
            Decimal("0"),
        )

    def calculate_total_units(self, sip_id: str) -> Decimal:
        return sum(
            (txn.units for txn in self.transaction_repository.get_successful_by_sip_id(sip_id)),
            Decimal("0"),
        )

    def calculate_current_value(self, sip_id: str) -> Decimal:
        """
        Units held times the current NAV.

        Raises:
            SIPNotFoundError: If the SIP does not exist
            FundNotFoundError: If no NAV is available for the fund
        """
        sip = self.sip_repository.get_by_id(sip_id)
        if sip is None:
            raise SIPNotFoundError(sip_id)

        total_units = self.calculate_total_units(sip_id)
        return total_units * self.market_price_service.get_current_nav(sip.fund_id)

    def _build_item(self, sip: SIP) -> SIPPortfolioItem:
        fund = self.fund_repository.get_by_id(sip.fund_id)
        fund_name = fund.name if fund is not None else UNKNOWN_FUND_NAME

        try:
            current_nav = self.market_price_service.get_current_nav(sip.fund_id)
        except SIPError as e:
            logger.warning(f"No NAV for {sip.fund_id} while valuing SIP {sip.id}: {e}")
            current_nav = Decimal("0")

        total_invested = Decimal("0")
        total_units = Decimal("0")
        for txn in self.transaction_repository.get_successful_by_sip_id(sip.id):
            total_invested += txn.amount
            total_units += txn.units

        current_value = total_units * current_nav
        gain_loss = current_value - total_invested

        return SIPPortfolioItem(
            sip=sip,
            fund_name=fund_name,
            current_nav=current_nav,
            total_invested=total_invested,
            total_units=total_units,
            current_value=current_value,
            gain_loss=gain_loss,
            gain_loss_percentage=_gain_percentage(gain_loss, total_invested),
            current_installment_amount=sip.installment_amount(sip.installment_count + 1),
            next_installment_amount=sip.installment_amount(sip.installment_count + 2),
        )
