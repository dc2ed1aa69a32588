"""
Unit tests for PortfolioValuationService.
"""

import pytest
from datetime import date
from decimal import Decimal

from sipms.core.exceptions import FundNotFoundError, SIPNotFoundError
from sipms.core.models import (
    PaymentStatus,
    SIP,
    SIPFrequency,
    SIPState,
    Transaction,
    TransactionType,
)


def record(system, txn_id, sip_id, amount, nav, status=PaymentStatus.SUCCESS, **kwargs):
    """Put a settled transaction straight into the ledger."""
    txn = Transaction(
        id=txn_id,
        sip_id=sip_id,
        amount=Decimal(amount),
        nav=Decimal(nav),
        execution_date=kwargs.pop("execution_date", date(2024, 1, 1)),
        status=status,
        callback_applied=status != PaymentStatus.PENDING,
        **kwargs,
    )
    system.transaction_repository.add(txn)
    return txn


@pytest.fixture
def valued_sip(system, monthly_sip):
    """Two successful installments: 1000 at NAV 100 and 1100 at NAV 110, NAV now 120."""
    record(system, "TXN_A", monthly_sip.id, "1000", "100")
    record(system, "TXN_B", monthly_sip.id, "1100", "110")
    system.market.update_nav("FUND_000001", Decimal("120"))
    return monthly_sip


class TestSIPValuation:
    """Tests for per-SIP figures."""

    def test_totals(self, system, valued_sip):
        portfolio = system.portfolio

        assert portfolio.calculate_total_invested(valued_sip.id) == Decimal("2100")
        assert portfolio.calculate_total_units(valued_sip.id) == Decimal("20")
        assert portfolio.calculate_current_value(valued_sip.id) == Decimal("2400")

    def test_portfolio_item(self, system, investor, valued_sip):
        [item] = system.portfolio.get_user_portfolio(investor.id)

        assert item.sip.id == valued_sip.id
        assert item.fund_name == "HDFC Flexi Cap Fund"
        assert item.current_nav == Decimal("120")
        assert item.total_invested == Decimal("2100")
        assert item.total_units == Decimal("20")
        assert item.current_value == Decimal("2400")
        assert item.gain_loss == Decimal("300")
        assert round(item.gain_loss_percentage, 2) == Decimal("14.29")

    def test_only_successful_transactions_count(self, system, valued_sip):
        record(system, "TXN_C", valued_sip.id, "5000", "100", status=PaymentStatus.FAILURE)
        record(system, "TXN_D", valued_sip.id, "7000", "100", status=PaymentStatus.PENDING)

        assert system.portfolio.calculate_total_invested(valued_sip.id) == Decimal("2100")
        assert system.portfolio.calculate_total_units(valued_sip.id) == Decimal("20")

    def test_lump_sum_included(self, system, valued_sip):
        record(
            system, "TXN_L", valued_sip.id, "600", "120",
            transaction_type=TransactionType.LUMP_SUM,
        )
        assert system.portfolio.calculate_total_invested(valued_sip.id) == Decimal("2700")
        assert system.portfolio.calculate_total_units(valued_sip.id) == Decimal("25")

    def test_nothing_invested(self, system, investor, monthly_sip):
        [item] = system.portfolio.get_user_portfolio(investor.id)

        assert item.total_invested == Decimal("0")
        assert item.current_value == Decimal("0")
        assert item.gain_loss == Decimal("0")
        assert item.gain_loss_percentage == Decimal("0")

    def test_installment_projection(self, system, investor, monthly_sip):
        service = system.sip_service
        service.modify_step_up(monthly_sip.id, Decimal("10"))
        service.on_payment_success(monthly_sip.id)

        [item] = system.portfolio.get_user_portfolio(investor.id)

        assert item.current_installment_amount == Decimal("1100")
        assert item.next_installment_amount == Decimal("1210")

    def test_current_value_unknown_sip(self, system):
        with pytest.raises(SIPNotFoundError):
            system.portfolio.calculate_current_value("SIP_404")

    def test_current_value_without_nav(self, system, investor):
        orphan = SIP("SIP_ORPHAN", investor.id, "FUND_GONE", Decimal("100"),
                     SIPFrequency.MONTHLY, date(2024, 1, 1))
        system.sip_repository.add(orphan)

        with pytest.raises(FundNotFoundError):
            system.portfolio.calculate_current_value(orphan.id)


class TestMissingFundData:

    def test_missing_nav_values_at_zero(self, system, investor):
        orphan = SIP("SIP_ORPHAN", investor.id, "FUND_GONE", Decimal("100"),
                     SIPFrequency.MONTHLY, date(2024, 1, 1))
        system.sip_repository.add(orphan)
        record(system, "TXN_O", orphan.id, "100", "10")

        [item] = system.portfolio.get_user_portfolio(investor.id)

        assert item.fund_name == "Unknown Fund"
        assert item.current_nav == Decimal("0")
        assert item.current_value == Decimal("0")
        assert item.total_invested == Decimal("100")
        assert item.gain_loss == Decimal("-100")
        assert item.gain_loss_percentage == Decimal("-100")


class TestPortfolioSummary:

    def test_summary_totals_and_counts(self, system, investor, valued_sip):
        service = system.sip_service
        paused = service.create_sip(
            investor.id, "FUND_000003", Decimal("500"), SIPFrequency.MONTHLY, date(2024, 1, 1)
        )
        stopped = service.create_sip(
            investor.id, "FUND_000006", Decimal("500"), SIPFrequency.MONTHLY, date(2024, 1, 1)
        )
        service.pause_sip(paused.id)
        service.stop_sip(stopped.id)
        # 10 units at 32.50, all still held after the stop
        record(system, "TXN_S", stopped.id, "325", "32.50")

        summary = system.portfolio.get_portfolio_summary(investor.id)

        assert summary.active_sip_count == 1
        assert summary.paused_sip_count == 1
        assert summary.stopped_sip_count == 1
        assert summary.total_sip_count == 3
        assert summary.total_invested == Decimal("2425")
        assert summary.total_units == Decimal("30")
        assert summary.total_current_value == Decimal("2725")
        assert summary.gain_loss == Decimal("300")

    def test_summarize_uses_given_items(self, system, investor, valued_sip):
        portfolio = system.portfolio
        items = portfolio.get_user_portfolio(investor.id)
        # NAV moves after valuation; the summary still follows the items
        system.market.update_nav(valued_sip.fund_id, Decimal("1"))

        summary = portfolio.summarize(investor.id, items)

        assert summary.total_current_value == items[0].current_value
        assert summary.total_invested == items[0].total_invested
        assert summary.active_sip_count == 1

    def test_empty_portfolio(self, system, investor):
        summary = system.portfolio.get_portfolio_summary(investor.id)

        assert summary.user_id == investor.id
        assert summary.total_sip_count == 0
        assert summary.total_invested == Decimal("0")
        assert summary.gain_loss_percentage == Decimal("0")


class TestQueries:

    def test_filter_by_state(self, system, investor, monthly_sip):
        other = system.sip_service.create_sip(
            investor.id, "FUND_000002", Decimal("500"), SIPFrequency.WEEKLY, date(2024, 1, 1)
        )
        system.sip_service.pause_sip(other.id)

        paused = system.portfolio.filter_by_state(investor.id, SIPState.PAUSED)
        active = system.portfolio.filter_by_state(investor.id, SIPState.ACTIVE)

        assert [item.sip.id for item in paused] == [other.id]
        assert [item.sip.id for item in active] == [monthly_sip.id]
        assert system.portfolio.filter_by_state(investor.id, SIPState.STOPPED) == []

    def test_transaction_history_includes_failures(self, system, valued_sip):
        record(system, "TXN_C", valued_sip.id, "1210", "120", status=PaymentStatus.FAILURE)

        history = system.portfolio.get_transaction_history(valued_sip.id)

        assert [t.id for t in history] == ["TXN_A", "TXN_B", "TXN_C"]
        assert history[-1].status == PaymentStatus.FAILURE
