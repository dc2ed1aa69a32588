#!/usr/bin/env python3
"""
SIPMS CLI - SIP Management System Command Line Interface.

Usage:
    sipms funds --category EQUITY
    sipms simulate --name Asha --email asha@example.com --fund FUND_000001 \\
        --amount 5000 --frequency MONTHLY --start 2024-01-01 --periods 12 \\
        --step-up 10 --market-move 0.01 --report portfolio.xlsx
"""

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from sipms.core.calendar import format_date, next_execution_date
from sipms.core.config import SIPConfig
from sipms.core.exceptions import SIPError
from sipms.core.models import FundCategory, RiskLevel, SIPFrequency
from sipms.reports.portfolio_report import PortfolioReport
from sipms.services.payment import SimulatedPaymentGateway
from sipms.system import SIPSystem, create_system

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, debug: bool = False, default_level: str = "WARNING"):
    """Configure logging."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = getattr(logging, str(default_level).upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def _parse_decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"Invalid number: {value}")


# ============================================================================
# Command Handlers
# ============================================================================

def cmd_funds(args, system: SIPSystem) -> int:
    """Handle funds command - list the sample catalog."""
    system.register_sample_funds()

    if args.category:
        funds = system.fund_service.filter_by_category(FundCategory(args.category))
    else:
        funds = system.fund_service.get_all_funds()
    if args.risk:
        funds = [f for f in funds if f.risk_level == RiskLevel(args.risk)]

    display = system.config.display
    print(f"\n{'ID':<13} {'Name':<28} {'Category':<9} {'Risk':<7} {'NAV':>12}")
    print("-" * 72)
    for fund in funds:
        print(
            f"{fund.id:<13} {fund.name:<28} {fund.category.value:<9} "
            f"{fund.risk_level.value:<7} {display.format_currency(fund.nav):>12}"
        )
    print(f"\n{len(funds)} fund(s)")
    return 0


def cmd_simulate(args, system: SIPSystem) -> int:
    """Handle simulate command - run an SIP over several periods."""
    system.register_sample_funds()
    if args.success_rate is not None and isinstance(system.payment_gateway, SimulatedPaymentGateway):
        system.payment_gateway.set_success_rate(args.success_rate)

    user = system.user_service.register_user(args.name, args.email)
    frequency = SIPFrequency(args.frequency)
    sip = system.sip_service.create_sip(
        user.id,
        args.fund,
        args.amount,
        frequency,
        args.start,
        args.step_up,
    )

    display = system.config.display
    print(f"\nCreated {sip.id} for {user.name}: {frequency.value} {display.format_currency(sip.base_amount)} into {sip.fund_id}")

    as_of = args.start
    for period in range(1, args.periods + 1):
        initiated = system.scheduler.execute_due_sips(as_of)
        current = system.sip_service.get_sip(sip.id)
        print(
            f"  Period {period:>3} [{format_date(as_of)}]: initiated {initiated}, "
            f"installments {current.installment_count}, next due {format_date(current.next_execution_date)}"
        )
        if args.market_move:
            system.market.simulate_market_movement(args.market_move)
        as_of = next_execution_date(as_of, frequency)

    summary = system.portfolio.get_portfolio_summary(user.id)
    print("\nPortfolio Summary")
    print("-" * 40)
    print(f"  Total Invested: {display.format_currency(summary.total_invested)}")
    print(f"  Current Value:  {display.format_currency(summary.total_current_value)}")
    print(f"  Total Units:    {summary.total_units:.4f}")
    print(f"  Gain/Loss:      {display.format_currency(summary.gain_loss)} ({summary.gain_loss_percentage:.2f}%)")
    print(f"  SIPs:           {summary.active_sip_count} active, {summary.paused_sip_count} paused, {summary.stopped_sip_count} stopped")

    if isinstance(system.payment_gateway, SimulatedPaymentGateway) and system.payment_gateway.pending_count():
        print(f"  Pending payments: {system.payment_gateway.pending_count()}")

    if args.report:
        report = PortfolioReport(system.portfolio)
        path = report.export_excel(report.generate(user.id, as_of_date=as_of), Path(args.report))
        print(f"\nReport written to {path}")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sipms',
        description='SIPMS - SIP Management System',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sipms funds --category DEBT
  sipms simulate --name Asha --email asha@example.com --fund FUND_000001 --amount 5000 --periods 12
  sipms --config sipms.json simulate --name Asha --email asha@example.com --fund FUND_000003 --amount 1000 --frequency WEEKLY
        """
    )

    # Global arguments
    parser.add_argument('--config', '-c', help='JSON configuration file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--debug', action='store_true', help='Debug output')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    # funds command
    funds_parser = subparsers.add_parser('funds', help='List the fund catalog')
    funds_parser.add_argument('--category', choices=[c.value for c in FundCategory], help='Filter by category')
    funds_parser.add_argument('--risk', choices=[r.value for r in RiskLevel], help='Filter by risk level')

    # simulate command
    sim_parser = subparsers.add_parser('simulate', help='Simulate an SIP over several periods')
    sim_parser.add_argument('--name', required=True, help='Investor name')
    sim_parser.add_argument('--email', required=True, help='Investor email')
    sim_parser.add_argument('--fund', required=True, help='Fund ID (see "sipms funds")')
    sim_parser.add_argument('--amount', required=True, type=_parse_decimal, help='Base installment amount')
    sim_parser.add_argument('--frequency', default='MONTHLY',
                            choices=[f.value for f in SIPFrequency], help='Installment frequency')
    sim_parser.add_argument('--start', type=_parse_date, default=date(2024, 1, 1),
                            help='Start date YYYY-MM-DD (default: 2024-01-01)')
    sim_parser.add_argument('--periods', type=int, default=12, help='Number of periods to simulate')
    sim_parser.add_argument('--step-up', type=_parse_decimal, default=Decimal("0"), help='Step-up percentage per installment')
    sim_parser.add_argument('--market-move', type=_parse_decimal, help='Market movement per period as a fraction (e.g. 0.01)')
    sim_parser.add_argument('--success-rate', type=float, help='Payment success probability (0-1)')
    sim_parser.add_argument('--report', help='Write an Excel portfolio report to this path')

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = SIPConfig.load(Path(args.config) if args.config else None)
    except SIPError as e:
        setup_logging(args.verbose, args.debug)
        print(f"Configuration error: {e}")
        return 1

    setup_logging(args.verbose, args.debug, config.log_level)

    try:
        system = create_system(config)
        if args.command == 'funds':
            return cmd_funds(args, system)
        elif args.command == 'simulate':
            return cmd_simulate(args, system)
        else:
            parser.print_help()
            return 1
    except SIPError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
