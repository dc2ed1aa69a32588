"""
System wiring.

Builds repositories, collaborators and services from an SIPConfig and
bundles them in an SIPSystem.
"""

import logging
import sqlite3
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sipms.core.config import SIPConfig
from sipms.core.database import DatabaseManager
from sipms.core.id_generator import IdGenerator
from sipms.core.models import Fund, FundCategory, RiskLevel
from sipms.repositories import (
    FundRepository,
    InMemoryFundRepository,
    InMemorySIPRepository,
    InMemoryTransactionRepository,
    InMemoryUserRepository,
    SIPRepository,
    SqliteFundRepository,
    SqliteSIPRepository,
    SqliteTransactionRepository,
    SqliteUserRepository,
    TransactionRepository,
    UserRepository,
)
from sipms.services import (
    FundService,
    PaymentGateway,
    PaymentReconciler,
    PortfolioValuationService,
    SIPScheduler,
    SIPService,
    SimulatedMarketPriceService,
    SimulatedPaymentGateway,
    UserService,
)

logger = logging.getLogger(__name__)

# Demo catalog: (id, name, category, risk, NAV)
SAMPLE_FUNDS = [
    ("FUND_000001", "HDFC Flexi Cap Fund", FundCategory.EQUITY, RiskLevel.HIGH, "150.50"),
    ("FUND_000002", "ICICI Prudential Balanced", FundCategory.HYBRID, RiskLevel.MEDIUM, "85.25"),
    ("FUND_000003", "SBI Debt Fund", FundCategory.DEBT, RiskLevel.LOW, "45.80"),
    ("FUND_000004", "Axis ELSS Tax Saver", FundCategory.ELSS, RiskLevel.HIGH, "120.00"),
    ("FUND_000005", "Kotak Small Cap Fund", FundCategory.EQUITY, RiskLevel.HIGH, "95.75"),
    ("FUND_000006", "HDFC Corporate Bond", FundCategory.DEBT, RiskLevel.LOW, "32.50"),
]


@dataclass
class SIPSystem:
    """All components of a running SIPMS instance."""
    config: SIPConfig
    id_generator: IdGenerator
    fund_repository: FundRepository
    user_repository: UserRepository
    sip_repository: SIPRepository
    transaction_repository: TransactionRepository
    market: SimulatedMarketPriceService
    payment_gateway: PaymentGateway
    fund_service: FundService
    user_service: UserService
    sip_service: SIPService
    reconciler: PaymentReconciler
    scheduler: SIPScheduler
    portfolio: PortfolioValuationService

    def register_sample_funds(self) -> List[Fund]:
        """Add the demo fund catalog and publish its NAVs. Stored funds are kept."""
        funds = []
        for fund_id, name, category, risk_level, nav in SAMPLE_FUNDS:
            fund = Fund(id=fund_id, name=name, category=category, risk_level=risk_level, nav=Decimal(nav))
            if self.fund_service.fund_exists(fund_id):
                fund = self.fund_service.get_fund(fund_id)
            else:
                self.fund_service.add_fund(fund)
            self.market.update_nav(fund.id, fund.nav)
            funds.append(fund)
        logger.info(f"Registered {len(funds)} sample funds")
        return funds

    def add_fund(self, fund: Fund) -> Fund:
        """Add a fund to the catalog and publish its NAV."""
        self.fund_service.add_fund(fund)
        self.market.update_nav(fund.id, fund.nav)
        return fund


def create_system(
    config: Optional[SIPConfig] = None,
    id_generator: Optional[IdGenerator] = None,
    connection: Optional[sqlite3.Connection] = None,
    payment_gateway: Optional[PaymentGateway] = None,
) -> SIPSystem:
    """
    Build a system for the configured storage backend.

    Args:
        config: Configuration (defaults when None)
        id_generator: Id source (fresh sequential generator when None). On the
            sqlite backend it is advanced past every stored id
        connection: SQLite connection for the sqlite backend; opened through
            DatabaseManager from storage.db_path when None
        payment_gateway: Gateway to use instead of the simulated one

    Returns:
        Wired SIPSystem
    """
    config = config or SIPConfig()
    id_generator = id_generator or IdGenerator()

    if config.storage.backend == "sqlite":
        if connection is None:
            connection = DatabaseManager().init(config.storage.db_path)
        fund_repository = SqliteFundRepository(connection)
        user_repository = SqliteUserRepository(connection)
        sip_repository = SqliteSIPRepository(connection)
        transaction_repository = SqliteTransactionRepository(connection)
        # Existing rows keep their ids; new ones start past them
        for repository in (fund_repository, user_repository, sip_repository, transaction_repository):
            id_generator.advance_past(repository.get_all_ids())
    else:
        fund_repository = InMemoryFundRepository()
        user_repository = InMemoryUserRepository()
        sip_repository = InMemorySIPRepository()
        transaction_repository = InMemoryTransactionRepository()

    market = SimulatedMarketPriceService(
        enable_fluctuation=config.market.enable_fluctuation,
        fluctuation_range=config.market.fluctuation_range,
        fund_repository=fund_repository,
        seed=config.market.seed,
    )
    if payment_gateway is None:
        payment_gateway = SimulatedPaymentGateway(
            success_rate=config.payment.success_rate,
            auto_complete=config.payment.auto_complete,
            seed=config.payment.seed,
        )

    fund_service = FundService(fund_repository)
    user_service = UserService(user_repository, id_generator)
    sip_service = SIPService(sip_repository, user_repository, fund_repository, id_generator)
    reconciler = PaymentReconciler(transaction_repository, sip_service)
    scheduler = SIPScheduler(
        sip_repository,
        transaction_repository,
        market,
        payment_gateway,
        sip_service,
        reconciler,
        id_generator,
        max_workers=config.scheduler.max_workers,
    )
    portfolio = PortfolioValuationService(sip_repository, transaction_repository, fund_repository, market)

    logger.debug(f"Created SIPMS system with {config.storage.backend} storage")

    return SIPSystem(
        config=config,
        id_generator=id_generator,
        fund_repository=fund_repository,
        user_repository=user_repository,
        sip_repository=sip_repository,
        transaction_repository=transaction_repository,
        market=market,
        payment_gateway=payment_gateway,
        fund_service=fund_service,
        user_service=user_service,
        sip_service=sip_service,
        reconciler=reconciler,
        scheduler=scheduler,
        portfolio=portfolio,
    )
