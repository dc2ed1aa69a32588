"""Services module for SIPMS business logic.

Provides services for:
- Fund catalog and user registry
- SIP lifecycle: creation, pause/unpause/stop, step-up changes
- Scheduler: execution of due installments and lump sums
- Reconciler: idempotent application of payment outcomes
- Portfolio valuation from the transaction ledger
- Collaborators: market prices and payment gateway (with simulations)
"""

from .market_price import MarketPriceService, SimulatedMarketPriceService
from .payment import PaymentGateway, PaymentOutcome, SimulatedPaymentGateway
from .fund_service import FundService
from .user_service import UserService
from .sip_service import SIPService
from .reconciler import PaymentReconciler, ReconcileResult
from .scheduler import SIPScheduler
from .portfolio_service import PortfolioValuationService, PortfolioSummary, SIPPortfolioItem

__all__ = [
    # Collaborators
    "MarketPriceService",
    "SimulatedMarketPriceService",
    "PaymentGateway",
    "PaymentOutcome",
    "SimulatedPaymentGateway",
    # Catalog
    "FundService",
    "UserService",
    # Lifecycle and execution
    "SIPService",
    "SIPScheduler",
    "PaymentReconciler",
    "ReconcileResult",
    # Valuation
    "PortfolioValuationService",
    "PortfolioSummary",
    "SIPPortfolioItem",
]
