"""
Core models for SIPMS - funds, users, SIPs and the transaction ledger.

This module provides:
- Enums for fund classification, SIP frequency/state and payment status
- Fund, User, SIP and Transaction dataclasses
- stepped_up_amount: the step-up compounding formula shared by execution
  and valuation

All monetary values, NAVs and units use Decimal for precision.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class FundCategory(Enum):
    """Mutual fund categories."""
    EQUITY = "EQUITY"
    DEBT = "DEBT"
    HYBRID = "HYBRID"
    ELSS = "ELSS"


class RiskLevel(Enum):
    """Risk level of a mutual fund."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SIPFrequency(Enum):
    """How often an SIP executes."""
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"


class SIPState(Enum):
    """Lifecycle states of an SIP. STOPPED is terminal."""
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"


class PaymentStatus(Enum):
    """Status of a payment transaction."""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class TransactionType(Enum):
    """Type of ledger transaction."""
    INSTALLMENT = "INSTALLMENT"
    LUMP_SUM = "LUMP_SUM"


def to_decimal(value) -> Decimal:
    """Convert int/float/str to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def stepped_up_amount(
    base_amount: Decimal,
    step_up_percentage: Decimal,
    installment_number: int
) -> Decimal:
    """
    Installment amount with compounding step-up.

    Formula: base_amount * (1 + step_up_percentage/100) ** (installment_number - 1)

    Installment numbers are 1-indexed. With no step-up, or for the first
    installment, the base amount is returned unchanged.

    Args:
        base_amount: Amount of the first installment
        step_up_percentage: Compounding rate per installment, in percent
        installment_number: 1-indexed installment number

    Returns:
        Amount for that installment

    Example:
        >>> stepped_up_amount(Decimal("1000"), Decimal("10"), 3)
        Decimal('1210.00')
    """
    base_amount = to_decimal(base_amount)
    step_up_percentage = to_decimal(step_up_percentage)

    if step_up_percentage <= 0 or installment_number <= 1:
        return base_amount

    factor = (Decimal("1") + step_up_percentage / Decimal("100")) ** (installment_number - 1)
    return base_amount * factor


@dataclass
class Fund:
    """
    A mutual fund in the catalog.

    ``nav`` is the last-known NAV snapshot; the market price service is
    authoritative for execution and valuation.
    """
    id: str
    name: str
    category: FundCategory
    risk_level: RiskLevel
    nav: Decimal

    def __post_init__(self):
        self.nav = to_decimal(self.nav)


@dataclass
class User:
    """An investor."""
    id: str
    name: str
    email: str


@dataclass
class SIP:
    """
    Systematic Investment Plan.

    Attributes:
        id: SIP identifier
        user_id: Owning user
        fund_id: Target fund
        base_amount: First installment amount (> 0)
        frequency: Execution frequency
        state: Lifecycle state
        start_date: First scheduled date
        next_execution_date: Next scheduled date; advances only on success
        installment_count: Number of successful installments
        step_up_percentage: Compounding increase per installment, in percent
    """
    id: str
    user_id: str
    fund_id: str
    base_amount: Decimal
    frequency: SIPFrequency
    start_date: date
    state: SIPState = SIPState.ACTIVE
    next_execution_date: date = None
    installment_count: int = 0
    step_up_percentage: Decimal = Decimal("0")

    def __post_init__(self):
        self.base_amount = to_decimal(self.base_amount)
        self.step_up_percentage = to_decimal(self.step_up_percentage)
        if self.next_execution_date is None:
            self.next_execution_date = self.start_date

    @property
    def next_installment_number(self) -> int:
        """1-indexed number of the installment that would execute next."""
        return self.installment_count + 1

    def installment_amount(self, installment_number: int = None) -> Decimal:
        """Amount of the given installment (default: the next one)."""
        if installment_number is None:
            installment_number = self.next_installment_number
        return stepped_up_amount(self.base_amount, self.step_up_percentage, installment_number)


@dataclass
class Transaction:
    """
    Ledger entry for one payment attempt.

    Created PENDING by the scheduler and resolved exactly once by the
    reconciler; ``callback_applied`` records that the resolution happened.
    """
    id: str
    sip_id: str
    amount: Decimal
    nav: Decimal
    execution_date: date
    transaction_type: TransactionType = TransactionType.INSTALLMENT
    status: PaymentStatus = PaymentStatus.PENDING
    units: Decimal = None
    callback_applied: bool = False

    def __post_init__(self):
        self.amount = to_decimal(self.amount)
        self.nav = to_decimal(self.nav)
        if self.units is None:
            self.units = self.amount / self.nav if self.nav > 0 else Decimal("0")
        else:
            self.units = to_decimal(self.units)

    @property
    def is_settled(self) -> bool:
        return self.status != PaymentStatus.PENDING
