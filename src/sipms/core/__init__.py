"""
Core module - Foundation components for SIPMS.

Provides:
- Core models: Fund, User, SIP, Transaction and their enums
- stepped_up_amount: step-up compounding formula
- Calendar arithmetic for SIP schedules
- IdGenerator: injectable, thread-safe id source
- DatabaseManager: SQLite database management
- SIPConfig: JSON configuration with defaults
- Exception hierarchy rooted at SIPError
"""

from sipms.core.database import DatabaseManager
from sipms.core.config import SIPConfig, DEFAULT_CONFIG
from sipms.core.id_generator import IdGenerator, UuidIdGenerator
from sipms.core.calendar import (
    add_weeks,
    add_months,
    add_quarters,
    days_in_month,
    format_date,
    is_leap_year,
    is_on_or_before,
    next_execution_date,
)
from sipms.core.exceptions import (
    SIPError,
    NotFoundError,
    FundNotFoundError,
    SIPNotFoundError,
    UserNotFoundError,
    TransactionNotFoundError,
    ValidationError,
    InvalidStateError,
    DatabaseError,
    DuplicateEntityError,
    ConfigurationError,
)
from sipms.core.models import (
    FundCategory,
    RiskLevel,
    SIPFrequency,
    SIPState,
    PaymentStatus,
    TransactionType,
    Fund,
    User,
    SIP,
    Transaction,
    stepped_up_amount,
    to_decimal,
)

__all__ = [
    # Database & Infrastructure
    "DatabaseManager",
    "SIPConfig",
    "DEFAULT_CONFIG",
    "IdGenerator",
    "UuidIdGenerator",
    # Calendar
    "add_weeks",
    "add_months",
    "add_quarters",
    "days_in_month",
    "format_date",
    "is_leap_year",
    "is_on_or_before",
    "next_execution_date",
    # Exceptions
    "SIPError",
    "NotFoundError",
    "FundNotFoundError",
    "SIPNotFoundError",
    "UserNotFoundError",
    "TransactionNotFoundError",
    "ValidationError",
    "InvalidStateError",
    "DatabaseError",
    "DuplicateEntityError",
    "ConfigurationError",
    # Core Models - Enums
    "FundCategory",
    "RiskLevel",
    "SIPFrequency",
    "SIPState",
    "PaymentStatus",
    "TransactionType",
    # Core Models - Dataclasses
    "Fund",
    "User",
    "SIP",
    "Transaction",
    # Utility Functions
    "stepped_up_amount",
    "to_decimal",
]
