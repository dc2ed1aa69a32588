"""Storage layer for SIPMS entities.

Provides:
- Repository interfaces: one per entity kind, with secondary lookups
- In-memory implementations: dictionaries with secondary indexes
- SQLite implementations: backed by the DatabaseManager schema
"""

from .base import (
    Repository,
    FundRepository,
    UserRepository,
    SIPRepository,
    TransactionRepository,
)
from .memory import (
    InMemoryFundRepository,
    InMemoryUserRepository,
    InMemorySIPRepository,
    InMemoryTransactionRepository,
)
from .sqlite import (
    SqliteFundRepository,
    SqliteUserRepository,
    SqliteSIPRepository,
    SqliteTransactionRepository,
)

__all__ = [
    # Interfaces
    "Repository",
    "FundRepository",
    "UserRepository",
    "SIPRepository",
    "TransactionRepository",
    # In-memory
    "InMemoryFundRepository",
    "InMemoryUserRepository",
    "InMemorySIPRepository",
    "InMemoryTransactionRepository",
    # SQLite
    "SqliteFundRepository",
    "SqliteUserRepository",
    "SqliteSIPRepository",
    "SqliteTransactionRepository",
]
