"""
SQLite database initialization and connection management.

Provides the SQLite schema backing the SQLite repositories.
Uses singleton pattern for connection management.

Thread Safety Notes:
- Uses check_same_thread=False for multi-threaded access
- WAL mode is enabled for file databases
- The repositories serialize their own statements with a shared lock
"""

import sqlite3
import threading
from pathlib import Path
from typing import Optional

from sipms.core.exceptions import DatabaseError


# Monetary values, NAVs and units are stored as TEXT to keep Decimal precision.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS funds (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    category TEXT NOT NULL CHECK(category IN ('EQUITY', 'DEBT', 'HYBRID', 'ELSS')),
    risk_level TEXT NOT NULL CHECK(risk_level IN ('LOW', 'MEDIUM', 'HIGH')),
    nav TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS sips (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    fund_id TEXT NOT NULL,
    base_amount TEXT NOT NULL,
    frequency TEXT NOT NULL CHECK(frequency IN ('WEEKLY', 'MONTHLY', 'QUARTERLY')),
    state TEXT NOT NULL CHECK(state IN ('ACTIVE', 'PAUSED', 'STOPPED')),
    start_date DATE NOT NULL,
    next_execution_date DATE NOT NULL,
    installment_count INTEGER NOT NULL DEFAULT 0 CHECK(installment_count >= 0),
    step_up_percentage TEXT NOT NULL DEFAULT '0',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    sip_id TEXT NOT NULL,
    amount TEXT NOT NULL,
    units TEXT NOT NULL,
    nav TEXT NOT NULL,
    status TEXT NOT NULL CHECK(status IN ('PENDING', 'SUCCESS', 'FAILURE')),
    execution_date DATE NOT NULL,
    transaction_type TEXT NOT NULL CHECK(transaction_type IN ('INSTALLMENT', 'LUMP_SUM')),
    callback_applied BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_funds_category ON funds(category);
CREATE INDEX IF NOT EXISTS idx_funds_risk ON funds(risk_level);
CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
CREATE INDEX IF NOT EXISTS idx_sips_user ON sips(user_id);
CREATE INDEX IF NOT EXISTS idx_sips_fund ON sips(fund_id);
CREATE INDEX IF NOT EXISTS idx_sips_state_next ON sips(state, next_execution_date);
CREATE INDEX IF NOT EXISTS idx_txn_sip ON transactions(sip_id);
CREATE INDEX IF NOT EXISTS idx_txn_status ON transactions(status);
"""


class DatabaseManager:
    """
    Singleton manager for SQLite database connections.

    Usage:
        db = DatabaseManager()
        conn = db.init("/path/to/sipms.db")
        # Use connection...
        db.close()
    """

    _instance: Optional["DatabaseManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "DatabaseManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._connection = None
                    cls._instance._db_path = None
        return cls._instance

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the current database connection."""
        if self._connection is None:
            raise DatabaseError("Database not initialized. Call init() first.")
        return self._connection

    def init(self, db_path: str = ":memory:") -> sqlite3.Connection:
        """
        Initialize database.

        Args:
            db_path: Path to database file or ":memory:" for in-memory database

        Returns:
            Database connection

        Raises:
            DatabaseError: If initialization fails
        """
        try:
            self._db_path = db_path

            # Create parent directory if needed (unless in-memory)
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row

            if db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")

            self._execute_schema()

            return self._connection

        except (sqlite3.Error, OSError) as e:
            raise DatabaseError(f"Failed to initialize database: {e}") from e

    def _execute_schema(self) -> None:
        """Create all tables if not exist."""
        try:
            self._connection.executescript(SCHEMA_SQL)
            self._connection.commit()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to execute schema: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            self._db_path = None

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)."""
        with cls._lock:
            if cls._instance and cls._instance._connection:
                cls._instance._connection.close()
            cls._instance = None
