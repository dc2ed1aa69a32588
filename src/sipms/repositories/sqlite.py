"""
SQLite-backed repositories.

All repositories created from one connection share a lock, so the scheduler
can submit SIPs from worker threads over a connection opened with
check_same_thread=False (see DatabaseManager).
"""

import logging
import sqlite3
import threading
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sipms.core.exceptions import DatabaseError, DuplicateEntityError
from sipms.core.models import (
    Fund,
    FundCategory,
    PaymentStatus,
    RiskLevel,
    SIP,
    SIPFrequency,
    SIPState,
    Transaction,
    TransactionType,
    User,
)
from sipms.repositories.base import (
    FundRepository,
    SIPRepository,
    TransactionRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

_connection_locks = {}
_connection_locks_guard = threading.Lock()


def _lock_for(conn: sqlite3.Connection) -> threading.RLock:
    """One lock per connection, shared by every repository using it."""
    with _connection_locks_guard:
        lock = _connection_locks.get(id(conn))
        if lock is None:
            lock = threading.RLock()
            _connection_locks[id(conn)] = lock
        return lock


def _to_date(value) -> date:
    return date.fromisoformat(value) if isinstance(value, str) else value


class _SqliteRepository:
    """Common statement execution for the SQLite repositories."""

    TABLE: str = ""  # Override in subclass
    ENTITY: str = ""
    COLUMNS: tuple = ()  # Override in subclass

    def __init__(self, db_connection: sqlite3.Connection):
        """
        Initialize repository.

        Args:
            db_connection: SQLite connection with the SIPMS schema applied
        """
        self.conn = db_connection
        self.conn.row_factory = sqlite3.Row
        self._lock = _lock_for(db_connection)

    def _from_row(self, row: sqlite3.Row):
        raise NotImplementedError

    def _to_params(self, entity) -> tuple:
        raise NotImplementedError

    def _query(self, where: str = "", params: tuple = ()) -> list:
        sql = f"SELECT * FROM {self.TABLE}"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY id"
        with self._lock:
            try:
                rows = self.conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise DatabaseError(f"Query on {self.TABLE} failed: {e}") from e
        return [self._from_row(row) for row in rows]

    def _write(self, sql: str, params: tuple) -> int:
        with self._lock:
            try:
                cursor = self.conn.execute(sql, params)
                self.conn.commit()
                return cursor.rowcount
            except sqlite3.Error as e:
                self.conn.rollback()
                raise DatabaseError(f"Write to {self.TABLE} failed: {e}") from e

    def add(self, entity) -> None:
        placeholders = ", ".join("?" for _ in self.COLUMNS)
        with self._lock:
            if self.exists(entity.id):
                raise DuplicateEntityError(self.ENTITY, entity.id)
            self._write(
                f"INSERT INTO {self.TABLE} ({', '.join(self.COLUMNS)}) VALUES ({placeholders})",
                self._to_params(entity),
            )

    def get_by_id(self, entity_id: str):
        results = self._query("id = ?", (entity_id,))
        return results[0] if results else None

    def get_all(self) -> list:
        return self._query()

    def update(self, entity) -> bool:
        assignments = ", ".join(f"{col} = ?" for col in self.COLUMNS[1:])
        params = self._to_params(entity)
        updated = self._write(
            f"UPDATE {self.TABLE} SET {assignments} WHERE id = ?",
            params[1:] + (params[0],),
        )
        return updated > 0

    def remove(self, entity_id: str) -> bool:
        return self._write(f"DELETE FROM {self.TABLE} WHERE id = ?", (entity_id,)) > 0

    def exists(self, entity_id: str) -> bool:
        with self._lock:
            row = self.conn.execute(
                f"SELECT 1 FROM {self.TABLE} WHERE id = ?", (entity_id,)
            ).fetchone()
        return row is not None

    def count(self) -> int:
        with self._lock:
            return self.conn.execute(f"SELECT COUNT(*) FROM {self.TABLE}").fetchone()[0]

    def get_all_ids(self) -> List[str]:
        with self._lock:
            return [row[0] for row in self.conn.execute(f"SELECT id FROM {self.TABLE} ORDER BY id")]


class SqliteFundRepository(_SqliteRepository, FundRepository):
    """Fund catalog in the funds table."""

    TABLE = "funds"
    ENTITY = "Fund"
    COLUMNS = ("id", "name", "category", "risk_level", "nav")

    def _from_row(self, row: sqlite3.Row) -> Fund:
        return Fund(
            id=row["id"],
            name=row["name"],
            category=FundCategory(row["category"]),
            risk_level=RiskLevel(row["risk_level"]),
            nav=Decimal(row["nav"]),
        )

    def _to_params(self, fund: Fund) -> tuple:
        return (fund.id, fund.name, fund.category.value, fund.risk_level.value, str(fund.nav))

    def get_by_category(self, category: FundCategory) -> List[Fund]:
        return self._query("category = ?", (category.value,))

    def get_by_risk_level(self, risk_level: RiskLevel) -> List[Fund]:
        return self._query("risk_level = ?", (risk_level.value,))


class SqliteUserRepository(_SqliteRepository, UserRepository):
    """Users in the users table."""

    TABLE = "users"
    ENTITY = "User"
    COLUMNS = ("id", "name", "email")

    def _from_row(self, row: sqlite3.Row) -> User:
        return User(id=row["id"], name=row["name"], email=row["email"])

    def _to_params(self, user: User) -> tuple:
        return (user.id, user.name, user.email)

    def get_by_email(self, email: str) -> Optional[User]:
        results = self._query("LOWER(email) = LOWER(?)", (email,))
        return results[0] if results else None


class SqliteSIPRepository(_SqliteRepository, SIPRepository):
    """SIPs in the sips table."""

    TABLE = "sips"
    ENTITY = "SIP"
    COLUMNS = (
        "id", "user_id", "fund_id", "base_amount", "frequency", "state",
        "start_date", "next_execution_date", "installment_count", "step_up_percentage",
    )

    def _from_row(self, row: sqlite3.Row) -> SIP:
        return SIP(
            id=row["id"],
            user_id=row["user_id"],
            fund_id=row["fund_id"],
            base_amount=Decimal(row["base_amount"]),
            frequency=SIPFrequency(row["frequency"]),
            state=SIPState(row["state"]),
            start_date=_to_date(row["start_date"]),
            next_execution_date=_to_date(row["next_execution_date"]),
            installment_count=int(row["installment_count"]),
            step_up_percentage=Decimal(row["step_up_percentage"]),
        )

    def _to_params(self, sip: SIP) -> tuple:
        return (
            sip.id,
            sip.user_id,
            sip.fund_id,
            str(sip.base_amount),
            sip.frequency.value,
            sip.state.value,
            sip.start_date.isoformat(),
            sip.next_execution_date.isoformat(),
            sip.installment_count,
            str(sip.step_up_percentage),
        )

    def get_by_user_id(self, user_id: str) -> List[SIP]:
        return self._query("user_id = ?", (user_id,))

    def get_by_fund_id(self, fund_id: str) -> List[SIP]:
        return self._query("fund_id = ?", (fund_id,))

    def get_by_state(self, state: SIPState) -> List[SIP]:
        return self._query("state = ?", (state.value,))

    def get_by_user_id_and_state(self, user_id: str, state: SIPState) -> List[SIP]:
        return self._query("user_id = ? AND state = ?", (user_id, state.value))

    def get_due_sips(self, as_of: date) -> List[SIP]:
        return self._query(
            "state = ? AND next_execution_date <= ?",
            (SIPState.ACTIVE.value, as_of.isoformat()),
        )


class SqliteTransactionRepository(_SqliteRepository, TransactionRepository):
    """Transaction ledger in the transactions table."""

    TABLE = "transactions"
    ENTITY = "Transaction"
    COLUMNS = (
        "id", "sip_id", "amount", "units", "nav", "status",
        "execution_date", "transaction_type", "callback_applied",
    )

    def _from_row(self, row: sqlite3.Row) -> Transaction:
        return Transaction(
            id=row["id"],
            sip_id=row["sip_id"],
            amount=Decimal(row["amount"]),
            units=Decimal(row["units"]),
            nav=Decimal(row["nav"]),
            status=PaymentStatus(row["status"]),
            execution_date=_to_date(row["execution_date"]),
            transaction_type=TransactionType(row["transaction_type"]),
            callback_applied=bool(row["callback_applied"]),
        )

    def _to_params(self, txn: Transaction) -> tuple:
        return (
            txn.id,
            txn.sip_id,
            str(txn.amount),
            str(txn.units),
            str(txn.nav),
            txn.status.value,
            txn.execution_date.isoformat(),
            txn.transaction_type.value,
            int(txn.callback_applied),
        )

    def get_by_sip_id(self, sip_id: str) -> List[Transaction]:
        return self._query("sip_id = ?", (sip_id,))

    def get_by_status(self, status: PaymentStatus) -> List[Transaction]:
        return self._query("status = ?", (status.value,))

    def get_successful_by_sip_id(self, sip_id: str) -> List[Transaction]:
        return self._query(
            "sip_id = ? AND status = ?", (sip_id, PaymentStatus.SUCCESS.value)
        )
