"""
In-memory repositories.

Dictionaries keyed by id, with secondary indexes for the frequent lookups
(SIPs by user and fund, transactions by SIP, users by email). All access is
guarded by a re-entrant lock so the scheduler may submit SIPs in parallel.
Results are ordered by id, which for sequential ids is insertion order.
"""

import copy
import threading
from collections import defaultdict
from datetime import date
from typing import Callable, Dict, Generic, List, Optional, Set, TypeVar

from sipms.core.exceptions import DuplicateEntityError
from sipms.core.models import (
    Fund,
    FundCategory,
    PaymentStatus,
    RiskLevel,
    SIP,
    SIPState,
    Transaction,
    User,
)
from sipms.repositories.base import (
    FundRepository,
    SIPRepository,
    TransactionRepository,
    UserRepository,
)

T = TypeVar("T")


class _InMemoryStore(Generic[T]):
    """Shared id-keyed storage with copy-on-read semantics."""

    ENTITY = "Entity"

    def __init__(self):
        self._storage: Dict[str, T] = {}
        self._lock = threading.RLock()

    def _index_add(self, entity: T) -> None:
        pass

    def _index_remove(self, entity: T) -> None:
        pass

    def _select(self, predicate: Callable[[T], bool]) -> List[T]:
        with self._lock:
            return [
                copy.copy(self._storage[key])
                for key in sorted(self._storage)
                if predicate(self._storage[key])
            ]

    def _select_ids(self, ids: Set[str]) -> List[T]:
        with self._lock:
            return [copy.copy(self._storage[key]) for key in sorted(ids) if key in self._storage]

    def add(self, entity: T) -> None:
        with self._lock:
            if entity.id in self._storage:
                raise DuplicateEntityError(self.ENTITY, entity.id)
            self._storage[entity.id] = copy.copy(entity)
            self._index_add(entity)

    def get_by_id(self, entity_id: str) -> Optional[T]:
        with self._lock:
            entity = self._storage.get(entity_id)
            return copy.copy(entity) if entity is not None else None

    def get_all(self) -> List[T]:
        return self._select(lambda _: True)

    def update(self, entity: T) -> bool:
        with self._lock:
            existing = self._storage.get(entity.id)
            if existing is None:
                return False
            self._index_remove(existing)
            self._storage[entity.id] = copy.copy(entity)
            self._index_add(entity)
            return True

    def remove(self, entity_id: str) -> bool:
        with self._lock:
            existing = self._storage.pop(entity_id, None)
            if existing is None:
                return False
            self._index_remove(existing)
            return True

    def exists(self, entity_id: str) -> bool:
        with self._lock:
            return entity_id in self._storage

    def get_all_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._storage)

    def count(self) -> int:
        with self._lock:
            return len(self._storage)


class InMemoryFundRepository(_InMemoryStore[Fund], FundRepository):
    """In-memory fund catalog."""

    ENTITY = "Fund"

    def get_by_category(self, category: FundCategory) -> List[Fund]:
        return self._select(lambda f: f.category == category)

    def get_by_risk_level(self, risk_level: RiskLevel) -> List[Fund]:
        return self._select(lambda f: f.risk_level == risk_level)


class InMemoryUserRepository(_InMemoryStore[User], UserRepository):
    """In-memory users with an email index."""

    ENTITY = "User"

    def __init__(self):
        super().__init__()
        self._email_index: Dict[str, str] = {}

    def _index_add(self, entity: User) -> None:
        self._email_index[entity.email.lower()] = entity.id

    def _index_remove(self, entity: User) -> None:
        self._email_index.pop(entity.email.lower(), None)

    def get_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._email_index.get(email.lower())
            return self.get_by_id(user_id) if user_id else None


class InMemorySIPRepository(_InMemoryStore[SIP], SIPRepository):
    """In-memory SIPs indexed by user and fund."""

    ENTITY = "SIP"

    def __init__(self):
        super().__init__()
        self._user_index: Dict[str, Set[str]] = defaultdict(set)
        self._fund_index: Dict[str, Set[str]] = defaultdict(set)

    def _index_add(self, entity: SIP) -> None:
        self._user_index[entity.user_id].add(entity.id)
        self._fund_index[entity.fund_id].add(entity.id)

    def _index_remove(self, entity: SIP) -> None:
        self._user_index[entity.user_id].discard(entity.id)
        self._fund_index[entity.fund_id].discard(entity.id)

    def get_by_user_id(self, user_id: str) -> List[SIP]:
        with self._lock:
            return self._select_ids(set(self._user_index.get(user_id, ())))

    def get_by_fund_id(self, fund_id: str) -> List[SIP]:
        with self._lock:
            return self._select_ids(set(self._fund_index.get(fund_id, ())))

    def get_by_state(self, state: SIPState) -> List[SIP]:
        return self._select(lambda s: s.state == state)

    def get_by_user_id_and_state(self, user_id: str, state: SIPState) -> List[SIP]:
        return [s for s in self.get_by_user_id(user_id) if s.state == state]

    def get_due_sips(self, as_of: date) -> List[SIP]:
        return self._select(
            lambda s: s.state == SIPState.ACTIVE and s.next_execution_date <= as_of
        )


class InMemoryTransactionRepository(_InMemoryStore[Transaction], TransactionRepository):
    """In-memory transaction ledger indexed by SIP."""

    ENTITY = "Transaction"

    def __init__(self):
        super().__init__()
        self._sip_index: Dict[str, Set[str]] = defaultdict(set)

    def _index_add(self, entity: Transaction) -> None:
        self._sip_index[entity.sip_id].add(entity.id)

    def _index_remove(self, entity: Transaction) -> None:
        self._sip_index[entity.sip_id].discard(entity.id)

    def get_by_sip_id(self, sip_id: str) -> List[Transaction]:
        with self._lock:
            return self._select_ids(set(self._sip_index.get(sip_id, ())))

    def get_by_status(self, status: PaymentStatus) -> List[Transaction]:
        return self._select(lambda t: t.status == status)

    def get_successful_by_sip_id(self, sip_id: str) -> List[Transaction]:
        return [t for t in self.get_by_sip_id(sip_id) if t.status == PaymentStatus.SUCCESS]
