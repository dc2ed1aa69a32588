"""
Storage interfaces for SIPMS entities.

Each entity kind has one abstract repository. Implementations must hand out
copies: changing a returned entity has no effect until it is passed back to
update().
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Generic, List, Optional, TypeVar

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

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Keyed store for one entity kind."""

    @abstractmethod
    def add(self, entity: T) -> None:
        """Insert a new entity. Raises DuplicateEntityError if its id is taken."""

    @abstractmethod
    def get_by_id(self, entity_id: str) -> Optional[T]:
        """Return a copy of the entity, or None if absent."""

    @abstractmethod
    def get_all(self) -> List[T]:
        """Return copies of all entities."""

    @abstractmethod
    def update(self, entity: T) -> bool:
        """Replace a stored entity. Returns False if it does not exist."""

    @abstractmethod
    def remove(self, entity_id: str) -> bool:
        """Delete an entity. Returns False if it does not exist."""

    @abstractmethod
    def exists(self, entity_id: str) -> bool:
        pass

    @abstractmethod
    def get_all_ids(self) -> List[str]:
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class FundRepository(Repository[Fund]):
    """Fund catalog storage."""

    @abstractmethod
    def get_by_category(self, category: FundCategory) -> List[Fund]:
        pass

    @abstractmethod
    def get_by_risk_level(self, risk_level: RiskLevel) -> List[Fund]:
        pass


class UserRepository(Repository[User]):
    """User storage."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        pass


class SIPRepository(Repository[SIP]):
    """SIP storage with lookups used by the scheduler and valuation."""

    @abstractmethod
    def get_by_user_id(self, user_id: str) -> List[SIP]:
        pass

    @abstractmethod
    def get_by_fund_id(self, fund_id: str) -> List[SIP]:
        pass

    @abstractmethod
    def get_by_state(self, state: SIPState) -> List[SIP]:
        pass

    @abstractmethod
    def get_by_user_id_and_state(self, user_id: str, state: SIPState) -> List[SIP]:
        pass

    @abstractmethod
    def get_due_sips(self, as_of: date) -> List[SIP]:
        """ACTIVE SIPs whose next execution date is on or before as_of."""


class TransactionRepository(Repository[Transaction]):
    """Transaction ledger storage."""

    @abstractmethod
    def get_by_sip_id(self, sip_id: str) -> List[Transaction]:
        pass

    @abstractmethod
    def get_by_status(self, status: PaymentStatus) -> List[Transaction]:
        pass

    @abstractmethod
    def get_successful_by_sip_id(self, sip_id: str) -> List[Transaction]:
        pass
