"""
Payment gateway.

Payments complete asynchronously: the gateway reports the outcome through a
callback ``(transaction_id, status)`` that may fire immediately, later, more
than once, or never. Receivers must therefore be idempotent (see
PaymentReconciler).
"""

import logging
import random
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from sipms.core.exceptions import ValidationError
from sipms.core.models import PaymentStatus

logger = logging.getLogger(__name__)

PaymentCallback = Callable[[str, PaymentStatus], None]


@dataclass(frozen=True)
class PaymentOutcome:
    """Outcome event for one payment attempt."""
    transaction_id: str
    status: PaymentStatus


class PaymentGateway(ABC):
    """Collaborator that collects payments."""

    @abstractmethod
    def initiate_payment(self, transaction_id: str, amount: Decimal, callback: PaymentCallback) -> None:
        """
        Start collecting a payment.

        Args:
            transaction_id: Ledger transaction the payment belongs to
            amount: Amount to collect
            callback: Invoked with (transaction_id, status) when the outcome is known
        """


class SimulatedPaymentGateway(PaymentGateway):
    """
    Payment gateway simulation.

    With auto_complete the outcome is decided immediately (SUCCESS with
    probability success_rate) and the callback fires on the caller's stack.
    Otherwise payments stay pending until complete_payment() or
    complete_all_pending() is called.

    Every delivered outcome is remembered so redeliver() can replay it,
    reproducing the duplicate notifications a real gateway may send.
    """

    def __init__(self, success_rate: float = 1.0, auto_complete: bool = True, seed: Optional[int] = None):
        self._lock = threading.RLock()
        self._random = random.Random(seed)
        self._pending: Dict[str, Tuple[Decimal, PaymentCallback]] = {}
        self._delivered: Dict[str, Tuple[PaymentStatus, PaymentCallback]] = {}
        self.auto_complete = auto_complete
        self.success_rate = 1.0
        self.set_success_rate(success_rate)

    def initiate_payment(self, transaction_id: str, amount: Decimal, callback: PaymentCallback) -> None:
        if self.auto_complete:
            status = self._simulate_result()
            logger.debug(f"Payment {transaction_id} for {amount} completed: {status.value}")
            self._deliver(transaction_id, status, callback)
        else:
            with self._lock:
                self._pending[transaction_id] = (amount, callback)
            logger.debug(f"Payment {transaction_id} for {amount} pending")

    def complete_payment(self, transaction_id: str, status: PaymentStatus) -> bool:
        """
        Complete a pending payment with the given status.

        Returns:
            False if no payment with this id is pending
        """
        if status == PaymentStatus.PENDING:
            raise ValidationError("Payment must complete as SUCCESS or FAILURE", field="status")

        with self._lock:
            entry = self._pending.pop(transaction_id, None)
        if entry is None:
            logger.warning(f"No pending payment for transaction {transaction_id}")
            return False

        _, callback = entry
        self._deliver(transaction_id, status, callback)
        return True

    def complete_all_pending(self, status: PaymentStatus) -> int:
        """Complete every pending payment with the same status."""
        with self._lock:
            pending_ids = sorted(self._pending)

        completed = 0
        for transaction_id in pending_ids:
            if self.complete_payment(transaction_id, status):
                completed += 1
        return completed

    def redeliver(self, transaction_id: str) -> bool:
        """
        Fire the callback of an already completed payment again.

        Returns:
            False if no outcome was delivered for this id yet
        """
        with self._lock:
            entry = self._delivered.get(transaction_id)
        if entry is None:
            return False

        status, callback = entry
        logger.debug(f"Redelivering {status.value} for {transaction_id}")
        callback(transaction_id, status)
        return True

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def pending_transaction_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._pending)

    def set_success_rate(self, rate: float) -> None:
        """Set the success probability, clamped to [0, 1]."""
        self.success_rate = max(0.0, min(1.0, float(rate)))

    def _simulate_result(self) -> PaymentStatus:
        with self._lock:
            draw = self._random.random()
        return PaymentStatus.SUCCESS if draw < self.success_rate else PaymentStatus.FAILURE

    def _deliver(self, transaction_id: str, status: PaymentStatus, callback: PaymentCallback) -> None:
        with self._lock:
            self._delivered[transaction_id] = (status, callback)
        callback(transaction_id, status)
