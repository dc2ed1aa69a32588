"""
Payment callback reconciler.

Applies payment outcomes to the transaction ledger exactly once. The
gateway may deliver the same outcome several times, out of order or from
another thread; only the first delivery for a transaction has any effect:

1. Unknown transaction: ignored
2. callback_applied already set: ignored (duplicate)
3. Otherwise: status and callback_applied are stored
4. SUCCESS on an installment: the SIP's installment count goes up by one and
   its schedule advances one period from the current next execution date
5. FAILURE: nothing else changes, so the same installment is retried on the
   next scheduler pass
"""

import logging
import threading
from enum import Enum
from typing import Optional

from sipms.core.exceptions import ValidationError
from sipms.core.models import PaymentStatus, TransactionType
from sipms.repositories.base import TransactionRepository
from sipms.services.payment import PaymentOutcome
from sipms.services.sip_service import SIPService

logger = logging.getLogger(__name__)

# Callbacks for transactions in the same stripe serialize on one lock
LOCK_STRIPES = 64


class ReconcileResult(Enum):
    """Result of delivering one payment callback."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    UNKNOWN_TRANSACTION = "unknown_transaction"


class PaymentReconciler:
    """
    Idempotent receiver for payment outcomes.

    Usage:
        reconciler = PaymentReconciler(transactions, sip_service)
        reconciler.on_callback("TXN_000001", PaymentStatus.SUCCESS)  # APPLIED
        reconciler.on_callback("TXN_000001", PaymentStatus.SUCCESS)  # DUPLICATE
    """

    def __init__(self, transaction_repository: TransactionRepository, sip_service: SIPService):
        self.transaction_repository = transaction_repository
        self.sip_service = sip_service
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def on_callback(
        self,
        transaction_id: str,
        status: PaymentStatus,
        sip_id: Optional[str] = None,
    ) -> ReconcileResult:
        """
        Apply a payment outcome to its transaction.

        Args:
            transaction_id: Transaction the outcome belongs to
            status: SUCCESS or FAILURE
            sip_id: SIP the payment was initiated for; the transaction's own
                SIP id is authoritative

        Returns:
            ReconcileResult describing what happened

        Raises:
            ValidationError: If status is not a final payment status
        """
        status = self._final_status(status)

        with self._lock_for(transaction_id):
            txn = self.transaction_repository.get_by_id(transaction_id)
            if txn is None:
                logger.warning(f"Callback for unknown transaction {transaction_id} ignored")
                return ReconcileResult.UNKNOWN_TRANSACTION

            if txn.callback_applied:
                logger.debug(
                    f"Duplicate callback for {transaction_id} ignored "
                    f"(already {txn.status.value}, received {status.value})"
                )
                return ReconcileResult.DUPLICATE

            if sip_id is not None and sip_id != txn.sip_id:
                logger.warning(
                    f"Callback for {transaction_id} names SIP {sip_id}, "
                    f"transaction belongs to {txn.sip_id}"
                )

            txn.status = status
            txn.callback_applied = True
            self.transaction_repository.update(txn)

        logger.info(f"Transaction {transaction_id} settled as {status.value}")

        if status == PaymentStatus.SUCCESS and txn.transaction_type == TransactionType.INSTALLMENT:
            self.sip_service.record_installment_success(txn.sip_id)
        elif status == PaymentStatus.FAILURE:
            logger.info(f"Payment failed for {transaction_id}; SIP {txn.sip_id} stays due")

        return ReconcileResult.APPLIED

    def handle(self, outcome: PaymentOutcome) -> ReconcileResult:
        """Apply a PaymentOutcome event."""
        return self.on_callback(outcome.transaction_id, outcome.status)

    def _lock_for(self, transaction_id: str) -> threading.Lock:
        return self._locks[hash(transaction_id) % LOCK_STRIPES]

    @staticmethod
    def _final_status(status) -> PaymentStatus:
        if not isinstance(status, PaymentStatus):
            try:
                status = PaymentStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown payment status: {status!r}", field="status") from None
        if status == PaymentStatus.PENDING:
            raise ValidationError("Callback status must be SUCCESS or FAILURE", field="status")
        return status
