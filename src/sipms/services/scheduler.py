"""
SIP scheduler - executes due installments.

For each due SIP the scheduler prices the installment at the current NAV,
records a PENDING transaction and hands the payment to the gateway. The
gateway's callback goes to the PaymentReconciler, which settles the
transaction and advances the SIP. Settlement may happen before
initiate_payment returns or at any later time.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import List, Optional

from sipms.core.exceptions import InvalidStateError, SIPError, ValidationError
from sipms.core.id_generator import IdGenerator
from sipms.core.models import (
    PaymentStatus,
    SIP,
    SIPState,
    Transaction,
    TransactionType,
    to_decimal,
)
from sipms.repositories.base import SIPRepository, TransactionRepository
from sipms.services.market_price import MarketPriceService
from sipms.services.payment import PaymentGateway
from sipms.services.reconciler import PaymentReconciler
from sipms.services.sip_service import SIPService

logger = logging.getLogger(__name__)


class SIPScheduler:
    """
    Execution engine for due SIPs.

    Usage:
        scheduler = SIPScheduler(sips, transactions, market, gateway,
                                 sip_service, reconciler, IdGenerator())
        initiated = scheduler.execute_due_sips(date(2024, 2, 1))
    """

    def __init__(
        self,
        sip_repository: SIPRepository,
        transaction_repository: TransactionRepository,
        market_price_service: MarketPriceService,
        payment_gateway: PaymentGateway,
        sip_service: SIPService,
        reconciler: PaymentReconciler,
        id_generator: IdGenerator,
        max_workers: int = 1,
    ):
        self.sip_repository = sip_repository
        self.transaction_repository = transaction_repository
        self.market_price_service = market_price_service
        self.payment_gateway = payment_gateway
        self.sip_service = sip_service
        self.reconciler = reconciler
        self.id_generator = id_generator
        self.max_workers = max(1, int(max_workers))
        self._installment_lock = threading.Lock()

    def is_due(self, sip: SIP, as_of: date) -> bool:
        """True if the SIP is ACTIVE and its next execution date is on or before as_of."""
        return sip.state == SIPState.ACTIVE and sip.next_execution_date <= as_of

    def execute_due_sips(self, as_of: date) -> int:
        """
        Execute every SIP due as of the given date.

        Each SIP is processed inside its own error boundary: a failure is
        logged and the remaining SIPs are still executed.

        Args:
            as_of: Evaluation date; also the execution date of the transactions

        Returns:
            Number of SIPs whose payment was initiated
        """
        due_sips = [sip for sip in self.sip_repository.get_due_sips(as_of) if self.is_due(sip, as_of)]
        if not due_sips:
            logger.debug(f"No SIPs due as of {as_of}")
            return 0

        logger.info(f"Executing {len(due_sips)} due SIPs as of {as_of}")

        if self.max_workers > 1 and len(due_sips) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(lambda sip: self._execute_guarded(sip, as_of), due_sips))
        else:
            results = [self._execute_guarded(sip, as_of) for sip in due_sips]

        initiated = sum(1 for ok in results if ok)
        logger.info(f"Initiated {initiated}/{len(due_sips)} SIP executions as of {as_of}")
        return initiated

    def execute_sip(self, sip: SIP, execution_date: date) -> Optional[Transaction]:
        """
        Execute the next installment of one SIP.

        Args:
            sip: SIP to execute
            execution_date: Date recorded on the transaction

        Returns:
            The transaction as stored after the payment was initiated, or
            None if the SIP is not ACTIVE or its previous installment is
            still awaiting settlement

        Raises:
            FundNotFoundError: If no NAV is available for the SIP's fund
        """
        if sip.state != SIPState.ACTIVE:
            logger.debug(f"Skipping SIP {sip.id} in state {sip.state.value}")
            return None

        # Check and record together so two runs cannot price the same installment
        with self._installment_lock:
            pending = self._pending_installment(sip.id)
            if pending is not None:
                logger.warning(
                    f"Skipping SIP {sip.id}: installment {pending.id} from "
                    f"{pending.execution_date} is still pending"
                )
                return None

            nav = self.market_price_service.get_current_nav(sip.fund_id)
            amount = sip.installment_amount()

            txn = Transaction(
                id=self.id_generator.transaction_id(),
                sip_id=sip.id,
                amount=amount,
                nav=nav,
                execution_date=execution_date,
                transaction_type=TransactionType.INSTALLMENT,
                status=PaymentStatus.PENDING,
            )
            self.transaction_repository.add(txn)
        return self._submit(txn, sip)

    def invest_lump_sum(self, sip_id: str, amount, execution_date: date) -> Transaction:
        """
        Buy additional units in an existing SIP's fund.

        The purchase goes through the same payment and reconciliation path
        as an installment. A successful lump sum counts towards the SIP's
        valuation but leaves its installment count and schedule untouched.

        Raises:
            SIPNotFoundError: If the SIP does not exist
            InvalidStateError: If the SIP is STOPPED
            ValidationError: If amount is not positive
            FundNotFoundError: If no NAV is available for the fund
        """
        sip = self.sip_service.get_sip(sip_id)
        if sip.state == SIPState.STOPPED:
            raise InvalidStateError(sip_id, sip.state.value, "lump sum")

        amount = to_decimal(amount)
        if amount <= 0:
            raise ValidationError("Lump sum amount must be positive", field="amount")

        nav = self.market_price_service.get_current_nav(sip.fund_id)
        txn = Transaction(
            id=self.id_generator.transaction_id(),
            sip_id=sip.id,
            amount=amount,
            nav=nav,
            execution_date=execution_date,
            transaction_type=TransactionType.LUMP_SUM,
            status=PaymentStatus.PENDING,
        )
        self.transaction_repository.add(txn)
        return self._submit(txn, sip)

    def get_pending_transactions(self) -> List[Transaction]:
        return self.transaction_repository.get_by_status(PaymentStatus.PENDING)

    def _pending_installment(self, sip_id: str) -> Optional[Transaction]:
        for txn in self.transaction_repository.get_by_sip_id(sip_id):
            if txn.status == PaymentStatus.PENDING and txn.transaction_type == TransactionType.INSTALLMENT:
                return txn
        return None

    def _submit(self, txn: Transaction, sip: SIP) -> Transaction:
        """Hand a recorded transaction to the gateway."""
        logger.info(
            f"SIP {sip.id}: {txn.transaction_type.value} {txn.id} of {txn.amount} "
            f"at NAV {txn.nav} ({txn.units} units) on {txn.execution_date}"
        )

        sip_id = sip.id
        self.payment_gateway.initiate_payment(
            txn.id,
            txn.amount,
            lambda transaction_id, status: self.reconciler.on_callback(transaction_id, status, sip_id=sip_id),
        )
        return self.transaction_repository.get_by_id(txn.id)

    def _execute_guarded(self, sip: SIP, as_of: date) -> bool:
        try:
            return self.execute_sip(sip, as_of) is not None
        except SIPError as e:
            logger.error(f"Error executing SIP {sip.id}: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error executing SIP {sip.id}: {e}")
        return False
