"""
SIP lifecycle service.

Owns the SIP state machine:

    ACTIVE --pause--> PAUSED --unpause--> ACTIVE
    ACTIVE/PAUSED --stop--> STOPPED (terminal)

plus the installment counter, the step-up percentage and the schedule.
Illegal transitions raise InvalidStateError and leave the SIP untouched.
Every read-modify-write of a SIP happens under one lock, so lifecycle
requests and payment callbacks for the same SIP cannot interleave.
"""

import logging
import threading
from datetime import date
from decimal import Decimal
from typing import Callable, FrozenSet, List

from sipms.core.calendar import next_execution_date
from sipms.core.exceptions import (
    FundNotFoundError,
    InvalidStateError,
    SIPNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from sipms.core.id_generator import IdGenerator
from sipms.core.models import SIP, SIPFrequency, SIPState, to_decimal
from sipms.repositories.base import FundRepository, SIPRepository, UserRepository

logger = logging.getLogger(__name__)

_NOT_STOPPED = frozenset({SIPState.ACTIVE, SIPState.PAUSED})


class SIPService:
    """
    Creation, lifecycle transitions and queries for SIPs.

    Usage:
        service = SIPService(sips, users, funds, IdGenerator())
        sip = service.create_sip(user.id, "FUND_000001", Decimal("5000"),
                                 SIPFrequency.MONTHLY, date(2024, 1, 1))
        service.pause_sip(sip.id)
        service.unpause_sip(sip.id)
    """

    def __init__(
        self,
        sip_repository: SIPRepository,
        user_repository: UserRepository,
        fund_repository: FundRepository,
        id_generator: IdGenerator,
    ):
        self.sip_repository = sip_repository
        self.user_repository = user_repository
        self.fund_repository = fund_repository
        self.id_generator = id_generator
        self._lock = threading.RLock()

    def create_sip(
        self,
        user_id: str,
        fund_id: str,
        amount,
        frequency: SIPFrequency,
        start_date: date,
        step_up_percentage=Decimal("0"),
    ) -> SIP:
        """
        Create an ACTIVE SIP whose first installment is due on start_date.

        Args:
            user_id: Owning user
            fund_id: Fund to invest in
            amount: Base installment amount (> 0)
            frequency: Execution frequency
            start_date: First execution date
            step_up_percentage: Compounding increase per installment (>= 0)

        Returns:
            The created SIP

        Raises:
            UserNotFoundError: If the user does not exist
            FundNotFoundError: If the fund does not exist
            ValidationError: If amount <= 0 or step_up_percentage < 0
        """
        if not self.user_repository.exists(user_id):
            raise UserNotFoundError(user_id)
        if not self.fund_repository.exists(fund_id):
            raise FundNotFoundError(fund_id)

        amount = to_decimal(amount)
        step_up_percentage = to_decimal(step_up_percentage)

        if amount <= 0:
            raise ValidationError("SIP amount must be positive", field="amount")
        if step_up_percentage < 0:
            raise ValidationError("Step-up percentage cannot be negative", field="step_up_percentage")

        sip = SIP(
            id=self.id_generator.sip_id(),
            user_id=user_id,
            fund_id=fund_id,
            base_amount=amount,
            frequency=frequency,
            start_date=start_date,
            step_up_percentage=step_up_percentage,
        )
        self.sip_repository.add(sip)

        logger.info(
            f"Created SIP {sip.id}: {frequency.value} {amount} into {fund_id} "
            f"for {user_id} starting {start_date}"
        )
        return sip

    # Lifecycle transitions

    def pause_sip(self, sip_id: str) -> SIP:
        return self._transition(sip_id, "pause", {SIPState.ACTIVE}, SIPState.PAUSED)

    def unpause_sip(self, sip_id: str) -> SIP:
        return self._transition(sip_id, "unpause", {SIPState.PAUSED}, SIPState.ACTIVE)

    def stop_sip(self, sip_id: str) -> SIP:
        return self._transition(sip_id, "stop", _NOT_STOPPED, SIPState.STOPPED)

    def modify_step_up(self, sip_id: str, step_up_percentage) -> SIP:
        """
        Change the step-up percentage of an ACTIVE or PAUSED SIP.

        Raises:
            InvalidStateError: If the SIP is STOPPED
            ValidationError: If the new percentage is negative
        """
        step_up_percentage = to_decimal(step_up_percentage)

        def apply(sip: SIP) -> None:
            if step_up_percentage < 0:
                raise ValidationError("Step-up percentage cannot be negative", field="step_up_percentage")
            sip.step_up_percentage = step_up_percentage

        sip = self._mutate(sip_id, "modify step-up", _NOT_STOPPED, apply)
        logger.info(f"SIP {sip_id} step-up set to {step_up_percentage}%")
        return sip

    def on_payment_success(self, sip_id: str) -> SIP:
        """Count one more successful installment."""
        def apply(sip: SIP) -> None:
            sip.installment_count += 1

        sip = self._mutate(sip_id, "payment success", None, apply)
        logger.debug(f"SIP {sip_id} installment count is now {sip.installment_count}")
        return sip

    def advance_schedule(self, sip_id: str) -> SIP:
        """Move next_execution_date one frequency period past its current value."""
        def apply(sip: SIP) -> None:
            sip.next_execution_date = next_execution_date(sip.next_execution_date, sip.frequency)

        sip = self._mutate(sip_id, "advance schedule", None, apply)
        logger.debug(f"SIP {sip_id} next execution on {sip.next_execution_date}")
        return sip

    def record_installment_success(self, sip_id: str) -> SIP:
        """
        Apply a settled installment: count it and advance the schedule.

        Both fields change in one locked update, so readers never see the
        count raised with the old next execution date.
        """
        def apply(sip: SIP) -> None:
            sip.installment_count += 1
            sip.next_execution_date = next_execution_date(sip.next_execution_date, sip.frequency)

        sip = self._mutate(sip_id, "installment success", None, apply)
        logger.debug(
            f"SIP {sip_id} installment count is now {sip.installment_count}, "
            f"next execution on {sip.next_execution_date}"
        )
        return sip

    # Queries

    def get_sip(self, sip_id: str) -> SIP:
        sip = self.sip_repository.get_by_id(sip_id)
        if sip is None:
            raise SIPNotFoundError(sip_id)
        return sip

    def get_sips_by_user(self, user_id: str) -> List[SIP]:
        return self.sip_repository.get_by_user_id(user_id)

    def get_sips_by_user_and_state(self, user_id: str, state: SIPState) -> List[SIP]:
        return self.sip_repository.get_by_user_id_and_state(user_id, state)

    def calculate_current_installment_amount(self, sip_id: str) -> Decimal:
        """Amount of the installment that would execute next."""
        return self.get_sip(sip_id).installment_amount()

    # Internals

    def _transition(self, sip_id: str, operation: str, legal_from, target: SIPState) -> SIP:
        def apply(sip: SIP) -> None:
            sip.state = target

        previous = self.get_sip(sip_id).state
        sip = self._mutate(sip_id, operation, legal_from, apply)
        logger.info(f"SIP {sip_id} {previous.value} -> {target.value}")
        return sip

    def _mutate(
        self,
        sip_id: str,
        operation: str,
        legal_from: FrozenSet[SIPState],
        apply: Callable[[SIP], None],
    ) -> SIP:
        """
        Load, check, change and store one SIP under the service lock.

        ``apply`` works on a copy, so a guard or validation failure leaves
        the stored SIP as it was.
        """
        with self._lock:
            sip = self.get_sip(sip_id)
            if legal_from is not None and sip.state not in legal_from:
                raise InvalidStateError(sip_id, sip.state.value, operation)
            apply(sip)
            self.sip_repository.update(sip)
            return sip
