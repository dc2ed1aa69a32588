"""
Integration tests for thread safety and concurrent access.

Tests that parallel SIP execution and concurrent payment callbacks on a
shared SQLite connection settle every transaction exactly once.
"""

import pytest
import threading
from datetime import date
from decimal import Decimal

from sipms.core.config import SIPConfig
from sipms.core.models import PaymentStatus, SIPFrequency
from sipms.services.payment import SimulatedPaymentGateway
from sipms.services.reconciler import ReconcileResult
from sipms.system import create_system


@pytest.fixture
def parallel_system(id_generator, db_connection):
    """SQLite-backed system executing due SIPs on four workers."""
    config = SIPConfig({
        "storage": {"backend": "sqlite"},
        "scheduler": {"max_workers": 4},
    })
    system = create_system(config, id_generator=id_generator, connection=db_connection)
    system.register_sample_funds()
    return system


def create_sips(system, count, frequency=SIPFrequency.MONTHLY):
    user = system.user_service.register_user("Load Tester", "load@example.com")
    return [
        system.sip_service.create_sip(
            user.id, f"FUND_00000{i % 6 + 1}", Decimal("1000"), frequency, date(2024, 1, 1)
        )
        for i in range(count)
    ]


class TestParallelExecution:
    """Tests for the scheduler's worker pool on SQLite."""

    def test_parallel_execution_settles_all(self, parallel_system):
        sips = create_sips(parallel_system, 24)

        assert parallel_system.scheduler.execute_due_sips(date(2024, 1, 1)) == 24

        for sip in sips:
            stored = parallel_system.sip_service.get_sip(sip.id)
            assert stored.installment_count == 1
            assert stored.next_execution_date == date(2024, 2, 1)
        assert parallel_system.transaction_repository.count() == 24
        assert parallel_system.scheduler.get_pending_transactions() == []

    def test_repeated_runs_never_double_execute(self, parallel_system):
        sips = create_sips(parallel_system, 12, SIPFrequency.WEEKLY)

        for _ in range(3):
            parallel_system.scheduler.execute_due_sips(date(2024, 1, 1))

        for sip in sips:
            assert parallel_system.sip_service.get_sip(sip.id).installment_count == 1
        assert parallel_system.transaction_repository.count() == 12


class TestConcurrentCallbacks:
    """Tests for duplicate callbacks racing on the same transactions."""

    def test_racing_duplicates_apply_once(self, id_generator, db_connection):
        gateway = SimulatedPaymentGateway(auto_complete=False)
        system = create_system(
            SIPConfig({"storage": {"backend": "sqlite"}}),
            id_generator=id_generator,
            connection=db_connection,
            payment_gateway=gateway,
        )
        system.register_sample_funds()
        sips = create_sips(system, 5)
        system.scheduler.execute_due_sips(date(2024, 1, 1))
        transaction_ids = gateway.pending_transaction_ids()
        assert len(transaction_ids) == 5

        results = []
        errors = []
        lock = threading.Lock()
        start = threading.Barrier(20)

        def deliver(transaction_id):
            try:
                start.wait()
                result = system.reconciler.on_callback(transaction_id, PaymentStatus.SUCCESS)
                with lock:
                    results.append(result)
            except Exception as e:
                with lock:
                    errors.append(str(e))

        # Four deliveries of every transaction
        threads = [
            threading.Thread(target=deliver, args=(transaction_id,))
            for transaction_id in transaction_ids
            for _ in range(4)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(errors) == 0, f"Concurrent callbacks failed: {errors}"
        assert results.count(ReconcileResult.APPLIED) == 5
        assert results.count(ReconcileResult.DUPLICATE) == 15

        for sip in sips:
            stored = system.sip_service.get_sip(sip.id)
            assert stored.installment_count == 1
            assert stored.next_execution_date == date(2024, 2, 1)

    def test_concurrent_registration_unique_ids(self, parallel_system):
        ids = []
        lock = threading.Lock()

        def register(n):
            user = parallel_system.user_service.register_user(f"User {n}", f"user{n}@example.com")
            with lock:
                ids.append(user.id)

        threads = [threading.Thread(target=register, args=(n,)) for n in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(ids)) == 10
        assert parallel_system.user_repository.count() == 10
