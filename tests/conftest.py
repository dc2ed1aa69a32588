"""
Shared pytest fixtures for SIPMS tests.

Provides repositories, collaborators, a wired system and common test data.
"""

import pytest
import sys
from pathlib import Path
from datetime import date
from decimal import Decimal

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sipms.core.config import SIPConfig
from sipms.core.database import DatabaseManager
from sipms.core.id_generator import IdGenerator
from sipms.core.models import Fund, FundCategory, RiskLevel, SIPFrequency
from sipms.services.payment import SimulatedPaymentGateway
from sipms.system import create_system


START_DATE = date(2024, 1, 1)


@pytest.fixture
def db_manager():
    """Provide a fresh DatabaseManager instance for each test."""
    # Reset singleton to ensure clean state
    DatabaseManager.reset_instance()
    manager = DatabaseManager()
    yield manager
    # Cleanup
    manager.close()
    DatabaseManager.reset_instance()


@pytest.fixture
def db_connection(db_manager):
    """Provide an initialized in-memory database connection."""
    conn = db_manager.init(":memory:")
    yield conn
    # Connection is closed by db_manager fixture


@pytest.fixture
def id_generator():
    """Deterministic sequential ids."""
    return IdGenerator()


@pytest.fixture
def sample_fund():
    return Fund(
        id="FUND_000001",
        name="HDFC Flexi Cap Fund",
        category=FundCategory.EQUITY,
        risk_level=RiskLevel.HIGH,
        nav=Decimal("150.50"),
    )


@pytest.fixture
def system(id_generator):
    """In-memory system with the sample catalog and an always-succeeding gateway."""
    sip_system = create_system(SIPConfig(), id_generator=id_generator)
    sip_system.register_sample_funds()
    return sip_system


@pytest.fixture
def manual_gateway():
    """Gateway whose payments wait for complete_payment()."""
    return SimulatedPaymentGateway(auto_complete=False)


@pytest.fixture
def manual_system(id_generator, manual_gateway):
    """In-memory system whose payments are completed by the test."""
    sip_system = create_system(SIPConfig(), id_generator=id_generator, payment_gateway=manual_gateway)
    sip_system.register_sample_funds()
    return sip_system


@pytest.fixture
def sqlite_system(id_generator, db_connection):
    """System on SQLite repositories sharing one in-memory connection."""
    config = SIPConfig({"storage": {"backend": "sqlite"}})
    sip_system = create_system(config, id_generator=id_generator, connection=db_connection)
    sip_system.register_sample_funds()
    return sip_system


@pytest.fixture
def investor(system):
    """A registered user in the default system."""
    return system.user_service.register_user("Test User", "test@example.com")


@pytest.fixture
def monthly_sip(system, investor):
    """ACTIVE monthly SIP of 1000 in FUND_000001 starting 2024-01-01."""
    return system.sip_service.create_sip(
        investor.id, "FUND_000001", Decimal("1000"), SIPFrequency.MONTHLY, START_DATE
    )
