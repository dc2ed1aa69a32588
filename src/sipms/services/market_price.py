"""
Market price service.

Supplies the current NAV per fund for execution and valuation. The simulated
implementation keeps NAVs in memory and can add random fluctuation or move
the whole market by a percentage.
"""

import logging
import random
import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Optional

from sipms.core.exceptions import FundNotFoundError, ValidationError
from sipms.core.models import to_decimal
from sipms.repositories.base import FundRepository

logger = logging.getLogger(__name__)


class MarketPriceService(ABC):
    """Price oracle for fund NAVs."""

    @abstractmethod
    def get_current_nav(self, fund_id: str) -> Decimal:
        """
        Current NAV of a fund.

        Raises:
            FundNotFoundError: If no NAV is known for the fund
        """

    @abstractmethod
    def update_nav(self, fund_id: str, nav) -> None:
        """
        Set the NAV of a fund.

        Raises:
            ValidationError: If nav is not positive
        """


class SimulatedMarketPriceService(MarketPriceService):
    """
    In-memory NAV store with optional random fluctuation.

    Usage:
        market = SimulatedMarketPriceService(fund_repository=funds)
        market.set_navs({"FUND_000001": Decimal("150.50")})
        market.get_current_nav("FUND_000001")
        market.simulate_market_movement(Decimal("0.05"))  # +5% everywhere

    When a fund repository is given, each fund's NAV snapshot is refreshed
    whenever its stored NAV changes.
    """

    def __init__(
        self,
        enable_fluctuation: bool = False,
        fluctuation_range: float = 0.02,
        fund_repository: Optional[FundRepository] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize market price service.

        Args:
            enable_fluctuation: Apply a random +/- move on every read
            fluctuation_range: Fluctuation bound as a fraction (0.02 = +/-2%)
            fund_repository: Fund catalog whose NAV snapshots are kept in sync
            seed: Seed for the fluctuation generator
        """
        self._navs: Dict[str, Decimal] = {}
        self._lock = threading.RLock()
        self._random = random.Random(seed)
        self.enable_fluctuation = enable_fluctuation
        self.fluctuation_range = float(fluctuation_range)
        self.fund_repository = fund_repository

    def get_current_nav(self, fund_id: str) -> Decimal:
        nav = self.get_stored_nav(fund_id)

        if self.enable_fluctuation and self.fluctuation_range > 0:
            with self._lock:
                move = self._random.uniform(-self.fluctuation_range, self.fluctuation_range)
            nav = nav * (Decimal("1") + Decimal(str(round(move, 6))))

        return nav

    def update_nav(self, fund_id: str, nav) -> None:
        nav = to_decimal(nav)
        if nav <= 0:
            raise ValidationError("NAV must be positive", field="nav")

        with self._lock:
            self._navs[fund_id] = nav
        self._refresh_snapshot(fund_id, nav)
        logger.debug(f"NAV for {fund_id} set to {nav}")

    def set_navs(self, navs: Dict[str, object]) -> None:
        """Set the NAV of several funds at once."""
        for fund_id, nav in navs.items():
            self.update_nav(fund_id, nav)

    def get_stored_nav(self, fund_id: str) -> Decimal:
        """Stored NAV without fluctuation."""
        with self._lock:
            nav = self._navs.get(fund_id)
        if nav is None:
            raise FundNotFoundError(fund_id)
        return nav

    def has_nav(self, fund_id: str) -> bool:
        with self._lock:
            return fund_id in self._navs

    def simulate_market_movement(self, percentage) -> None:
        """
        Move every stored NAV by the same fraction.

        Args:
            percentage: Change as a fraction (0.05 = +5%, -0.03 = -3%)
        """
        factor = Decimal("1") + to_decimal(percentage)
        if factor <= 0:
            raise ValidationError(
                f"Market movement {percentage} would make NAVs non-positive",
                field="percentage"
            )

        with self._lock:
            for fund_id in list(self._navs):
                self._navs[fund_id] = self._navs[fund_id] * factor
            updated = dict(self._navs)

        for fund_id, nav in updated.items():
            self._refresh_snapshot(fund_id, nav)

        logger.info(f"Simulated market movement of {percentage} across {len(updated)} funds")

    def _refresh_snapshot(self, fund_id: str, nav: Decimal) -> None:
        if self.fund_repository is None:
            return
        fund = self.fund_repository.get_by_id(fund_id)
        if fund is not None:
            fund.nav = nav
            self.fund_repository.update(fund)
