"""Mutual fund catalog operations."""

import logging
from typing import List

from sipms.core.exceptions import FundNotFoundError, ValidationError
from sipms.core.models import Fund, FundCategory, RiskLevel
from sipms.repositories.base import FundRepository

logger = logging.getLogger(__name__)


class FundService:
    """
    Fund catalog backed by a FundRepository.

    Usage:
        service = FundService(InMemoryFundRepository())
        service.add_fund(Fund("FUND_000001", "HDFC Flexi Cap Fund",
                              FundCategory.EQUITY, RiskLevel.HIGH, Decimal("150.50")))
        service.filter_by_category(FundCategory.EQUITY)
    """

    def __init__(self, fund_repository: FundRepository):
        self.fund_repository = fund_repository

    def add_fund(self, fund: Fund) -> Fund:
        """
        Add a fund to the catalog.

        Raises:
            ValidationError: If the id is empty or taken, the name is empty, or the
                NAV is not positive
        """
        if not fund.id or not fund.id.strip():
            raise ValidationError("Fund ID cannot be empty", field="id")
        if not fund.name or not fund.name.strip():
            raise ValidationError("Fund name cannot be empty", field="name")
        if fund.nav <= 0:
            raise ValidationError("Fund NAV must be positive", field="nav")
        if self.fund_repository.exists(fund.id):
            raise ValidationError(f"Fund already exists: {fund.id}", field="id")

        self.fund_repository.add(fund)
        logger.info(f"Added fund {fund.id} ({fund.name})")
        return fund

    def get_all_funds(self) -> List[Fund]:
        return self.fund_repository.get_all()

    def get_fund(self, fund_id: str) -> Fund:
        fund = self.fund_repository.get_by_id(fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)
        return fund

    def filter_by_category(self, category: FundCategory) -> List[Fund]:
        return self.fund_repository.get_by_category(category)

    def filter_by_risk_level(self, risk_level: RiskLevel) -> List[Fund]:
        return self.fund_repository.get_by_risk_level(risk_level)

    def fund_exists(self, fund_id: str) -> bool:
        return self.fund_repository.exists(fund_id)
