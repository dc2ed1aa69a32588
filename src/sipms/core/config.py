"""Engine configuration for SIPMS.

Provides data-driven configuration with sensible defaults, loaded from JSON.
"""

import copy
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Dict, Any, Optional

from sipms.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = {"memory", "sqlite"}

# Default configuration (used for any key the config files leave out)
DEFAULT_CONFIG = {
    "$schema": "sipms_config_v1",
    "version": "1.0",

    "scheduler": {
        "max_workers": 1
    },

    "payment": {
        "success_rate": 1.0,
        "auto_complete": True,
        "seed": None
    },

    "market": {
        "enable_fluctuation": False,
        "fluctuation_range": 0.02,
        "seed": None
    },

    "storage": {
        "backend": "memory",
        "db_path": ":memory:"
    },

    "display": {
        "currency_symbol": "Rs. ",
        "decimal_places": 2
    },

    "logging": {
        "level": "WARNING"
    }
}


@dataclass
class SchedulerConfig:
    """Configuration for the execution engine."""
    max_workers: int = 1  # >1 submits due SIPs in parallel


@dataclass
class PaymentConfig:
    """Configuration for the simulated payment gateway."""
    success_rate: float = 1.0
    auto_complete: bool = True  # False: payments wait for complete_payment()
    seed: Optional[int] = None


@dataclass
class MarketConfig:
    """Configuration for the simulated market price service."""
    enable_fluctuation: bool = False
    fluctuation_range: float = 0.02
    seed: Optional[int] = None


@dataclass
class StorageConfig:
    """Storage backend selection."""
    backend: str = "memory"
    db_path: str = ":memory:"


@dataclass
class DisplayConfig:
    """Configuration for display formatting."""
    currency_symbol: str = "Rs. "
    decimal_places: int = 2

    def format_currency(self, amount) -> str:
        """Format amount with currency symbol."""
        quantum = Decimal(1).scaleb(-self.decimal_places)
        value = Decimal(str(amount)).quantize(quantum)
        if value < 0:
            return f"-{self.currency_symbol}{abs(value):,}"
        return f"{self.currency_symbol}{value:,}"


class SIPConfig:
    """
    SIPMS configuration.

    Loads from a JSON file with fallback to defaults.

    Usage:
        config = SIPConfig.load(Path("sipms.json"))
        config.scheduler.max_workers
        config.display.format_currency(1234.5)
    """

    def __init__(self, data: Dict[str, Any] = None):
        """Initialize from configuration dictionary."""
        if data is None:
            data = copy.deepcopy(DEFAULT_CONFIG)
        self._raw = data

        scheduler = data.get("scheduler", {})
        self.scheduler = SchedulerConfig(
            max_workers=scheduler.get("max_workers", 1)
        )

        payment = data.get("payment", {})
        self.payment = PaymentConfig(
            success_rate=payment.get("success_rate", 1.0),
            auto_complete=payment.get("auto_complete", True),
            seed=payment.get("seed")
        )

        market = data.get("market", {})
        self.market = MarketConfig(
            enable_fluctuation=market.get("enable_fluctuation", False),
            fluctuation_range=market.get("fluctuation_range", 0.02),
            seed=market.get("seed")
        )

        storage = data.get("storage", {})
        self.storage = StorageConfig(
            backend=storage.get("backend", "memory"),
            db_path=storage.get("db_path", ":memory:")
        )

        display = data.get("display", {})
        self.display = DisplayConfig(
            currency_symbol=display.get("currency_symbol", "Rs. "),
            decimal_places=display.get("decimal_places", 2)
        )

        self.log_level = data.get("logging", {}).get("level", "WARNING")

        self._validate()

    def _validate(self) -> None:
        if not isinstance(self.scheduler.max_workers, int) or self.scheduler.max_workers < 1:
            raise ConfigurationError(
                f"scheduler.max_workers must be a positive integer, got {self.scheduler.max_workers!r}",
                key="scheduler.max_workers"
            )
        if not 0.0 <= float(self.payment.success_rate) <= 1.0:
            raise ConfigurationError(
                f"payment.success_rate must be within [0, 1], got {self.payment.success_rate}",
                key="payment.success_rate"
            )
        if float(self.market.fluctuation_range) < 0:
            raise ConfigurationError(
                "market.fluctuation_range cannot be negative",
                key="market.fluctuation_range"
            )
        if self.storage.backend not in SUPPORTED_BACKENDS:
            raise ConfigurationError(
                f"storage.backend must be one of {sorted(SUPPORTED_BACKENDS)}, got {self.storage.backend!r}",
                key="storage.backend"
            )
        if logging.getLevelName(str(self.log_level).upper()) not in range(0, 60):
            raise ConfigurationError(f"Unknown log level: {self.log_level}", key="logging.level")

    @classmethod
    def load(cls, config_path: Optional[Path] = None, global_config_dir: Optional[Path] = None) -> "SIPConfig":
        """
        Load configuration with fallback to defaults.

        Args:
            config_path: JSON config file (highest priority) - optional
            global_config_dir: Directory holding a defaults.json - optional

        Returns:
            SIPConfig instance

        Raises:
            ConfigurationError: If a given config file cannot be parsed
        """
        data = copy.deepcopy(DEFAULT_CONFIG)

        if global_config_dir:
            global_defaults = Path(global_config_dir) / "defaults.json"
            if global_defaults.exists():
                try:
                    with open(global_defaults, encoding='utf-8') as f:
                        global_data = json.load(f)
                    data = cls._deep_merge(data, global_data)
                    logger.debug(f"Loaded global defaults from {global_defaults}")
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Failed to load global defaults: {e}")

        if config_path:
            config_path = Path(config_path)
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}")
            try:
                with open(config_path, encoding='utf-8') as f:
                    user_data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Failed to load config {config_path}: {e}") from e
            data = cls._deep_merge(data, user_data)
            logger.debug(f"Loaded configuration from {config_path}")

        return cls(data)

    @staticmethod
    def _deep_merge(base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries, override takes precedence."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = SIPConfig._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._raw)

    def save(self, config_path: Path) -> None:
        """Save current configuration as JSON."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(self._raw, f, indent=2)

        logger.info(f"Saved configuration to {config_path}")
