# sales_kpi/config.py
"""
Centralized Configuration Management

Version: 1.0.0
Features:
- Loads a local .env file (python-dotenv), then reads environment variables
- Singleton pattern for efficiency
- Type-safe getters with defaults
- KPI tracking settings (window length, per-day minimum, default targets)
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any
from dataclasses import dataclass

# Initialize logger
logger = logging.getLogger(__name__)


@dataclass
class KPIConfig:
    """KPI tracking configuration container"""
    tracking_period_days: int = 7
    min_walkins_per_day: int = 1
    min_closures_per_period: int = 1
    underperformance_threshold: int = 50
    default_walkin_target: int = 30
    default_booking_target: int = 3

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tracking_period_days': self.tracking_period_days,
            'min_walkins_per_day': self.min_walkins_per_day,
            'min_closures_per_period': self.min_closures_per_period,
            'underperformance_threshold': self.underperformance_threshold,
            'default_walkin_target': self.default_walkin_target,
            'default_booking_target': self.default_booking_target,
        }


def _env_int(name: str, default: int) -> int:
    """Read an integer env var, falling back to default on bad input"""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using default {default}")
        return default


class Config:
    """
    Centralized configuration management

    Usage:
        from sales_kpi.config import config

        # Get KPI settings for an aggregation pass
        settings = config.get_kpi_settings()

        # Get app settings
        level = config.get_app_setting("LOG_LEVEL", "INFO")
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._load_config()
        self._initialized = True

    def _load_config(self):
        """Load configuration from .env and environment"""
        self._load_env_file()
        self._load_kpi_config()
        self._load_app_config()
        self._log_config_status()

    def _load_env_file(self):
        """Find and load .env file"""
        env_paths = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

    def _load_kpi_config(self):
        """Load KPI tracking settings"""
        self._kpi_config = KPIConfig(
            tracking_period_days=_env_int("KPI_TRACKING_PERIOD_DAYS", 7),
            min_walkins_per_day=_env_int("KPI_MIN_WALKINS_PER_DAY", 1),
            min_closures_per_period=_env_int("KPI_MIN_CLOSURES_PER_PERIOD", 1),
            underperformance_threshold=_env_int("KPI_UNDERPERFORMANCE_THRESHOLD", 50),
            default_walkin_target=_env_int("KPI_DEFAULT_WALKIN_TARGET", 30),
            default_booking_target=_env_int("KPI_DEFAULT_BOOKING_TARGET", 3),
        )

        if self._kpi_config.tracking_period_days < 1:
            logger.warning(
                f"KPI_TRACKING_PERIOD_DAYS must be >= 1, got "
                f"{self._kpi_config.tracking_period_days}; using 7"
            )
            self._kpi_config.tracking_period_days = 7

        if self._kpi_config.min_walkins_per_day < 1:
            logger.warning("KPI_MIN_WALKINS_PER_DAY must be >= 1; using 1")
            self._kpi_config.min_walkins_per_day = 1

    def _load_app_config(self):
        """Load application-specific settings"""
        self._app_config = {
            # Logging
            "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
            "LOG_FORMAT": os.getenv("LOG_FORMAT", "text").lower(),
        }

    def _log_config_status(self):
        """Log configuration status"""
        kpi = self._kpi_config
        logger.info(
            f"KPI settings: window={kpi.tracking_period_days}d, "
            f"min walk-ins/day={kpi.min_walkins_per_day}, "
            f"default targets={kpi.default_walkin_target}/{kpi.default_booking_target}"
        )

    def reload(self):
        """Re-read .env and environment variables"""
        self._load_config()

    # ==================== PUBLIC GETTERS ====================

    def get_kpi_config(self) -> Dict[str, Any]:
        """Get KPI configuration as dictionary"""
        return self._kpi_config.to_dict()

    def get_kpi_settings(self):
        """Get KPISettings for an aggregation pass"""
        from .kpi_engine.models import KPISettings

        return KPISettings(**self._kpi_config.to_dict())

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        return self._app_config.get(key, default)

    # ==================== PROPERTIES ====================

    @property
    def kpi_config(self) -> Dict[str, Any]:
        return self.get_kpi_config()

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

__all__ = [
    'config',
    'Config',
    'KPIConfig',
]
