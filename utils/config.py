"""
Configuration for the withdrawals meter.

Settings come from environment variables (optionally loaded from a .env
file) and are gathered into a MeterConfig for the entry point.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from utils.logging import get_logger

load_dotenv()

logger = get_logger("utils.config")

DEFAULT_COMPONENT_NAME = "withdrawals_meter"
DEFAULT_POOL_SIZE = 5
DEFAULT_POOL_TIMEOUT = 30.0  # seconds


@dataclass
class MeterConfig:
    """Settings of one metering deployment."""

    component_name: str
    database_url: Optional[str] = None
    pushgateway_url: Optional[str] = None
    metrics_job: Optional[str] = None
    withdrawals_table: str = "withdrawals"
    tokens_table: str = "tokens"
    pool_size: int = DEFAULT_POOL_SIZE
    pool_timeout: float = DEFAULT_POOL_TIMEOUT
    echo_sql: bool = False


class Config:
    """Environment variable accessors."""

    @staticmethod
    def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
        """Get environment variable with fallback to default."""
        return os.getenv(key, default)

    @staticmethod
    def get_env_int(key: str, default: int) -> int:
        """Get environment variable as integer with fallback to default."""
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s. Using default %s", key, value, default)
            return default

    @staticmethod
    def get_env_float(key: str, default: float) -> float:
        """Get environment variable as float with fallback to default."""
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float value for %s: %s. Using default %s", key, value, default)
            return default

    @staticmethod
    def get_env_bool(key: str, default: bool) -> bool:
        """Get environment variable as boolean with fallback to default."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("true", "yes", "1")

    @classmethod
    def get_meter_config(cls, component_name: Optional[str] = None) -> MeterConfig:
        """Build the meter settings, letting an explicit component name win over COMPONENT_NAME."""
        name = component_name or cls.get_env("COMPONENT_NAME", DEFAULT_COMPONENT_NAME)
        return MeterConfig(
            component_name=name,
            database_url=cls.get_env("DATABASE_URL"),
            pushgateway_url=cls.get_env("PUSHGATEWAY_URL"),
            metrics_job=cls.get_env("METRICS_JOB", name),
            withdrawals_table=cls.get_env("WITHDRAWALS_TABLE", "withdrawals"),
            tokens_table=cls.get_env("TOKENS_TABLE", "tokens"),
            pool_size=cls.get_env_int("DB_POOL_SIZE", DEFAULT_POOL_SIZE),
            pool_timeout=cls.get_env_float("DB_POOL_TIMEOUT", DEFAULT_POOL_TIMEOUT),
            echo_sql=cls.get_env_bool("DB_ECHO", False),
        )
