"""Configuration package."""

from instance_pool.config.manager import ConfigurationManager
from instance_pool.config.schemas import LoggingConfig, PollingConfig, PoolConfig

__all__ = ["ConfigurationManager", "LoggingConfig", "PollingConfig", "PoolConfig"]
