"""Configuration loading for the instance pool."""

import json
import os
from pathlib import Path
from typing import Any, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from instance_pool.config.schemas import LoggingConfig, PollingConfig, PoolConfig
from instance_pool.domain.base.exceptions import ConfigurationError
from instance_pool.domain.template.database_template import DatabaseTemplate
from instance_pool.domain.template.template import InstanceTemplate
from instance_pool.infrastructure.logging.logger import get_logger
from instance_pool.providers.aws.configuration.config import AWSProviderConfig

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "LOG_LEVEL": ("logging", "level"),
    "INSTANCE_POOL_LOG_FILE": ("logging", "file_path"),
    "INSTANCE_POOL_POLL_INTERVAL": ("polling", "interval_seconds"),
    "INSTANCE_POOL_NETWORK_TIMEOUT": ("polling", "network_ready_timeout_seconds"),
    "INSTANCE_POOL_DATABASE_TIMEOUT": ("polling", "database_ready_timeout_seconds"),
    "INSTANCE_POOL_FLOATING_IP_ATTEMPTS": ("polling", "floating_ip_association_attempts"),
    "AWS_REGION": ("aws", "region"),
    "AWS_PROFILE": ("aws", "profile"),
    "AWS_ENDPOINT_URL": ("aws", "endpoint_url"),
    "AWS_RDS_ENDPOINT_URL": ("aws", "rds_endpoint_url"),
}

_SECTIONS: dict[type[BaseModel], str] = {
    PollingConfig: "polling",
    LoggingConfig: "logging",
    AWSProviderConfig: "aws",
}


class ConfigurationManager:
    """
    Loads the pool configuration from a JSON file and the environment.

    Values from the environment win over values from the file. Templates
    live under the ``templates`` key and database templates under
    ``databaseTemplates``, both keyed by template name.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None) -> None:
        self._config_path = Path(config_path) if config_path else None
        self._raw: dict[str, Any] = {}
        self._pool_config: Optional[PoolConfig] = None
        if self._config_path is not None:
            self.load_from_file(self._config_path)

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Read a JSON configuration file, replacing anything loaded before."""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")

        self._raw = data
        self._pool_config = None
        logger.info("Loaded configuration from %s", path)

    def load_from_dict(self, data: dict[str, Any]) -> None:
        self._raw = dict(data)
        self._pool_config = None

    def get(self, key: str, default: Any = None) -> Any:
        """Raw top-level value."""
        return self._raw.get(key, default)

    def _with_env_overrides(self) -> dict[str, Any]:
        merged: dict[str, Any] = {
            key: dict(value) if isinstance(value, dict) else value
            for key, value in self._raw.items()
        }
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None or value == "":
                continue
            merged.setdefault(section, {})[key] = value
            logger.debug("Configuration %s.%s overridden by %s", section, key, env_name)
        return merged

    def get_pool_config(self) -> PoolConfig:
        """Validated configuration with environment overrides applied."""
        if self._pool_config is None:
            try:
                self._pool_config = PoolConfig.model_validate(self._with_env_overrides())
            except ValidationError as e:
                raise ConfigurationError(f"Invalid pool configuration: {e}") from e
        return self._pool_config

    def get_typed(self, config_type: type[T]) -> T:
        """Return one configuration section by its schema type."""
        section = _SECTIONS.get(config_type)
        if section is None:
            raise ConfigurationError(f"No configuration section for {config_type.__name__}")
        return getattr(self.get_pool_config(), section)

    def get_template(self, name: str) -> InstanceTemplate:
        """Validated template named ``name`` from the ``templates`` section."""
        templates = self._raw.get("templates", {})
        if name not in templates:
            raise ConfigurationError(f"Template {name} is not defined")
        data = dict(templates[name])
        data.setdefault("name", name)
        try:
            return InstanceTemplate.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid template {name}: {e}") from e

    def list_template_names(self) -> list[str]:
        return sorted(self._raw.get("templates", {}))

    def get_database_template(self, name: str) -> DatabaseTemplate:
        """Validated template named ``name`` from the ``databaseTemplates`` section."""
        templates = self._raw.get("databaseTemplates", {})
        if name not in templates:
            raise ConfigurationError(f"Database template {name} is not defined")
        data = dict(templates[name])
        data.setdefault("name", name)
        try:
            return DatabaseTemplate.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid database template {name}: {e}") from e
