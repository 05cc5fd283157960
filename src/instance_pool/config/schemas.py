"""Configuration schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from instance_pool.providers.aws.configuration.config import AWSProviderConfig


class PollingConfig(BaseModel):
    """Intervals and deadlines of every wait loop, in whole seconds."""

    model_config = ConfigDict(extra="ignore")

    interval_seconds: int = Field(5, ge=0, description="Delay between two status checks")
    network_ready_timeout_seconds: int = Field(
        180, ge=0, description="Shared deadline for a batch to obtain network addresses"
    )
    instance_status_timeout_seconds: int = Field(
        120, ge=0, description="Wait for an instance to reach a status"
    )
    database_ready_timeout_seconds: int = Field(
        600, ge=0, description="Shared deadline for a batch of database instances to become available"
    )
    instance_delete_timeout_seconds: int = Field(
        300, ge=0, description="Wait for an instance deletion to be confirmed"
    )
    volume_status_timeout_seconds: int = Field(
        60, ge=0, description="Wait for a volume to become available or in use"
    )
    volume_delete_timeout_seconds: int = Field(
        600, ge=0, description="Wait for a volume to disappear after deletion"
    )
    floating_ip_association_attempts: int = Field(
        10, ge=1, description="Association requests sent before a floating IP is given up"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="ignore")

    level: str = Field("INFO", description="Log level name")
    format: str = Field(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s", description="Log record format"
    )
    file_path: Optional[str] = Field(None, description="Optional log file")
    console_enabled: bool = Field(True, description="Log to stderr")

    @model_validator(mode="after")
    def _check_level(self) -> "LoggingConfig":
        if self.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.level}")
        self.level = self.level.upper()
        return self


class PoolConfig(BaseModel):
    """Top-level configuration of the instance pool."""

    model_config = ConfigDict(extra="ignore")

    polling: PollingConfig = Field(default_factory=PollingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    aws: AWSProviderConfig = Field(default_factory=AWSProviderConfig)
