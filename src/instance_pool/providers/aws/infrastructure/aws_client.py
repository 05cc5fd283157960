"""AWS client wrapper."""

from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from instance_pool.domain.base.ports import LoggingPort
from instance_pool.providers.aws.configuration.config import AWSProviderConfig
from instance_pool.providers.aws.exceptions.aws_exceptions import (
    AuthorizationError,
    AWSConfigurationError,
    NetworkError,
)


class AWSClient:
    """Owns the boto3 session and lazily creates the EC2 and RDS clients."""

    def __init__(
        self,
        config: AWSProviderConfig,
        logger: LoggingPort,
        session: Optional[boto3.Session] = None,
    ) -> None:
        """
        Initialize AWS client wrapper.

        Args:
            config: AWS provider configuration
            logger: Logger for logging messages
            session: Pre-built session, mainly for tests
        """
        self.config = config
        self._logger = logger
        self.region_name = config.region
        self.profile_name = config.profile

        self.boto_config = Config(
            region_name=self.region_name,
            retries={"max_attempts": config.max_retries, "mode": "adaptive"},
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        )

        try:
            self.session = session or boto3.Session(
                region_name=self.region_name, profile_name=self.profile_name
            )
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            error_message = e.response["Error"]["Message"]
            if error_code in ("UnauthorizedOperation", "InvalidClientTokenId"):
                raise AuthorizationError(f"AWS authentication failed: {error_message}", error_code)
            elif error_code == "RequestTimeout":
                raise NetworkError(f"AWS connection failed: {error_message}", error_code)
            raise AWSConfigurationError(
                f"AWS client initialization failed: {error_message}", error_code
            )
        except BotoCoreError as e:
            raise AWSConfigurationError(f"AWS client initialization failed: {e}")

        self._ec2_client: Any = None
        self._rds_client: Any = None

        self._logger.info(
            "AWS client initialized with region: %s, profile: %s, retries: %d, timeouts: connect=%ds, read=%ds",
            self.region_name,
            self.profile_name or "default",
            config.max_retries,
            config.connect_timeout,
            config.read_timeout,
        )

    @property
    def ec2_client(self) -> Any:
        """EC2 client, created on first use."""
        if self._ec2_client is None:
            kwargs: dict[str, Any] = {"config": self.boto_config}
            if self.config.endpoint_url:
                kwargs["endpoint_url"] = self.config.endpoint_url
            self._ec2_client = self.session.client("ec2", **kwargs)
            self._logger.debug("Created EC2 client for region %s", self.region_name)
        return self._ec2_client

    @property
    def rds_client(self) -> Any:
        """RDS client, created on first use."""
        if self._rds_client is None:
            kwargs: dict[str, Any] = {"config": self.boto_config}
            if self.config.rds_endpoint_url:
                kwargs["endpoint_url"] = self.config.rds_endpoint_url
            self._rds_client = self.session.client("rds", **kwargs)
            self._logger.debug("Created RDS client for region %s", self.region_name)
        return self._rds_client
