"""Public entry point for pools of managed database instances."""

import time
from collections.abc import Iterable
from typing import Callable, Optional

from instance_pool.application.services.database_allocation import DatabaseAllocationService
from instance_pool.application.services.identity_resolver import IdentityResolver
from instance_pool.application.services.lookup_service import LookupService
from instance_pool.application.services.poller import BoundedPoller
from instance_pool.application.services.release_engine import ReleaseEngine
from instance_pool.config.schemas import PollingConfig, PoolConfig
from instance_pool.domain.base.conditions import ConditionAccumulator
from instance_pool.domain.base.exceptions import UnrecoverableProvisioningError
from instance_pool.domain.base.ports import DatabaseControlPlanePort, LoggingPort
from instance_pool.domain.instance.pool_instance import PoolInstance
from instance_pool.domain.instance.value_objects import CanonicalStatus
from instance_pool.domain.template.database_template import DatabaseTemplate
from instance_pool.infrastructure.adapters.logging_adapter import LoggingAdapter
from instance_pool.infrastructure.logging.logger import setup_logging
from instance_pool.providers.aws.infrastructure.aws_client import AWSClient
from instance_pool.providers.aws.infrastructure.rds_control_plane import RDSControlPlane


class DatabasePool:
    """
    Allocates, deletes and looks up database instances of a template by logical ID.

    Example:
        pool = DatabasePool.from_config(PoolConfig())
        template = DatabaseTemplate(name="db", flavorId="db.t3.micro", volumeSize=20)
        instances = pool.allocate(template, ["db-1"], min_count=1)
    """

    def __init__(
        self,
        control_plane: DatabaseControlPlanePort,
        logger: Optional[LoggingPort] = None,
        polling_config: Optional[PollingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.control_plane = control_plane
        self._logger = logger or LoggingAdapter("instance_pool.database")
        self.polling_config = polling_config or PollingConfig()

        self.resolver = IdentityResolver(control_plane, self._logger)
        self.poller = BoundedPoller(control_plane, self._logger, self.polling_config, clock, sleep)
        self.release_engine = ReleaseEngine(control_plane, self.resolver, self.poller, self._logger)
        self.allocation = DatabaseAllocationService(
            control_plane,
            self.resolver,
            self.poller,
            self.release_engine,
            self._logger,
            self.polling_config,
        )
        self.lookup = LookupService(control_plane, self.resolver, self._logger)

    @classmethod
    def from_config(cls, config: Optional[PoolConfig] = None) -> "DatabasePool":
        """Build a pool backed by RDS, configuring logging on the way."""
        config = config or PoolConfig()
        setup_logging(config.logging)
        logger = LoggingAdapter("instance_pool.database")
        control_plane = RDSControlPlane(AWSClient(config.aws, logger), logger)
        return cls(control_plane, logger, config.polling)

    def allocate(
        self, template: DatabaseTemplate, logical_ids: Iterable[str], min_count: int
    ) -> list[PoolInstance]:
        return self.allocation.allocate(template, logical_ids, min_count)

    def delete(self, template: DatabaseTemplate, logical_ids: Iterable[str]) -> None:
        """Delete the database instances of ``logical_ids``; unknown IDs are a no-op."""
        accumulator = ConditionAccumulator()
        self.allocation.release(list(logical_ids), accumulator)
        for condition in accumulator.warnings:
            self._logger.warning("Delete from template %s: %s", template.name, condition)
        if accumulator.has_errors():
            raise UnrecoverableProvisioningError(
                f"Delete from template {template.name} failed", accumulator
            )

    def find(self, template: DatabaseTemplate, logical_ids: Iterable[str]) -> list[PoolInstance]:
        return self.lookup.find(template.name, logical_ids)

    def get_instance_state(
        self, template: DatabaseTemplate, logical_ids: Iterable[str]
    ) -> dict[str, CanonicalStatus]:
        return self.lookup.get_instance_state(logical_ids)
