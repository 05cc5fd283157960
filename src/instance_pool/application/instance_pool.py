"""Public entry point of the instance pool."""

import time
from collections.abc import Iterable
from typing import Callable, Optional

from instance_pool.application.services.allocation_orchestrator import AllocationOrchestrator
from instance_pool.application.services.identity_resolver import IdentityResolver
from instance_pool.application.services.lookup_service import LookupService
from instance_pool.application.services.poller import BoundedPoller
from instance_pool.application.services.release_engine import ReleaseEngine
from instance_pool.config.schemas import PollingConfig, PoolConfig
from instance_pool.domain.base.conditions import ConditionAccumulator
from instance_pool.domain.base.exceptions import UnrecoverableProvisioningError
from instance_pool.domain.base.ports import ComputeControlPlanePort, LoggingPort
from instance_pool.domain.instance.pool_instance import PoolInstance
from instance_pool.domain.instance.value_objects import CanonicalStatus
from instance_pool.domain.template.template import InstanceTemplate
from instance_pool.infrastructure.adapters.logging_adapter import LoggingAdapter
from instance_pool.infrastructure.logging.logger import setup_logging
from instance_pool.providers.aws.infrastructure.aws_client import AWSClient
from instance_pool.providers.aws.infrastructure.ec2_control_plane import EC2ControlPlane


class InstancePool:
    """
    Allocates, deletes and looks up instances of a template by logical ID.

    Example:
        pool = InstancePool.from_config(PoolConfig())
        template = InstanceTemplate(name="worker", imageId="ami-123", type="t3.micro")
        instances = pool.allocate(template, ["worker-1", "worker-2"], min_count=1)
    """

    def __init__(
        self,
        control_plane: ComputeControlPlanePort,
        logger: Optional[LoggingPort] = None,
        polling_config: Optional[PollingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.control_plane = control_plane
        self._logger = logger or LoggingAdapter("instance_pool")
        self.polling_config = polling_config or PollingConfig()

        self.resolver = IdentityResolver(control_plane, self._logger)
        self.poller = BoundedPoller(control_plane, self._logger, self.polling_config, clock, sleep)
        self.release_engine = ReleaseEngine(control_plane, self.resolver, self.poller, self._logger)
        self.orchestrator = AllocationOrchestrator(
            control_plane,
            self.resolver,
            self.poller,
            self.release_engine,
            self._logger,
            self.polling_config,
            sleep,
        )
        self.lookup = LookupService(control_plane, self.resolver, self._logger)

    @classmethod
    def from_config(cls, config: Optional[PoolConfig] = None) -> "InstancePool":
        """Build a pool backed by EC2, configuring logging on the way."""
        config = config or PoolConfig()
        setup_logging(config.logging)
        logger = LoggingAdapter("instance_pool")
        control_plane = EC2ControlPlane(AWSClient(config.aws, logger), logger)
        return cls(control_plane, logger, config.polling)

    def allocate(
        self, template: InstanceTemplate, logical_ids: Iterable[str], min_count: int
    ) -> list[PoolInstance]:
        return self.orchestrator.allocate(template, logical_ids, min_count)

    def delete(self, template: InstanceTemplate, logical_ids: Iterable[str]) -> None:
        """
        Release every resource owned by ``logical_ids``.

        Deleting IDs that were never allocated, or were already deleted, is a
        no-op. Raises UnrecoverableProvisioningError if a deletion request
        failed; resources left behind without a failed request are only logged.
        """
        logical_ids = list(logical_ids)
        accumulator = ConditionAccumulator()
        try:
            self.release_engine.release(
                template.volume_count,
                template.volume_size_gib,
                template.floating_ip_pool,
                logical_ids,
                None,
                accumulator,
            )
        except Exception as e:
            self._logger.error("Delete from template %s failed: %s", template.name, e)
            accumulator.add_error(None, f"Release failed: {e}")
            raise UnrecoverableProvisioningError(
                f"Delete from template {template.name} failed", accumulator
            ) from e
        for condition in accumulator.warnings:
            self._logger.warning("Delete from template %s: %s", template.name, condition)
        if accumulator.has_errors():
            raise UnrecoverableProvisioningError(
                f"Delete from template {template.name} failed", accumulator
            )

    def find(self, template: InstanceTemplate, logical_ids: Iterable[str]) -> list[PoolInstance]:
        return self.lookup.find(template.name, logical_ids)

    def get_instance_state(
        self, template: InstanceTemplate, logical_ids: Iterable[str]
    ) -> dict[str, CanonicalStatus]:
        return self.lookup.get_instance_state(logical_ids)
