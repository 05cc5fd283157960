"""Allocation of a batch of managed database instances with rollback of the failures."""

from collections.abc import Iterable
from typing import Optional

from instance_pool.application.services.identity_resolver import IdentityResolver
from instance_pool.application.services.poller import BoundedPoller
from instance_pool.application.services.release_engine import ReleaseEngine
from instance_pool.config.schemas import PollingConfig
from instance_pool.domain.base.conditions import ConditionAccumulator
from instance_pool.domain.base.exceptions import UnrecoverableProvisioningError
from instance_pool.domain.base.ports import DatabaseControlPlanePort, LoggingPort
from instance_pool.domain.instance.pool_instance import PoolInstance
from instance_pool.domain.instance.value_objects import CanonicalStatus, InstanceRecord
from instance_pool.domain.provisioning.state import ProvisioningBatch, ProvisioningState
from instance_pool.domain.template.database_template import DatabaseTemplate


class DatabaseAllocationService:
    """
    Provisions managed database instances for caller logical IDs.

    Follows the same rules as instance allocation: a database instance that
    does not become available in time is rolled back as long as at least
    ``min_count`` remain, otherwise the whole batch is rolled back and the
    call fails. Database instances have no volumes or floating IPs to
    manage, so the release engine only ever deletes instances here.
    """

    def __init__(
        self,
        control_plane: DatabaseControlPlanePort,
        resolver: IdentityResolver,
        poller: BoundedPoller,
        release_engine: ReleaseEngine,
        logger: LoggingPort,
        config: Optional[PollingConfig] = None,
    ) -> None:
        self._control_plane = control_plane
        self._resolver = resolver
        self._poller = poller
        self._release_engine = release_engine
        self._logger = logger
        self.config = config or poller.config

    def allocate(
        self, template: DatabaseTemplate, logical_ids: Iterable[str], min_count: int
    ) -> list[PoolInstance]:
        """
        Provision one database instance per logical ID.

        Returns:
            The available database instances, in request order

        Raises:
            UnrecoverableProvisioningError: Too few database instances became
                available or a control-plane call failed along the way
        """
        logical_ids = list(dict.fromkeys(logical_ids))
        if not logical_ids:
            raise UnrecoverableProvisioningError("No logical instance IDs to allocate")
        if len(logical_ids) < min_count:
            raise UnrecoverableProvisioningError(
                f"Requested {len(logical_ids)} instance(s) but at least {min_count} are required"
            )

        self._logger.info(
            "Allocating %d database instance(s) from template %s (min %d)",
            len(logical_ids),
            template.name,
            min_count,
        )
        accumulator = ConditionAccumulator()
        batch = ProvisioningBatch(logical_ids)

        self.release(logical_ids, accumulator)

        self._create_instances(template, batch, accumulator)
        self._await_available(batch, accumulator)
        self._enforce_min_count(template, batch, min_count, accumulator)

        instances = self._collect(template, batch, accumulator)
        self._enforce_min_count(template, batch, min_count, accumulator)

        if accumulator.has_errors():
            self._logger.error(
                "Database allocation from template %s recorded %d error(s)",
                template.name,
                len(accumulator.errors),
            )
            raise UnrecoverableProvisioningError(
                f"Allocation from template {template.name} failed", accumulator
            )

        self._logger.info(
            "Allocated %d of %d database instance(s) from template %s",
            len(instances),
            len(logical_ids),
            template.name,
        )
        return instances

    def release(self, logical_ids: list[str], accumulator: ConditionAccumulator) -> None:
        """Delete every database instance tagged with ``logical_ids``; failures are accumulated."""
        try:
            self._release_engine.release(0, 0, None, logical_ids, None, accumulator)
        except Exception as e:
            self._logger.error("Release of %s failed: %s", ", ".join(logical_ids), e)
            accumulator.add_error(None, f"Release failed: {e}")

    def _create_instances(
        self, template: DatabaseTemplate, batch: ProvisioningBatch, accumulator: ConditionAccumulator
    ) -> None:
        try:
            existing = self._resolver.resolve(batch.logical_ids)
        except Exception as e:
            raise UnrecoverableProvisioningError(
                f"Cannot list database instances before creating them: {e}", accumulator
            ) from e

        for record in batch:
            record.transition_to(ProvisioningState.CREATING)
            if record.logical_id in existing:
                record.instance_id = existing[record.logical_id]
                self._logger.info(
                    "Database instance %s already exists for %s", record.instance_id, record.logical_id
                )
            else:
                try:
                    record.instance_id = self._control_plane.create_database_instance(
                        name=template.instance_name(record.logical_id),
                        engine=template.engine,
                        instance_class=template.instance_class,
                        storage_gib=template.storage_gib,
                        master_username=template.master_username,
                        master_password=template.password(),
                        tags=template.instance_tags(record.logical_id),
                    )
                except Exception as e:
                    self._logger.error(
                        "Failed to create database instance for %s: %s", record.logical_id, e
                    )
                    accumulator.add_error(record.logical_id, f"Failed to create database instance: {e}")
                    record.fail("database instance creation failed")
                    continue
                self._logger.info(
                    "Created database instance %s for %s", record.instance_id, record.logical_id
                )
            record.transition_to(ProvisioningState.AWAITING_NETWORK)

    def _await_available(self, batch: ProvisioningBatch, accumulator: ConditionAccumulator) -> None:
        waiting = batch.in_state(ProvisioningState.AWAITING_NETWORK)
        if not waiting:
            return

        timeout = self.config.database_ready_timeout_seconds
        available = self._poller.poll_batch_until(
            [record.instance_id for record in waiting],
            self._control_plane.get_instance,
            self._is_running,
            timeout,
            self.config.interval_seconds,
            accumulator,
            abandon=self._is_lost,
        )
        for record in waiting:
            if record.instance_id in available:
                record.transition_to(ProvisioningState.READY)
            else:
                self._logger.warning(
                    "Database instance %s (%s) not available after %ss",
                    record.instance_id,
                    record.logical_id,
                    timeout,
                )
                accumulator.add_warning(
                    record.logical_id,
                    f"Database instance {record.instance_id} not available after {timeout}s",
                )
                record.fail("database instance not available")

    def _is_running(self, record: InstanceRecord) -> bool:
        return self._control_plane.translate_instance_status(record.status) is CanonicalStatus.RUNNING

    def _is_lost(self, record: InstanceRecord) -> bool:
        status = self._control_plane.translate_instance_status(record.status)
        return status in (CanonicalStatus.FAILED, CanonicalStatus.DELETED)

    def _enforce_min_count(
        self,
        template: DatabaseTemplate,
        batch: ProvisioningBatch,
        min_count: int,
        accumulator: ConditionAccumulator,
    ) -> None:
        ready_count = batch.ready_count()
        if ready_count < min_count:
            self._logger.error(
                "Only %d database instance(s) available, %d required: rolling back all %d",
                ready_count,
                min_count,
                len(batch),
            )
            batch.fail_all("batch below minimum count")
            self.release(batch.logical_ids, accumulator)
            batch.mark_rolled_back(batch.failed())
            raise UnrecoverableProvisioningError(
                f"Only {ready_count} database instance(s) of template {template.name} available, "
                f"{min_count} required",
                accumulator,
            )

        failed = batch.failed()
        if failed:
            self._logger.info(
                "Rolling back %d failed database instance(s): %s",
                len(failed),
                ", ".join(record.logical_id for record in failed),
            )
            self.release([record.logical_id for record in failed], accumulator)
            batch.mark_rolled_back(failed)

    def _collect(
        self, template: DatabaseTemplate, batch: ProvisioningBatch, accumulator: ConditionAccumulator
    ) -> list[PoolInstance]:
        instances: list[PoolInstance] = []
        for record in batch.ready():
            try:
                instance = self._control_plane.get_instance(record.instance_id)
            except Exception as e:
                self._logger.error("Failed to describe database instance %s: %s", record.instance_id, e)
                accumulator.add_error(record.logical_id, f"Failed to describe database instance: {e}")
                record.fail("database instance could not be described")
                continue
            if instance is None:
                self._logger.warning(
                    "Available database instance %s (%s) is no longer visible",
                    record.instance_id,
                    record.logical_id,
                )
                accumulator.add_warning(
                    record.logical_id,
                    f"Database instance {record.instance_id} disappeared after becoming available",
                )
                record.fail("database instance disappeared")
                continue
            instances.append(PoolInstance(record.logical_id, template.name, instance))
        return instances
