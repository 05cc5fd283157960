"""Allocation of a batch of logical instances with rollback of the failures."""

import time
from collections.abc import Iterable
from typing import Callable, Optional

from instance_pool.application.services.identity_resolver import IdentityResolver
from instance_pool.application.services.poller import BoundedPoller
from instance_pool.application.services.release_engine import ReleaseEngine
from instance_pool.config.schemas import PollingConfig
from instance_pool.domain.base.conditions import ConditionAccumulator
from instance_pool.domain.base.exceptions import (
    CapabilityUnavailableError,
    UnrecoverableProvisioningError,
)
from instance_pool.domain.base.ports import ComputeControlPlanePort, LoggingPort
from instance_pool.domain.instance.pool_instance import PoolInstance
from instance_pool.domain.instance.value_objects import (
    CanonicalStatus,
    FloatingIpRecord,
    VolumeStatus,
)
from instance_pool.domain.provisioning.state import (
    ProvisioningBatch,
    ProvisioningRecord,
    ProvisioningState,
)
from instance_pool.domain.template.template import InstanceTemplate


class AllocationOrchestrator:
    """
    Provisions instances for caller logical IDs.

    A call walks every logical ID through creation, network readiness and
    the optional floating IP and volume steps, one instance at a time.
    Instances failing a step are rolled back as long as at least
    ``min_count`` instances remain ready; otherwise the whole batch is
    rolled back and the call fails.

    Control-plane call failures are recorded as errors and make the call
    fail at the end even when enough instances are ready. Timeouts only
    demote the instance concerned and are recorded as warnings.
    """

    def __init__(
        self,
        control_plane: ComputeControlPlanePort,
        resolver: IdentityResolver,
        poller: BoundedPoller,
        release_engine: ReleaseEngine,
        logger: LoggingPort,
        config: Optional[PollingConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._control_plane = control_plane
        self._resolver = resolver
        self._poller = poller
        self._release_engine = release_engine
        self._logger = logger
        self.config = config or poller.config
        self._sleep = sleep

    def allocate(
        self, template: InstanceTemplate, logical_ids: Iterable[str], min_count: int
    ) -> list[PoolInstance]:
        """
        Provision one instance per logical ID.

        Args:
            template: What to provision
            logical_ids: Caller identifiers, duplicates are ignored
            min_count: Fewest ready instances for the batch to succeed

        Returns:
            The ready instances, in request order

        Raises:
            CapabilityUnavailableError: A requested capability or pool is missing
            UnrecoverableProvisioningError: Too few instances became ready or
                a control-plane call failed along the way
        """
        logical_ids = list(dict.fromkeys(logical_ids))
        if not logical_ids:
            raise UnrecoverableProvisioningError("No logical instance IDs to allocate")
        if len(logical_ids) < min_count:
            raise UnrecoverableProvisioningError(
                f"Requested {len(logical_ids)} instance(s) but at least {min_count} are required"
            )

        self._check_preconditions(template)

        self._logger.info(
            "Allocating %d instance(s) from template %s (min %d)",
            len(logical_ids),
            template.name,
            min_count,
        )
        accumulator = ConditionAccumulator()
        batch = ProvisioningBatch(logical_ids)
        stray_floating_ip_ids: list[str] = []

        # Start from a clean slate in case an earlier attempt left resources behind.
        self._release(template, logical_ids, [], accumulator)

        self._create_instances(template, batch, accumulator)
        self._await_network(template, batch, accumulator)
        if template.wants_floating_ip:
            self._assign_floating_ips(template, batch, stray_floating_ip_ids, accumulator)
        self._enforce_min_count(template, batch, min_count, stray_floating_ip_ids, accumulator)

        if template.wants_volumes:
            self._attach_volumes(template, batch, accumulator)
            self._enforce_min_count(template, batch, min_count, stray_floating_ip_ids, accumulator)

        instances = self._collect(template, batch, accumulator)
        # Instances lost since the last check count against the minimum too.
        self._enforce_min_count(template, batch, min_count, stray_floating_ip_ids, accumulator)

        if accumulator.has_errors():
            self._logger.error(
                "Allocation from template %s recorded %d error(s)",
                template.name,
                len(accumulator.errors),
            )
            raise UnrecoverableProvisioningError(
                f"Allocation from template {template.name} failed", accumulator
            )

        self._logger.info(
            "Allocated %d of %d instance(s) from template %s",
            len(instances),
            len(logical_ids),
            template.name,
        )
        return instances

    def _check_preconditions(self, template: InstanceTemplate) -> None:
        if template.wants_volumes and not self._control_plane.supports_volume_attachment():
            raise CapabilityUnavailableError(
                f"Template {template.name} requests volumes but volume attachment is not supported"
            )
        if template.wants_floating_ip:
            if not self._control_plane.supports_floating_ips():
                raise CapabilityUnavailableError(
                    f"Template {template.name} requests a floating IP but floating IPs are not supported"
                )
            pools = list(self._control_plane.list_floating_ip_pools())
            if template.floating_ip_pool not in pools:
                raise CapabilityUnavailableError(
                    f"Floating IP pool {template.floating_ip_pool} does not exist"
                )

    def _create_instances(
        self, template: InstanceTemplate, batch: ProvisioningBatch, accumulator: ConditionAccumulator
    ) -> None:
        try:
            existing = self._resolver.resolve(batch.logical_ids)
        except Exception as e:
            raise UnrecoverableProvisioningError(
                f"Cannot list instances before creating them: {e}", accumulator
            ) from e

        for record in batch:
            record.transition_to(ProvisioningState.CREATING)
            if record.logical_id in existing:
                record.instance_id = existing[record.logical_id]
                self._logger.info(
                    "Instance %s already exists for %s", record.instance_id, record.logical_id
                )
            else:
                try:
                    record.instance_id = self._control_plane.create_instance(
                        name=template.instance_name(record.logical_id),
                        image=template.image_id,
                        flavor=template.flavor,
                        network=template.network_id,
                        zone=template.availability_zone,
                        security_groups=template.security_group_names,
                        key_name=template.key_name,
                        tags=template.instance_tags(record.logical_id),
                    )
                except Exception as e:
                    self._logger.error("Failed to create instance for %s: %s", record.logical_id, e)
                    accumulator.add_error(record.logical_id, f"Failed to create instance: {e}")
                    record.fail("instance creation failed")
                    continue
                self._logger.info("Created instance %s for %s", record.instance_id, record.logical_id)
            record.transition_to(ProvisioningState.AWAITING_NETWORK)

    def _await_network(
        self, template: InstanceTemplate, batch: ProvisioningBatch, accumulator: ConditionAccumulator
    ) -> None:
        waiting = batch.in_state(ProvisioningState.AWAITING_NETWORK)
        if not waiting:
            return

        timeout = self.config.network_ready_timeout_seconds
        ready_ids = self._poller.wait_for_network(
            [record.instance_id for record in waiting], accumulator, timeout
        )
        next_state = ProvisioningState.READY_NO_IP if template.wants_floating_ip else ProvisioningState.READY
        for record in waiting:
            if record.instance_id in ready_ids:
                record.transition_to(next_state)
            else:
                self._logger.warning(
                    "Instance %s (%s) has no network address after %ss",
                    record.instance_id,
                    record.logical_id,
                    timeout,
                )
                accumulator.add_warning(
                    record.logical_id, f"Instance {record.instance_id} not network ready after {timeout}s"
                )
                record.fail("not network ready")

    def _assign_floating_ips(
        self,
        template: InstanceTemplate,
        batch: ProvisioningBatch,
        stray_floating_ip_ids: list[str],
        accumulator: ConditionAccumulator,
    ) -> None:
        for record in batch.in_state(ProvisioningState.READY_NO_IP):
            try:
                floating_ip = self._control_plane.allocate_floating_ip(template.floating_ip_pool)
            except Exception as e:
                self._logger.error(
                    "Failed to allocate a floating IP from %s for %s: %s",
                    template.floating_ip_pool,
                    record.logical_id,
                    e,
                )
                accumulator.add_error(record.logical_id, f"Failed to allocate floating IP: {e}")
                record.fail("floating IP allocation failed")
                continue

            record.floating_ip = floating_ip
            if self._associate_floating_ip(floating_ip, record.instance_id):
                self._logger.info(
                    "Associated floating IP %s with %s (%s)",
                    floating_ip.address,
                    record.instance_id,
                    record.logical_id,
                )
                record.transition_to(ProvisioningState.READY)
            else:
                attempts = self.config.floating_ip_association_attempts
                self._logger.warning(
                    "Floating IP %s not associated with %s after %d attempt(s)",
                    floating_ip.address,
                    record.instance_id,
                    attempts,
                )
                accumulator.add_warning(
                    record.logical_id,
                    f"Floating IP {floating_ip.address} not associated after {attempts} attempt(s)",
                )
                stray_floating_ip_ids.append(floating_ip.floating_ip_id)
                record.fail("floating IP association failed")

    def _associate_floating_ip(self, floating_ip: FloatingIpRecord, instance_id: str) -> bool:
        """Request the association until the control plane reports it."""
        attempts = self.config.floating_ip_association_attempts
        for attempt in range(1, attempts + 1):
            try:
                self._control_plane.associate_floating_ip(floating_ip, instance_id)
                if self._is_associated(floating_ip, instance_id):
                    return True
            except Exception as e:
                self._logger.warning(
                    "Association attempt %d/%d of %s with %s failed: %s",
                    attempt,
                    attempts,
                    floating_ip.address,
                    instance_id,
                    e,
                )
            if attempt < attempts:
                self._sleep(self.config.interval_seconds)
        return False

    def _is_associated(self, floating_ip: FloatingIpRecord, instance_id: str) -> bool:
        return any(
            candidate.floating_ip_id == floating_ip.floating_ip_id
            and candidate.is_associated_with(instance_id)
            for candidate in self._control_plane.list_floating_ips()
        )

    def _enforce_min_count(
        self,
        template: InstanceTemplate,
        batch: ProvisioningBatch,
        min_count: int,
        stray_floating_ip_ids: list[str],
        accumulator: ConditionAccumulator,
    ) -> None:
        """Roll back the failed instances, or everything when too few are ready."""
        ready_count = batch.ready_count()
        if ready_count < min_count:
            self._logger.error(
                "Only %d instance(s) ready, %d required: rolling back all %d",
                ready_count,
                min_count,
                len(batch),
            )
            batch.fail_all("batch below minimum count")
            self._release(template, batch.logical_ids, stray_floating_ip_ids, accumulator)
            batch.mark_rolled_back(batch.failed())
            raise UnrecoverableProvisioningError(
                f"Only {ready_count} instance(s) of template {template.name} ready, {min_count} required",
                accumulator,
            )

        failed = batch.failed()
        if failed or stray_floating_ip_ids:
            self._logger.info(
                "Rolling back %d failed instance(s): %s",
                len(failed),
                ", ".join(record.logical_id for record in failed),
            )
            self._release(
                template, [record.logical_id for record in failed], stray_floating_ip_ids, accumulator
            )
            batch.mark_rolled_back(failed)
        stray_floating_ip_ids.clear()

    def _attach_volumes(
        self, template: InstanceTemplate, batch: ProvisioningBatch, accumulator: ConditionAccumulator
    ) -> None:
        running: list[ProvisioningRecord] = []
        for record in batch.in_state(ProvisioningState.READY):
            if self._poller.wait_for_instance_status(
                record.instance_id, CanonicalStatus.RUNNING, accumulator
            ):
                running.append(record)
            else:
                self._logger.warning(
                    "Instance %s (%s) never reached RUNNING", record.instance_id, record.logical_id
                )
                accumulator.add_warning(
                    record.logical_id, f"Instance {record.instance_id} never reached RUNNING"
                )
                record.fail("instance not running")

        # Every volume is requested before any attachment so they are created concurrently.
        for record in running:
            self._create_volumes(template, record, accumulator)

        for record in running:
            if record.is_failed:
                continue
            if all(self._attach_volume(volume_id, record, accumulator) for volume_id in record.volume_ids):
                record.transition_to(ProvisioningState.READY_WITH_VOLUMES)
                self._logger.info(
                    "Attached %d volume(s) to %s (%s)",
                    len(record.volume_ids),
                    record.instance_id,
                    record.logical_id,
                )

    def _create_volumes(
        self, template: InstanceTemplate, record: ProvisioningRecord, accumulator: ConditionAccumulator
    ) -> None:
        try:
            zone = template.availability_zone or self._instance_zone(record.instance_id)
            for index in range(template.volume_count):
                volume_id = self._control_plane.create_volume(
                    template.volume_size_gib, zone, template.volume_tags(record.logical_id, index)
                )
                record.volume_ids.append(volume_id)
                self._logger.info(
                    "Created volume %s (%d GiB) for %s", volume_id, template.volume_size_gib, record.logical_id
                )
        except Exception as e:
            self._logger.error("Failed to create volumes for %s: %s", record.logical_id, e)
            accumulator.add_error(record.logical_id, f"Failed to create volume: {e}")
            record.fail("volume creation failed")

    def _instance_zone(self, instance_id: str) -> Optional[str]:
        instance = self._control_plane.get_instance(instance_id)
        return instance.availability_zone if instance else None

    def _attach_volume(
        self, volume_id: str, record: ProvisioningRecord, accumulator: ConditionAccumulator
    ) -> bool:
        """Attach one volume; on failure delete it and fail the record."""
        if not self._poller.wait_for_volume_status(volume_id, VolumeStatus.AVAILABLE, accumulator):
            reason = f"Volume {volume_id} never became available"
        else:
            try:
                self._control_plane.attach_volume(volume_id, record.instance_id)
            except Exception as e:
                self._logger.error(
                    "Failed to attach volume %s to %s: %s", volume_id, record.instance_id, e
                )
                accumulator.add_error(record.logical_id, f"Failed to attach volume {volume_id}: {e}")
                reason = None
            else:
                if self._poller.wait_for_volume_status(volume_id, VolumeStatus.IN_USE, accumulator):
                    return True
                reason = f"Volume {volume_id} never became in use"

        if reason:
            self._logger.warning("%s for %s", reason, record.logical_id)
            accumulator.add_warning(record.logical_id, reason)
        try:
            self._control_plane.delete_volume(volume_id)
        except Exception as e:
            # The release of the failed instance picks the volume up again by tag.
            self._logger.warning("Failed to delete volume %s: %s", volume_id, e)
            accumulator.add_warning(record.logical_id, f"Failed to delete volume {volume_id}: {e}")
        record.fail("volume attachment failed")
        return False

    def _collect(
        self, template: InstanceTemplate, batch: ProvisioningBatch, accumulator: ConditionAccumulator
    ) -> list[PoolInstance]:
        instances: list[PoolInstance] = []
        for record in batch.ready():
            try:
                instance = self._control_plane.get_instance(record.instance_id)
            except Exception as e:
                self._logger.error("Failed to describe instance %s: %s", record.instance_id, e)
                accumulator.add_error(record.logical_id, f"Failed to describe instance: {e}")
                record.fail("instance could not be described")
                continue
            if instance is None:
                self._logger.warning(
                    "Ready instance %s (%s) is no longer visible", record.instance_id, record.logical_id
                )
                accumulator.add_warning(
                    record.logical_id, f"Instance {record.instance_id} disappeared after becoming ready"
                )
                record.fail("instance disappeared")
                continue
            instances.append(PoolInstance(record.logical_id, template.name, instance))
        return instances

    def _release(
        self,
        template: InstanceTemplate,
        logical_ids: list[str],
        stray_floating_ip_ids: list[str],
        accumulator: ConditionAccumulator,
    ) -> None:
        try:
            self._release_engine.release(
                template.volume_count,
                template.volume_size_gib,
                template.floating_ip_pool,
                logical_ids,
                stray_floating_ip_ids,
                accumulator,
            )
        except Exception as e:
            self._logger.error("Release of %s failed: %s", ", ".join(logical_ids) or "strays", e)
            accumulator.add_error(None, f"Release failed: {e}")
