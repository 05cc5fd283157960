"""Idempotent release of every resource tied to a set of logical instances."""

from collections.abc import Iterable
from typing import Optional

from instance_pool.application.services.identity_resolver import IdentityResolver
from instance_pool.application.services.poller import BoundedPoller
from instance_pool.domain.base.conditions import ConditionAccumulator
from instance_pool.domain.base.ports import InstanceLifecyclePort, LoggingPort
from instance_pool.domain.instance.value_objects import VolumeRecord, VolumeStatus

_DELETABLE_VOLUME_STATUSES = frozenset({VolumeStatus.AVAILABLE, VolumeStatus.ERROR})


class ReleaseEngine:
    """
    Deletes floating IPs, instances and volumes owned by logical instances.

    Resources are released in dependency order: floating IPs first so none
    is orphaned by its instance vanishing, then instances, then volumes once
    the instances are confirmed gone and have let go of them. Safe to call
    for logical IDs that were never provisioned, are half provisioned or are
    already released. Failures are recorded in the accumulator, never raised;
    resources left behind are recorded as warnings.

    Any InstanceLifecyclePort can back the engine when no volumes or floating
    IPs are requested; those steps need a ComputeControlPlanePort.
    """

    def __init__(
        self,
        control_plane: InstanceLifecyclePort,
        resolver: IdentityResolver,
        poller: BoundedPoller,
        logger: LoggingPort,
    ) -> None:
        self._control_plane = control_plane
        self._resolver = resolver
        self._poller = poller
        self._logger = logger

    def release(
        self,
        volume_count: int,
        volume_size: int,
        floating_ip_pool: Optional[str],
        logical_ids: Iterable[str],
        extra_floating_ip_ids: Optional[Iterable[str]],
        accumulator: ConditionAccumulator,
    ) -> None:
        """
        Release everything owned by ``logical_ids``.

        Args:
            volume_count: Volumes per instance; volumes are only looked for when > 0
            volume_size: Volume size in GiB; volumes are only looked for when > 0
            floating_ip_pool: Pool name, or None/empty when no floating IPs are used
            logical_ids: Logical instance IDs to release
            extra_floating_ip_ids: Floating IPs allocated but never associated
            accumulator: Receives every failure
        """
        logical_ids = list(dict.fromkeys(logical_ids))
        resolved = self._resolver.resolve_all(logical_ids)
        instance_ids = {instance_id for ids in resolved.values() for instance_id in ids}
        if logical_ids:
            self._logger.info(
                "Releasing %d logical instance(s), %d resolved to %d provider instance(s)",
                len(logical_ids),
                len(resolved),
                len(instance_ids),
            )

        self._release_floating_ips(
            floating_ip_pool, instance_ids, list(extra_floating_ip_ids or []), accumulator
        )

        if not logical_ids:
            return

        self._release_instances(resolved, accumulator)

        if volume_count > 0 and volume_size > 0:
            self._release_volumes(logical_ids, accumulator)

    def _release_floating_ips(
        self,
        floating_ip_pool: Optional[str],
        instance_ids: set[str],
        extra_floating_ip_ids: list[str],
        accumulator: ConditionAccumulator,
    ) -> None:
        floating_ip_ids: list[str] = []
        if floating_ip_pool and instance_ids:
            try:
                floating_ip_ids = [
                    floating_ip.floating_ip_id
                    for floating_ip in self._control_plane.list_floating_ips()
                    if floating_ip.instance_id in instance_ids
                ]
            except Exception as e:
                self._logger.error("Failed to list floating IPs: %s", e)
                accumulator.add_error(None, f"Failed to list floating IPs: {e}")

        for floating_ip_id in dict.fromkeys(floating_ip_ids + extra_floating_ip_ids):
            try:
                self._control_plane.delete_floating_ip(floating_ip_id)
                self._logger.info("Deleted floating IP %s", floating_ip_id)
            except Exception as e:
                self._logger.error("Failed to delete floating IP %s: %s", floating_ip_id, e)
                accumulator.add_error(floating_ip_id, f"Failed to delete floating IP: {e}")

    def _release_instances(self, resolved: dict[str, list[str]], accumulator: ConditionAccumulator) -> None:
        requested: list[tuple[str, str]] = []
        for logical_id, instance_ids in resolved.items():
            for instance_id in instance_ids:
                try:
                    self._control_plane.delete_instance(instance_id)
                    self._logger.info("Requested deletion of instance %s (%s)", instance_id, logical_id)
                except Exception as e:
                    self._logger.error("Failed to delete instance %s (%s): %s", instance_id, logical_id, e)
                    accumulator.add_error(logical_id, f"Failed to delete instance {instance_id}: {e}")
                    continue
                requested.append((logical_id, instance_id))

        for logical_id, instance_id in requested:
            if not self._poller.wait_for_instance_deleted(instance_id, accumulator):
                timeout = self._poller.config.instance_delete_timeout_seconds
                self._logger.warning(
                    "Instance %s (%s) not confirmed deleted after %ss", instance_id, logical_id, timeout
                )
                accumulator.add_warning(
                    logical_id, f"Instance {instance_id} not confirmed deleted after {timeout}s"
                )

    def _release_volumes(self, logical_ids: list[str], accumulator: ConditionAccumulator) -> None:
        wanted = set(logical_ids)
        try:
            volumes = [v for v in self._control_plane.list_volumes() if v.logical_id in wanted]
        except Exception as e:
            self._logger.error("Failed to list volumes: %s", e)
            accumulator.add_error(None, f"Failed to list volumes: {e}")
            return

        awaiting: list[VolumeRecord] = []
        detaching: list[VolumeRecord] = []
        for volume in volumes:
            if volume.status in _DELETABLE_VOLUME_STATUSES:
                if self._delete_volume(volume, accumulator):
                    awaiting.append(volume)
            elif volume.status is VolumeStatus.DELETING:
                awaiting.append(volume)
            elif volume.status is VolumeStatus.ERROR_DELETING:
                self._logger.warning(
                    "Volume %s (%s) is in %s and cannot be deleted",
                    volume.volume_id,
                    volume.logical_id,
                    volume.status.value,
                )
                accumulator.add_warning(
                    volume.logical_id,
                    f"Volume {volume.volume_id} left behind in state {volume.status.value}",
                )
            elif volume.status is not VolumeStatus.DELETED:
                detaching.append(volume)

        # Volumes still attached are released once their instance has let go of them.
        for volume in detaching:
            if self._poller.wait_for_volume_status(volume.volume_id, VolumeStatus.AVAILABLE, accumulator):
                if self._delete_volume(volume, accumulator):
                    awaiting.append(volume)
            else:
                self._logger.warning(
                    "Volume %s (%s) never became available, leaving it in place",
                    volume.volume_id,
                    volume.logical_id,
                )
                accumulator.add_warning(
                    volume.logical_id,
                    f"Volume {volume.volume_id} left behind: not available for deletion",
                )

        for volume in awaiting:
            if not self._poller.wait_for_volume_deleted(volume.volume_id, accumulator):
                timeout = self._poller.config.volume_delete_timeout_seconds
                self._logger.warning(
                    "Volume %s (%s) still present %ss after deletion", volume.volume_id, volume.logical_id, timeout
                )
                accumulator.add_warning(
                    volume.logical_id, f"Volume {volume.volume_id} not deleted after {timeout}s"
                )

    def _delete_volume(self, volume: VolumeRecord, accumulator: ConditionAccumulator) -> bool:
        """Request deletion; True when the volume should be watched until it disappears."""
        try:
            deleted = self._control_plane.delete_volume(volume.volume_id)
        except Exception as e:
            self._logger.error("Failed to delete volume %s (%s): %s", volume.volume_id, volume.logical_id, e)
            accumulator.add_error(volume.logical_id, f"Failed to delete volume {volume.volume_id}: {e}")
            return False
        self._logger.info("Requested deletion of volume %s (%s)", volume.volume_id, volume.logical_id)
        return deleted
