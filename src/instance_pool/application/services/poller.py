"""Bounded polling of control-plane resources."""

import time
from collections.abc import Iterable
from typing import Any, Callable, Optional

from instance_pool.config.schemas import PollingConfig
from instance_pool.domain.base.conditions import ConditionAccumulator
from instance_pool.domain.base.ports import InstanceLifecyclePort, LoggingPort
from instance_pool.domain.instance.value_objects import (
    CanonicalStatus,
    InstanceRecord,
    VolumeStatus,
)

Fetch = Callable[[str], Optional[Any]]
Predicate = Callable[[Any], bool]


class BoundedPoller:
    """
    Repeatedly fetches resources until they match or a deadline passes.

    Polling never raises: fetch failures are recorded in the caller's
    accumulator and count as a non-match, and a missed deadline is reported
    as ``False``. A resource the control plane no longer knows only matches
    when the caller waits for its deletion.

    The volume waits need a ComputeControlPlanePort.
    """

    def __init__(
        self,
        control_plane: InstanceLifecyclePort,
        logger: LoggingPort,
        config: Optional[PollingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._control_plane = control_plane
        self._logger = logger
        self.config = config or PollingConfig()
        self._clock = clock
        self._sleep = sleep

    def poll_until(
        self,
        resource_id: str,
        fetch: Fetch,
        predicate: Predicate,
        max_wait_seconds: float,
        interval_seconds: float,
        accumulator: ConditionAccumulator,
        missing_matches: bool = False,
    ) -> bool:
        """
        Poll a single resource until ``predicate`` holds.

        Args:
            resource_id: Provider ID passed to ``fetch``
            fetch: Returns the resource or None when it does not exist
            predicate: Match test applied to an existing resource
            max_wait_seconds: Deadline measured from the first fetch
            interval_seconds: Sleep between two fetches
            accumulator: Receives fetch failures
            missing_matches: Whether a vanished resource counts as a match

        Returns:
            True on the first match, False once the deadline has passed
        """
        deadline = self._clock() + max_wait_seconds
        while True:
            if self._matches(resource_id, fetch, predicate, accumulator, missing_matches):
                return True
            if self._clock() >= deadline:
                self._logger.debug("Gave up waiting on %s after %ss", resource_id, max_wait_seconds)
                return False
            self._sleep(interval_seconds)

    def poll_batch_until(
        self,
        resource_ids: Iterable[str],
        fetch: Fetch,
        predicate: Predicate,
        max_wait_seconds: float,
        interval_seconds: float,
        accumulator: ConditionAccumulator,
        abandon: Optional[Predicate] = None,
    ) -> set[str]:
        """
        Poll several resources against one shared deadline.

        Resources matching ``abandon`` stop being polled and are never
        reported as matched, even if ``predicate`` holds for them too.
        Returns the IDs that matched before the deadline.
        """
        pending = list(dict.fromkeys(resource_ids))
        matched: set[str] = set()
        deadline = self._clock() + max_wait_seconds

        while pending:
            for resource_id in list(pending):
                try:
                    resource = fetch(resource_id)
                except Exception as e:
                    self._record_fetch_failure(resource_id, e, accumulator)
                    continue
                if resource is None:
                    continue
                if abandon is not None and abandon(resource):
                    self._logger.warning("Stopped waiting on %s: %s", resource_id, resource.status)
                    pending.remove(resource_id)
                elif predicate(resource):
                    matched.add(resource_id)
                    pending.remove(resource_id)

            if not pending:
                break
            if self._clock() >= deadline:
                self._logger.warning(
                    "Deadline of %ss passed with %d resource(s) not ready: %s",
                    max_wait_seconds,
                    len(pending),
                    ", ".join(pending),
                )
                break
            self._sleep(interval_seconds)

        return matched

    # Specialisations

    def wait_for_instance_status(
        self,
        instance_id: str,
        target: CanonicalStatus,
        accumulator: ConditionAccumulator,
        timeout_seconds: Optional[float] = None,
    ) -> bool:
        """Wait for an instance's canonical status; a vanished instance counts as DELETED."""
        timeout = (
            self.config.instance_status_timeout_seconds
            if timeout_seconds is None
            else timeout_seconds
        )
        self._logger.debug("Waiting up to %ss for instance %s to be %s", timeout, instance_id, target.value)
        return self.poll_until(
            instance_id,
            self._control_plane.get_instance,
            lambda record: self._control_plane.translate_instance_status(record.status) is target,
            timeout,
            self.config.interval_seconds,
            accumulator,
            missing_matches=target is CanonicalStatus.DELETED,
        )

    def wait_for_instance_deleted(
        self,
        instance_id: str,
        accumulator: ConditionAccumulator,
        timeout_seconds: Optional[float] = None,
    ) -> bool:
        timeout = (
            self.config.instance_delete_timeout_seconds
            if timeout_seconds is None
            else timeout_seconds
        )
        return self.wait_for_instance_status(
            instance_id, CanonicalStatus.DELETED, accumulator, timeout
        )

    def wait_for_volume_status(
        self,
        volume_id: str,
        target: VolumeStatus,
        accumulator: ConditionAccumulator,
        timeout_seconds: Optional[float] = None,
    ) -> bool:
        """Wait for a volume to reach ``target``."""
        timeout = (
            self.config.volume_status_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._logger.debug("Waiting up to %ss for volume %s to be %s", timeout, volume_id, target.value)
        return self.poll_until(
            volume_id,
            self._control_plane.get_volume,
            lambda volume: volume.status is target,
            timeout,
            self.config.interval_seconds,
            accumulator,
            missing_matches=target is VolumeStatus.DELETED,
        )

    def wait_for_volume_deleted(
        self,
        volume_id: str,
        accumulator: ConditionAccumulator,
        timeout_seconds: Optional[float] = None,
    ) -> bool:
        timeout = (
            self.config.volume_delete_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        return self.wait_for_volume_status(volume_id, VolumeStatus.DELETED, accumulator, timeout)

    def wait_for_network(
        self,
        instance_ids: Iterable[str],
        accumulator: ConditionAccumulator,
        timeout_seconds: Optional[float] = None,
    ) -> set[str]:
        """
        Wait for instances to obtain at least one address.

        Instances that fail or vanish on the provider side drop out early.
        Returns the IDs of instances with addresses when the wait ended.
        """
        timeout = (
            self.config.network_ready_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        return self.poll_batch_until(
            instance_ids,
            self._control_plane.get_instance,
            InstanceRecord.has_addresses,
            timeout,
            self.config.interval_seconds,
            accumulator,
            abandon=self._is_lost,
        )

    def _is_lost(self, record: InstanceRecord) -> bool:
        status = self._control_plane.translate_instance_status(record.status)
        return status in (CanonicalStatus.FAILED, CanonicalStatus.DELETED)

    def _matches(
        self,
        resource_id: str,
        fetch: Fetch,
        predicate: Predicate,
        accumulator: ConditionAccumulator,
        missing_matches: bool,
    ) -> bool:
        try:
            resource = fetch(resource_id)
        except Exception as e:
            self._record_fetch_failure(resource_id, e, accumulator)
            return False
        if resource is None:
            return missing_matches
        return bool(predicate(resource))

    def _record_fetch_failure(
        self, resource_id: str, error: Exception, accumulator: ConditionAccumulator
    ) -> None:
        self._logger.error("Failed to query %s: %s", resource_id, error)
        accumulator.add_error(resource_id, f"Status query failed: {error}")
