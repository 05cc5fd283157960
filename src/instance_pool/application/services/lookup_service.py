"""Read-only lookup of pool instances and their canonical state."""

from collections.abc import Iterable

from instance_pool.application.services.identity_resolver import IdentityResolver
from instance_pool.domain.base.ports import InstanceLifecyclePort, LoggingPort
from instance_pool.domain.instance.pool_instance import PoolInstance
from instance_pool.domain.instance.value_objects import CanonicalStatus


class LookupService:
    """Finds instances by logical ID and reports their canonical status."""

    def __init__(
        self,
        control_plane: InstanceLifecyclePort,
        resolver: IdentityResolver,
        logger: LoggingPort,
    ) -> None:
        self._control_plane = control_plane
        self._resolver = resolver
        self._logger = logger

    def find(self, template_name: str, logical_ids: Iterable[str]) -> list[PoolInstance]:
        """
        Return the existing instances for ``logical_ids``.

        Logical IDs without a live instance are left out of the result.
        """
        logical_ids = list(dict.fromkeys(logical_ids))
        resolved = self._resolver.resolve(logical_ids)

        instances: list[PoolInstance] = []
        for logical_id in logical_ids:
            instance_id = resolved.get(logical_id)
            if instance_id is None:
                continue
            record = self._control_plane.get_instance(instance_id)
            if record is None:
                self._logger.debug("Instance %s (%s) vanished during lookup", instance_id, logical_id)
                continue
            instances.append(PoolInstance(logical_id, template_name, record))

        self._logger.debug("Found %d of %d instance(s)", len(instances), len(logical_ids))
        return instances

    def get_instance_state(self, logical_ids: Iterable[str]) -> dict[str, CanonicalStatus]:
        """Canonical status per logical ID; unresolvable IDs are DELETED."""
        logical_ids = list(dict.fromkeys(logical_ids))
        resolved = self._resolver.resolve(logical_ids)

        states: dict[str, CanonicalStatus] = {}
        for logical_id in logical_ids:
            instance_id = resolved.get(logical_id)
            record = self._control_plane.get_instance(instance_id) if instance_id else None
            if record is None:
                states[logical_id] = CanonicalStatus.DELETED
            else:
                states[logical_id] = self._control_plane.translate_instance_status(record.status)
        return states
