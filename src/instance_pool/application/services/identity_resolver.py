"""Logical to provider instance ID resolution."""

from collections.abc import Iterable

from instance_pool.domain.base.ports import InstanceLifecyclePort, LoggingPort
from instance_pool.domain.instance.value_objects import CanonicalStatus, InstanceRecord


class IdentityResolver:
    """
    Maps caller logical IDs to provider instance IDs through instance tags.

    Every resolution lists all instances once and scans the listing
    linearly, so the cost is O(instances) per call. Nothing is cached: the
    tags on the remote resources are the only record of ownership.
    """

    def __init__(self, control_plane: InstanceLifecyclePort, logger: LoggingPort) -> None:
        self._control_plane = control_plane
        self._logger = logger

    def resolve(self, logical_ids: Iterable[str]) -> dict[str, str]:
        """
        Resolve logical IDs to provider instance IDs.

        Args:
            logical_ids: Logical IDs to resolve, duplicates are ignored

        Returns:
            Provider ID per resolvable logical ID; unresolvable IDs are absent
        """
        return {
            logical_id: record.instance_id
            for logical_id, record in self.resolve_records(logical_ids).items()
        }

    def resolve_records(self, logical_ids: Iterable[str]) -> dict[str, InstanceRecord]:
        """Resolve logical IDs to the first instance record carrying each."""
        resolved: dict[str, InstanceRecord] = {}
        for logical_id, records in self._matching_records(logical_ids).items():
            resolved[logical_id] = records[0]
        return resolved

    def resolve_all(self, logical_ids: Iterable[str]) -> dict[str, list[str]]:
        """
        Resolve logical IDs to every provider instance tagged with them.

        A create request retried after an ambiguous failure can leave more
        than one instance carrying the same logical ID; releasing a logical
        ID has to see all of them.
        """
        return {
            logical_id: [record.instance_id for record in records]
            for logical_id, records in self._matching_records(logical_ids).items()
        }

    def _matching_records(self, logical_ids: Iterable[str]) -> dict[str, list[InstanceRecord]]:
        wanted = set(logical_ids)
        if not wanted:
            return {}

        matches: dict[str, list[InstanceRecord]] = {}
        for record in self._control_plane.list_instances():
            logical_id = record.logical_id
            if logical_id not in wanted:
                continue
            if self._control_plane.translate_instance_status(record.status) is CanonicalStatus.DELETED:
                continue
            matches.setdefault(logical_id, []).append(record)

        duplicated = sorted(logical_id for logical_id, records in matches.items() if len(records) > 1)
        if duplicated:
            self._logger.warning("Several instances carry logical ID(s) %s", ", ".join(duplicated))
        self._logger.debug("Resolved %d of %d logical instance IDs", len(matches), len(wanted))
        return matches
