"""Per-instance provisioning state for a single allocation call.

An allocation walks every logical instance through

    REQUESTED -> CREATING -> AWAITING_NETWORK -> {READY_NO_IP | READY}
              -> {READY_WITH_VOLUMES | FAILED -> ROLLED_BACK}

READY_NO_IP is the network-ready state of an instance still waiting for a
floating IP. Any non-terminal state may fail; only FAILED may be rolled back.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from instance_pool.domain.base.exceptions import InvalidProvisioningTransitionError
from instance_pool.domain.instance.value_objects import FloatingIpRecord


class ProvisioningState(str, Enum):
    REQUESTED = "REQUESTED"
    CREATING = "CREATING"
    AWAITING_NETWORK = "AWAITING_NETWORK"
    READY_NO_IP = "READY_NO_IP"
    READY = "READY"
    READY_WITH_VOLUMES = "READY_WITH_VOLUMES"
    FAILED = "FAILED"
    ROLLED_BACK = "ROLLED_BACK"


_TRANSITIONS: dict[ProvisioningState, frozenset[ProvisioningState]] = {
    ProvisioningState.REQUESTED: frozenset({ProvisioningState.CREATING, ProvisioningState.FAILED}),
    ProvisioningState.CREATING: frozenset(
        {ProvisioningState.AWAITING_NETWORK, ProvisioningState.FAILED}
    ),
    ProvisioningState.AWAITING_NETWORK: frozenset(
        {ProvisioningState.READY_NO_IP, ProvisioningState.READY, ProvisioningState.FAILED}
    ),
    ProvisioningState.READY_NO_IP: frozenset({ProvisioningState.READY, ProvisioningState.FAILED}),
    ProvisioningState.READY: frozenset(
        {ProvisioningState.READY_WITH_VOLUMES, ProvisioningState.FAILED}
    ),
    ProvisioningState.READY_WITH_VOLUMES: frozenset({ProvisioningState.FAILED}),
    ProvisioningState.FAILED: frozenset({ProvisioningState.ROLLED_BACK}),
    ProvisioningState.ROLLED_BACK: frozenset(),
}

READY_STATES = frozenset({ProvisioningState.READY, ProvisioningState.READY_WITH_VOLUMES})


@dataclass
class ProvisioningRecord:
    """Mutable provisioning progress of one logical instance."""

    logical_id: str
    state: ProvisioningState = ProvisioningState.REQUESTED
    instance_id: Optional[str] = None
    floating_ip: Optional[FloatingIpRecord] = None
    volume_ids: list[str] = field(default_factory=list)
    failure_reason: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.state in READY_STATES

    @property
    def is_failed(self) -> bool:
        return self.state is ProvisioningState.FAILED

    def can_transition_to(self, target: ProvisioningState) -> bool:
        return target in _TRANSITIONS[self.state]

    def transition_to(self, target: ProvisioningState) -> None:
        if not self.can_transition_to(target):
            raise InvalidProvisioningTransitionError(self.logical_id, self.state, target)
        self.state = target

    def fail(self, reason: str) -> None:
        """Move to FAILED, keeping the first reason recorded."""
        self.transition_to(ProvisioningState.FAILED)
        if self.failure_reason is None:
            self.failure_reason = reason


class ProvisioningBatch:
    """Ordered arena of provisioning records, one per distinct logical ID."""

    def __init__(self, logical_ids: Iterable[str]) -> None:
        self._records: dict[str, ProvisioningRecord] = {}
        for logical_id in logical_ids:
            if logical_id not in self._records:
                self._records[logical_id] = ProvisioningRecord(logical_id)

    def __iter__(self) -> Iterator[ProvisioningRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, logical_id: str) -> ProvisioningRecord:
        return self._records[logical_id]

    @property
    def logical_ids(self) -> list[str]:
        return list(self._records)

    def in_state(self, *states: ProvisioningState) -> list[ProvisioningRecord]:
        return [record for record in self._records.values() if record.state in states]

    def ready(self) -> list[ProvisioningRecord]:
        return [record for record in self._records.values() if record.is_ready]

    def failed(self) -> list[ProvisioningRecord]:
        return self.in_state(ProvisioningState.FAILED)

    def not_ready(self) -> list[ProvisioningRecord]:
        """Records that did not reach a ready state, rolled back ones included."""
        return [record for record in self._records.values() if not record.is_ready]

    def ready_count(self) -> int:
        return len(self._records) - len(self.not_ready())

    def fail_all(self, reason: str) -> None:
        """Fail every record that is not already failed or rolled back."""
        for record in self._records.values():
            if record.state not in (ProvisioningState.FAILED, ProvisioningState.ROLLED_BACK):
                record.fail(reason)

    def mark_rolled_back(self, records: Iterable[ProvisioningRecord]) -> None:
        for record in records:
            record.transition_to(ProvisioningState.ROLLED_BACK)
