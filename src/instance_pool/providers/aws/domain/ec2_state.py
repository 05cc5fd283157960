"""EC2 status vocabularies and their canonical translation."""

from enum import Enum
from typing import Optional

from instance_pool.domain.instance.status import StatusTranslator
from instance_pool.domain.instance.value_objects import CanonicalStatus, VolumeStatus


class EC2InstanceState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting-down"
    TERMINATED = "terminated"
    STOPPING = "stopping"
    STOPPED = "stopped"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "EC2InstanceState":
        if value is None:
            return cls.UNRECOGNIZED
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNRECOGNIZED


# shutting-down is not DELETED yet: volumes stay attached until termination completes.
EC2_INSTANCE_STATUS_MAP = {
    EC2InstanceState.PENDING: CanonicalStatus.PENDING,
    EC2InstanceState.RUNNING: CanonicalStatus.RUNNING,
    EC2InstanceState.STOPPING: CanonicalStatus.STOPPED,
    EC2InstanceState.STOPPED: CanonicalStatus.STOPPED,
    EC2InstanceState.SHUTTING_DOWN: CanonicalStatus.STOPPED,
    EC2InstanceState.TERMINATED: CanonicalStatus.DELETED,
    EC2InstanceState.UNRECOGNIZED: CanonicalStatus.UNKNOWN,
}

ec2_instance_status_translator = StatusTranslator(EC2_INSTANCE_STATUS_MAP)

# EC2 volume states; "error" is the only failure EC2 reports.
EC2_VOLUME_STATE_MAP = {
    "creating": VolumeStatus.CREATING,
    "available": VolumeStatus.AVAILABLE,
    "in-use": VolumeStatus.IN_USE,
    "deleting": VolumeStatus.DELETING,
    "deleted": VolumeStatus.DELETED,
    "error": VolumeStatus.ERROR,
}

# Attachment states reported while a volume is being (de)attached.
EC2_ATTACHMENT_STATE_MAP = {
    "attaching": VolumeStatus.ATTACHING,
    "detaching": VolumeStatus.DETACHING,
}


def volume_status_from_ec2(state: Optional[str], attachment_state: Optional[str] = None) -> VolumeStatus:
    """Provider-neutral volume status for an EC2 volume and its attachment state."""
    if attachment_state in EC2_ATTACHMENT_STATE_MAP and state == "in-use":
        return EC2_ATTACHMENT_STATE_MAP[attachment_state]
    if state is None:
        return VolumeStatus.UNRECOGNIZED
    return EC2_VOLUME_STATE_MAP.get(state.lower(), VolumeStatus.UNRECOGNIZED)
