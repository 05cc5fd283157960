"""Instance, volume and floating IP value objects."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

# Tag carrying the caller's logical instance ID on every instance and volume.
LOGICAL_ID_TAG = "DIRECTOR_ID"
INSTANCE_NAME_TAG = "INSTANCE_NAME"
VOLUME_NUMBER_TAG = "VOLUME_NUMBER"
VOLUME_SIZE_TAG = "VOLUME_SIZE"


class CanonicalStatus(str, Enum):
    """Provider-independent instance status."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"
    DELETED = "DELETED"


class VolumeStatus(str, Enum):
    """Block-storage volume status as reported by a control plane."""

    CREATING = "creating"
    AVAILABLE = "available"
    ATTACHING = "attaching"
    IN_USE = "in-use"
    DETACHING = "detaching"
    DELETING = "deleting"
    DELETED = "deleted"
    ERROR = "error"
    ERROR_DELETING = "error_deleting"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "VolumeStatus":
        """Parse a status string, falling back to UNRECOGNIZED."""
        if value is None:
            return cls.UNRECOGNIZED
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNRECOGNIZED


@dataclass(frozen=True)
class InstanceRecord:
    """Snapshot of a provider instance."""

    instance_id: str
    status: Any
    tags: dict[str, str] = field(default_factory=dict, hash=False)
    private_addresses: tuple[str, ...] = ()
    floating_address: Optional[str] = None
    image_id: Optional[str] = None
    flavor: Optional[str] = None
    key_name: Optional[str] = None
    availability_zone: Optional[str] = None
    network_id: Optional[str] = None
    launch_time: Optional[datetime] = None

    @property
    def logical_id(self) -> Optional[str]:
        return self.tags.get(LOGICAL_ID_TAG)

    @property
    def private_address(self) -> Optional[str]:
        """First private address, if any."""
        return self.private_addresses[0] if self.private_addresses else None

    def has_addresses(self) -> bool:
        return bool(self.private_addresses)


@dataclass(frozen=True)
class VolumeRecord:
    """Snapshot of a provider block-storage volume."""

    volume_id: str
    status: VolumeStatus
    size: int = 0
    tags: dict[str, str] = field(default_factory=dict, hash=False)
    attached_instance_id: Optional[str] = None

    @property
    def logical_id(self) -> Optional[str]:
        return self.tags.get(LOGICAL_ID_TAG)


@dataclass(frozen=True)
class FloatingIpRecord:
    """Snapshot of a floating (public) IP address."""

    floating_ip_id: str
    address: str
    instance_id: Optional[str] = None
    pool: Optional[str] = None

    def is_associated_with(self, instance_id: str) -> bool:
        return self.instance_id is not None and self.instance_id == instance_id
