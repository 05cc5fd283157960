"""Control plane ports.

Control planes are eventually consistent: every mutating call returns
before its effect is durable, so callers discover state by polling the
``get_*`` and ``list_*`` methods.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, Optional

from instance_pool.domain.instance.value_objects import (
    CanonicalStatus,
    FloatingIpRecord,
    InstanceRecord,
    VolumeRecord,
)


class InstanceLifecyclePort(ABC):
    """Lookup and deletion of the instances a control plane provisions."""

    @abstractmethod
    def get_instance(self, instance_id: str) -> Optional[InstanceRecord]:
        """Return the instance or None when it does not exist."""

    @abstractmethod
    def delete_instance(self, instance_id: str) -> bool:
        """Request deletion; False when the provider refused or did not know the instance."""

    @abstractmethod
    def list_instances(self) -> Iterable[InstanceRecord]:
        """List every instance visible to this control plane."""

    @abstractmethod
    def translate_instance_status(self, status: Any) -> CanonicalStatus:
        """Map this provider's instance status to CanonicalStatus."""


class ComputeControlPlanePort(InstanceLifecyclePort):
    """Interface to a cloud's compute, block-storage and floating IP services."""

    # Instances

    @abstractmethod
    def create_instance(
        self,
        name: str,
        image: str,
        flavor: str,
        network: Optional[str],
        zone: Optional[str],
        security_groups: list[str],
        key_name: Optional[str],
        tags: dict[str, str],
    ) -> str:
        """Request a new instance and return its provider ID."""

    # Volumes

    @abstractmethod
    def supports_volume_attachment(self) -> bool:
        """Whether volumes can be attached to instances in this region."""

    @abstractmethod
    def create_volume(self, size: int, zone: Optional[str], tags: dict[str, str]) -> str:
        """Request a new volume of ``size`` GiB and return its provider ID."""

    @abstractmethod
    def get_volume(self, volume_id: str) -> Optional[VolumeRecord]:
        """Return the volume or None when it does not exist."""

    @abstractmethod
    def delete_volume(self, volume_id: str) -> bool:
        """Request deletion; False when the provider refused or did not know the volume."""

    @abstractmethod
    def list_volumes(self) -> Iterable[VolumeRecord]:
        """List every volume visible to this control plane."""

    @abstractmethod
    def attach_volume(self, volume_id: str, instance_id: str) -> dict[str, Any]:
        """Request attachment of a volume to an instance."""

    # Floating IPs

    @abstractmethod
    def supports_floating_ips(self) -> bool:
        """Whether floating IPs are available in this region."""

    @abstractmethod
    def list_floating_ip_pools(self) -> Iterable[str]:
        """Names of the pools floating IPs can be allocated from."""

    @abstractmethod
    def allocate_floating_ip(self, pool: str) -> FloatingIpRecord:
        """Allocate a floating IP from ``pool``."""

    @abstractmethod
    def associate_floating_ip(self, floating_ip: FloatingIpRecord, instance_id: str) -> None:
        """Request association of a floating IP with an instance; no confirmation is returned."""

    @abstractmethod
    def delete_floating_ip(self, floating_ip_id: str) -> None:
        """Disassociate if needed and release a floating IP."""

    @abstractmethod
    def list_floating_ips(self) -> Iterable[FloatingIpRecord]:
        """List every floating IP allocated in this account and region."""
