"""Instance as returned to the pool's caller."""

from dataclasses import dataclass
from typing import Optional

from instance_pool.domain.instance.value_objects import InstanceRecord


@dataclass(frozen=True)
class PoolInstance:
    """
    A live instance identified by the caller's logical ID.

    Attributes:
        logical_id: The caller-supplied identifier
        template_name: Name of the template the instance was found through
        record: Provider snapshot taken when the instance was looked up
    """

    logical_id: str
    template_name: str
    record: InstanceRecord

    @property
    def instance_id(self) -> str:
        return self.record.instance_id

    @property
    def private_ip_address(self) -> Optional[str]:
        return self.record.private_address

    @property
    def public_ip_address(self) -> Optional[str]:
        return self.record.floating_address

    def properties(self) -> dict[str, Optional[str]]:
        """Display properties of the instance keyed by their external names."""
        launch_time = self.record.launch_time
        return {
            "imageId": self.record.image_id,
            "instanceId": self.record.instance_id,
            "instanceType": self.record.flavor,
            "keyName": self.record.key_name,
            "launchTime": launch_time.isoformat() if launch_time else None,
            "privateIpAddress": self.private_ip_address,
            "publicIpAddress": self.public_ip_address,
            "networkId": self.record.network_id,
        }

    def __str__(self) -> str:
        return (
            f"PoolInstance(logical_id={self.logical_id}, id={self.instance_id}, "
            f"privateIp={self.private_ip_address}, publicIp={self.public_ip_address})"
        )
