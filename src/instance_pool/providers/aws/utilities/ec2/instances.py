"""EC2 response parsing and request building helpers."""

import re
import string
from collections.abc import Iterable
from typing import Any, Callable, Optional

from instance_pool.domain.instance.value_objects import (
    FloatingIpRecord,
    InstanceRecord,
    VolumeRecord,
)
from instance_pool.providers.aws.domain.ec2_state import EC2InstanceState, volume_status_from_ec2

# Device names EC2 recommends for attached EBS volumes on HVM instances.
VOLUME_DEVICE_NAMES = tuple(f"/dev/sd{letter}" for letter in string.ascii_lowercase[5:16])

_SECURITY_GROUP_ID = re.compile(r"^sg-[0-9a-f]{8,17}$")


def is_security_group_id(identifier: str) -> bool:
    """
    Check if the given identifier is a security group ID rather than a name.

    Args:
        identifier: String to check

    Returns:
        True for identifiers of the form sg-xxxxxxxx
    """
    return bool(_SECURITY_GROUP_ID.match(identifier.strip()))


def tags_to_dict(tags: Optional[Iterable[dict[str, str]]]) -> dict[str, str]:
    return {tag["Key"]: tag["Value"] for tag in tags or [] if "Key" in tag}


def build_tag_specifications(resource_type: str, tags: dict[str, str]) -> list[dict[str, Any]]:
    """TagSpecifications entry tagging a resource at creation time."""
    return [
        {
            "ResourceType": resource_type,
            "Tags": [{"Key": key, "Value": value} for key, value in tags.items()],
        }
    ]


def instance_record_from_ec2(instance: dict[str, Any]) -> InstanceRecord:
    """Build an InstanceRecord from a describe_instances entry."""
    state = instance.get("State")
    state_name = state.get("Name") if isinstance(state, dict) else state

    private_addresses: list[str] = []
    for interface in instance.get("NetworkInterfaces", []):
        for address in interface.get("PrivateIpAddresses", []):
            ip = address.get("PrivateIpAddress")
            if ip and ip not in private_addresses:
                private_addresses.append(ip)
    primary = instance.get("PrivateIpAddress")
    if primary:
        if primary in private_addresses:
            private_addresses.remove(primary)
        private_addresses.insert(0, primary)

    return InstanceRecord(
        instance_id=instance["InstanceId"],
        status=EC2InstanceState.from_value(state_name),
        tags=tags_to_dict(instance.get("Tags")),
        private_addresses=tuple(private_addresses),
        floating_address=instance.get("PublicIpAddress"),
        image_id=instance.get("ImageId"),
        flavor=instance.get("InstanceType"),
        key_name=instance.get("KeyName"),
        availability_zone=instance.get("Placement", {}).get("AvailabilityZone"),
        network_id=instance.get("SubnetId"),
        launch_time=instance.get("LaunchTime"),
    )


def volume_record_from_ec2(volume: dict[str, Any]) -> VolumeRecord:
    """Build a VolumeRecord from a describe_volumes entry."""
    attachments = volume.get("Attachments", [])
    attachment = attachments[0] if attachments else {}
    return VolumeRecord(
        volume_id=volume["VolumeId"],
        status=volume_status_from_ec2(volume.get("State"), attachment.get("State")),
        size=volume.get("Size", 0),
        tags=tags_to_dict(volume.get("Tags")),
        attached_instance_id=attachment.get("InstanceId"),
    )


def floating_ip_record_from_ec2(address: dict[str, Any], default_pool: str) -> FloatingIpRecord:
    """Build a FloatingIpRecord from a describe_addresses entry."""
    return FloatingIpRecord(
        floating_ip_id=address.get("AllocationId") or address["PublicIp"],
        address=address["PublicIp"],
        instance_id=address.get("InstanceId") or None,
        pool=address.get("PublicIpv4Pool") or default_pool,
    )


def next_free_device_name(instance: dict[str, Any]) -> str:
    """
    First recommended device name not used by the instance's block devices.

    Raises:
        ValueError: If every recommended name is taken
    """
    used = {mapping.get("DeviceName") for mapping in instance.get("BlockDeviceMappings", [])}
    for device in VOLUME_DEVICE_NAMES:
        if device not in used:
            return device
    raise ValueError(f"No free device name left on instance {instance.get('InstanceId')}")


def flatten_reservations(reservations: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    instances: list[dict[str, Any]] = []
    for reservation in reservations:
        instances.extend(reservation.get("Instances", []))
    return instances


def paginate(client_method: Callable, result_key: str, **kwargs) -> list[dict[str, Any]]:
    """
    Collect every page of a boto3 client operation.

    Args:
        client_method: The boto3 client method, e.g. ec2_client.describe_instances
        result_key: Key in each page holding the results, e.g. "Reservations"
        **kwargs: Arguments passed to the paginator

    Returns:
        Items from all pages
    """
    paginator = client_method.__self__.get_paginator(client_method.__name__)
    results: list[dict[str, Any]] = []
    for page in paginator.paginate(**kwargs):
        results.extend(page.get(result_key, []))
    return results
