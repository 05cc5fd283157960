"""EC2 implementation of the compute control plane port.

Instances map to EC2 instances, block storage to EBS volumes and floating
IPs to Elastic IPs. Elastic IPs come either from Amazon's pool, exposed
under ``AWSProviderConfig.default_floating_ip_pool``, or from a public IPv4
pool brought into the account.
"""

import uuid
from typing import Any, Optional

from botocore.exceptions import ClientError

from instance_pool.domain.base.ports import ComputeControlPlanePort, LoggingPort
from instance_pool.domain.instance.value_objects import (
    LOGICAL_ID_TAG,
    CanonicalStatus,
    FloatingIpRecord,
    InstanceRecord,
    VolumeRecord,
)
from instance_pool.infrastructure.resilience import retry
from instance_pool.providers.aws.domain.ec2_state import ec2_instance_status_translator
from instance_pool.providers.aws.exceptions.aws_exceptions import (
    AWSValidationError,
    convert_client_error,
    is_not_found,
)
from instance_pool.providers.aws.infrastructure.aws_client import AWSClient
from instance_pool.providers.aws.utilities.ec2.instances import (
    build_tag_specifications,
    flatten_reservations,
    floating_ip_record_from_ec2,
    instance_record_from_ec2,
    is_security_group_id,
    next_free_device_name,
    paginate,
    volume_record_from_ec2,
)

_OWNED_RESOURCE_FILTER = [{"Name": "tag-key", "Values": [LOGICAL_ID_TAG]}]


class EC2ControlPlane(ComputeControlPlanePort):
    """Compute control plane backed by the EC2 API."""

    def __init__(self, aws_client: AWSClient, logger: LoggingPort) -> None:
        self.aws_client = aws_client
        self._logger = logger
        self.default_pool = aws_client.config.default_floating_ip_pool

    @property
    def _ec2(self) -> Any:
        return self.aws_client.ec2_client

    # Instances

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
        instance_tags = {"Name": name}
        instance_tags.update(tags)

        params: dict[str, Any] = {
            "ImageId": image,
            "InstanceType": flavor,
            "MinCount": 1,
            "MaxCount": 1,
            "TagSpecifications": build_tag_specifications("instance", instance_tags),
            "ClientToken": _client_token(),
        }
        if key_name:
            params["KeyName"] = key_name
        if network:
            params["SubnetId"] = network
        if zone:
            params["Placement"] = {"AvailabilityZone": zone}
        if security_groups:
            params["SecurityGroupIds"] = self._resolve_security_group_ids(security_groups, network)

        try:
            response = _run_instances(self._ec2, params)
        except ClientError as e:
            raise convert_client_error(e, "run_instances")

        instance_id = response["Instances"][0]["InstanceId"]
        self._logger.info("Created EC2 instance %s (%s) from image %s", instance_id, name, image)
        return instance_id

    def get_instance(self, instance_id: str) -> Optional[InstanceRecord]:
        try:
            response = _describe_instances(self._ec2, InstanceIds=[instance_id])
        except ClientError as e:
            if is_not_found(e):
                return None
            raise convert_client_error(e, "describe_instances")

        instances = flatten_reservations(response.get("Reservations", []))
        if not instances:
            return None
        return instance_record_from_ec2(instances[0])

    def delete_instance(self, instance_id: str) -> bool:
        try:
            response = _terminate_instances(self._ec2, [instance_id])
        except ClientError as e:
            if is_not_found(e):
                self._logger.info("EC2 instance %s is already gone", instance_id)
                return False
            raise convert_client_error(e, "terminate_instances")

        terminating = response.get("TerminatingInstances", [])
        self._logger.info("Termination requested for EC2 instance %s", instance_id)
        return bool(terminating)

    def list_instances(self) -> list[InstanceRecord]:
        try:
            reservations = paginate(
                self._ec2.describe_instances, "Reservations", Filters=_OWNED_RESOURCE_FILTER
            )
        except ClientError as e:
            raise convert_client_error(e, "describe_instances")
        return [instance_record_from_ec2(i) for i in flatten_reservations(reservations)]

    def translate_instance_status(self, status: Any) -> CanonicalStatus:
        return ec2_instance_status_translator.translate(status)

    def _resolve_security_group_ids(
        self, security_groups: list[str], subnet_id: Optional[str]
    ) -> list[str]:
        """Map security group names to IDs; IDs pass through unchanged."""
        ids = [group for group in security_groups if is_security_group_id(group)]
        names = [group for group in security_groups if not is_security_group_id(group)]
        if not names:
            return ids

        filters = [{"Name": "group-name", "Values": names}]
        try:
            if subnet_id:
                subnets = self._ec2.describe_subnets(SubnetIds=[subnet_id]).get("Subnets", [])
                if subnets:
                    filters.append({"Name": "vpc-id", "Values": [subnets[0]["VpcId"]]})
            groups = paginate(self._ec2.describe_security_groups, "SecurityGroups", Filters=filters)
        except ClientError as e:
            raise convert_client_error(e, "describe_security_groups")

        ids_by_name = {group["GroupName"]: group["GroupId"] for group in groups}
        missing = [name for name in names if name not in ids_by_name]
        if missing:
            raise AWSValidationError(f"Security groups not found: {', '.join(missing)}")
        return ids + [ids_by_name[name] for name in names]

    # Volumes

    def supports_volume_attachment(self) -> bool:
        return True

    def create_volume(self, size: int, zone: Optional[str], tags: dict[str, str]) -> str:
        if not zone:
            raise AWSValidationError("An availability zone is required to create an EBS volume")
        try:
            response = _create_volume(
                self._ec2,
                Size=size,
                AvailabilityZone=zone,
                TagSpecifications=build_tag_specifications("volume", tags),
                ClientToken=_client_token(),
            )
        except ClientError as e:
            raise convert_client_error(e, "create_volume")

        volume_id = response["VolumeId"]
        self._logger.info("Created EBS volume %s (%d GiB) in %s", volume_id, size, zone)
        return volume_id

    def get_volume(self, volume_id: str) -> Optional[VolumeRecord]:
        try:
            response = _describe_volumes(self._ec2, VolumeIds=[volume_id])
        except ClientError as e:
            if is_not_found(e):
                return None
            raise convert_client_error(e, "describe_volumes")

        volumes = response.get("Volumes", [])
        if not volumes:
            return None
        return volume_record_from_ec2(volumes[0])

    def delete_volume(self, volume_id: str) -> bool:
        try:
            _delete_volume(self._ec2, volume_id)
        except ClientError as e:
            if is_not_found(e):
                self._logger.info("EBS volume %s is already gone", volume_id)
                return False
            raise convert_client_error(e, "delete_volume")

        self._logger.info("Deletion requested for EBS volume %s", volume_id)
        return True

    def list_volumes(self) -> list[VolumeRecord]:
        try:
            volumes = paginate(self._ec2.describe_volumes, "Volumes", Filters=_OWNED_RESOURCE_FILTER)
        except ClientError as e:
            raise convert_client_error(e, "describe_volumes")
        return [volume_record_from_ec2(v) for v in volumes]

    def attach_volume(self, volume_id: str, instance_id: str) -> dict[str, Any]:
        try:
            response = _describe_instances(self._ec2, InstanceIds=[instance_id])
            instances = flatten_reservations(response.get("Reservations", []))
            if not instances:
                raise AWSValidationError(f"Cannot attach {volume_id}: instance {instance_id} not found")
            device = next_free_device_name(instances[0])
            attachment = _attach_volume(
                self._ec2, VolumeId=volume_id, InstanceId=instance_id, Device=device
            )
        except ClientError as e:
            raise convert_client_error(e, "attach_volume")
        except ValueError as e:
            raise AWSValidationError(str(e))

        self._logger.info("Attaching EBS volume %s to %s as %s", volume_id, instance_id, device)
        return attachment

    # Floating IPs

    def supports_floating_ips(self) -> bool:
        return True

    def list_floating_ip_pools(self) -> list[str]:
        pools = [self.default_pool]
        next_token: Optional[str] = None
        try:
            while True:
                kwargs: dict[str, Any] = {"NextToken": next_token} if next_token else {}
                response = self._ec2.describe_public_ipv4_pools(**kwargs)
                pools.extend(pool["PoolId"] for pool in response.get("PublicIpv4Pools", []))
                next_token = response.get("NextToken")
                if not next_token:
                    break
        except ClientError as e:
            raise convert_client_error(e, "describe_public_ipv4_pools")
        return pools

    def allocate_floating_ip(self, pool: str) -> FloatingIpRecord:
        params: dict[str, Any] = {"Domain": "vpc"}
        if pool and pool != self.default_pool:
            params["PublicIpv4Pool"] = pool
        try:
            response = _allocate_address(self._ec2, **params)
        except ClientError as e:
            raise convert_client_error(e, "allocate_address")

        record = FloatingIpRecord(
            floating_ip_id=response["AllocationId"],
            address=response["PublicIp"],
            pool=pool or self.default_pool,
        )
        self._logger.info("Allocated Elastic IP %s (%s)", record.address, record.floating_ip_id)
        return record

    def associate_floating_ip(self, floating_ip: FloatingIpRecord, instance_id: str) -> None:
        try:
            _associate_address(
                self._ec2, AllocationId=floating_ip.floating_ip_id, InstanceId=instance_id
            )
        except ClientError as e:
            raise convert_client_error(e, "associate_address")
        self._logger.debug("Association of %s with %s requested", floating_ip.address, instance_id)

    def delete_floating_ip(self, floating_ip_id: str) -> None:
        try:
            addresses = _describe_addresses(self._ec2, AllocationIds=[floating_ip_id]).get(
                "Addresses", []
            )
        except ClientError as e:
            if is_not_found(e):
                self._logger.info("Elastic IP %s is already released", floating_ip_id)
                return
            raise convert_client_error(e, "describe_addresses")

        try:
            for address in addresses:
                association_id = address.get("AssociationId")
                if association_id:
                    self._ec2.disassociate_address(AssociationId=association_id)
            _release_address(self._ec2, floating_ip_id)
        except ClientError as e:
            if is_not_found(e):
                self._logger.info("Elastic IP %s is already released", floating_ip_id)
                return
            raise convert_client_error(e, "release_address")

        self._logger.info("Released Elastic IP %s", floating_ip_id)

    def list_floating_ips(self) -> list[FloatingIpRecord]:
        try:
            addresses = _describe_addresses(self._ec2).get("Addresses", [])
        except ClientError as e:
            raise convert_client_error(e, "describe_addresses")
        return [floating_ip_record_from_ec2(a, self.default_pool) for a in addresses]


def _client_token() -> str:
    """Idempotency token shared by every retry of one create request."""
    return str(uuid.uuid4())


# Helper functions with retry
@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _run_instances(ec2_client: Any, params: dict[str, Any]) -> dict[str, Any]:
    return ec2_client.run_instances(**params)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _describe_instances(ec2_client: Any, **kwargs: Any) -> dict[str, Any]:
    return ec2_client.describe_instances(**kwargs)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _terminate_instances(ec2_client: Any, instance_ids: list[str]) -> dict[str, Any]:
    return ec2_client.terminate_instances(InstanceIds=instance_ids)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _create_volume(ec2_client: Any, **kwargs: Any) -> dict[str, Any]:
    return ec2_client.create_volume(**kwargs)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _describe_volumes(ec2_client: Any, **kwargs: Any) -> dict[str, Any]:
    return ec2_client.describe_volumes(**kwargs)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _delete_volume(ec2_client: Any, volume_id: str) -> dict[str, Any]:
    return ec2_client.delete_volume(VolumeId=volume_id)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _attach_volume(ec2_client: Any, **kwargs: Any) -> dict[str, Any]:
    return ec2_client.attach_volume(**kwargs)


# AllocateAddress takes no idempotency token and is never retried.
def _allocate_address(ec2_client: Any, **kwargs: Any) -> dict[str, Any]:
    return ec2_client.allocate_address(**kwargs)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _associate_address(ec2_client: Any, **kwargs: Any) -> dict[str, Any]:
    return ec2_client.associate_address(**kwargs)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _describe_addresses(ec2_client: Any, **kwargs: Any) -> dict[str, Any]:
    return ec2_client.describe_addresses(**kwargs)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="ec2")
def _release_address(ec2_client: Any, allocation_id: str) -> dict[str, Any]:
    return ec2_client.release_address(AllocationId=allocation_id)
