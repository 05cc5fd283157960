"""Tests for EC2 response parsing and error conversion."""

from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from instance_pool.domain.instance.value_objects import LOGICAL_ID_TAG, VolumeStatus
from instance_pool.providers.aws.domain.ec2_state import EC2InstanceState
from instance_pool.providers.aws.exceptions.aws_exceptions import (
    AWSEntityNotFoundError,
    AWSInfrastructureError,
    QuotaExceededError,
    RateLimitError,
    ResourceInUseError,
    convert_client_error,
    is_not_found,
)
from instance_pool.providers.aws.utilities.ec2.instances import (
    build_tag_specifications,
    floating_ip_record_from_ec2,
    instance_record_from_ec2,
    is_security_group_id,
    next_free_device_name,
    volume_record_from_ec2,
)


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "message"}}, "RunInstances")


@pytest.mark.unit
@pytest.mark.aws
class TestEC2Parsing:
    """Test conversion of EC2 responses into records."""

    def test_instance_record(self):
        record = instance_record_from_ec2(
            {
                "InstanceId": "i-1",
                "State": {"Name": "running"},
                "Tags": [{"Key": LOGICAL_ID_TAG, "Value": "a"}],
                "PrivateIpAddress": "10.0.0.2",
                "NetworkInterfaces": [
                    {"PrivateIpAddresses": [{"PrivateIpAddress": "10.0.0.3"}, {"PrivateIpAddress": "10.0.0.2"}]}
                ],
                "PublicIpAddress": "203.0.113.1",
                "InstanceType": "t3.micro",
                "Placement": {"AvailabilityZone": "us-east-1a"},
                "SubnetId": "subnet-1",
                "LaunchTime": datetime(2024, 1, 1, tzinfo=timezone.utc),
            }
        )

        assert record.status is EC2InstanceState.RUNNING
        assert record.private_addresses == ("10.0.0.2", "10.0.0.3")
        assert record.floating_address == "203.0.113.1"
        assert record.logical_id == "a"
        assert record.network_id == "subnet-1"

    def test_instance_without_addresses(self):
        record = instance_record_from_ec2({"InstanceId": "i-1", "State": {"Name": "pending"}})
        assert not record.has_addresses()
        assert record.tags == {}

    def test_volume_record(self):
        record = volume_record_from_ec2(
            {
                "VolumeId": "vol-1",
                "State": "in-use",
                "Size": 8,
                "Attachments": [{"InstanceId": "i-1", "State": "attaching"}],
                "Tags": [{"Key": LOGICAL_ID_TAG, "Value": "a"}],
            }
        )
        assert record.status is VolumeStatus.ATTACHING
        assert record.attached_instance_id == "i-1"
        assert record.logical_id == "a"

    def test_floating_ip_record(self):
        record = floating_ip_record_from_ec2(
            {"AllocationId": "eipalloc-1", "PublicIp": "203.0.113.5", "InstanceId": "i-1"}, "amazon"
        )
        assert record.pool == "amazon"
        assert record.is_associated_with("i-1")
        assert not floating_ip_record_from_ec2({"PublicIp": "203.0.113.6"}, "amazon").instance_id

    def test_tag_specifications(self):
        assert build_tag_specifications("volume", {"k": "v"}) == [
            {"ResourceType": "volume", "Tags": [{"Key": "k", "Value": "v"}]}
        ]

    def test_security_group_ids(self):
        assert is_security_group_id("sg-0123456789abcdef0")
        assert not is_security_group_id("default")

    def test_next_free_device_name(self):
        instance = {"BlockDeviceMappings": [{"DeviceName": "/dev/sda1"}, {"DeviceName": "/dev/sdf"}]}
        assert next_free_device_name(instance) == "/dev/sdg"

        full = {"BlockDeviceMappings": [{"DeviceName": f"/dev/sd{c}"} for c in "fghijklmnop"]}
        with pytest.raises(ValueError):
            next_free_device_name(full)


@pytest.mark.unit
@pytest.mark.aws
class TestClientErrorConversion:
    """Test ClientError conversion."""

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("InstanceLimitExceeded", QuotaExceededError),
            ("VolumeInUse", ResourceInUseError),
            ("RequestLimitExceeded", RateLimitError),
            ("InvalidVolume.NotFound", AWSEntityNotFoundError),
            ("SomethingElse", AWSInfrastructureError),
        ],
    )
    def test_convert(self, code, expected):
        error = convert_client_error(_client_error(code), "run_instances")
        assert isinstance(error, expected)
        assert error.aws_error_code == code
        assert error.details["operation"] == "run_instances"

    def test_is_not_found(self):
        assert is_not_found(_client_error("InvalidInstanceID.NotFound"))
        assert not is_not_found(_client_error("UnauthorizedOperation"))
