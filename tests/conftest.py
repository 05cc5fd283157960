"""Global test configuration and fixtures."""

import os
from collections.abc import Generator
from pathlib import Path
from unittest.mock import Mock

import boto3
import pytest
from moto import mock_aws

from instance_pool.application.services.identity_resolver import IdentityResolver
from instance_pool.application.services.poller import BoundedPoller
from instance_pool.application.services.release_engine import ReleaseEngine
from instance_pool.config.schemas import PollingConfig
from instance_pool.domain.template.template import InstanceTemplate
from tests.fixtures.fake_control_plane import FakeBehaviour, FakeClock, FakeControlPlane


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    os.environ.update(
        {
            "AWS_DEFAULT_REGION": "us-east-1",
            "AWS_ACCESS_KEY_ID": "testing",
            "AWS_SECRET_ACCESS_KEY": "testing",
            "AWS_SECURITY_TOKEN": "testing",
            "AWS_SESSION_TOKEN": "testing",
        }
    )


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Directory for test files."""
    return tmp_path


@pytest.fixture
def mock_logger() -> Mock:
    """Create a mock logger."""
    return Mock()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def behaviour() -> FakeBehaviour:
    return FakeBehaviour()


@pytest.fixture
def control_plane(fake_clock: FakeClock, behaviour: FakeBehaviour) -> FakeControlPlane:
    """In-memory control plane sharing the fake clock."""
    return FakeControlPlane(clock=fake_clock, behaviour=behaviour)


@pytest.fixture
def polling_config() -> PollingConfig:
    return PollingConfig()


@pytest.fixture
def resolver(control_plane: FakeControlPlane, mock_logger: Mock) -> IdentityResolver:
    return IdentityResolver(control_plane, mock_logger)


@pytest.fixture
def poller(
    control_plane: FakeControlPlane,
    mock_logger: Mock,
    polling_config: PollingConfig,
    fake_clock: FakeClock,
) -> BoundedPoller:
    return BoundedPoller(control_plane, mock_logger, polling_config, fake_clock, fake_clock.sleep)


@pytest.fixture
def release_engine(
    control_plane: FakeControlPlane,
    resolver: IdentityResolver,
    poller: BoundedPoller,
    mock_logger: Mock,
) -> ReleaseEngine:
    return ReleaseEngine(control_plane, resolver, poller, mock_logger)


@pytest.fixture
def basic_template() -> InstanceTemplate:
    """Template without volumes or floating IPs."""
    return InstanceTemplate(
        name="worker",
        imageId="img-1",
        type="small",
        networkId="net-1",
        availabilityZone="zone-a",
        securityGroupNames="default,ssh",
        keyName="deployer",
    )


@pytest.fixture
def volume_template(basic_template: InstanceTemplate) -> InstanceTemplate:
    """Template attaching two 10 GiB volumes per instance."""
    return basic_template.model_copy(update={"volume_count": 2, "volume_size_gib": 10})


@pytest.fixture
def floating_ip_template(basic_template: InstanceTemplate) -> InstanceTemplate:
    """Template associating a floating IP from the ``public`` pool."""
    return basic_template.model_copy(update={"floating_ip_pool": "public"})


@pytest.fixture
def aws_mocks() -> Generator[None, None, None]:
    """Set up AWS service mocks."""
    with mock_aws():
        yield


@pytest.fixture
def ec2_client(aws_mocks):
    """Create a mocked EC2 client."""
    return boto3.client("ec2", region_name="us-east-1")


@pytest.fixture
def mock_ec2_resources(ec2_client):
    """Create mock EC2 resources for testing."""
    # Create VPC
    vpc = ec2_client.create_vpc(CidrBlock="10.0.0.0/16")
    vpc_id = vpc["Vpc"]["VpcId"]

    # Create subnet
    subnet = ec2_client.create_subnet(
        VpcId=vpc_id, CidrBlock="10.0.1.0/24", AvailabilityZone="us-east-1a"
    )
    subnet_id = subnet["Subnet"]["SubnetId"]

    # Create security group
    sg = ec2_client.create_security_group(
        GroupName="test-sg", Description="Test security group", VpcId=vpc_id
    )
    sg_id = sg["GroupId"]

    # Create key pair
    key_pair = ec2_client.create_key_pair(KeyName="test-key")

    image_id = ec2_client.describe_images(Owners=["amazon"])["Images"][0]["ImageId"]

    return {
        "vpc_id": vpc_id,
        "subnet_id": subnet_id,
        "security_group_id": sg_id,
        "security_group_name": "test-sg",
        "key_name": key_pair["KeyName"],
        "image_id": image_id,
    }
