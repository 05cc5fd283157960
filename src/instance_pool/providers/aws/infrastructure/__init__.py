"""AWS infrastructure."""

from instance_pool.providers.aws.infrastructure.aws_client import AWSClient
from instance_pool.providers.aws.infrastructure.ec2_control_plane import EC2ControlPlane

__all__ = ["AWSClient", "EC2ControlPlane"]
