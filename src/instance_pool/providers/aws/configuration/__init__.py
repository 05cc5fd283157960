"""AWS provider configuration."""

from instance_pool.providers.aws.configuration.config import AWSProviderConfig

__all__ = ["AWSProviderConfig"]
