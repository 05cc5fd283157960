"""Provisioning and rollback of cloud instance pools."""

from instance_pool.application.database_pool import DatabasePool
from instance_pool.application.instance_pool import InstancePool
from instance_pool.config.schemas import PoolConfig
from instance_pool.domain.base.exceptions import (
    CapabilityUnavailableError,
    UnrecoverableProvisioningError,
)
from instance_pool.domain.instance import CanonicalStatus, PoolInstance
from instance_pool.domain.template import DatabaseTemplate, InstanceTemplate

__version__ = "1.0.0"

__all__ = [
    "CanonicalStatus",
    "CapabilityUnavailableError",
    "DatabasePool",
    "DatabaseTemplate",
    "InstancePool",
    "InstanceTemplate",
    "PoolConfig",
    "PoolInstance",
    "UnrecoverableProvisioningError",
]
