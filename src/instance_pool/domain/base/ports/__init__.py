"""Domain ports."""

from instance_pool.domain.base.ports.control_plane_port import (
    ComputeControlPlanePort,
    InstanceLifecyclePort,
)
from instance_pool.domain.base.ports.database_control_plane_port import DatabaseControlPlanePort
from instance_pool.domain.base.ports.logging_port import LoggingPort

__all__ = [
    "ComputeControlPlanePort",
    "DatabaseControlPlanePort",
    "InstanceLifecyclePort",
    "LoggingPort",
]
