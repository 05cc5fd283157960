"""Instance domain package."""

from instance_pool.domain.instance.pool_instance import PoolInstance
from instance_pool.domain.instance.status import StatusTranslator, volume_status_translator
from instance_pool.domain.instance.value_objects import (
    LOGICAL_ID_TAG,
    CanonicalStatus,
    FloatingIpRecord,
    InstanceRecord,
    VolumeRecord,
    VolumeStatus,
)

__all__ = [
    "LOGICAL_ID_TAG",
    "CanonicalStatus",
    "FloatingIpRecord",
    "InstanceRecord",
    "PoolInstance",
    "StatusTranslator",
    "VolumeRecord",
    "VolumeStatus",
    "volume_status_translator",
]
