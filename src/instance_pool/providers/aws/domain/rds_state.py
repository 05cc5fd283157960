"""RDS database instance status vocabulary and its canonical translation."""

from enum import Enum
from typing import Optional

from instance_pool.domain.instance.status import StatusTranslator
from instance_pool.domain.instance.value_objects import CanonicalStatus


class RDSInstanceState(str, Enum):
    AVAILABLE = "available"
    BACKING_UP = "backing-up"
    CONFIGURING_ENHANCED_MONITORING = "configuring-enhanced-monitoring"
    CONFIGURING_LOG_EXPORTS = "configuring-log-exports"
    CREATING = "creating"
    DELETING = "deleting"
    FAILED = "failed"
    INACCESSIBLE_ENCRYPTION_CREDENTIALS = "inaccessible-encryption-credentials"
    INCOMPATIBLE_NETWORK = "incompatible-network"
    INCOMPATIBLE_OPTION_GROUP = "incompatible-option-group"
    INCOMPATIBLE_PARAMETERS = "incompatible-parameters"
    INCOMPATIBLE_RESTORE = "incompatible-restore"
    MAINTENANCE = "maintenance"
    MODIFYING = "modifying"
    REBOOTING = "rebooting"
    RENAMING = "renaming"
    RESETTING_MASTER_CREDENTIALS = "resetting-master-credentials"
    RESTORE_ERROR = "restore-error"
    STARTING = "starting"
    STOPPED = "stopped"
    STOPPING = "stopping"
    STORAGE_FULL = "storage-full"
    STORAGE_OPTIMIZATION = "storage-optimization"
    UPGRADING = "upgrading"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "RDSInstanceState":
        if value is None:
            return cls.UNRECOGNIZED
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNRECOGNIZED


# Reboots, resizes and upgrades are transient like creation; a deleting instance never comes back.
RDS_INSTANCE_STATUS_MAP = {
    RDSInstanceState.CREATING: CanonicalStatus.PENDING,
    RDSInstanceState.STARTING: CanonicalStatus.PENDING,
    RDSInstanceState.REBOOTING: CanonicalStatus.PENDING,
    RDSInstanceState.MODIFYING: CanonicalStatus.PENDING,
    RDSInstanceState.RENAMING: CanonicalStatus.PENDING,
    RDSInstanceState.UPGRADING: CanonicalStatus.PENDING,
    RDSInstanceState.MAINTENANCE: CanonicalStatus.PENDING,
    RDSInstanceState.RESETTING_MASTER_CREDENTIALS: CanonicalStatus.PENDING,
    RDSInstanceState.AVAILABLE: CanonicalStatus.RUNNING,
    RDSInstanceState.BACKING_UP: CanonicalStatus.RUNNING,
    RDSInstanceState.CONFIGURING_ENHANCED_MONITORING: CanonicalStatus.RUNNING,
    RDSInstanceState.CONFIGURING_LOG_EXPORTS: CanonicalStatus.RUNNING,
    RDSInstanceState.STORAGE_OPTIMIZATION: CanonicalStatus.RUNNING,
    RDSInstanceState.STOPPING: CanonicalStatus.STOPPED,
    RDSInstanceState.STOPPED: CanonicalStatus.STOPPED,
    RDSInstanceState.DELETING: CanonicalStatus.DELETED,
    RDSInstanceState.FAILED: CanonicalStatus.FAILED,
    RDSInstanceState.STORAGE_FULL: CanonicalStatus.FAILED,
    RDSInstanceState.INACCESSIBLE_ENCRYPTION_CREDENTIALS: CanonicalStatus.FAILED,
    RDSInstanceState.INCOMPATIBLE_NETWORK: CanonicalStatus.FAILED,
    RDSInstanceState.INCOMPATIBLE_OPTION_GROUP: CanonicalStatus.FAILED,
    RDSInstanceState.INCOMPATIBLE_PARAMETERS: CanonicalStatus.FAILED,
    RDSInstanceState.INCOMPATIBLE_RESTORE: CanonicalStatus.FAILED,
    RDSInstanceState.RESTORE_ERROR: CanonicalStatus.FAILED,
    RDSInstanceState.UNRECOGNIZED: CanonicalStatus.UNKNOWN,
}

rds_instance_status_translator = StatusTranslator(RDS_INSTANCE_STATUS_MAP)
