"""Provisioning state domain package."""

from instance_pool.domain.provisioning.state import (
    READY_STATES,
    ProvisioningBatch,
    ProvisioningRecord,
    ProvisioningState,
)

__all__ = ["READY_STATES", "ProvisioningBatch", "ProvisioningRecord", "ProvisioningState"]
