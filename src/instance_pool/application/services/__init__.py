"""Application services."""

from instance_pool.application.services.allocation_orchestrator import AllocationOrchestrator
from instance_pool.application.services.database_allocation import DatabaseAllocationService
from instance_pool.application.services.identity_resolver import IdentityResolver
from instance_pool.application.services.lookup_service import LookupService
from instance_pool.application.services.poller import BoundedPoller
from instance_pool.application.services.release_engine import ReleaseEngine

__all__ = [
    "AllocationOrchestrator",
    "BoundedPoller",
    "DatabaseAllocationService",
    "IdentityResolver",
    "LookupService",
    "ReleaseEngine",
]
