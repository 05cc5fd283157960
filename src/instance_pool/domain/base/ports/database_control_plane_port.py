"""Managed database control plane port."""

from abc import abstractmethod
from typing import Optional

from instance_pool.domain.base.ports.control_plane_port import InstanceLifecyclePort


class DatabaseControlPlanePort(InstanceLifecyclePort):
    """Interface to a cloud's managed database instance service."""

    @abstractmethod
    def create_database_instance(
        self,
        name: str,
        engine: str,
        instance_class: str,
        storage_gib: int,
        master_username: str,
        master_password: Optional[str],
        tags: dict[str, str],
    ) -> str:
        """
        Request a new database instance and return its provider ID.

        A ``master_password`` of None leaves the credentials to the provider.
        """
