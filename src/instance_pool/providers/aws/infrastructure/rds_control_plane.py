"""RDS implementation of the database control plane port.

Database instances are addressed by their DBInstanceIdentifier, which the
caller picks. Creation is idempotent on that identifier: a retried request
finding the instance it already created adopts it instead of failing.
"""

from typing import Any, Optional

from botocore.exceptions import ClientError

from instance_pool.domain.base.ports import DatabaseControlPlanePort, LoggingPort
from instance_pool.domain.instance.value_objects import (
    LOGICAL_ID_TAG,
    CanonicalStatus,
    InstanceRecord,
)
from instance_pool.infrastructure.resilience import retry
from instance_pool.providers.aws.domain.rds_state import rds_instance_status_translator
from instance_pool.providers.aws.exceptions.aws_exceptions import (
    client_error_code,
    convert_client_error,
    is_not_found,
)
from instance_pool.providers.aws.infrastructure.aws_client import AWSClient
from instance_pool.providers.aws.utilities.ec2.instances import paginate
from instance_pool.providers.aws.utilities.rds.db_instances import db_instance_record_from_rds


class RDSControlPlane(DatabaseControlPlanePort):
    """Database control plane backed by the RDS API."""

    def __init__(self, aws_client: AWSClient, logger: LoggingPort) -> None:
        self.aws_client = aws_client
        self._logger = logger

    @property
    def _rds(self) -> Any:
        return self.aws_client.rds_client

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
        params: dict[str, Any] = {
            "DBInstanceIdentifier": name,
            "Engine": engine,
            "DBInstanceClass": instance_class,
            "AllocatedStorage": storage_gib,
            "MasterUsername": master_username,
            "Tags": [{"Key": key, "Value": value} for key, value in tags.items()],
        }
        if master_password:
            params["MasterUserPassword"] = master_password
        else:
            params["ManageMasterUserPassword"] = True

        try:
            response = _create_db_instance(self._rds, params)
        except ClientError as e:
            if client_error_code(e) == "DBInstanceAlreadyExists" and self._is_own(
                name, tags.get(LOGICAL_ID_TAG)
            ):
                self._logger.info("RDS instance %s already exists, adopting it", name)
                return name
            raise convert_client_error(e, "create_db_instance")

        instance_id = response["DBInstance"]["DBInstanceIdentifier"]
        self._logger.info(
            "Created RDS instance %s (%s, %s, %d GiB)", instance_id, engine, instance_class, storage_gib
        )
        return instance_id

    def _is_own(self, name: str, logical_id: Optional[str]) -> bool:
        """Whether the existing instance ``name`` was created for ``logical_id`` and is not going away."""
        existing = self.get_instance(name)
        return (
            existing is not None
            and logical_id is not None
            and existing.logical_id == logical_id
            and self.translate_instance_status(existing.status) is not CanonicalStatus.DELETED
        )

    def get_instance(self, instance_id: str) -> Optional[InstanceRecord]:
        try:
            response = _describe_db_instances(self._rds, DBInstanceIdentifier=instance_id)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise convert_client_error(e, "describe_db_instances")

        db_instances = response.get("DBInstances", [])
        if not db_instances:
            return None
        return db_instance_record_from_rds(db_instances[0])

    def delete_instance(self, instance_id: str) -> bool:
        try:
            _delete_db_instance(self._rds, instance_id)
        except ClientError as e:
            if is_not_found(e):
                self._logger.info("RDS instance %s is already gone", instance_id)
                return False
            if client_error_code(e) == "InvalidDBInstanceState" and self._is_deleting(instance_id):
                self._logger.info("RDS instance %s is already being deleted", instance_id)
                return True
            raise convert_client_error(e, "delete_db_instance")

        self._logger.info("Deletion requested for RDS instance %s", instance_id)
        return True

    def _is_deleting(self, instance_id: str) -> bool:
        existing = self.get_instance(instance_id)
        return existing is None or (
            self.translate_instance_status(existing.status) is CanonicalStatus.DELETED
        )

    def list_instances(self) -> list[InstanceRecord]:
        # DescribeDBInstances cannot filter on tags.
        try:
            db_instances = paginate(self._rds.describe_db_instances, "DBInstances")
        except ClientError as e:
            raise convert_client_error(e, "describe_db_instances")
        records = [db_instance_record_from_rds(db) for db in db_instances]
        return [record for record in records if record.logical_id is not None]

    def translate_instance_status(self, status: Any) -> CanonicalStatus:
        return rds_instance_status_translator.translate(status)


# Helper functions with retry
@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="rds")
def _create_db_instance(rds_client: Any, params: dict[str, Any]) -> dict[str, Any]:
    return rds_client.create_db_instance(**params)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="rds")
def _describe_db_instances(rds_client: Any, **kwargs: Any) -> dict[str, Any]:
    return rds_client.describe_db_instances(**kwargs)


@retry(strategy="exponential", max_attempts=3, base_delay=1.0, service="rds")
def _delete_db_instance(rds_client: Any, instance_id: str) -> dict[str, Any]:
    return rds_client.delete_db_instance(
        DBInstanceIdentifier=instance_id, SkipFinalSnapshot=True, DeleteAutomatedBackups=True
    )
