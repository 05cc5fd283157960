"""RDS response parsing helpers."""

from typing import Any

from instance_pool.domain.instance.value_objects import InstanceRecord
from instance_pool.providers.aws.domain.rds_state import RDSInstanceState
from instance_pool.providers.aws.utilities.ec2.instances import tags_to_dict


def db_instance_record_from_rds(db_instance: dict[str, Any]) -> InstanceRecord:
    """
    Build an InstanceRecord from a describe_db_instances entry.

    The endpoint address only appears once the instance accepts connections
    and stands in for the private address.
    """
    endpoint = db_instance.get("Endpoint") or {}
    address = endpoint.get("Address")
    subnet_group = db_instance.get("DBSubnetGroup") or {}
    return InstanceRecord(
        instance_id=db_instance["DBInstanceIdentifier"],
        status=RDSInstanceState.from_value(db_instance.get("DBInstanceStatus")),
        tags=tags_to_dict(db_instance.get("TagList")),
        private_addresses=(address,) if address else (),
        image_id=db_instance.get("Engine"),
        flavor=db_instance.get("DBInstanceClass"),
        availability_zone=db_instance.get("AvailabilityZone"),
        network_id=subnet_group.get("DBSubnetGroupName"),
        launch_time=db_instance.get("InstanceCreateTime"),
    )
