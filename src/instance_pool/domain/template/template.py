"""Instance template describing what an allocation provisions."""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from instance_pool.domain.instance.value_objects import (
    INSTANCE_NAME_TAG,
    LOGICAL_ID_TAG,
    VOLUME_NUMBER_TAG,
    VOLUME_SIZE_TAG,
)


class InstanceTemplate(BaseModel):
    """Validated provisioning parameters shared by every instance of a batch."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str = Field(min_length=1)
    image_id: str = Field(
        min_length=1,
        alias="imageId",
        validation_alias=AliasChoices("imageId", "image_id", "image"),
    )
    flavor: str = Field(
        min_length=1,
        alias="type",
        validation_alias=AliasChoices("type", "flavor", "instance_type", "instanceType"),
    )
    network_id: Optional[str] = Field(
        default=None,
        alias="networkId",
        validation_alias=AliasChoices("networkId", "network_id", "subnet_id"),
    )
    availability_zone: Optional[str] = Field(
        default=None,
        alias="availabilityZone",
        validation_alias=AliasChoices("availabilityZone", "availability_zone"),
    )
    security_group_names: list[str] = Field(
        default_factory=list,
        alias="securityGroupNames",
        validation_alias=AliasChoices("securityGroupNames", "security_group_names"),
    )
    key_name: Optional[str] = Field(
        default=None,
        alias="keyName",
        validation_alias=AliasChoices("keyName", "key_name"),
    )
    floating_ip_pool: Optional[str] = Field(
        default=None,
        alias="floatingIpPoolName",
        validation_alias=AliasChoices("floatingIpPoolName", "floating_ip_pool"),
    )
    volume_count: int = Field(
        default=0,
        ge=0,
        alias="volumeNumber",
        validation_alias=AliasChoices("volumeNumber", "volume_count"),
    )
    volume_size_gib: int = Field(
        default=0,
        ge=0,
        alias="volumeSize",
        validation_alias=AliasChoices("volumeSize", "volume_size_gib", "volume_size"),
    )
    instance_name_prefix: str = Field(
        default="instance",
        min_length=1,
        alias="instanceNamePrefix",
        validation_alias=AliasChoices("instanceNamePrefix", "instance_name_prefix"),
    )
    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("security_group_names", mode="before")
    @classmethod
    def _split_security_groups(cls, value: Any) -> Any:
        """Accept the comma separated form used by flat configuration files."""
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("floating_ip_pool", "network_id", "availability_zone", "key_name")
    @classmethod
    def _empty_as_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def wants_volumes(self) -> bool:
        return self.volume_count > 0 and self.volume_size_gib > 0

    @property
    def wants_floating_ip(self) -> bool:
        return bool(self.floating_ip_pool)

    def instance_name(self, logical_id: str) -> str:
        return f"{self.instance_name_prefix}-{logical_id}"

    def instance_tags(self, logical_id: str) -> dict[str, str]:
        """Tags applied to an instance; the logical ID tag always wins over user tags."""
        tags = dict(self.tags)
        tags.update(
            {
                LOGICAL_ID_TAG: logical_id,
                INSTANCE_NAME_TAG: self.instance_name(logical_id),
                VOLUME_NUMBER_TAG: str(self.volume_count),
                VOLUME_SIZE_TAG: str(self.volume_size_gib),
            }
        )
        return tags

    def volume_tags(self, logical_id: str, index: Optional[int] = None) -> dict[str, str]:
        tags = dict(self.tags)
        tags.update(
            {
                LOGICAL_ID_TAG: logical_id,
                VOLUME_SIZE_TAG: str(self.volume_size_gib),
            }
        )
        if index is not None:
            tags[VOLUME_NUMBER_TAG] = str(index)
        return tags
