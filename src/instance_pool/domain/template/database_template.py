"""Template describing the managed database instances an allocation provisions."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator

from instance_pool.domain.instance.value_objects import INSTANCE_NAME_TAG, LOGICAL_ID_TAG


class DatabaseTemplate(BaseModel):
    """Validated parameters shared by every database instance of a batch."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str = Field(min_length=1)
    engine: str = Field(
        default="mysql",
        min_length=1,
        alias="type",
        validation_alias=AliasChoices("type", "engine"),
    )
    instance_class: str = Field(
        min_length=1,
        alias="flavorId",
        validation_alias=AliasChoices("flavorId", "instance_class", "instanceClass"),
    )
    storage_gib: int = Field(
        default=20,
        ge=1,
        alias="volumeSize",
        validation_alias=AliasChoices("volumeSize", "storage_gib", "allocatedStorage"),
    )
    master_username: str = Field(
        default="admin",
        min_length=1,
        alias="masterUsername",
        validation_alias=AliasChoices("masterUsername", "master_username"),
    )
    master_password: Optional[SecretStr] = Field(
        default=None,
        alias="masterPassword",
        validation_alias=AliasChoices("masterPassword", "master_password"),
    )
    instance_name_prefix: str = Field(
        default="database",
        min_length=1,
        alias="instanceNamePrefix",
        validation_alias=AliasChoices("instanceNamePrefix", "instance_name_prefix"),
    )
    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("engine")
    @classmethod
    def _lower_engine(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("master_password", mode="before")
    @classmethod
    def _empty_password_as_none(cls, value):
        if isinstance(value, str) and not value:
            return None
        return value

    def instance_name(self, logical_id: str) -> str:
        return f"{self.instance_name_prefix}-{logical_id}"

    def instance_tags(self, logical_id: str) -> dict[str, str]:
        """Tags applied to a database instance; the logical ID tag always wins over user tags."""
        tags = dict(self.tags)
        tags.update(
            {
                LOGICAL_ID_TAG: logical_id,
                INSTANCE_NAME_TAG: self.instance_name(logical_id),
            }
        )
        return tags

    def password(self) -> Optional[str]:
        return self.master_password.get_secret_value() if self.master_password else None
