"""AWS provider configuration."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AWSProviderConfig(BaseModel):
    """Connection settings for the EC2 and RDS control planes."""

    model_config = ConfigDict(extra="ignore")

    region: str = Field("us-east-1", description="AWS region")
    profile: Optional[str] = Field(None, description="Named profile from the shared credentials file")
    endpoint_url: Optional[str] = Field(None, description="Custom EC2 endpoint, e.g. for testing")
    rds_endpoint_url: Optional[str] = Field(None, description="Custom RDS endpoint, e.g. for testing")
    max_retries: int = Field(3, ge=0, le=10, description="botocore retry attempts")
    connect_timeout: int = Field(5, gt=0, description="Connection timeout in seconds")
    read_timeout: int = Field(10, gt=0, description="Read timeout in seconds")
    default_floating_ip_pool: str = Field(
        "amazon", description="Name under which Amazon's own Elastic IP pool is exposed"
    )
