"""AWS-specific exceptions and ClientError conversion."""

from typing import Any, Optional

from botocore.exceptions import ClientError

from instance_pool.domain.base.exceptions import InfrastructureError


class AWSError(InfrastructureError):
    """Base class for errors raised by the EC2 and RDS control planes."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__("AWS", message, details=details)
        self.aws_error_code = error_code


class AWSValidationError(AWSError):
    """The request was rejected as invalid."""


class AWSEntityNotFoundError(AWSError):
    """The referenced resource does not exist."""


class QuotaExceededError(AWSError):
    """An account or service limit was hit."""


class ResourceInUseError(AWSError):
    """The resource is in a state that prevents the operation."""


class AuthorizationError(AWSError):
    """Credentials are missing or not allowed to perform the operation."""


class RateLimitError(AWSError):
    """The API throttled the request."""


class NetworkError(AWSError):
    """The service could not be reached or timed out."""


class AWSConfigurationError(AWSError):
    """The client could not be configured."""


class AWSInfrastructureError(AWSError):
    """Any other AWS failure."""


NOT_FOUND_CODES = frozenset(
    {
        "ResourceNotFound",
        "InvalidInstanceID.NotFound",
        "InvalidInstanceID.Malformed",
        "InvalidVolume.NotFound",
        "InvalidAllocationID.NotFound",
        "InvalidAssociationID.NotFound",
        "InvalidAddress.NotFound",
        "DBInstanceNotFound",
        "DBInstanceNotFoundFault",
    }
)


def client_error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def is_not_found(error: ClientError) -> bool:
    return client_error_code(error) in NOT_FOUND_CODES


def convert_client_error(error: ClientError, operation_name: str = "unknown") -> AWSError:
    """Convert an AWS ClientError to the matching AWSError subclass."""
    error_code = client_error_code(error)
    error_message = error.response.get("Error", {}).get("Message", str(error))
    details = {"operation": operation_name, "aws_error_code": error_code}

    if error_code in ("ValidationError", "InvalidParameterValue", "InvalidParameterCombination"):
        return AWSValidationError(error_message, error_code, details)
    elif error_code in (
        "LimitExceeded",
        "InstanceLimitExceeded",
        "AddressLimitExceeded",
        "InstanceQuotaExceeded",
        "StorageQuotaExceeded",
    ):
        return QuotaExceededError(error_message, error_code, details)
    elif error_code in (
        "ResourceInUse",
        "VolumeInUse",
        "IncorrectState",
        "InvalidDBInstanceState",
        "DBInstanceAlreadyExists",
    ):
        return ResourceInUseError(error_message, error_code, details)
    elif error_code in ("UnauthorizedOperation", "AccessDenied", "AuthFailure"):
        return AuthorizationError(error_message, error_code, details)
    elif error_code in ("RequestLimitExceeded", "Throttling"):
        return RateLimitError(error_message, error_code, details)
    elif error_code in NOT_FOUND_CODES:
        return AWSEntityNotFoundError(error_message, error_code, details)
    elif error_code in ("RequestTimeout", "ServiceUnavailable"):
        return NetworkError(error_message, error_code, details)
    else:
        return AWSInfrastructureError(
            f"AWS Error in {operation_name}: {error_code} - {error_message}", error_code, details
        )
