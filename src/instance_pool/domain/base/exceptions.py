"""Domain exceptions for instance pool provisioning."""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from instance_pool.domain.base.conditions import ConditionAccumulator


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a serializable dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(DomainException):
    """Raised when configuration cannot be loaded or validated."""


class InfrastructureError(DomainException):
    """Raised when an infrastructure dependency fails."""

    def __init__(self, component: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(f"[{component}] {message}", details=details)
        self.component = component


class ProvisioningError(DomainException):
    """Base exception for allocation and release failures."""


class UnrecoverableProvisioningError(ProvisioningError):
    """
    Raised when an allocation cannot be completed.

    Carries every condition recorded while the call ran so the caller sees
    the full list of per-resource failures in one place.
    """

    def __init__(self, message: str, conditions: Optional["ConditionAccumulator"] = None) -> None:
        details = {"conditions": conditions.to_list()} if conditions is not None else {}
        super().__init__(message, details=details)
        self.conditions = conditions

    def __str__(self) -> str:
        if self.conditions is None or not self.conditions:
            return self.message
        lines = [self.message]
        lines.extend(f"  - {condition}" for condition in self.conditions)
        return "\n".join(lines)


class CapabilityUnavailableError(UnrecoverableProvisioningError):
    """Raised when a required control-plane capability or floating IP pool is missing."""


class InvalidProvisioningTransitionError(ProvisioningError):
    """Raised when a provisioning record is moved along an edge the state machine forbids."""

    def __init__(self, logical_id: str, current: Any, target: Any) -> None:
        super().__init__(
            f"Cannot move instance {logical_id} from {current} to {target}",
            details={"logical_id": logical_id, "current": str(current), "target": str(target)},
        )
        self.logical_id = logical_id
        self.current = current
        self.target = target
