"""Structured failure records collected while a provisioning call runs."""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ConditionSeverity(str, Enum):
    """Severity of a recorded condition."""

    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Condition:
    """A single per-resource failure or anomaly."""

    severity: ConditionSeverity
    message: str
    key: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"{self.key}: " if self.key else ""
        return f"[{self.severity.value}] {prefix}{self.message}"


class ConditionAccumulator:
    """
    Collects conditions without raising.

    Components record transient failures here and keep going; only the
    orchestrator's top level decides whether the call fails.
    """

    def __init__(self) -> None:
        self._conditions: list[Condition] = []

    def add_error(self, key: Optional[str], message: str) -> None:
        """Record an error-severity condition."""
        self._conditions.append(Condition(ConditionSeverity.ERROR, message, key))

    def add_warning(self, key: Optional[str], message: str) -> None:
        """Record a warning-severity condition."""
        self._conditions.append(Condition(ConditionSeverity.WARNING, message, key))

    def has_errors(self) -> bool:
        return any(c.severity is ConditionSeverity.ERROR for c in self._conditions)

    @property
    def errors(self) -> list[Condition]:
        return [c for c in self._conditions if c.severity is ConditionSeverity.ERROR]

    @property
    def warnings(self) -> list[Condition]:
        return [c for c in self._conditions if c.severity is ConditionSeverity.WARNING]

    def conditions_by_key(self) -> dict[Optional[str], list[Condition]]:
        """Group recorded conditions by resource key."""
        grouped: dict[Optional[str], list[Condition]] = {}
        for condition in self._conditions:
            grouped.setdefault(condition.key, []).append(condition)
        return grouped

    def to_list(self) -> list[dict[str, Any]]:
        return [
            {"severity": c.severity.value, "key": c.key, "message": c.message}
            for c in self._conditions
        ]

    def __iter__(self) -> Iterator[Condition]:
        return iter(list(self._conditions))

    def __len__(self) -> int:
        return len(self._conditions)

    def __bool__(self) -> bool:
        return bool(self._conditions)
