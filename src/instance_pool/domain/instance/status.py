"""Translation of provider status vocabularies to the canonical status."""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional

from instance_pool.domain.instance.value_objects import CanonicalStatus, VolumeStatus

VOLUME_STATUS_MAP: Mapping[VolumeStatus, CanonicalStatus] = {
    VolumeStatus.CREATING: CanonicalStatus.PENDING,
    VolumeStatus.ATTACHING: CanonicalStatus.PENDING,
    VolumeStatus.AVAILABLE: CanonicalStatus.RUNNING,
    VolumeStatus.IN_USE: CanonicalStatus.RUNNING,
    VolumeStatus.DETACHING: CanonicalStatus.RUNNING,
    VolumeStatus.DELETING: CanonicalStatus.DELETED,
    VolumeStatus.DELETED: CanonicalStatus.DELETED,
    VolumeStatus.ERROR: CanonicalStatus.FAILED,
    VolumeStatus.ERROR_DELETING: CanonicalStatus.FAILED,
    VolumeStatus.UNRECOGNIZED: CanonicalStatus.UNKNOWN,
}


class StatusTranslator:
    """
    Total mapping from a provider status enum to CanonicalStatus.

    Anything the table does not cover, including ``None``, maps to UNKNOWN.
    Raw strings are accepted and matched against the enum values of the
    table's keys.
    """

    def __init__(self, mapping: Mapping[Any, CanonicalStatus]) -> None:
        self._mapping = dict(mapping)
        self._by_value: dict[str, CanonicalStatus] = {}
        for key, canonical in self._mapping.items():
            raw = key.value if isinstance(key, Enum) else key
            self._by_value[str(raw).lower()] = canonical

    def translate(self, provider_status: Optional[Any]) -> CanonicalStatus:
        if provider_status is None:
            return CanonicalStatus.UNKNOWN
        if provider_status in self._mapping:
            return self._mapping[provider_status]
        raw = provider_status.value if isinstance(provider_status, Enum) else provider_status
        return self._by_value.get(str(raw).lower(), CanonicalStatus.UNKNOWN)

    __call__ = translate


volume_status_translator = StatusTranslator(VOLUME_STATUS_MAP)
