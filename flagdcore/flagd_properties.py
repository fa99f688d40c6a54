"""The ``$flagd`` properties injected into evaluation contexts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from flagdcore.logger import Logger

FLAGD_PROPERTIES_KEY = "$flagd"
TARGETING_KEY_KEY = "targetingKey"


@dataclass(frozen=True)
class FlagdProperties:
    """Properties flagd adds to every targeting evaluation."""

    flag_key: str = ""
    timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"flagKey": self.flag_key, "timestamp": self.timestamp}


def set_flagd_properties(
    log: Logger, context: Optional[Mapping[str, Any]], properties: FlagdProperties
) -> Dict[str, Any]:
    """Return a copy of the context with the ``$flagd`` properties set."""
    new_context = dict(context or {})
    if FLAGD_PROPERTIES_KEY in new_context:
        log.warn("overwriting $flagd properties in the context")
    new_context[FLAGD_PROPERTIES_KEY] = properties.to_dict()
    return new_context


def _timestamp(value: Any) -> Optional[int]:
    if value is None:
        return 0
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def get_flagd_properties(context: Mapping[str, Any]) -> Optional[FlagdProperties]:
    """Read the ``$flagd`` properties from a context, or None if absent or malformed."""
    if FLAGD_PROPERTIES_KEY not in context:
        return None
    raw = context[FLAGD_PROPERTIES_KEY]
    if isinstance(raw, FlagdProperties):
        return raw
    if raw is None:
        return FlagdProperties()
    if not isinstance(raw, Mapping):
        return None

    flag_key = raw.get("flagKey")
    if flag_key is None:
        flag_key = ""
    elif not isinstance(flag_key, str):
        return None

    timestamp = _timestamp(raw.get("timestamp"))
    if timestamp is None:
        return None

    return FlagdProperties(flag_key=flag_key, timestamp=timestamp)