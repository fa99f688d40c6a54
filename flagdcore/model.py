"""Flag data model, evaluation reasons, state-change notifications and error codes."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

FLAG_NOT_FOUND_ERROR_CODE = "FLAG_NOT_FOUND"
PARSE_ERROR_CODE = "PARSE_ERROR"
TYPE_MISMATCH_ERROR_CODE = "TYPE_MISMATCH"
GENERAL_ERROR_CODE = "GENERAL"
FLAG_DISABLED_ERROR_CODE = "FLAG_DISABLED"
INVALID_CONTEXT_CODE = "INVALID_CONTEXT"

READABLE_ERROR_MESSAGES: Dict[str, str] = {
    FLAG_NOT_FOUND_ERROR_CODE: "Flag not found",
    PARSE_ERROR_CODE: "Error parsing input or configuration",
    TYPE_MISMATCH_ERROR_CODE: "Type mismatch error",
    GENERAL_ERROR_CODE: "General error",
    FLAG_DISABLED_ERROR_CODE: "Flag is disabled",
    INVALID_CONTEXT_CODE: "Invalid context provided",
}

TARGETING_MATCH_REASON = "TARGETING_MATCH"
SPLIT_REASON = "SPLIT"
DISABLED_REASON = "DISABLED"
DEFAULT_REASON = "DEFAULT"
UNKNOWN_REASON = "UNKNOWN"
ERROR_REASON = "ERROR"
STATIC_REASON = "STATIC"

Metadata = Dict[str, Any]


def get_error_message(code: str) -> str:
    """Return a human readable message for an error code."""
    return READABLE_ERROR_MESSAGES.get(code, f"Unknown error code: {code}")


class EvaluationError(Exception):
    """An evaluation failure identified by one of the error codes."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code

    @property
    def message(self) -> str:
        return get_error_message(self.code)


def _optional_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"flag field {key!r} must be a string")
    return value


def _optional_mapping(data: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"flag field {key!r} must be an object")
    return dict(value)


@dataclass
class Flag:
    """A single feature flag definition."""

    state: str = ""
    default_variant: str = ""
    variants: Dict[str, Any] = field(default_factory=dict)
    targeting: Optional[Any] = None
    source: str = ""
    selector: str = ""
    metadata: Metadata = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Flag":
        """Build a flag from its JSON object form."""
        if not isinstance(data, Mapping):
            raise ValueError("flag definition must be an object")
        return cls(
            state=_optional_str(data, "state"),
            default_variant=_optional_str(data, "defaultVariant"),
            variants=_optional_mapping(data, "variants"),
            targeting=copy.deepcopy(data.get("targeting")),
            source=_optional_str(data, "source"),
            selector=_optional_str(data, "selector"),
            metadata=_optional_mapping(data, "metadata"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON object form; empty targeting and metadata are omitted."""
        result: Dict[str, Any] = {
            "state": self.state,
            "defaultVariant": self.default_variant,
            "variants": copy.deepcopy(self.variants),
        }
        if self.targeting is not None:
            result["targeting"] = copy.deepcopy(self.targeting)
        result["source"] = self.source
        result["selector"] = self.selector
        if self.metadata:
            result["metadata"] = copy.deepcopy(self.metadata)
        return result


class StateChangeNotificationType(str, Enum):
    """Kind of change applied to a flag."""

    DELETE = "delete"
    CREATE = "write"
    UPDATE = "update"


@dataclass(frozen=True)
class StateChangeNotification:
    """Notice that a flag from a source was created, updated or deleted."""

    type: StateChangeNotificationType
    source: str
    flag_key: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": StateChangeNotificationType(self.type).value,
            "source": self.source,
            "flagKey": self.flag_key,
        }