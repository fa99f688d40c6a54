"""Service notifications and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

ReadinessProbe = Callable[[], bool]

_MAX_PORT = 65535


class NotificationType(str, Enum):
    """Kind of event sent to connected providers."""

    CONFIGURATION_CHANGE = "configuration_change"
    SHUTDOWN = "provider_shutdown"
    PROVIDER_READY = "provider_ready"
    KEEP_ALIVE = "keep_alive"


@dataclass
class Notification:
    """An event with its payload."""

    type: NotificationType
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": NotificationType(self.type).value, "data": self.data}


@dataclass
class Configuration:
    """Settings for a flag evaluation service; stream deadline is in seconds."""

    readiness_probe: Optional[ReadinessProbe] = None
    port: int = 0
    management_port: int = 0
    service_name: str = ""
    cert_path: str = ""
    key_path: str = ""
    socket_path: str = ""
    cors: List[str] = field(default_factory=list)
    options: List[Any] = field(default_factory=list)
    context_values: Dict[str, Any] = field(default_factory=dict)
    header_to_context_key_mappings: Dict[str, str] = field(default_factory=dict)
    stream_deadline: float = 0.0

    def __post_init__(self) -> None:
        for name in ("port", "management_port"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _MAX_PORT:
                raise ValueError(f"{name} must be an integer between 0 and {_MAX_PORT}, got {value!r}")
        if self.stream_deadline < 0:
            raise ValueError("stream_deadline must not be negative")