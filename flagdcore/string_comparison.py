"""The ``starts_with`` and ``ends_with`` targeting operators."""

from __future__ import annotations

from typing import Any, Optional, Tuple

from flagdcore.logger import Logger

STARTS_WITH_EVALUATION_NAME = "starts_with"
ENDS_WITH_EVALUATION_NAME = "ends_with"


def parse_string_comparison_data(values: Any) -> Tuple[str, str]:
    """Return (property, target) from a two-string array; raise ValueError otherwise."""
    if not isinstance(values, (list, tuple)):
        raise ValueError("[start/end]s_with evaluation is not an array")
    if len(values) != 2:
        raise ValueError("[start/end]s_with evaluation must contain a value and a comparison target")
    prop, target = values
    if not isinstance(prop, str):
        raise ValueError("[start/end]s_with evaluation: property did not resolve to a string value")
    if not isinstance(target, str):
        raise ValueError("[start/end]s_with evaluation: target value did not resolve to a string value")
    return prop, target


class StringComparison:
    """Prefix and suffix checks on context properties."""

    def __init__(self, logger: Logger) -> None:
        self.logger = logger

    def starts_with(self, values: Any, data: Any) -> Optional[bool]:
        """Whether the property starts with the target; None when the data is malformed."""
        try:
            prop, target = parse_string_comparison_data(values)
        except ValueError as exc:
            self.logger.error(f"parse starts_with evaluation data: {exc}")
            return None
        return prop.startswith(target)

    def ends_with(self, values: Any, data: Any) -> bool:
        """Whether the property ends with the target; False when the data is malformed."""
        try:
            prop, target = parse_string_comparison_data(values)
        except ValueError as exc:
            self.logger.error(f"parse ends_with evaluation data: {exc}")
            return False
        return prop.endswith(target)