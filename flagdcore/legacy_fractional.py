"""The deprecated ``fractionalEvaluation`` targeting operator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from flagdcore.fractional import FRACTION_EVALUATION_NAME
from flagdcore.hashing import xxh3_64
from flagdcore.logger import Logger

LEGACY_FRACTION_EVALUATION_NAME = "fractionalEvaluation"


@dataclass(frozen=True)
class LegacyDistribution:
    """A variant with its whole-number percentage."""

    variant: str
    percentage: int


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_distributions(entries: Sequence[Any]) -> List[LegacyDistribution]:
    distributions: List[LegacyDistribution] = []
    for entry in entries:
        if not isinstance(entry, (list, tuple)):
            raise ValueError("distribution elements aren't arrays")
        if len(entry) != 2:
            raise ValueError("distribution element isn't length 2")
        variant, percentage = entry
        if not isinstance(variant, str):
            raise ValueError("first element of distribution element isn't string")
        if not _is_number(percentage):
            raise ValueError("second element of distribution element isn't float")
        distributions.append(LegacyDistribution(variant=variant, percentage=int(percentage)))

    total = sum(d.percentage for d in distributions)
    if total != 100:
        raise ValueError(f"percentages must sum to 100, got: {total}")
    return distributions


def parse_legacy_data(values: Any, data: Any) -> Tuple[str, List[LegacyDistribution]]:
    """Return the value to bucket on and the distributions; raise ValueError if malformed.

    If the named context property is absent, ``("", [])`` is returned.
    """
    if not isinstance(values, (list, tuple)):
        raise ValueError("fractional evaluation data is not an array")
    if len(values) < 2:
        raise ValueError("fractional evaluation data has length under 2")
    bucket_by = values[0]
    if not isinstance(bucket_by, str):
        raise ValueError("first element of fractional evaluation data isn't of type string")
    if not isinstance(data, Mapping):
        raise ValueError("data isn't an object")
    if bucket_by not in data:
        return "", []
    value = data[bucket_by]
    if not isinstance(value, str):
        raise ValueError(f"var: {bucket_by} isn't of type string")
    return value, _parse_distributions(values[1:])


def distribute_legacy_value(value: str, distributions: Sequence[LegacyDistribution]) -> str:
    """Pick the variant whose percentage range holds the hash bucket of ``value``; '' if none."""
    ratio = float(xxh3_64(value)) / 2.0**64
    bucket = int(ratio * 100)

    range_end = 0
    for dist in distributions:
        range_end += dist.percentage
        if bucket < range_end:
            return dist.variant
    return ""


class LegacyFractional:
    """Deprecated percentage-based bucketing operator."""

    def __init__(self, logger: Logger) -> None:
        self.logger = logger

    def evaluate(self, values: Any, data: Any) -> Optional[str]:
        """Return the chosen variant, or None when the operator's arguments are malformed."""
        self.logger.warn(
            f"{LEGACY_FRACTION_EVALUATION_NAME} is deprecated, please use {FRACTION_EVALUATION_NAME}"
        )
        try:
            value, distributions = parse_legacy_data(values, data)
        except ValueError as exc:
            self.logger.error(f"parse fractional evaluation data: {exc}")
            return None
        return distribute_legacy_value(value, distributions)