"""The ``fractional`` targeting operator: weighted, deterministic bucketing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from flagdcore.flagd_properties import TARGETING_KEY_KEY, FlagdProperties, get_flagd_properties
from flagdcore.hashing import murmur3_32
from flagdcore.logger import Logger

FRACTION_EVALUATION_NAME = "fractional"

_MAX_INT32 = 2**31 - 1


@dataclass(frozen=True)
class WeightedVariant:
    """A variant with its relative weight."""

    variant: str
    weight: int

    def percentage(self, total_weight: int) -> float:
        """Share of the total weight as a percentage; 0 when the total is 0."""
        if total_weight == 0:
            return 0.0
        return 100 * float(self.weight) / float(total_weight)


@dataclass(frozen=True)
class Distribution:
    """Weighted variants in declaration order, with their total weight."""

    total_weight: int
    weighted_variants: Tuple[WeightedVariant, ...]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_distribution(entries: Sequence[Any]) -> Distribution:
    variants: List[WeightedVariant] = []
    for entry in entries:
        if not isinstance(entry, (list, tuple)):
            raise ValueError(
                "distribution elements aren't arrays. please check your rule in flag definition"
            )
        if not entry:
            raise ValueError("distribution element needs at least one element")
        variant = entry[0]
        if not isinstance(variant, str):
            raise ValueError("first element of distribution element isn't string")
        weight = 1.0
        if len(entry) >= 2 and _is_number(entry[1]):
            weight = entry[1]
        variants.append(WeightedVariant(variant=variant, weight=int(weight)))
    return Distribution(
        total_weight=sum(v.weight for v in variants),
        weighted_variants=tuple(variants),
    )


def parse_fractional_data(values: Any, data: Any) -> Tuple[str, Distribution]:
    """Return the value to bucket on and the distribution; raise ValueError if malformed.

    When the first element is not a string, the bucketing value is the flag key
    followed by the context's targeting key. A leading null is skipped.
    """
    if not isinstance(values, (list, tuple)):
        raise ValueError("fractional evaluation data is not an array")
    if len(values) < 2:
        raise ValueError("fractional evaluation data has length under 2")
    if not isinstance(data, Mapping):
        raise ValueError("data isn't an object")

    properties = get_flagd_properties(data) or FlagdProperties()

    first = values[0]
    if isinstance(first, str):
        return first, _parse_distribution(values[1:])

    entries = values[1:] if first is None else values
    targeting_key = data.get(TARGETING_KEY_KEY)
    if not isinstance(targeting_key, str):
        raise ValueError("bucketing value not supplied and no targetingKey in context")
    bucket_by = f"{properties.flag_key}{targeting_key}"
    return bucket_by, _parse_distribution(entries)


def distribute_value(value: str, distribution: Distribution) -> str:
    """Pick the variant whose weight range holds the hash bucket of ``value``; '' if none."""
    hash_value = murmur3_32(value)
    if hash_value >= 2**31:
        hash_value -= 2**32
    bucket = abs(float(hash_value)) / _MAX_INT32 * 100

    range_end = 0.0
    for weighted in distribution.weighted_variants:
        range_end += weighted.percentage(distribution.total_weight)
        if bucket < range_end:
            return weighted.variant
    return ""


class Fractional:
    """Targeting operator that splits contexts between variants by weight."""

    def __init__(self, logger: Logger) -> None:
        self.logger = logger

    def evaluate(self, values: Any, data: Any) -> Optional[str]:
        """Return the chosen variant, or None when the operator's arguments are malformed."""
        try:
            bucket_by, distribution = parse_fractional_data(values, data)
        except ValueError as exc:
            self.logger.warn(f"parse fractional evaluation data: {exc}")
            return None
        return distribute_value(bucket_by, distribution)