"""The ``sem_ver`` targeting operator and semantic version helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from flagdcore.logger import Logger

SEM_VER_EVALUATION_NAME = "sem_ver"

_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_NUM = r"0|[1-9][0-9]*"
_SEMVER_RE = re.compile(
    rf"v(?P<major>{_NUM})"
    rf"(?:\.(?P<minor>{_NUM})"
    rf"(?:\.(?P<patch>{_NUM})(?:-(?P<pre>{_IDENT}))?(?:\+(?P<build>{_IDENT}))?)?)?"
)


@dataclass(frozen=True)
class _Version:
    major: str
    minor: str
    patch: str
    prerelease: str
    minor_given: bool


def _is_numeric(identifier: str) -> bool:
    return identifier.isascii() and identifier.isdigit()


def _parse(version: str) -> Optional[_Version]:
    match = _SEMVER_RE.fullmatch(version)
    if match is None:
        return None
    prerelease = match.group("pre") or ""
    if prerelease and any(
        _is_numeric(part) and len(part) > 1 and part.startswith("0") for part in prerelease.split(".")
    ):
        return None
    return _Version(
        major=match.group("major"),
        minor=match.group("minor") or "0",
        patch=match.group("patch") or "0",
        prerelease=prerelease,
        minor_given=match.group("minor") is not None,
    )


def is_valid(version: str) -> bool:
    """Whether ``version`` is a valid 'v'-prefixed semantic version (v1 and v1.2 allowed)."""
    return _parse(version) is not None


def _compare_int(x: str, y: str) -> int:
    if x == y:
        return 0
    if len(x) != len(y):
        return -1 if len(x) < len(y) else 1
    return -1 if x < y else 1


def _compare_prerelease(x: str, y: str) -> int:
    if x == y:
        return 0
    if not x:
        return 1
    if not y:
        return -1
    xs, ys = x.split("."), y.split(".")
    for a, b in zip(xs, ys):
        if a == b:
            continue
        a_num, b_num = _is_numeric(a), _is_numeric(b)
        if a_num and not b_num:
            return -1
        if b_num and not a_num:
            return 1
        if a_num and b_num:
            return _compare_int(a, b)
        return -1 if a < b else 1
    return (len(xs) > len(ys)) - (len(xs) < len(ys))


def compare_versions(v: str, w: str) -> int:
    """Compare two versions: -1, 0 or +1. Invalid versions sort before valid ones."""
    if v == w:
        return 0
    pv, pw = _parse(v), _parse(w)
    if pv is None and pw is None:
        return 0
    if pv is None:
        return -1
    if pw is None:
        return 1
    for a, b in ((pv.major, pw.major), (pv.minor, pw.minor), (pv.patch, pw.patch)):
        result = _compare_int(a, b)
        if result:
            return result
    return _compare_prerelease(pv.prerelease, pw.prerelease)


def major(version: str) -> str:
    """The major prefix, e.g. ``v1``; '' for an invalid version."""
    parsed = _parse(version)
    return "" if parsed is None else f"v{parsed.major}"


def major_minor(version: str) -> str:
    """The major.minor prefix, e.g. ``v1.2``; '' for an invalid version."""
    parsed = _parse(version)
    return "" if parsed is None else f"v{parsed.major}.{parsed.minor}"


class SemVerOperator(str, Enum):
    """Comparison operators accepted by ``sem_ver``."""

    EQUALS = "="
    NOT_EQUAL = "!="
    LESS = "<"
    LESS_OR_EQUAL = "<="
    GREATER_OR_EQUAL = ">="
    GREATER = ">"
    MATCH_MAJOR = "^"
    MATCH_MINOR = "~"

    def compare(self, v1: str, v2: str) -> bool:
        """Apply this operator to two 'v'-prefixed versions."""
        if self is SemVerOperator.MATCH_MINOR:
            return compare_versions(major_minor(v1), major_minor(v2)) == 0
        if self is SemVerOperator.MATCH_MAJOR:
            return compare_versions(major(v1), major(v2)) == 0
        result = compare_versions(v1, v2)
        checks = {
            SemVerOperator.LESS: result == -1,
            SemVerOperator.EQUALS: result == 0,
            SemVerOperator.NOT_EQUAL: result != 0,
            SemVerOperator.LESS_OR_EQUAL: result <= 0,
            SemVerOperator.GREATER_OR_EQUAL: result >= 0,
            SemVerOperator.GREATER: result == 1,
        }
        return checks[self]


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def _parse_semantic_version(value: Any) -> str:
    version = _format_value(value)
    if not version.startswith("v"):
        version = "v" + version
    if not is_valid(version):
        raise ValueError(f"'{version}' is not a valid semantic version string")
    return version


def _parse_operator(value: Any) -> SemVerOperator:
    if not isinstance(value, str):
        raise ValueError(f"could not parse operator '{_format_value(value)}'")
    try:
        return SemVerOperator(value)
    except ValueError:
        raise ValueError("invalid operator") from None


def parse_semver_data(values: Any) -> Tuple[str, str, SemVerOperator]:
    """Return (actual version, target version, operator); raise ValueError if malformed."""
    if not isinstance(values, (list, tuple)):
        raise ValueError("sem_ver evaluation is not an array")
    if len(values) != 3:
        raise ValueError("sem_ver evaluation must contain a value, an operator, and a comparison target")
    try:
        actual = _parse_semantic_version(values[0])
    except ValueError as exc:
        raise ValueError(f"sem_ver evaluation: could not parse target property value: {exc}") from exc
    try:
        operator = _parse_operator(values[1])
    except ValueError as exc:
        raise ValueError(f"sem_ver evaluation: could not parse operator: {exc}") from exc
    try:
        target = _parse_semantic_version(values[2])
    except ValueError as exc:
        raise ValueError(f"sem_ver evaluation: could not parse target value: {exc}") from exc
    return actual, target, operator


class SemVerComparison:
    """Targeting operator checking a version against a semantic versioning condition."""

    def __init__(self, logger: Logger) -> None:
        self.logger = logger

    def evaluate(self, values: Any, data: Any) -> bool:
        """True when the condition holds; False when it does not or the data is malformed."""
        try:
            actual, target, operator = parse_semver_data(values)
        except ValueError as exc:
            self.logger.error(f"parse sem_ver evaluation data: {exc}")
            return False
        return operator.compare(actual, target)