"""Flag definition loading and flag resolution with JSON Logic targeting."""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple

from flagdcore.flagd_properties import FlagdProperties, set_flagd_properties
from flagdcore.fractional import FRACTION_EVALUATION_NAME, Fractional
from flagdcore.jsonlogic import JsonLogic, JsonLogicError
from flagdcore.legacy_fractional import LEGACY_FRACTION_EVALUATION_NAME, LegacyFractional
from flagdcore.logger import Logger
from flagdcore.model import (
    DEFAULT_REASON,
    ERROR_REASON,
    FLAG_DISABLED_ERROR_CODE,
    FLAG_NOT_FOUND_ERROR_CODE,
    PARSE_ERROR_CODE,
    STATIC_REASON,
    TARGETING_MATCH_REASON,
    TYPE_MISMATCH_ERROR_CODE,
    EvaluationError,
    Flag,
    Metadata,
)
from flagdcore.semver import SEM_VER_EVALUATION_NAME, SemVerComparison
from flagdcore.string_comparison import (
    ENDS_WITH_EVALUATION_NAME,
    STARTS_WITH_EVALUATION_NAME,
    StringComparison,
)

SELECTOR_METADATA_KEY = "scope"
DISABLED = "DISABLED"

_REG_BRACE = re.compile(r"^[^{]*{|}[^}]*$")


@dataclass
class AnyValue:
    """A resolution of a flag of any type, carrying its error if it failed."""

    value: Any
    variant: str
    reason: str
    flag_key: str
    metadata: Metadata = field(default_factory=dict)
    error: Optional[EvaluationError] = None


@dataclass
class Resolution:
    """A successful typed flag resolution."""

    value: Any
    variant: str
    reason: str
    metadata: Metadata = field(default_factory=dict)


@dataclass
class Definition:
    """A parsed flag configuration: flags and flag set metadata."""

    flags: Dict[str, Flag] = field(default_factory=dict)
    metadata: Metadata = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Definition":
        if not isinstance(data, Mapping):
            raise ValueError("flag configuration must be an object")
        raw_flags = data.get("flags") or {}
        if not isinstance(raw_flags, Mapping):
            raise ValueError("'flags' must be an object")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise ValueError("'metadata' must be an object")
        return cls(
            flags={key: Flag.from_dict(value) for key, value in raw_flags.items()},
            metadata=dict(metadata),
        )


@dataclass
class FlagStore:
    """Flags available for resolution, with the flag set metadata."""

    flags: Dict[str, Flag] = field(default_factory=dict)
    metadata: Metadata = field(default_factory=dict)


class _Outcome(NamedTuple):
    variant: str
    variants: Dict[str, Any]
    reason: str
    metadata: Metadata
    error_code: Optional[str]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalise(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, list):
        return [_normalise(v) for v in value]
    if isinstance(value, dict):
        return {k: _normalise(v) for k, v in value.items()}
    return value


def _variant_name(result: Any) -> str:
    if isinstance(result, str):
        text = result
    else:
        text = json.dumps(_normalise(result), separators=(",", ":"))
    return text.strip().replace('"', "")


def _accepts_any(value: Any) -> Tuple[bool, Any]:
    return value is not None, value


def _accepts_bool(value: Any) -> Tuple[bool, Any]:
    return isinstance(value, bool), value


def _accepts_str(value: Any) -> Tuple[bool, Any]:
    return isinstance(value, str), value


def _accepts_float(value: Any) -> Tuple[bool, Any]:
    return (True, float(value)) if _is_number(value) else (False, 0.0)


def _accepts_int(value: Any) -> Tuple[bool, Any]:
    return (True, int(value)) if _is_number(value) else (False, 0)


def _accepts_object(value: Any) -> Tuple[bool, Any]:
    return isinstance(value, Mapping), value


_Checker = Callable[[Any], Tuple[bool, Any]]


def transpose_evaluators(state: str) -> str:
    """Replace ``"$ref": "name"`` references with the named shared evaluators."""
    try:
        parsed = json.loads(state)
    except json.JSONDecodeError as exc:
        raise ValueError(f"unmarshal: {exc}") from exc
    evaluators = parsed.get("$evaluators") if isinstance(parsed, Mapping) else None
    if evaluators is None:
        return state
    if not isinstance(evaluators, Mapping):
        raise ValueError("unmarshal: '$evaluators' must be an object")

    for name, raw in evaluators.items():
        pattern = re.compile(r'"\$ref":(\s)*"' + re.escape(name) + '"')
        value = json.dumps(raw)
        if len(value) < 3:
            raise ValueError("evaluator object is empty")
        value = _REG_BRACE.sub("", value)
        state = pattern.sub(lambda _m, v=value: v, state)
    return state


def validate_default_variants(definition: Definition) -> None:
    """Raise ValueError if any flag names a default variant it does not define."""
    for name, flag in definition.flags.items():
        if flag.default_variant and flag.default_variant not in flag.variants:
            raise ValueError(
                f"default variant: '{flag.default_variant}' isn't a valid variant of flag: '{name}'"
            )


def config_to_flag_definition(log: Logger, config: str) -> Definition:
    """Parse a JSON flag configuration, resolving shared evaluators."""
    try:
        transposed = transpose_evaluators(config)
    except ValueError as exc:
        raise ValueError(f"transposing evaluators: {exc}") from exc
    try:
        definition = Definition.from_dict(json.loads(transposed))
    except ValueError as exc:
        raise ValueError(f"unmarshalling provided configurations: {exc}") from exc
    validate_default_variants(definition)
    return definition


class Resolver:
    """Resolves flags from a store, applying their targeting rules."""

    def __init__(self, store: FlagStore, logger: Logger) -> None:
        self.store = store
        self.logger = logger
        self._logic = JsonLogic()
        strings = StringComparison(logger)
        self._logic.add_operator(FRACTION_EVALUATION_NAME, Fractional(logger).evaluate)
        self._logic.add_operator(STARTS_WITH_EVALUATION_NAME, strings.starts_with)
        self._logic.add_operator(ENDS_WITH_EVALUATION_NAME, strings.ends_with)
        self._logic.add_operator(SEM_VER_EVALUATION_NAME, SemVerComparison(logger).evaluate)
        self._logic.add_operator(LEGACY_FRACTION_EVALUATION_NAME, LegacyFractional(logger).evaluate)

    def resolve_all_values(
        self, req_id: str, context: Optional[Mapping[str, Any]]
    ) -> Tuple[List[AnyValue], Metadata]:
        """Resolve every enabled flag by the type of its default variant."""
        values: List[AnyValue] = []
        for flag_key, flag in list(self.store.flags.items()):
            if flag.state == DISABLED:
                continue
            default = flag.variants.get(flag.default_variant)
            if isinstance(default, bool):
                checker: _Checker = _accepts_bool
            elif isinstance(default, str):
                checker = _accepts_str
            elif _is_number(default):
                checker = _accepts_float
            elif isinstance(default, Mapping):
                checker = _accepts_object
            else:
                checker = _accepts_any
            result = self._resolve(req_id, flag_key, context, checker)
            if result.error is not None:
                self.logger.error_with_id(
                    req_id, f"bulk evaluation: key: {flag_key} returned error: {result.error.code}"
                )
            values.append(result)
        return values, dict(self.store.metadata)

    def resolve_boolean_value(self, req_id: str, flag_key: str, context: Optional[Mapping[str, Any]]) -> Resolution:
        self.logger.debug_with_id(req_id, f"evaluating boolean flag: {flag_key}")
        return self._typed(req_id, flag_key, context, _accepts_bool)

    def resolve_string_value(self, req_id: str, flag_key: str, context: Optional[Mapping[str, Any]]) -> Resolution:
        self.logger.debug_with_id(req_id, f"evaluating string flag: {flag_key}")
        return self._typed(req_id, flag_key, context, _accepts_str)

    def resolve_int_value(self, req_id: str, flag_key: str, context: Optional[Mapping[str, Any]]) -> Resolution:
        self.logger.debug_with_id(req_id, f"evaluating int flag: {flag_key}")
        return self._typed(req_id, flag_key, context, _accepts_int)

    def resolve_float_value(self, req_id: str, flag_key: str, context: Optional[Mapping[str, Any]]) -> Resolution:
        self.logger.debug_with_id(req_id, f"evaluating float flag: {flag_key}")
        return self._typed(req_id, flag_key, context, _accepts_float)

    def resolve_object_value(self, req_id: str, flag_key: str, context: Optional[Mapping[str, Any]]) -> Resolution:
        self.logger.debug_with_id(req_id, f"evaluating object flag: {flag_key}")
        return self._typed(req_id, flag_key, context, _accepts_object)

    def resolve_as_any_value(self, req_id: str, flag_key: str, context: Optional[Mapping[str, Any]]) -> AnyValue:
        """Resolve a flag of any type; failures are reported in the result's error."""
        self.logger.debug_with_id(req_id, f"evaluating flag `{flag_key}` as a generic flag")
        return self._resolve(req_id, flag_key, context, _accepts_any)

    def _typed(self, req_id: str, flag_key: str, context: Any, checker: _Checker) -> Resolution:
        result = self._resolve(req_id, flag_key, context, checker)
        if result.error is not None:
            raise result.error
        return Resolution(result.value, result.variant, result.reason, result.metadata)

    def _resolve(self, req_id: str, flag_key: str, context: Any, checker: _Checker) -> AnyValue:
        outcome = self._evaluate_variant(req_id, flag_key, context)
        if outcome.error_code is not None:
            return AnyValue(None, outcome.variant, outcome.reason, flag_key, outcome.metadata,
                            EvaluationError(outcome.error_code))
        ok, value = checker(outcome.variants.get(outcome.variant))
        if not ok:
            return AnyValue(None, outcome.variant, ERROR_REASON, flag_key, outcome.metadata,
                            EvaluationError(TYPE_MISMATCH_ERROR_CODE))
        return AnyValue(value, outcome.variant, outcome.reason, flag_key, outcome.metadata)

    def _evaluate_variant(self, req_id: str, flag_key: str, context: Any) -> _Outcome:
        metadata: Metadata = dict(self.store.metadata)
        flag = self.store.flags.get(flag_key)
        if flag is None:
            self.logger.debug_with_id(req_id, f"requested flag could not be found: {flag_key}")
            return _Outcome("", {}, ERROR_REASON, metadata, FLAG_NOT_FOUND_ERROR_CODE)

        if flag.selector:
            metadata[SELECTOR_METADATA_KEY] = flag.selector
        metadata.update({k: v for k, v in flag.metadata.items() if v is not None})

        def fail(code: str) -> _Outcome:
            return _Outcome("", flag.variants, ERROR_REASON, metadata, code)

        if flag.state == DISABLED:
            self.logger.debug_with_id(req_id, f"requested flag is disabled: {flag_key}")
            return fail(FLAG_DISABLED_ERROR_CODE)

        targeting = flag.targeting
        if targeting is not None and targeting != {}:
            eval_ctx = set_flagd_properties(
                self.logger, context, FlagdProperties(flag_key=flag_key, timestamp=int(time.time()))
            )
            try:
                result = self._logic.apply(targeting, eval_ctx)
            except (JsonLogicError, TypeError, ValueError, ZeroDivisionError) as exc:
                self.logger.error_with_id(req_id, f"error applying targeting rules: {exc}")
                return fail(PARSE_ERROR_CODE)

            if result is None:
                if not flag.default_variant:
                    return fail(FLAG_NOT_FOUND_ERROR_CODE)
                return _Outcome(flag.default_variant, flag.variants, DEFAULT_REASON, metadata, None)

            variant = _variant_name(result)
            if variant in flag.variants:
                return _Outcome(variant, flag.variants, TARGETING_MATCH_REASON, metadata, None)
            self.logger.error_with_id(
                req_id, f"invalid or missing variant: {variant} for flagKey: {flag_key}, variant is not valid"
            )
            return fail(PARSE_ERROR_CODE)

        if not flag.default_variant:
            return fail(FLAG_NOT_FOUND_ERROR_CODE)
        return _Outcome(flag.default_variant, flag.variants, STATIC_REASON, metadata, None)