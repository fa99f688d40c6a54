"""A JSON Logic rule engine with support for registered custom operators."""

from __future__ import annotations

import json
import math
from typing import Any, Callable, Dict, List, Mapping

CustomOperator = Callable[[Any, Any], Any]

_MISSING = object()
_MAX_EXACT_INT = 2**53


class JsonLogicError(Exception):
    """Raised when a rule cannot be applied."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, (str, list, tuple)):
        return len(value) > 0
    return True


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1 if value else 0
    if _is_number(value):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value)
    return str(value)


def _finite(value: Any) -> Any:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise JsonLogicError("arithmetic result is not a finite number")
        if value.is_integer() and abs(value) < _MAX_EXACT_INT:
            return int(value)
    return value


def _loose_equals(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    if isinstance(a, (list, tuple, Mapping)) or isinstance(b, (list, tuple, Mapping)):
        return a == b
    return _to_number(a) == _to_number(b)


def _strict_equals(a: Any, b: Any) -> bool:
    if _is_number(a) and _is_number(b):
        return a == b
    if type(a) is not type(b):
        return False
    return a == b


def _less(a: Any, b: Any, strict: bool) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return a < b if strict else a <= b
    x, y = _to_number(a), _to_number(b)
    return x < y if strict else x <= y


def _lookup(data: Any, path: Any) -> Any:
    current = data
    for key in _stringify(path).split("."):
        if isinstance(current, Mapping):
            if key not in current:
                return _MISSING
            current = current[key]
        elif isinstance(current, (list, tuple)):
            try:
                index = int(key)
            except ValueError:
                return _MISSING
            if not 0 <= index < len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def _as_args(args: Any) -> List[Any]:
    if isinstance(args, (list, tuple)):
        return list(args)
    return [args]


class JsonLogic:
    """Applies JSON Logic rules to data. Custom operators receive evaluated arguments and the data."""

    def __init__(self) -> None:
        self._custom: Dict[str, CustomOperator] = {}
        self._builtins: Dict[str, Callable[[List[Any], Any], Any]] = {
            "var": self._var,
            "missing": self._missing,
            "missing_some": self._missing_some,
            "if": self._if,
            "?:": self._if,
            "==": lambda a, d: _loose_equals(*self._pair(a, d)),
            "!=": lambda a, d: not _loose_equals(*self._pair(a, d)),
            "===": lambda a, d: _strict_equals(*self._pair(a, d)),
            "!==": lambda a, d: not _strict_equals(*self._pair(a, d)),
            "!": lambda a, d: not _truthy(self._first(a, d)),
            "!!": lambda a, d: _truthy(self._first(a, d)),
            "or": self._or,
            "and": self._and,
            "<": lambda a, d: self._chain(a, d, strict=True),
            "<=": lambda a, d: self._chain(a, d, strict=False),
            ">": lambda a, d: _less(*reversed(self._pair(a, d)), strict=True),
            ">=": lambda a, d: _less(*reversed(self._pair(a, d)), strict=False),
            "max": lambda a, d: self._extreme(a, d, max),
            "min": lambda a, d: self._extreme(a, d, min),
            "+": self._add,
            "*": self._multiply,
            "-": self._subtract,
            "/": self._divide,
            "%": self._modulo,
            "in": self._in,
            "cat": lambda a, d: "".join(_stringify(v) for v in self._values(a, d)),
            "substr": self._substr,
            "merge": self._merge,
            "map": self._map,
            "filter": self._filter,
            "reduce": self._reduce,
            "all": self._all,
            "none": lambda a, d: not any(_truthy(v) for v in self._items(a, d)),
            "some": lambda a, d: any(_truthy(v) for v in self._items(a, d)),
            "log": lambda a, d: self._first(a, d),
        }

    def add_operator(self, name: str, func: CustomOperator) -> None:
        """Register ``func(values, data)`` under ``name``, replacing any earlier one."""
        if not isinstance(name, str) or not name:
            raise ValueError("operator name must be a non-empty string")
        self._custom[name] = func

    def apply(self, rule: Any, data: Any) -> Any:
        """Evaluate ``rule`` against ``data``; raise JsonLogicError on unusable rules."""
        return self._eval(rule, data)

    def _eval(self, rule: Any, data: Any) -> Any:
        if isinstance(rule, (list, tuple)):
            return [self._eval(item, data) for item in rule]
        if isinstance(rule, Mapping) and len(rule) == 1:
            ((operator, args),) = rule.items()
            return self._operate(operator, args, data)
        return rule

    def _operate(self, operator: str, args: Any, data: Any) -> Any:
        custom = self._custom.get(operator)
        if custom is not None:
            return custom(self._eval(args, data), data)
        builtin = self._builtins.get(operator)
        if builtin is None:
            raise JsonLogicError(f"the operator {operator!r} is not supported")
        return builtin(_as_args(args), data)

    def _values(self, args: List[Any], data: Any) -> List[Any]:
        return [self._eval(arg, data) for arg in args]

    def _first(self, args: List[Any], data: Any) -> Any:
        return self._eval(args[0], data) if args else None

    def _pair(self, args: List[Any], data: Any) -> List[Any]:
        values = self._values(args[:2], data)
        return values + [None] * (2 - len(values))

    def _var(self, args: List[Any], data: Any) -> Any:
        values = self._values(args, data)
        path = values[0] if values else None
        default = values[1] if len(values) > 1 else None
        if path is None or path == "":
            return data
        found = _lookup(data, path)
        return default if found is _MISSING else found

    def _missing_keys(self, keys: List[Any], data: Any) -> List[Any]:
        result = []
        for key in keys:
            found = _lookup(data, key)
            if found is _MISSING or found is None or found == "":
                result.append(key)
        return result

    def _missing(self, args: List[Any], data: Any) -> List[Any]:
        values = self._values(args, data)
        keys = values[0] if values and isinstance(values[0], list) else values
        return self._missing_keys(keys, data)

    def _missing_some(self, args: List[Any], data: Any) -> List[Any]:
        need, keys = self._pair(args, data)
        keys = keys if isinstance(keys, list) else []
        missing = self._missing_keys(keys, data)
        if len(keys) - len(missing) >= _to_number(need):
            return []
        return missing

    def _if(self, args: List[Any], data: Any) -> Any:
        remaining = iter(args)
        for condition in remaining:
            branch = next(remaining, _MISSING)
            if branch is _MISSING:
                return self._eval(condition, data)
            if _truthy(self._eval(condition, data)):
                return self._eval(branch, data)
        return None

    def _or(self, args: List[Any], data: Any) -> Any:
        value = None
        for arg in args:
            value = self._eval(arg, data)
            if _truthy(value):
                return value
        return value

    def _and(self, args: List[Any], data: Any) -> Any:
        value = None
        for arg in args:
            value = self._eval(arg, data)
            if not _truthy(value):
                return value
        return value

    def _chain(self, args: List[Any], data: Any, strict: bool) -> bool:
        values = self._values(args, data)
        if len(values) < 2:
            return False
        return all(_less(a, b, strict) for a, b in zip(values, values[1:3]))

    def _numbers(self, args: List[Any], data: Any) -> List[float]:
        numbers = [_to_number(v) for v in self._values(args, data)]
        if any(isinstance(n, float) and math.isnan(n) for n in numbers):
            raise JsonLogicError("operand is not a number")
        return numbers

    def _extreme(self, args: List[Any], data: Any, pick: Callable[..., Any]) -> Any:
        numbers = self._numbers(args, data)
        return _finite(pick(numbers)) if numbers else None

    def _add(self, args: List[Any], data: Any) -> Any:
        return _finite(sum(self._numbers(args, data)))

    def _multiply(self, args: List[Any], data: Any) -> Any:
        return _finite(math.prod(self._numbers(args, data)))

    def _subtract(self, args: List[Any], data: Any) -> Any:
        numbers = self._numbers(args, data)
        if not numbers:
            raise JsonLogicError("'-' needs at least one operand")
        if len(numbers) == 1:
            return _finite(-numbers[0])
        return _finite(numbers[0] - numbers[1])

    def _binary(self, args: List[Any], data: Any, name: str) -> List[float]:
        numbers = self._numbers(args, data)
        if len(numbers) < 2:
            raise JsonLogicError(f"{name!r} needs two operands")
        if numbers[1] == 0:
            raise JsonLogicError("division by zero")
        return numbers

    def _divide(self, args: List[Any], data: Any) -> Any:
        a, b = self._binary(args, data, "/")[:2]
        return _finite(a / b)

    def _modulo(self, args: List[Any], data: Any) -> Any:
        a, b = self._binary(args, data, "%")[:2]
        return _finite(math.fmod(a, b))

    def _in(self, args: List[Any], data: Any) -> bool:
        needle, haystack = self._pair(args, data)
        if isinstance(haystack, str):
            return _stringify(needle) in haystack
        if isinstance(haystack, list):
            return any(_strict_equals(needle, item) for item in haystack)
        return False

    def _substr(self, args: List[Any], data: Any) -> str:
        values = self._values(args, data)
        text = _stringify(values[0]) if values else ""
        start = int(_to_number(values[1])) if len(values) > 1 else 0
        if start < 0:
            start = max(len(text) + start, 0)
        if len(values) < 3 or values[2] is None:
            return text[start:]
        length = int(_to_number(values[2]))
        if length < 0:
            return text[start:len(text) + length]
        return text[start:start + length]

    def _merge(self, args: List[Any], data: Any) -> List[Any]:
        merged: List[Any] = []
        for value in self._values(args, data):
            if isinstance(value, list):
                merged.extend(value)
            else:
                merged.append(value)
        return merged

    def _array_and_rule(self, args: List[Any], data: Any) -> Any:
        items = self._eval(args[0], data) if args else None
        rule = args[1] if len(args) > 1 else None
        return (items if isinstance(items, list) else []), rule

    def _map(self, args: List[Any], data: Any) -> List[Any]:
        items, rule = self._array_and_rule(args, data)
        return [self._eval(rule, item) for item in items]

    def _filter(self, args: List[Any], data: Any) -> List[Any]:
        items, rule = self._array_and_rule(args, data)
        return [item for item in items if _truthy(self._eval(rule, item))]

    def _items(self, args: List[Any], data: Any) -> List[Any]:
        items, rule = self._array_and_rule(args, data)
        return [self._eval(rule, item) for item in items]

    def _all(self, args: List[Any], data: Any) -> bool:
        results = self._items(args, data)
        return bool(results) and all(_truthy(v) for v in results)

    def _reduce(self, args: List[Any], data: Any) -> Any:
        items, rule = self._array_and_rule(args, data)
        accumulator = self._eval(args[2], data) if len(args) > 2 else None
        for item in items:
            accumulator = self._eval(rule, {"current": item, "accumulator": accumulator})
        return accumulator