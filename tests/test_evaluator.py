import json

import pytest

from flagdcore.evaluator import (
    AnyValue,
    Definition,
    FlagStore,
    Resolver,
    config_to_flag_definition,
    transpose_evaluators,
    validate_default_variants,
)
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
)

LOG = Logger(None, False)


def _rule(variant):
    return {"if": [{"==": [{"var": ["color"]}, "yellow"]}, variant, None]}


FLAGS = json.dumps({
    "metadata": {"flagSetId": "testSetId", "version": "v33"},
    "flags": {
        "staticBoolFlag": {"state": "ENABLED", "variants": {"on": True, "off": False}, "defaultVariant": "on"},
        "staticStringFlag": {"state": "ENABLED", "variants": {"red": "#CC0000", "blue": "#0000CC"},
                             "defaultVariant": "red"},
        "staticFloatFlag": {"state": "ENABLED", "variants": {"one": 1.0, "two": 2}, "defaultVariant": "one"},
        "staticIntFlag": {"state": "ENABLED", "variants": {"one": 1, "two": 2}, "defaultVariant": "one"},
        "staticObjectFlag": {"state": "ENABLED", "variants": {"obj1": {"abc": 123}, "obj2": {"xyz": True}},
                             "defaultVariant": "obj1"},
        "targetingBoolFlag": {"state": "ENABLED", "variants": {"bool1": True, "bool2": False},
                              "defaultVariant": "bool2", "targeting": _rule("bool1")},
        "targetingStringFlag": {"state": "ENABLED", "variants": {"str1": "my-string", "str2": "other"},
                                "defaultVariant": "str2", "targeting": _rule("str1")},
        "targetingFloatFlag": {"state": "ENABLED", "variants": {"number1": 100.0, "number2": 200},
                               "defaultVariant": "number2", "targeting": _rule("number1")},
        "targetingNumberFlag": {"state": "ENABLED", "variants": {"number1": 100, "number2": 200},
                                "defaultVariant": "number2", "targeting": _rule("number1")},
        "targetingObjectFlag": {"state": "ENABLED", "variants": {"object1": {"key": True}, "object2": {}},
                                "defaultVariant": "object2", "targeting": _rule("object1")},
        "disabledFlag": {"state": "DISABLED", "variants": {"on": True, "off": False}, "defaultVariant": "on"},
        "metadataFlag": {"state": "ENABLED", "variants": {"on": True, "off": False}, "defaultVariant": "on",
                         "metadata": {"version": "v66"}},
    },
})

YELLOW = {"color": "yellow"}


def make_resolver(config=FLAGS):
    definition = config_to_flag_definition(LOG, config)
    return Resolver(FlagStore(flags=definition.flags, metadata=definition.metadata), LOG)


def test_any_value_construction():
    err = EvaluationError("err")
    obj = AnyValue("val", "variant", "reason", "key", {}, err)
    assert obj == AnyValue(value="val", variant="variant", reason="reason", flag_key="key", metadata={}, error=err)


@pytest.mark.parametrize("key,ctx,value,reason", [
    ("staticBoolFlag", None, True, STATIC_REASON),
    ("targetingBoolFlag", YELLOW, True, TARGETING_MATCH_REASON),
])
def test_resolve_boolean(key, ctx, value, reason):
    result = make_resolver().resolve_boolean_value("default", key, ctx)
    assert (result.value, result.reason) == (value, reason)


@pytest.mark.parametrize("method", [
    "resolve_boolean_value", "resolve_string_value", "resolve_float_value", "resolve_int_value",
])
@pytest.mark.parametrize("key,code", [
    ("staticObjectFlag", TYPE_MISMATCH_ERROR_CODE),
    ("missingFlag", FLAG_NOT_FOUND_ERROR_CODE),
    ("disabledFlag", FLAG_DISABLED_ERROR_CODE),
])
def test_resolve_errors(method, key, code):
    with pytest.raises(EvaluationError) as info:
        getattr(make_resolver(), method)("default", key, None)
    assert info.value.code == code


def test_resolve_string():
    r = make_resolver()
    assert r.resolve_string_value("d", "staticStringFlag", None).value == "#CC0000"
    dyn = r.resolve_string_value("d", "targetingStringFlag", YELLOW)
    assert (dyn.value, dyn.reason) == ("my-string", TARGETING_MATCH_REASON)


def test_resolve_numbers():
    r = make_resolver()
    assert r.resolve_float_value("d", "staticFloatFlag", None).value == 1.0
    assert r.resolve_float_value("d", "targetingFloatFlag", YELLOW).value == 100.0
    assert r.resolve_int_value("d", "staticIntFlag", None).value == 1
    dyn = r.resolve_int_value("d", "targetingNumberFlag", YELLOW)
    assert (dyn.value, dyn.reason) == (100, TARGETING_MATCH_REASON)


def test_resolve_object():
    r = make_resolver()
    assert r.resolve_object_value("d", "staticObjectFlag", None).value == {"abc": 123}
    dyn = r.resolve_object_value("d", "targetingObjectFlag", YELLOW)
    assert (dyn.value, dyn.reason) == ({"key": True}, TARGETING_MATCH_REASON)
    with pytest.raises(EvaluationError) as info:
        r.resolve_object_value("d", "staticBoolFlag", None)
    assert info.value.code == TYPE_MISMATCH_ERROR_CODE


@pytest.mark.parametrize("key,code", [
    ("staticBoolFlag", None), ("staticObjectFlag", None),
    ("missingFlag", FLAG_NOT_FOUND_ERROR_CODE), ("disabledFlag", FLAG_DISABLED_ERROR_CODE),
])
def test_resolve_as_any(key, code):
    result = make_resolver().resolve_as_any_value("", key, None)
    if code is None:
        assert result.error is None and result.reason == STATIC_REASON
    else:
        assert result.reason == ERROR_REASON and result.error.code == code


@pytest.mark.parametrize("ctx", [{}, YELLOW])
def test_resolve_all_matches_single(ctx):
    r = make_resolver()
    values, meta = r.resolve_all_values("default", ctx)
    assert meta == {"flagSetId": "testSetId", "version": "v33"}
    assert "disabledFlag" not in {v.flag_key for v in values}
    assert len(values) == 11
    for val in values:
        assert val.error is None
        single = r.resolve_as_any_value("default", val.flag_key, ctx)
        assert single.value == val.value and single.reason == val.reason


@pytest.mark.parametrize("key,meta", [
    ("staticBoolFlag", {"flagSetId": "testSetId", "version": "v33"}),
    ("metadataFlag", {"flagSetId": "testSetId", "version": "v66"}),
])
def test_metadata(key, meta):
    r = make_resolver()
    assert r.resolve_boolean_value("d", key, None).metadata == meta
    values, _ = r.resolve_all_values("d", None)
    assert next(v for v in values if v.flag_key == key).metadata == meta


def _flag(extra):
    body = {"state": "ENABLED", "variants": {"on": True, "off": False}}
    body.update(extra)
    return json.dumps({"flags": {"validFlag": body}})


TARGET = {"if": [{"==": [{"var": ["key"]}, "value"]}, "on"]}


@pytest.mark.parametrize("config", [
    _flag({"defaultVariant": None}), _flag({}),
    _flag({"defaultVariant": None, "targeting": TARGET}), _flag({"targeting": TARGET}),
])
def test_missing_default_variant(config):
    result = make_resolver(config).resolve_as_any_value("", "validFlag", None)
    assert result.reason == ERROR_REASON
    assert result.error.code == FLAG_NOT_FOUND_ERROR_CODE


def test_invalid_default_variant_rejected():
    config = json.dumps({"flags": {"foo": {"state": "ENABLED", "variants": {"black": "#000000"},
                                           "defaultVariant": "yellow"}}})
    with pytest.raises(ValueError, match="yellow"):
        config_to_flag_definition(LOG, config)


def test_validate_default_variants_accepts_valid():
    definition = Definition.from_dict(json.loads(_flag({"defaultVariant": "on"})))
    validate_default_variants(definition)
    assert definition.flags["validFlag"].default_variant == "on"


def _with_evaluator(evaluator):
    return json.dumps({
        "flags": {"fibAlgo": {
            "variants": {"recursive": "recursive", "binet": "binet"},
            "defaultVariant": "recursive", "state": "ENABLED",
            "targeting": {"if": [{"$ref": "emailWithFaas"}, "binet", None]},
        }},
        "$evaluators": {"emailWithFaas": evaluator},
    }, indent=2)


def test_evaluators_are_transposed():
    definition = config_to_flag_definition(LOG, _with_evaluator({"in": ["@faas.com", {"var": ["email"]}]}))
    assert definition.flags["fibAlgo"].targeting == {
        "if": [{"in": ["@faas.com", {"var": ["email"]}]}, "binet", None]
    }


@pytest.mark.parametrize("evaluator", ["", "foo"])
def test_bad_evaluators_raise(evaluator):
    with pytest.raises(ValueError):
        config_to_flag_definition(LOG, _with_evaluator(evaluator))


def test_transpose_without_evaluators_is_identity():
    assert transpose_evaluators('{"flags": {}}') == '{"flags": {}}'


def _single(targeting, variants=None):
    return json.dumps({"flags": {"f": {
        "state": "ENABLED", "variants": variants or {"true": True, "false": False},
        "defaultVariant": "false", "targeting": targeting,
    }}})


def test_flag_key_in_context():
    r = make_resolver(_single({"==": [{"var": "$flagd.flagKey"}, "f"]}))
    result = r.resolve_boolean_value("default", "f", None)
    assert (result.value, result.variant, result.reason) == (True, "true", TARGETING_MATCH_REASON)


def test_timestamp_in_context():
    r = make_resolver(_single({"<": [1696904426, {"var": "$flagd.timestamp"}]}))
    result = r.resolve_boolean_value("default", "f", None)
    assert (result.value, result.variant) == (True, "true")


def test_missing_variant_is_parse_error():
    r = make_resolver(_single({"if": [True, "buz", "baz"]}))
    with pytest.raises(EvaluationError) as info:
        r.resolve_boolean_value("default", "f", None)
    assert info.value.code == PARSE_ERROR_CODE


def test_null_falls_back_to_default():
    r = make_resolver(_single({"if": [True, None, "baz"]}))
    result = r.resolve_boolean_value("default", "f", None)
    assert (result.value, result.variant, result.reason) == (False, "false", DEFAULT_REASON)


def test_boolean_result_maps_to_variant_name():
    r = make_resolver(_single({"if": [True, True, False]}, {"false": 1, "true": 2}))
    result = r.resolve_int_value("default", "f", None)
    assert (result.value, result.variant, result.reason) == (2, "true", TARGETING_MATCH_REASON)