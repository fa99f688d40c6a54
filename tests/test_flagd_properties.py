import logging

import pytest

from flagdcore.flagd_properties import (
    FLAGD_PROPERTIES_KEY,
    FlagdProperties,
    get_flagd_properties,
    set_flagd_properties,
)
from flagdcore.logger import Logger

LOGGER_NAME = "flagdcore.tests.properties"


@pytest.fixture
def log():
    return Logger(logging.getLogger(LOGGER_NAME), False)


def test_round_trip(log):
    props = FlagdProperties(flag_key="headerColor", timestamp=1696904426)
    context = set_flagd_properties(log, {"email": "user @ example.com".replace(" ", "")}, props)
    assert get_flagd_properties(context) == props
    assert context["email"] == "[email]"


def test_original_context_is_not_mutated(log):
    original = {"color": "yellow"}
    set_flagd_properties(log, original, FlagdProperties(flag_key="f"))
    assert original == {"color": "yellow"}


def test_none_context(log):
    context = set_flagd_properties(log, None, FlagdProperties(flag_key="f", timestamp=3))
    assert list(context) == [FLAGD_PROPERTIES_KEY]
    assert context[FLAGD_PROPERTIES_KEY] == FlagdProperties(flag_key="f", timestamp=3).to_dict()


def test_overwrite_warns(log, caplog):
    caplog.set_level(logging.WARNING, logger=LOGGER_NAME)
    context = set_flagd_properties(log, {FLAGD_PROPERTIES_KEY: "old"}, FlagdProperties(flag_key="new"))
    messages = [r.getMessage() for r in caplog.records if r.name == LOGGER_NAME]
    assert messages == ["overwriting $flagd properties in the context"]
    assert get_flagd_properties(context).flag_key == "new"


def test_missing_properties():
    assert get_flagd_properties({"color": "yellow"}) is None


def test_non_object_properties():
    assert get_flagd_properties({FLAGD_PROPERTIES_KEY: "text"}) is None


def test_null_properties_give_defaults():
    assert get_flagd_properties({FLAGD_PROPERTIES_KEY: None}) == FlagdProperties()


def test_float_timestamp_accepted_when_integral():
    props = get_flagd_properties({FLAGD_PROPERTIES_KEY: {"flagKey": "f", "timestamp": 7.0}})
    assert props == FlagdProperties(flag_key="f", timestamp=7)


@pytest.mark.parametrize(
    "raw",
    [
        {"flagKey": "f", "timestamp": 1.5},
        {"flagKey": 3},
        {"timestamp": "now"},
        {"timestamp": True},
    ],
)
def test_malformed_properties(raw):
    assert get_flagd_properties({FLAGD_PROPERTIES_KEY: raw}) is None


def test_missing_fields_default():
    assert get_flagd_properties({FLAGD_PROPERTIES_KEY: {}}) == FlagdProperties()