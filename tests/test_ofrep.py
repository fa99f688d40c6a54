import json

import pytest

from flagdcore.evaluator import AnyValue
from flagdcore.model import (
    ERROR_REASON,
    FLAG_DISABLED_ERROR_CODE,
    FLAG_NOT_FOUND_ERROR_CODE,
    GENERAL_ERROR_CODE,
    INVALID_CONTEXT_CODE,
    PARSE_ERROR_CODE,
    STATIC_REASON,
    EvaluationError,
)
from flagdcore.ofrep import (
    BulkEvaluationError,
    EvaluationFailure,
    EvaluationSuccess,
    InternalError,
    Request,
    bulk_evaluation_context_error,
    bulk_evaluation_context_error_from,
    bulk_evaluation_response_from,
    context_error_response_from,
    evaluation_error_response_from,
    success_response_from,
)


def _compact(payload):
    return json.dumps(payload, separators=(",", ":"))


def test_success_result():
    value = AnyValue(False, "false", STATIC_REASON, "key", {"key": "value"}, None)
    success = success_response_from(value)
    assert success.key == "key"
    assert success.value is False
    assert success.variant == "false"
    assert success.reason == STATIC_REASON
    assert success.metadata == {"key": "value"}


def test_bulk_response_empty_input():
    response = bulk_evaluation_response_from(None, {})
    assert _compact(response.to_dict()) == '{"flags":[],"metadata":{}}'


def test_bulk_response_valid_values():
    inputs = [
        AnyValue(False, "false", STATIC_REASON, "key", {"key": "value"}, None),
        AnyValue(False, "false", ERROR_REASON, "errorFlag", {},
                 EvaluationError(FLAG_NOT_FOUND_ERROR_CODE)),
    ]
    response = bulk_evaluation_response_from(inputs, {})
    expected = (
        '{"flags":[{"value":false,"key":"key","reason":"STATIC","variant":"false",'
        '"metadata":{"key":"value"}},{"key":"errorFlag","errorCode":"FLAG_NOT_FOUND",'
        '"errorDetails":"flag `errorFlag` does not exist","metadata":{}}],"metadata":{}}'
    )
    assert _compact(response.to_dict()) == expected


@pytest.mark.parametrize(
    "model_error, status, code",
    [
        (PARSE_ERROR_CODE, 400, PARSE_ERROR_CODE),
        (FLAG_DISABLED_ERROR_CODE, 404, FLAG_NOT_FOUND_ERROR_CODE),
        (GENERAL_ERROR_CODE, 400, GENERAL_ERROR_CODE),
        (FLAG_NOT_FOUND_ERROR_CODE, 404, FLAG_NOT_FOUND_ERROR_CODE),
    ],
)
def test_error_status(model_error, status, code):
    result = AnyValue("value", "variant", ERROR_REASON, "key", {}, EvaluationError(model_error))
    got_status, failure = evaluation_error_response_from(result)
    assert got_status == status
    assert failure.error_code == code
    assert failure.key == "key"


def test_error_details_text():
    disabled = AnyValue(None, "", ERROR_REASON, "f", {}, EvaluationError(FLAG_DISABLED_ERROR_CODE))
    parse = AnyValue(None, "", ERROR_REASON, "f", {}, EvaluationError(PARSE_ERROR_CODE))
    other = AnyValue(None, "", ERROR_REASON, "f", {}, EvaluationError("TYPE_MISMATCH"))
    assert evaluation_error_response_from(disabled)[1].error_details == "flag `f` is disabled"
    assert evaluation_error_response_from(parse)[1].error_details == "error parsing the flag `f`"
    status, failure = evaluation_error_response_from(other)
    assert status == 400
    assert failure.error_code == GENERAL_ERROR_CODE
    assert failure.error_details == "error processing the flag for evaluation"


def test_error_response_without_error_raises():
    with pytest.raises(ValueError):
        evaluation_error_response_from(AnyValue(True, "on", STATIC_REASON, "k", {}, None))


def test_context_error_response():
    failure = context_error_response_from("myFlag")
    assert failure.to_dict() == {
        "key": "myFlag",
        "errorCode": INVALID_CONTEXT_CODE,
        "errorDetails": "Provider context is not valid",
        "metadata": None,
    }


def test_bulk_context_errors():
    assert bulk_evaluation_context_error() == BulkEvaluationError(
        INVALID_CONTEXT_CODE, "Provider context is not valid"
    )
    custom = bulk_evaluation_context_error_from("GENERAL", "broken")
    assert custom.to_dict() == {"errorCode": "GENERAL", "errorDetails": "broken", "metadata": None}


def test_payload_dicts():
    assert InternalError("boom").to_dict() == {"errorDetails": "boom"}
    success = EvaluationSuccess(1, "k", STATIC_REASON, "one", {"a": 1})
    assert list(success.to_dict()) == ["value", "key", "reason", "variant", "metadata"]
    failure = EvaluationFailure("k", "C", "D", {})
    assert list(failure.to_dict()) == ["key", "errorCode", "errorDetails", "metadata"]
    assert Request({"targetingKey": "user"}).context == {"targetingKey": "user"}
    assert Request().context is None