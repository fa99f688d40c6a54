"""Request and response payloads for the OFREP evaluation API."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from flagdcore.evaluator import AnyValue
from flagdcore.model import (
    FLAG_DISABLED_ERROR_CODE,
    FLAG_NOT_FOUND_ERROR_CODE,
    GENERAL_ERROR_CODE,
    INVALID_CONTEXT_CODE,
    PARSE_ERROR_CODE,
    Metadata,
)

_INVALID_CONTEXT_DETAILS = "Provider context is not valid"


def _copy_metadata(metadata: Optional[Metadata]) -> Optional[Metadata]:
    return None if metadata is None else copy.deepcopy(metadata)


@dataclass
class Request:
    """An evaluation request carrying the evaluation context."""

    context: Any = None


@dataclass
class EvaluationSuccess:
    """A successful single flag evaluation."""

    value: Any
    key: str
    reason: str
    variant: str
    metadata: Optional[Metadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": copy.deepcopy(self.value),
            "key": self.key,
            "reason": self.reason,
            "variant": self.variant,
            "metadata": _copy_metadata(self.metadata),
        }


@dataclass
class EvaluationFailure:
    """A failed single flag evaluation."""

    key: str
    error_code: str = ""
    error_details: str = ""
    metadata: Optional[Metadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "errorCode": self.error_code,
            "errorDetails": self.error_details,
            "metadata": _copy_metadata(self.metadata),
        }


Evaluation = Union[EvaluationSuccess, EvaluationFailure]


@dataclass
class BulkEvaluationResponse:
    """Results of evaluating every flag, with the flag set metadata."""

    flags: List[Evaluation] = field(default_factory=list)
    metadata: Optional[Metadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flags": [evaluation.to_dict() for evaluation in self.flags],
            "metadata": _copy_metadata(self.metadata),
        }


@dataclass
class BulkEvaluationError:
    """A failure of a bulk evaluation as a whole."""

    error_code: str
    error_details: str
    metadata: Optional[Metadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "errorCode": self.error_code,
            "errorDetails": self.error_details,
            "metadata": _copy_metadata(self.metadata),
        }


@dataclass
class InternalError:
    """An unexpected server-side failure."""

    error_details: str

    def to_dict(self) -> Dict[str, Any]:
        return {"errorDetails": self.error_details}


def success_response_from(result: AnyValue) -> EvaluationSuccess:
    """Build a success payload from a resolution."""
    return EvaluationSuccess(
        value=result.value,
        key=result.flag_key,
        reason=result.reason,
        variant=result.variant,
        metadata=result.metadata,
    )


def _error_code_of(result: AnyValue) -> str:
    error = result.error
    if error is None:
        raise ValueError(f"resolution of flag {result.flag_key!r} carries no error")
    return getattr(error, "code", str(error))


def evaluation_error_response_from(result: AnyValue) -> Tuple[int, EvaluationFailure]:
    """Map a failed resolution to an HTTP status and an error payload."""
    code = _error_code_of(result)
    payload = EvaluationFailure(key=result.flag_key, metadata=result.metadata)
    status = 400

    if code == FLAG_NOT_FOUND_ERROR_CODE:
        status = 404
        payload.error_code = FLAG_NOT_FOUND_ERROR_CODE
        payload.error_details = f"flag `{result.flag_key}` does not exist"
    elif code == FLAG_DISABLED_ERROR_CODE:
        status = 404
        payload.error_code = FLAG_NOT_FOUND_ERROR_CODE
        payload.error_details = f"flag `{result.flag_key}` is disabled"
    elif code == PARSE_ERROR_CODE:
        payload.error_code = PARSE_ERROR_CODE
        payload.error_details = f"error parsing the flag `{result.flag_key}`"
    else:
        payload.error_code = GENERAL_ERROR_CODE
        payload.error_details = "error processing the flag for evaluation"

    return status, payload


def bulk_evaluation_response_from(
    resolutions: Optional[Iterable[AnyValue]], metadata: Optional[Metadata]
) -> BulkEvaluationResponse:
    """Build a bulk response, turning each resolution into a success or an error payload."""
    evaluations: List[Evaluation] = []
    for resolution in resolutions or ():
        if resolution.error is not None:
            _, failure = evaluation_error_response_from(resolution)
            evaluations.append(failure)
        else:
            evaluations.append(success_response_from(resolution))
    return BulkEvaluationResponse(flags=evaluations, metadata=metadata)


def context_error_response_from(key: str) -> EvaluationFailure:
    """Error payload for a single evaluation with an invalid context."""
    return EvaluationFailure(
        key=key,
        error_code=INVALID_CONTEXT_CODE,
        error_details=_INVALID_CONTEXT_DETAILS,
    )


def bulk_evaluation_context_error() -> BulkEvaluationError:
    """Error payload for a bulk evaluation with an invalid context."""
    return BulkEvaluationError(
        error_code=INVALID_CONTEXT_CODE,
        error_details=_INVALID_CONTEXT_DETAILS,
    )


def bulk_evaluation_context_error_from(code: str, details: str) -> BulkEvaluationError:
    """Bulk error payload with the given code and details."""
    return BulkEvaluationError(error_code=code, error_details=details)