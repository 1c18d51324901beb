"""IndexNow response code classification and human-readable messages."""

from __future__ import annotations

from enum import Enum

from indexnow_notifier.models import SubmissionStatus

SUCCESS_STATUS_CODES = frozenset({200, 202})
PERMANENT_FAILURE_STATUS_CODES = frozenset({400, 403, 422})
TRANSPORT_FAILURE_CODE = 0

_RESPONSE_MESSAGES: dict[int, str] = {
    200: "URL submitted successfully",
    202: "URL received, pending processing",
    400: "Bad Request - Invalid format",
    403: "Forbidden - API key not valid for this URL",
    422: "Unprocessable Entity - URLs do not belong to host",
    429: "Too Many Requests - Rate limited",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


class ResponseClass(str, Enum):
    """Delivery outcome family for an IndexNow response code."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    PERMANENT = "permanent"


def classify_response_code(code: int) -> ResponseClass:
    """Classify a response code; anything not success or permanent is retryable.

    Code 0 stands for a transport failure and is always retryable, as are 429,
    5xx and any unexpected code that is not explicitly permanent.
    """

    if code in SUCCESS_STATUS_CODES:
        return ResponseClass.SUCCESS
    if code in PERMANENT_FAILURE_STATUS_CODES:
        return ResponseClass.PERMANENT
    return ResponseClass.RETRYABLE


def is_permanent_failure(code: int) -> bool:
    return classify_response_code(code) is ResponseClass.PERMANENT


def is_retryable_failure(code: int) -> bool:
    return classify_response_code(code) is ResponseClass.RETRYABLE


def describe_response_code(code: int) -> str:
    """Return a short message for an IndexNow HTTP status code."""

    known_message = _RESPONSE_MESSAGES.get(code)
    if known_message is not None:
        return known_message
    if code >= 500:
        return f"Server Error (HTTP {code})"
    if code >= 400:
        return f"Client Error (HTTP {code})"
    return f"Unknown response (HTTP {code})"


def initial_status_for_code(code: int) -> SubmissionStatus:
    """Map a first-attempt response code onto the log status it produces."""

    response_class = classify_response_code(code)
    if response_class is ResponseClass.SUCCESS:
        return SubmissionStatus.SUCCESS
    if response_class is ResponseClass.PERMANENT:
        return SubmissionStatus.PERMANENT_FAIL
    return SubmissionStatus.FAILED


__all__ = [
    "PERMANENT_FAILURE_STATUS_CODES",
    "ResponseClass",
    "SUCCESS_STATUS_CODES",
    "TRANSPORT_FAILURE_CODE",
    "classify_response_code",
    "describe_response_code",
    "initial_status_for_code",
    "is_permanent_failure",
    "is_retryable_failure",
]
