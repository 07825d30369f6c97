"""
Gateway result classification.

Maps gateway status and error-code strings to a ``FailureCategory``.
Anything unrecognised is NON_RETRIABLE.
"""

from .enums import FailureCategory

ERROR_CODE_CATEGORIES: dict[str, FailureCategory] = {
    "INSUFFICIENT_FUNDS": FailureCategory.DELAYED_RETRY,
    "DAILY_LIMIT_EXCEEDED": FailureCategory.DELAYED_RETRY,
    "TEMPORARILY_UNAVAILABLE": FailureCategory.DELAYED_RETRY,
    "CARD_DECLINED": FailureCategory.NON_RETRIABLE,
    "DO_NOT_HONOR": FailureCategory.NON_RETRIABLE,
    "STOLEN_CARD": FailureCategory.NON_RETRIABLE,
    "LOST_CARD": FailureCategory.NON_RETRIABLE,
    "INVALID_CARD": FailureCategory.NON_RETRIABLE,
    "INVALID_REQUEST": FailureCategory.NON_RETRIABLE,
    "FRAUD_SUSPECTED": FailureCategory.NON_RETRIABLE,
    "GATEWAY_TIMEOUT": FailureCategory.RETRIABLE,
    "NETWORK_ERROR": FailureCategory.RETRIABLE,
    "TIMEOUT": FailureCategory.RETRIABLE,
    "SERVICE_UNAVAILABLE": FailureCategory.RETRIABLE,
}

STATUS_CATEGORIES: dict[str, FailureCategory] = {
    "FAILED": FailureCategory.NON_RETRIABLE,
    "TIMEOUT": FailureCategory.RETRIABLE,
    "NETWORK_ERROR": FailureCategory.RETRIABLE,
    "SERVICE_UNAVAILABLE": FailureCategory.RETRIABLE,
    "PROCESSING": FailureCategory.RETRIABLE,
    "PENDING": FailureCategory.RETRIABLE,
}

# Error code reported when the gateway call itself times out
GATEWAY_TIMEOUT_CODE = "GATEWAY_TIMEOUT"


def classify_gateway_failure(
    status_code: str | None = None, error_code: str | None = None
) -> FailureCategory:
    """A recognised error code wins over the status; the default is NON_RETRIABLE."""
    code = (error_code or "").strip().upper()
    if code in ERROR_CODE_CATEGORIES:
        return ERROR_CODE_CATEGORIES[code]

    status = (status_code or "").strip().upper()
    return STATUS_CATEGORIES.get(status, FailureCategory.NON_RETRIABLE)


def classify_failure_message(message: str | None) -> FailureCategory:
    """Best-effort classification of free-text gateway messages."""
    text = (message or "").lower()
    if not text:
        return FailureCategory.NON_RETRIABLE
    if "timeout" in text or "network" in text:
        return FailureCategory.RETRIABLE
    if "insufficient funds" in text or "balance" in text:
        return FailureCategory.DELAYED_RETRY
    return FailureCategory.NON_RETRIABLE
