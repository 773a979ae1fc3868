"""Translation call contract and the error taxonomy of the batch pipeline.

The pipeline treats "translate one string" as an opaque coroutine function supplied by the caller.
Failures raised from it are classified into a closed set of error kinds so that callers can branch
on the kind instead of parsing messages.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Awaitable, Callable

__all__: list[str] = [
    "ErrorKind",
    "MalformedResponseError",
    "NetworkFailureError",
    "TranslateExceptionError",
    "TranslateOne",
    "TranslationQuotaExceededError",
    "TranslationRateLimitError",
    "VendorRejectedError",
    "classify_error",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

type TranslateOne = Callable[[str], Awaitable[str]]


class ErrorKind(StrEnum):
    """Closed set of reasons a single translation can fail."""

    NETWORK_FAILURE = "network_failure"
    VENDOR_REJECTED = "vendor_rejected"
    QUOTA_EXCEEDED = "quota_exceeded"
    MALFORMED_RESPONSE = "malformed_response"


class TranslateExceptionError(Exception):
    """An error occurred during the translation process.

    Attributes:
        kind (ErrorKind): Classification of the failure.
    """

    default_kind: ErrorKind = ErrorKind.VENDOR_REJECTED

    def __init__(self, message: str = "", kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.kind: ErrorKind = kind if kind is not None else self.default_kind


class NetworkFailureError(TranslateExceptionError):
    """The service could not be reached or the connection failed."""

    default_kind = ErrorKind.NETWORK_FAILURE


class VendorRejectedError(TranslateExceptionError):
    """The service answered but refused the request."""

    default_kind = ErrorKind.VENDOR_REJECTED


class TranslationRateLimitError(VendorRejectedError):
    """The translation request was rate-limited by the service."""


class TranslationQuotaExceededError(TranslateExceptionError):
    """The translatable character quota has been exceeded."""

    default_kind = ErrorKind.QUOTA_EXCEEDED


class MalformedResponseError(TranslateExceptionError):
    """The service returned something that is not a translation."""

    default_kind = ErrorKind.MALFORMED_RESPONSE


def classify_error(err: BaseException) -> ErrorKind:
    """Map an exception raised by a translate-one call to an ErrorKind.

    Args:
        err (BaseException): Exception raised by the caller-supplied translation function.

    Returns:
        ErrorKind: The kind carried by pipeline errors; NETWORK_FAILURE for connection and timeout
        errors; VENDOR_REJECTED for anything else.
    """
    if isinstance(err, TranslateExceptionError):
        return err.kind
    if isinstance(err, (TimeoutError, OSError)):
        return ErrorKind.NETWORK_FAILURE
    logger.debug("Unclassified translation error %s treated as vendor rejection", type(err).__name__)
    return ErrorKind.VENDOR_REJECTED
