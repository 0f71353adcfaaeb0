"""Classified analysis failures.

Every failure an analysis can produce is one of three kinds. The kind is kept for
logging and diagnostics; the user sees one generic message regardless of kind.
"""

from enum import Enum


class FailureKind(str, Enum):
    SERVICE_UNAVAILABLE = "service_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    INVALID_INPUT = "invalid_input"


class AnalysisError(Exception):
    """Base class for classified analysis failures."""

    kind: FailureKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class ServiceUnavailableError(AnalysisError):
    """Generation service unreachable, transport failure, timeout, or bad credentials."""

    kind = FailureKind.SERVICE_UNAVAILABLE


class MalformedResponseError(AnalysisError):
    """Service replied, but the payload does not match the response schema."""

    kind = FailureKind.MALFORMED_RESPONSE


class InvalidInputError(AnalysisError):
    """Supplied image payload is not decodable image data."""

    kind = FailureKind.INVALID_INPUT
