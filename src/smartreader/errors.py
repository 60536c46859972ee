from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    UPSTREAM_FETCH_FAILED = "UPSTREAM_FETCH_FAILED"
    URL_NOT_ALLOWED = "URL_NOT_ALLOWED"
    EMPTY_EXTRACTION = "EMPTY_EXTRACTION"
    MODEL_REJECTED = "MODEL_REJECTED"
    RESPONSE_PARSE_FAILED = "RESPONSE_PARSE_FAILED"
    CONFIGURATION_MISSING = "CONFIGURATION_MISSING"


class SmartReaderError(Exception):
    """Raised by pipeline stages for all expected failure conditions.

    Caught by server.py and rendered by the failure reporter. Pipeline stages
    let it propagate so the reader sees the diagnostic page with the prompt
    and raw model output.
    """

    http_status: int = 500

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class UpstreamFetchError(SmartReaderError):
    """Source page, feed or image could not be fetched."""

    http_status = 502

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.UPSTREAM_FETCH_FAILED,
        suggestion: str = "The source site may be temporarily unavailable.",
        recoverable: bool = True,
        status_code: int | None = None,
    ) -> None:
        super().__init__(code, message, suggestion, recoverable)
        self.status_code = status_code


class EmptyExtractionError(SmartReaderError):
    """The page parsed fine but nothing worth summarizing was found."""

    http_status = 422

    def __init__(self, message: str = "Zero Content Extracted") -> None:
        super().__init__(
            ErrorCode.EMPTY_EXTRACTION,
            message,
            "The page may be rendered client-side or behind a paywall.",
            recoverable=False,
        )


class ModelRejectionError(SmartReaderError):
    """The model endpoint produced no usable candidate (safety block, quota)."""

    http_status = 502

    def __init__(self, message: str, *, raw_response: str | None = None) -> None:
        super().__init__(
            ErrorCode.MODEL_REJECTED,
            message,
            "The model may have blocked the content or the quota is exhausted.",
            recoverable=True,
        )
        self.raw_response = raw_response


class ResponseParseError(SmartReaderError):
    """Model text did not contain a structured answer in the expected shape."""

    http_status = 502

    def __init__(self, message: str, *, raw_response: str | None = None) -> None:
        super().__init__(
            ErrorCode.RESPONSE_PARSE_FAILED,
            message,
            "The model ignored the output schema. Retrying usually helps.",
            recoverable=True,
        )
        self.raw_response = raw_response


class ConfigurationError(SmartReaderError):
    """A required credential or setting is missing."""

    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(
            ErrorCode.CONFIGURATION_MISSING,
            message,
            "Set the missing value in the environment or smartreader.yaml.",
            recoverable=False,
        )
