"""
Shared error handling for the Chat Relay service.

Pipeline stages report failures as ``Err`` values instead of raising, so the
HTTP boundary is the only place that turns an error kind into a status code.
Side routes raise ``RelayError`` subclasses directly and rely on the service
exception handler.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar, Union

from pydantic import BaseModel

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    code: str
    request_id: Optional[str] = None


class RelayError(Exception):
    """Base exception for Chat Relay errors."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message, code=self.code, request_id=request_id)


class MethodNotAllowed(RelayError):
    status_code = 405

    def __init__(self, method: str):
        super().__init__("METHOD_NOT_ALLOWED", "Method Not Allowed", {"method": method})


class MissingPrompt(RelayError):
    status_code = 400

    def __init__(self, message: str = 'Missing "prompt" parameter'):
        super().__init__("MISSING_PROMPT", message)


class InvalidEventsFormat(RelayError):
    status_code = 400

    def __init__(self, reason: str):
        super().__init__("INVALID_EVENTS_FORMAT", f'Invalid "events" format: {reason}')


class InvalidJsonBody(RelayError):
    status_code = 400

    def __init__(self, reason: str):
        super().__init__("INVALID_JSON_BODY", f"Invalid JSON body: {reason}")


class MissingParameter(RelayError):
    status_code = 400

    def __init__(self, name: str):
        super().__init__("MISSING_PARAMETER", f'Missing "{name}" parameter', {"parameter": name})


class SystemPromptUnconfigured(RelayError):
    status_code = 500

    def __init__(self):
        super().__init__("SYSTEM_PROMPT_UNCONFIGURED", "System prompt not configured")


class ServerConfigurationError(RelayError):
    status_code = 500

    def __init__(self, message: str = "Server configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVER_CONFIGURATION_ERROR", message, details)


class TranslatorInitFailed(RelayError):
    status_code = 500

    def __init__(self, reason: str):
        super().__init__(
            "TRANSLATOR_INIT_FAILED",
            "Failed to initialize translator",
            {"reason": reason},
        )


class GatewayError(RelayError):
    """Model gateway failure; the status code mirrors the upstream one."""

    def __init__(self, status_code: int, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("GATEWAY_ERROR", message, details, status_code=status_code)


class SpeechServiceError(RelayError):
    """Speech provider failure; the status code mirrors the upstream one."""

    def __init__(self, status_code: int, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("SPEECH_SERVICE_ERROR", message, details, status_code=status_code)


class ProcessingFailed(RelayError):
    status_code = 500

    def __init__(self, reason: str):
        super().__init__("PROCESSING_FAILED", f"Failed to process request: {reason}")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: RelayError

    @property
    def kind(self) -> str:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def status_code(self) -> int:
        return self.error.status_code


Result = Union[Ok[T], Err]
