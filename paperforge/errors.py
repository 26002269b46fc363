"""Error types shared across PaperForge.

Library code raises these; only the API layer turns them into HTTP responses.
"""

from __future__ import annotations


class PaperForgeError(Exception):
    """Base class for errors that carry an HTTP status and a UI-facing kind."""

    http_status: int = 500
    kind: str = "server_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PaperForgeError):
    http_status = 400
    kind = "invalid_request"


class AuthError(PaperForgeError):
    http_status = 401
    kind = "auth_required"


class NotFoundError(PaperForgeError):
    http_status = 404
    kind = "not_found"


class GenerationTimeoutError(PaperForgeError):
    """The upstream LLM call exceeded its time budget."""

    http_status = 504
    kind = "timeout"


class LLMConfigurationError(PaperForgeError):
    """No API key (or provider) is configured for the requested task."""


class UpstreamError(PaperForgeError):
    """The LLM provider returned an error."""


class ResponseParseError(PaperForgeError):
    """The LLM answered, but not with a usable paper."""
