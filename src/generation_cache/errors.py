"""Error taxonomy for the generation cache.

- ValidationError: malformed or missing request fields. Never retried.
- ProcessingError: conversation state store degradation. Logged, and
  generation continues without a continuation token.
- GenerationError: upstream generator failure or an unparsable /
  schema-invalid payload. Nothing is written to the cache.

Every error carries observability context (fingerprint, subject id,
request type, stage) but never prompt content.
"""

from typing import Any


class GenerationCacheError(Exception):
    """Base class for all errors raised by this package."""

    def __init__(
        self,
        message: str,
        *,
        fingerprint: str | None = None,
        subject_id: str | None = None,
        request_type: str | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.fingerprint = fingerprint
        self.subject_id = subject_id
        self.request_type = request_type
        self.stage = stage

    @property
    def context(self) -> dict[str, Any]:
        """Non-empty context fields, suitable for structured logging."""
        fields = {
            "fingerprint": self.fingerprint,
            "subject_id": self.subject_id,
            "request_type": self.request_type,
            "stage": self.stage,
        }
        return {key: value for key, value in fields.items() if value is not None}


class ValidationError(GenerationCacheError):
    """Raised when a request is malformed or misses required fields."""


class ProcessingError(GenerationCacheError):
    """Raised when the conversation state store is unavailable or fails."""


class GenerationError(GenerationCacheError):
    """Raised when the generator fails or returns an invalid payload."""
