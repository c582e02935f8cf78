"""Exception types raised by the provider adapters and the plan pipeline."""

from __future__ import annotations

from enum import Enum


class MicelionError(Exception):
    """Base class for all errors raised by this package."""


class ModelInvocationError(MicelionError):
    """The chat-completion provider failed or answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TranslationError(MicelionError):
    """The translation provider failed; never recovered by skipping translation."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PlanValidationError(MicelionError):
    """A decoded value does not match the Plan structure.

    Attributes:
        issues: List of (path, message) pairs, path in dotted form
            such as ``milestones.0.resources.1.type``.
    """

    def __init__(self, issues: list[tuple[str, str]]):
        self.issues = issues
        super().__init__(self._format(issues))

    @staticmethod
    def _format(issues: list[tuple[str, str]]) -> str:
        parts = [f"{path or '<root>'}: {message}" for path, message in issues]
        return "; ".join(parts)


class PlanErrorKind(str, Enum):
    """Closed set of reasons a generation can fail."""
    TRANSPORT_FAILURE = "transport_failure"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_OUTPUT = "malformed_output"
    SCHEMA_VIOLATION = "schema_violation"
    TRANSLATION_FAILURE = "translation_failure"


class PlanGenerationError(MicelionError):
    """User-facing failure of a plan generation (or chat) request.

    The message is safe to show to end users; the underlying exception is kept
    on ``cause`` (and chained as ``__cause__``) for diagnostics.
    """

    def __init__(
        self,
        message: str,
        kind: PlanErrorKind,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.cause = cause

    def __repr__(self) -> str:
        return f"PlanGenerationError(kind={self.kind.value!r}, message={self.message!r})"
