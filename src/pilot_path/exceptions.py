"""
Exception hierarchy for the PilotPath engine.

- PilotPathError: base class for every expected failure
- ContentValidationError: malformed static content (rejected at load time)
- SubmissionRejectedError: invalid submission, nothing was changed
- ReviewUnavailableError: the external reviewer failed; week stays "submitted"
- MalformedReviewError: reviewer answered, but not in the expected shape
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from pilot_path.guardrails import GuardrailResult
    from pilot_path.models import ProgramProgress


class PilotPathError(Exception):
    """Base class for all known engine errors."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def get_user_message(self) -> str:
        if self.hint:
            return f"{self.message}\n💡 {self.hint}"
        return self.message


class ContentValidationError(PilotPathError):
    """Raised when a skill graph, program or use case fails load-time checks."""

    def __init__(self, message: str, result: Optional["GuardrailResult"] = None):
        super().__init__(message, hint="Fix the content definition before deploying it.")
        self.result = result


class SubmissionRejectedError(PilotPathError):
    """Raised when a week submission fails validation; no state was mutated."""

    def __init__(self, message: str, result: Optional["GuardrailResult"] = None):
        super().__init__(message, hint=None)
        self.result = result


class MalformedReviewError(PilotPathError):
    """The reviewer returned something that is not a valid review payload."""

    def __init__(self, message: str, raw: object = None):
        super().__init__(message, hint=None)
        self.raw = raw


class ReviewUnavailableError(PilotPathError):
    """
    Recoverable: the reviewer could not produce a verdict.
    ``progress`` holds the consistent state (week left at ``submitted``)
    so the caller can persist it and retry later.
    """

    def __init__(
        self,
        message: str,
        progress: Optional["ProgramProgress"] = None,
        week_no: Optional[int] = None,
    ):
        super().__init__(message, hint="Your submission is saved. Request the review again in a moment.")
        self.progress = progress
        self.week_no = week_no
