"""
Outcomes of a managed call.

Every call through the request lifecycle manager resolves to exactly one of
these values; none of them is raised. ``Cancelled`` and
``DuplicateSuppressed`` are silent no-ops for the caller, while
``BusinessFailure`` and ``FailedTerminal`` are shown to the user once.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Tuple

from ..types import OutcomeKind


FALLBACK_ERROR_MESSAGE = "An unexpected error occurred"


@dataclass(frozen=True)
class CallOutcome:
    """Base class for call outcomes"""
    kind: ClassVar[OutcomeKind]

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.SUCCEEDED

    @property
    def is_silent(self) -> bool:
        """Outcomes the caller must ignore rather than report"""
        return self.kind in (OutcomeKind.CANCELLED, OutcomeKind.DUPLICATE_SUPPRESSED)

    @property
    def is_user_facing(self) -> bool:
        return self.kind in (OutcomeKind.BUSINESS_FAILURE, OutcomeKind.FAILED_TERMINAL)

    @property
    def user_message(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class Succeeded(CallOutcome):
    payload: Any
    kind: ClassVar[OutcomeKind] = OutcomeKind.SUCCEEDED


@dataclass(frozen=True)
class BusinessFailure(CallOutcome):
    """Well-formed response whose success discriminator is false"""
    payload: Any
    message: Optional[str] = None
    kind: ClassVar[OutcomeKind] = OutcomeKind.BUSINESS_FAILURE

    @property
    def user_message(self) -> str:
        return self.message or FALLBACK_ERROR_MESSAGE


@dataclass(frozen=True)
class FailedTerminal(CallOutcome):
    """Transport failures exhausted every retry"""
    last_error: BaseException
    attempts: int
    kind: ClassVar[OutcomeKind] = OutcomeKind.FAILED_TERMINAL

    @property
    def user_message(self) -> str:
        return FALLBACK_ERROR_MESSAGE


@dataclass(frozen=True)
class Cancelled(CallOutcome):
    reason: Optional[str] = None
    kind: ClassVar[OutcomeKind] = OutcomeKind.CANCELLED


@dataclass(frozen=True)
class DuplicateSuppressed(CallOutcome):
    key: str
    kind: ClassVar[OutcomeKind] = OutcomeKind.DUPLICATE_SUPPRESSED


def extract_message(payload: Any) -> Optional[str]:
    """Human-readable message carried by a response payload, if any"""
    if isinstance(payload, Mapping):
        message = payload.get("message")
    else:
        message = getattr(payload, "message", None)

    if isinstance(message, str) and message.strip():
        return message
    return None


def classify_result(result: Any) -> Tuple[bool, Optional[str]]:
    """
    Read the success discriminator of an operation result.

    Results without a discriminator count as success.

    Returns:
        (succeeded, message)
    """
    if isinstance(result, Mapping):
        if "success" not in result:
            return True, None
        succeeded = bool(result["success"])
    else:
        discriminator = getattr(result, "success", None)
        if not isinstance(discriminator, bool):
            return True, None
        succeeded = discriminator

    return succeeded, None if succeeded else extract_message(result)
