"""Errors raised by the game session client.

Each error names the remote operation that did not complete. None of them
carry server detail beyond the failing HTTP status.
"""
from __future__ import annotations

from typing import Dict, Optional, Type

from suspects.engine.models import ErrorMessage


class SessionError(Exception):
    """Base class: the named remote operation did not complete successfully."""

    default_message = "Remote operation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        operation: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        text = message or self.default_message
        if status_code is not None:
            text = f"{text} (HTTP {status_code})"
        super().__init__(text)


class SessionCreationError(SessionError):
    default_message = "Failed to create new game"


class FetchError(SessionError):
    default_message = "Failed to fetch game"


class RoundAdvanceError(SessionError):
    default_message = "Failed to fetch next round"


class AnswerMissingError(SessionError):
    default_message = "Generated answer is empty"


class RoundMissingError(AnswerMissingError):
    """No round to answer; catching ``AnswerMissingError`` covers this case too."""

    default_message = "Last round not found in game"


class InvestigationAdvanceError(SessionError):
    default_message = "Failed to fetch next investigation"


class EliminationError(SessionError):
    default_message = "Failed to eliminate suspect"


class ScoresFetchError(SessionError):
    default_message = "Failed to fetch scores"


class ScoreSaveError(SessionError):
    default_message = "Failed to save score"


class ModelsFetchError(SessionError):
    default_message = "Failed to fetch models"


class ServicesFetchError(SessionError):
    default_message = "Failed to fetch services"


class SchemaError(SessionError):
    """A success response whose body does not match the declared entity."""

    default_message = "Malformed server response"


# ── conversion for the UI error slot ────────────────────────────────

_TITLES: Dict[Type[SessionError], str] = {
    SessionCreationError: "Could not start a new game",
    FetchError: "Could not load your game",
    RoundAdvanceError: "Could not start the next round",
    RoundMissingError: "The round is missing",
    AnswerMissingError: "The witness stayed silent",
    InvestigationAdvanceError: "Could not open the next investigation",
    EliminationError: "Could not eliminate the suspect",
    ScoresFetchError: "Could not load the leaderboard",
    ScoreSaveError: "Could not save your score",
    ModelsFetchError: "Could not load the models",
    ServicesFetchError: "Could not load the services",
    SchemaError: "Unexpected server response",
}

# Errors after which retrying the same action makes sense
_RETRYABLE = (
    SessionCreationError,
    RoundAdvanceError,
    AnswerMissingError,
    FetchError,
    ScoresFetchError,
    ModelsFetchError,
)


def to_error_message(exc: BaseException) -> ErrorMessage:
    """Convert any exception into the shape shown by the UI error slot."""
    if isinstance(exc, SessionError):
        title = _TITLES.get(type(exc), "Something went wrong")
        actions = ["retry", "dismiss"] if isinstance(exc, _RETRYABLE) else ["dismiss"]
        return ErrorMessage(
            severity="error",
            title=title,
            message=str(exc),
            actions=actions,
        )
    return ErrorMessage(
        severity="error",
        title="Unexpected error",
        message=str(exc) or type(exc).__name__,
        actions=["dismiss"],
    )
