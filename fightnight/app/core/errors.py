"""
FightNight Error Hierarchy

Every failure the tournament core reports to a caller is a FightNightError.
The API layer renders them as JSON using `status_code` and `to_dict()`;
none of them is process-fatal.

Usage:
    from fightnight.app.core.errors import ConflictError

    raise ConflictError("Match already has a winner", context={"match_id": 7})
"""

from typing import Any, Dict, Optional

__all__ = [
    "ConflictError",
    "FightNightError",
    "InvalidChoiceError",
    "NotFoundError",
    "UnresolvableError",
    "ValidationError",
]


class FightNightError(Exception):
    """Base exception for all FightNight errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable description
        context: Identifiers the caller needs to act on the failure
    """
    code: str = "FIGHTNIGHT_ERROR"
    status_code: int = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationError(FightNightError):
    """Malformed input: bad bracket size, unsupported mode, mismatched field."""
    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidChoiceError(FightNightError):
    """The submitted winner is not one of the match's two fighters."""
    code = "INVALID_CHOICE"
    status_code = 400


class NotFoundError(FightNightError):
    """Unknown tournament, match, fight, player, game or character."""
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(FightNightError):
    """The stored state forbids the operation right now.

    Tournament full or already started, duplicate join, match already
    resolved, undo blocked, or a concurrent writer got there first.
    Safe to retry after re-reading state.
    """
    code = "CONFLICT"
    status_code = 409


class UnresolvableError(FightNightError):
    """A fighter slot depends on a match that has no result yet."""
    code = "UNRESOLVABLE"
    status_code = 409
