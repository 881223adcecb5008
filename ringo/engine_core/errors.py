"""
Error taxonomy for the engine.

Rejections are recoverable: the reducer turns them into a failed
ActionResult and the state is left unchanged. InvariantViolation is the
one fatal error and is never caught inside the engine.
"""

from __future__ import annotations


class RingoError(Exception):
    """Base class for all engine errors."""


class Rejection(RingoError):
    """An intent or request that cannot be honoured in the current state."""
    code = "REJECTED"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidSelection(Rejection):
    """Non-contiguous run, empty value intersection or unresolved split."""
    code = "INVALID_SELECTION"


class IllegalBeat(Rejection):
    """Run does not beat the combo on the table."""
    code = "ILLEGAL_BEAT"


class WrongPhase(Rejection):
    code = "WRONG_PHASE"


class NotYourTurn(Rejection):
    code = "NOT_YOUR_TURN"


class NotCaptureOwner(Rejection):
    code = "NOT_CAPTURE_OWNER"


class OpportunityExpired(Rejection):
    """RINGO attempted after the offer window closed."""
    code = "OPPORTUNITY_EXPIRED"


class RoomFull(Rejection):
    code = "ROOM_FULL"


class NotFound(Rejection):
    code = "NOT_FOUND"


class InvariantViolation(RingoError):
    """
    The game state broke one of its invariants (e.g. a duplicated card id).

    Indicates a logic defect. The affected game must be aborted.
    """
    code = "INVARIANT_VIOLATION"


REJECTIONS = {
    cls.code: cls
    for cls in (
        InvalidSelection,
        IllegalBeat,
        WrongPhase,
        NotYourTurn,
        NotCaptureOwner,
        OpportunityExpired,
        RoomFull,
        NotFound,
    )
}


def rejection_for(code: str, message: str, details: dict | None = None) -> Rejection:
    """Rebuild the typed rejection behind a failed ActionResult."""
    return REJECTIONS.get(code, Rejection)(message, details)
