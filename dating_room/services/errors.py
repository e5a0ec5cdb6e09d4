"""
Errors raised by the game services.

Every error carries a short ``error_code`` and a message that can be shown
to the player as is. Handlers catch ``GameError`` and reply with the message;
raising one never leaves a session or a wallet half-changed.
"""

from typing import Optional


class GameError(Exception):
    """Base class for all player-facing game errors."""

    error_code: str = "GAME_ERROR"
    default_message: str = "Something went wrong with that game."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --- Families ---

class ValidationError(GameError):
    """Malformed input: bad coordinate, unknown choice, bad amount."""
    error_code = "VALIDATION"
    default_message = "That input doesn't look right."


class StateConflictError(GameError):
    """The action is valid in general but not in the session's current state."""
    error_code = "STATE_CONFLICT"
    default_message = "You can't do that right now."


class AuthorizationError(GameError):
    """The acting user is not allowed to act on this session."""
    error_code = "AUTHORIZATION"
    default_message = "This game isn't yours."


class ResourceError(GameError):
    """Not enough coins."""
    error_code = "RESOURCE"
    default_message = "You don't have enough coins."


# --- Validation ---

class InvalidStake(ValidationError):
    error_code = "INVALID_STAKE"
    default_message = "The bet must be a positive whole number."


class SelfChallenge(ValidationError):
    error_code = "SELF_CHALLENGE"
    default_message = "You can't challenge yourself."


class InvalidChoice(ValidationError):
    error_code = "INVALID_CHOICE"
    default_message = "Choose rock, paper or scissors."


class InvalidCoordinate(ValidationError):
    error_code = "INVALID_COORDINATE"
    default_message = "Coordinates look like A1 (rows A-E, columns 1-5)."


class InvalidCoordinateCount(ValidationError):
    error_code = "INVALID_COORDINATE_COUNT"
    default_message = "Wrong number of ships."


class DuplicateCoordinate(ValidationError):
    error_code = "DUPLICATE_COORDINATE"
    default_message = "Every ship needs its own square."


# --- State conflicts ---

class SessionNotFound(StateConflictError):
    error_code = "NOT_FOUND"
    default_message = "That game doesn't exist anymore."


class DuplicateSessionId(StateConflictError):
    error_code = "DUPLICATE_SESSION"
    default_message = "A game with that id already exists."


class AlreadyResolved(StateConflictError):
    error_code = "ALREADY_RESOLVED"
    default_message = "This challenge is no longer open."


class ParticipantBusy(StateConflictError):
    error_code = "PARTICIPANT_BUSY"
    default_message = "One of you is already in a game of this kind."


class NotYourTurn(StateConflictError):
    error_code = "NOT_YOUR_TURN"
    default_message = "It's not your turn."


class AlreadyTargeted(StateConflictError):
    error_code = "ALREADY_TARGETED"
    default_message = "You already fired at that square."


class AlreadyPlaced(StateConflictError):
    error_code = "ALREADY_PLACED"
    default_message = "Your ships are already placed."


class AlreadyChose(StateConflictError):
    error_code = "ALREADY_CHOSE"
    default_message = "You already picked. Waiting for your opponent."


# --- Authorization ---

class NotRecipient(AuthorizationError):
    error_code = "NOT_RECIPIENT"
    default_message = "This challenge isn't for you."


class NotParticipant(AuthorizationError):
    error_code = "NOT_PARTICIPANT"
    default_message = "You're not playing in this game."


# --- Resources ---

class InsufficientFunds(ResourceError):
    error_code = "INSUFFICIENT_FUNDS"
    default_message = "You don't have enough coins."
