"""Client-facing error taxonomy for coordinator operations."""

from __future__ import annotations


class CoordinatorError(Exception):
    """Base error reported to the originating session as ``error{message}``."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(CoordinatorError):
    default_message = "Invalid token"


class NotAuthorized(CoordinatorError):
    default_message = "Not authenticated"


class AlreadyInRoom(CoordinatorError):
    default_message = "You are already in a room. Leave it first."


class RoomNotFound(CoordinatorError):
    default_message = "Room not found. Please check the game code."


class PasswordRequired(CoordinatorError):
    default_message = "Password required"


class RoomFull(CoordinatorError):
    default_message = "Room is full"


class DuplicateAccountInRoom(CoordinatorError):
    default_message = "This account is already in this room."


class GenerationExhausted(CoordinatorError):
    default_message = "Failed to generate unique room code. Please try again."


class InvalidMessage(CoordinatorError):
    default_message = "Invalid message"


INTERNAL_ERROR_MESSAGE = "Internal server error"
