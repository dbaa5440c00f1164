"""Backend package for the room coordinator."""

from .colors import Color, allocate
from .config import CoordinatorSettings, load_settings
from .coordinator import Coordinator
from .identity import IdentityGate, InMemoryUserDirectory, PostgresUserDirectory, create_user_directory
from .registry import RoomRegistry
from .security import decode_credential, generate_token, hash_token, issue_credential, verify_token
from .store import InMemoryRoomStore, PostgresRoomStore, RoomStore, create_store

__all__ = [
    "allocate",
    "Color",
    "Coordinator",
    "CoordinatorSettings",
    "create_store",
    "create_user_directory",
    "decode_credential",
    "generate_token",
    "hash_token",
    "IdentityGate",
    "InMemoryRoomStore",
    "InMemoryUserDirectory",
    "issue_credential",
    "load_settings",
    "PostgresRoomStore",
    "PostgresUserDirectory",
    "RoomRegistry",
    "RoomStore",
    "verify_token",
]
