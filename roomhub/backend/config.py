"""Configuration helpers for coordinator runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class CoordinatorSettings:
    server_salt: str
    token_secret: str
    database_url: str | None
    host: str
    port: int
    store_timeout_seconds: float
    host_grace_seconds: float
    max_players_limit: int
    log_level: str
    log_file: str | None


def load_settings() -> CoordinatorSettings:
    port_raw = os.getenv("ROOMHUB_PORT", "8000")
    return CoordinatorSettings(
        server_salt=os.getenv("ROOMHUB_SERVER_SALT", "dev-salt"),
        token_secret=os.getenv("ROOMHUB_TOKEN_SECRET", "dev-secret"),
        database_url=os.getenv("ROOMHUB_DATABASE_URL"),
        host=os.getenv("ROOMHUB_HOST", "127.0.0.1"),
        port=int(port_raw),
        store_timeout_seconds=float(os.getenv("ROOMHUB_STORE_TIMEOUT_SECONDS", "5.0")),
        host_grace_seconds=float(os.getenv("ROOMHUB_HOST_GRACE_SECONDS", "30.0")),
        max_players_limit=int(os.getenv("ROOMHUB_MAX_PLAYERS_LIMIT", "50")),
        log_level=os.getenv("ROOMHUB_LOG_LEVEL", "INFO"),
        log_file=os.getenv("ROOMHUB_LOG_FILE"),
    )
