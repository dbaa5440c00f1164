"""Create the users and rooms tables in PostgreSQL."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Callable

from roomhub.backend.config import load_settings
from roomhub.backend.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).with_name("db_schema.sql")


def _psycopg_connect(database_url: str) -> Any:
    import psycopg

    return psycopg.connect(database_url)


def apply_schema(
    database_url: str,
    schema_path: Path = SCHEMA_PATH,
    connect: Callable[[str], Any] = _psycopg_connect,
) -> None:
    schema_sql = schema_path.read_text(encoding="utf-8")
    with connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
        conn.commit()
    logger.info(f"Applied {schema_path.name}")


def main(argv: list[str] | None = None) -> int:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Apply the room coordinator schema")
    parser.add_argument("--database-url", default=settings.database_url)
    args = parser.parse_args(argv)

    setup_logging(log_level=settings.log_level, log_file=settings.log_file)
    if not args.database_url:
        raise RuntimeError("ROOMHUB_DATABASE_URL or --database-url is required for migration")
    apply_schema(args.database_url)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
