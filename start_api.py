#!/usr/bin/env python3
"""
Wait for the DB, run migrations (same DATABASE_URL as the app), seed, then exec uvicorn.
"""
import os
import sys

from alembic import command
from alembic.config import Config

from app.core.config import settings
from app.core.logging_config import configure_logging


def main() -> None:
    configure_logging()

    if settings.DATABASE_URL.startswith("postgresql"):
        from wait_for_db import wait_for_postgres
        wait_for_postgres(settings.DATABASE_URL, int(os.getenv("DB_WAIT_TIMEOUT", "60")))

    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    command.upgrade(alembic_cfg, "head")

    # Seed through a session opened after migrations so tables exist.
    from app.db.session import SessionLocal
    from app.seed import run as run_seed
    run_seed(SessionLocal())

    os.execv(
        sys.executable,
        [sys.executable, "-m", "uvicorn", "app.main:app", "--host", "0.0.0.0", "--port", os.getenv("PORT", "8000")],
    )


if __name__ == "__main__":
    main()
