"""Block until Postgres accepts connections (used by start_api.py and container entrypoints)."""
import logging
import os
import time
from urllib.parse import urlparse

import psycopg2

logger = logging.getLogger("wait_for_db")


def wait_for_postgres(database_url: str, timeout_s: int = 60) -> None:
    # SQLAlchemy URL may carry a driver suffix (postgresql+psycopg2://)
    url = database_url.replace("postgresql+psycopg2://", "postgresql://").replace("postgres://", "postgresql://")
    p = urlparse(url)
    params = dict(
        host=p.hostname or "db",
        port=p.port or 5432,
        user=p.username or "tourismhub",
        password=p.password or "tourismhub",
        dbname=(p.path or "/tourismhub").lstrip("/") or "tourismhub",
    )
    logger.info("waiting for Postgres at %s:%s db=%s (timeout=%ss)", params["host"], params["port"], params["dbname"], timeout_s)
    start = time.time()
    while True:
        try:
            psycopg2.connect(**params).close()
            logger.info("Postgres is ready")
            return
        except psycopg2.OperationalError as e:
            if time.time() - start > timeout_s:
                logger.error("timed out waiting for Postgres: %s", e)
                raise
            time.sleep(1)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise SystemExit("DATABASE_URL is not set")
    wait_for_postgres(DATABASE_URL, int(os.getenv("DB_WAIT_TIMEOUT", "60")))
