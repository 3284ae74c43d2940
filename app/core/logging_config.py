import logging

from app.core.config import settings

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once per process (API and Celery worker)."""
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
