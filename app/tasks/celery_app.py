from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import worker_ready
from app.core.config import settings
from app.core.logging_config import configure_logging


def _redis_url_for_celery(url: str) -> str:
    """Celery requires ssl_cert_reqs for rediss:// (e.g. Upstash TLS)."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = ["CERT_NONE"]
        new_query = urlencode(qs, doseq=True)
        return urlunparse(parsed._replace(query=new_query))
    return url


configure_logging()

_redis_url = _redis_url_for_celery(settings.REDIS_URL)

celery = Celery(
    "tourismhub",
    broker=_redis_url,
    backend=_redis_url,
    include=["app.tasks.jobs"],
)

celery.conf.timezone = "UTC"

# Sweep once when the worker starts so statuses are fresh without waiting a full interval
@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    from app.tasks.jobs import sweep_activity_statuses
    sweep_activity_statuses.delay()

celery.conf.beat_schedule = {
    "sweep-activity-statuses": {
        "task": "app.tasks.jobs.sweep_activity_statuses",
        "schedule": float(settings.ACTIVITY_SWEEP_INTERVAL_SECONDS),
    },
}
