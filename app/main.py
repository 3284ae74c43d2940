from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import app.db.base  # noqa: F401
from app.core.config import settings
from app.core.logging_config import configure_logging
from app.db.session import SessionLocal
from app.api.v1.api import api_router
from app.services.sweep_scheduler import StatusSweepScheduler

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Celery beat is the default scheduler; this is for single-process deployments.
    sweeper = None
    if settings.RUN_INPROCESS_SWEEPER:
        sweeper = StatusSweepScheduler(SessionLocal, interval_seconds=settings.ACTIVITY_SWEEP_INTERVAL_SECONDS)
        sweeper.start()
    app.state.sweeper = sweeper
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.stop()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# CORS: use CORS_ORIGINS from env in production; default to localhost for dev
_default_origins = ["http://127.0.0.1:3000", "http://localhost:3000"]
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok"}
