import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError

import app.db.base  # noqa: F401
from app.db.session import SessionLocal
from app.core.clock import system_clock
from app.core.errors import StorageError
from app.services.activity_status_service import sweep_once

logger = logging.getLogger(__name__)


def sweep_activity_statuses(session_factory=SessionLocal, clock=system_clock) -> dict:
    db: Session = session_factory()
    try:
        try:
            changes = sweep_once(db, clock=clock)
        except StorageError as e:
            if isinstance(e.__cause__, ProgrammingError):
                # DB not migrated yet; don't crash the worker.
                return {"skipped": True, "reason": "missing_tables"}
            logger.error("activity sweep skipped this tick: %s", e)
            return {"skipped": True, "reason": "storage_error"}
        return {
            "changed": len(changes),
            "changes": [
                {"activityId": c.activity_id, "from": c.old_status.value, "to": c.new_status.value}
                for c in changes
            ],
        }
    finally:
        db.close()
