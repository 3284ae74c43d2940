import logging
import uuid

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

import app.db.base  # noqa: F401
from app.db.session import SessionLocal
from app.models.category import Category
from app.models.enums import UserRole
from app.models.user import User

logger = logging.getLogger(__name__)

CATEGORIES = [
    ("Adventure", "Hiking, rafting, climbing"),
    ("Culture", "Museums, city walks, heritage sites"),
    ("Food & Drink", "Tastings, cooking classes, market tours"),
    ("Nature", "Parks, wildlife, boat trips"),
]


def ensure_user(db: Session, email: str, role: UserRole, name: str):
    u = db.query(User).filter(User.email == email).first()
    if u:
        return u
    u = User(id=str(uuid.uuid4()), email=email, full_name=name, role=role, is_active=True)
    db.add(u)
    db.commit()
    return u


def ensure_category(db: Session, name: str, description: str):
    c = db.query(Category).filter(Category.name == name).first()
    if c:
        return c
    c = Category(id=str(uuid.uuid4()), name=name, description=description)
    db.add(c)
    db.commit()
    return c


def run(db=None):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except ProgrammingError:
            db.rollback()
            logger.warning("users table not found yet; skipping seed (run alembic upgrade head)")
            return

        ensure_user(db, "admin@tourismhub.local", UserRole.ADMIN, "Admin")
        for name, description in CATEGORIES:
            ensure_category(db, name, description)
    finally:
        db.close()


if __name__ == "__main__":
    run()
