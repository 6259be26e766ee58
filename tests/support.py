"""Shared helpers for tests: throwaway SQLite databases, users, callers and a recording sink."""

import os
import shutil
import tempfile
from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from callbook.core.security import hash_password
from callbook.models import Base, CallRecord, User
from callbook.schemas.auth import CurrentUser
from callbook.schemas.reminders import CallbackNotification

DEFAULT_PASSWORD = "password123"


class TempDatabase:
    """A file-backed SQLite database (shared across threads) with all tables created."""

    def __init__(self) -> None:
        self.dir = tempfile.mkdtemp(prefix="callbook-db-")
        url = f"sqlite:///{os.path.join(self.dir, 'test.db')}"
        self.engine = create_engine(url, connect_args={"check_same_thread": False})
        Base.metadata.create_all(self.engine)
        # Rows handed to tests stay readable after their session commits or closes.
        self.session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    def close(self) -> None:
        self.engine.dispose()
        shutil.rmtree(self.dir, ignore_errors=True)


def add_user(
    session: Session, username: str, role: str = "agent", password: str = DEFAULT_PASSWORD
) -> User:
    user = User(username=username, password_hash=hash_password(password), role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def add_record(session: Session, owner: User, **overrides: object) -> CallRecord:
    """Insert a record directly, bypassing the store (no reminder side effects)."""
    values = {
        "first_name": "Ana",
        "last_name": "Rojas",
        "principal_phone": "(555) 123-4567",
        "alternative_phone": "555-987-6543",
        "sale_type": "fiber",
        "sale_date": date(2026, 10, 1),
    }
    values.update(overrides)
    record = CallRecord(owner_id=owner.id, **values)
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def caller(user: User) -> CurrentUser:
    return CurrentUser(id=user.id, username=user.username, role=user.role)


class RecordingSink:
    """Notification sink that remembers every delivery; optionally fails after recording."""

    def __init__(self, fail: bool = False) -> None:
        self.delivered: list[CallbackNotification] = []
        self.fail = fail

    async def deliver(self, notification: CallbackNotification) -> None:
        self.delivered.append(notification)
        if self.fail:
            raise RuntimeError("sink unavailable")
