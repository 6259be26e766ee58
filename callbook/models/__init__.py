"""SQLAlchemy ORM models."""

from callbook.models.base import Base
from callbook.models.call_record import CallRecord
from callbook.models.reminder_job import ReminderJob
from callbook.models.user import User

__all__ = ["Base", "CallRecord", "ReminderJob", "User"]
