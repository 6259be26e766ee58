"""ORM model for durable callback reminder jobs."""

from sqlalchemy import Column, DateTime, Index, Integer, String, func, text

from callbook.models.base import Base

JOB_PENDING = "pending"
JOB_FIRED = "fired"
JOB_CANCELLED = "cancelled"

JOB_STATES = (JOB_PENDING, JOB_FIRED, JOB_CANCELLED)


class ReminderJob(Base):
    """
    One scheduled callback notification for a call record.

    state: 'pending' -> 'fired' | 'cancelled'; both are terminal. record_id is not a
    foreign key so terminal rows outlive the record they reminded about.
    """

    __tablename__ = "reminder_jobs"
    __table_args__ = (
        # A record has at most one pending job.
        Index(
            "uq_reminder_jobs_pending_record",
            "record_id",
            unique=True,
            postgresql_where=text("state = 'pending'"),
            sqlite_where=text("state = 'pending'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(Integer, nullable=False, index=True)
    due_at = Column(DateTime(timezone=True), nullable=False)
    state = Column(String(16), nullable=False, default=JOB_PENDING, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    fired_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
