"""
Durable callback reminder engine.

Each reminder is a row in reminder_jobs moving pending -> fired or pending -> cancelled.
The row is the source of truth; the in-memory side is one asyncio task per pending
record that sleeps until the due time and then tries to fire. Firing is a conditional
UPDATE on state = 'pending', so of any number of concurrent fire or cancel attempts
exactly one transition wins and at most one notification is delivered.

On startup `start()` reloads every pending job: overdue ones fire immediately,
future ones are re-armed. A reminder scheduled before a restart is therefore
delivered late rather than lost.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from callbook.core.errors import InvalidScheduleError, SchedulerNotStartedError
from callbook.models import CallRecord, ReminderJob
from callbook.models.base import as_utc, utcnow
from callbook.models.reminder_job import JOB_CANCELLED, JOB_FIRED, JOB_PENDING
from callbook.schemas.reminders import CallbackNotification
from callbook.services.masking import mask_phone
from callbook.services.notifications import NotificationSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledReminder:
    """A persisted pending job, as needed to arm its wait."""

    job_id: int
    record_id: int
    due_at: datetime


@dataclass
class RecoveryReport:
    """What startup recovery found in storage."""

    rearmed: int = 0
    overdue: int = 0
    dropped: list[int] = field(default_factory=list)


class ReminderScheduler:
    """
    Schedules, cancels and fires callback reminders.

    schedule/cancel/arm/disarm are safe to call from worker threads (sync route
    handlers); the waits themselves live on the event loop that ran start().
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        sink: NotificationSink,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._sink = sink
        self._clock = clock
        self._loop: asyncio.AbstractEventLoop | None = None
        self._started = False
        # record_id -> (job_id, wait task); only touched on the loop thread
        self._waits: dict[int, tuple[int, asyncio.Task[None]]] = {}
        # waits that reached their due time and are firing
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._started

    def armed_records(self) -> set[int]:
        """Record ids that currently have a wait armed."""
        return set(self._waits)

    # ------------------------------------------------------------------ lifecycle

    async def start(self) -> RecoveryReport:
        """Run startup recovery and begin accepting operations. Call exactly once."""
        if self._started:
            raise RuntimeError("Reminder scheduler already started")
        self._loop = asyncio.get_running_loop()
        report, armable = await asyncio.to_thread(self._load_pending)
        now = self._clock()
        for reminder in armable:
            if reminder.due_at <= now:
                report.overdue += 1
            else:
                report.rearmed += 1
            self._arm(reminder)
        self._started = True
        logger.info(
            "Reminder scheduler started: rearmed=%s overdue=%s dropped=%s",
            report.rearmed,
            report.overdue,
            len(report.dropped),
        )
        return report

    async def stop(self) -> None:
        """
        Cancel every wait and let in-flight deliveries finish. Pending jobs stay
        in storage for the next start().
        """
        self._started = False
        tasks = [task for _, task in self._waits.values()]
        self._waits.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, *self._inflight, return_exceptions=True)
        logger.info("Reminder scheduler stopped: waits_cancelled=%s", len(tasks))

    def _ensure_started(self) -> None:
        if not self._started or self._loop is None:
            raise SchedulerNotStartedError(
                "Reminder scheduler must run recovery (start) before use"
            )

    def _load_pending(self) -> tuple[RecoveryReport, list[ScheduledReminder]]:
        report = RecoveryReport()
        armable: list[ScheduledReminder] = []
        with self._session_factory() as session:
            job_ids = session.scalars(
                select(ReminderJob.id)
                .where(ReminderJob.state == JOB_PENDING)
                .order_by(ReminderJob.id)
            ).all()
        # One session per job so a corrupt row cannot poison the others.
        for job_id in job_ids:
            try:
                with self._session_factory() as session:
                    job = session.get(ReminderJob, job_id)
                    due_at = as_utc(job.due_at) if job is not None else None
                    if due_at is None:
                        raise ValueError("pending job has no due time")
                    if session.get(CallRecord, job.record_id) is None:
                        raise ValueError(f"record {job.record_id} no longer exists")
                    armable.append(ScheduledReminder(job.id, job.record_id, due_at))
            except (SQLAlchemyError, ValueError, TypeError) as e:
                logger.error(
                    "Dropping unrecoverable reminder job %s: %s",
                    job_id,
                    e,
                    extra={"job_id": job_id},
                )
                self._drop(job_id)
                report.dropped.append(job_id)
        return report, armable

    def _drop(self, job_id: int) -> None:
        try:
            with self._session_factory() as session:
                session.execute(
                    update(ReminderJob)
                    .where(ReminderJob.id == job_id, ReminderJob.state == JOB_PENDING)
                    .values(state=JOB_CANCELLED, cancelled_at=self._clock())
                )
                session.commit()
        except SQLAlchemyError:
            logger.exception("Could not cancel unrecoverable reminder job %s", job_id)

    # ------------------------------------------------------------------ persistence

    def stage_schedule(
        self, session: Session, record_id: int, due_at: datetime | None
    ) -> ScheduledReminder:
        """
        Write a new pending job for the record into the caller's transaction,
        cancelling any existing pending job first. The caller commits, then arm()s.
        """
        self._ensure_started()
        due_at = as_utc(due_at)
        if due_at is None or due_at <= self._clock():
            raise InvalidScheduleError("Callback time must be in the future")
        self.stage_cancel(session, record_id)
        job = ReminderJob(record_id=record_id, due_at=due_at, state=JOB_PENDING)
        session.add(job)
        session.flush()
        return ScheduledReminder(job.id, record_id, due_at)

    def stage_cancel(self, session: Session, record_id: int) -> int:
        """Cancel the record's pending job in the caller's transaction; returns rows changed."""
        self._ensure_started()
        result = session.execute(
            update(ReminderJob)
            .where(ReminderJob.record_id == record_id, ReminderJob.state == JOB_PENDING)
            .values(state=JOB_CANCELLED, cancelled_at=self._clock())
        )
        return result.rowcount or 0

    def schedule(self, record_id: int, due_at: datetime) -> ScheduledReminder:
        """Persist a pending job for the record and arm its wait. Fails with InvalidScheduleError for past times."""
        with self._session_factory() as session:
            reminder = self.stage_schedule(session, record_id, due_at)
            session.commit()
        self.arm(reminder)
        logger.info(
            "Reminder scheduled",
            extra={
                "job_id": reminder.job_id,
                "record_id": record_id,
                "due_at": reminder.due_at.isoformat(),
            },
        )
        return reminder

    def cancel(self, record_id: int) -> bool:
        """Cancel the record's pending job, if any. Idempotent; returns True if a job was cancelled."""
        with self._session_factory() as session:
            cancelled = self.stage_cancel(session, record_id)
            session.commit()
        self.disarm(record_id)
        if cancelled:
            logger.info("Reminder cancelled", extra={"record_id": record_id})
        return cancelled > 0

    # ------------------------------------------------------------------ waits

    def arm(self, reminder: ScheduledReminder) -> None:
        """Start (or replace) the wait for a committed pending job."""
        self._ensure_started()
        self._call_on_loop(self._arm, reminder)

    def disarm(self, record_id: int) -> None:
        """Cancel the record's wait, if one is armed."""
        self._ensure_started()
        self._call_on_loop(self._disarm, record_id)

    def _call_on_loop(self, fn: Callable[..., None], *args: object) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            fn(*args)
        else:
            self._loop.call_soon_threadsafe(fn, *args)

    def _arm(self, reminder: ScheduledReminder) -> None:
        self._disarm(reminder.record_id)
        task = self._loop.create_task(self._wait_then_fire(reminder))
        self._waits[reminder.record_id] = (reminder.job_id, task)
        task.add_done_callback(lambda t, r=reminder: self._forget(r, t))

    def _disarm(self, record_id: int) -> None:
        entry = self._waits.pop(record_id, None)
        if entry is not None:
            entry[1].cancel()

    def _forget(self, reminder: ScheduledReminder, task: asyncio.Task[None]) -> None:
        entry = self._waits.get(reminder.record_id)
        if entry is not None and entry[1] is task:
            del self._waits[reminder.record_id]

    async def _wait_then_fire(self, reminder: ScheduledReminder) -> None:
        # Loop: the event loop may wake a sleep marginally before the wall-clock due time.
        while True:
            delay = (reminder.due_at - self._clock()).total_seconds()
            if delay <= 0:
                break
            await asyncio.sleep(delay)
        # Past this point the wait is no longer cancellable; the pending check decides.
        task = asyncio.current_task()
        self._forget(reminder, task)
        self._inflight.add(task)
        try:
            await self.fire(reminder.job_id)
        except SQLAlchemyError:
            logger.exception(
                "Reminder job %s could not be fired",
                reminder.job_id,
                extra={"job_id": reminder.job_id, "record_id": reminder.record_id},
            )
        finally:
            self._inflight.discard(task)

    # ------------------------------------------------------------------ firing

    async def fire(self, job_id: int) -> bool:
        """
        Move the job from pending to fired and deliver its notification.

        Returns False when another attempt already fired or cancelled the job.
        Delivery is best effort: a sink failure is logged and the job stays fired.
        """
        notification = await asyncio.to_thread(self._claim, job_id)
        if notification is None:
            return False
        try:
            await self._sink.deliver(notification)
        except Exception:
            logger.exception(
                "Reminder delivery failed; job stays fired",
                extra={"job_id": job_id, "record_id": notification.record_id},
            )
        else:
            logger.info(
                "Reminder delivered",
                extra={"job_id": job_id, "record_id": notification.record_id},
            )
        return True

    def _claim(self, job_id: int) -> CallbackNotification | None:
        now = self._clock()
        with self._session_factory() as session:
            result = session.execute(
                update(ReminderJob)
                .where(ReminderJob.id == job_id, ReminderJob.state == JOB_PENDING)
                .values(state=JOB_FIRED, fired_at=now)
            )
            if result.rowcount != 1:
                session.rollback()
                return None
            job = session.get(ReminderJob, job_id)
            record = session.get(CallRecord, job.record_id)
            if record is None:
                # Record removed outside the store; nothing left to remind about.
                job.state = JOB_CANCELLED
                job.fired_at = None
                job.cancelled_at = now
                session.commit()
                logger.warning(
                    "Reminder job %s references a missing record; cancelled",
                    job_id,
                    extra={"job_id": job_id, "record_id": job.record_id},
                )
                return None
            notification = CallbackNotification(
                job_id=job.id,
                record_id=record.id,
                owner_id=record.owner_id,
                body=f"Time to call: {record.first_name} {record.last_name}",
                phone=mask_phone(record.principal_phone),
                due_at=as_utc(job.due_at),
                fired_at=now,
            )
            session.commit()
        return notification
