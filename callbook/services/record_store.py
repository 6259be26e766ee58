"""
Call record storage with ownership-scoped access.

Every operation takes the caller resolved from its bearer token and asks the
access policy before touching a row. Records outside the caller's scope are
either filtered out (listings) or reported as not found (single-record
operations), never as forbidden, so their existence does not leak.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from callbook.core.errors import (
    NotFoundOrForbiddenError,
    SchedulerNotStartedError,
    UnauthenticatedError,
    ValidationFailedError,
)
from callbook.core.locks import KeyedLocks, record_locks
from callbook.models import CallRecord, User
from callbook.models.base import as_utc
from callbook.schemas.auth import CurrentUser
from callbook.schemas.records import (
    PHONE_FIELDS,
    REQUIRED_FIELDS,
    CallRecordCreate,
    CallRecordOut,
    CallRecordUpdate,
)
from callbook.services.access_policy import (
    Decision,
    Operation,
    decide,
    decide_for,
    require,
    visible_owner_id,
)
from callbook.services.masking import mask_phone
from callbook.services.scheduler import ReminderScheduler, ScheduledReminder

logger = logging.getLogger(__name__)

SEARCH_MAX_LENGTH = 255


@dataclass
class RecordFilters:
    """Optional narrowing for record listings; AND-ed with the caller's visibility."""

    owner_id: int | None = None
    sale_completed: bool | None = None
    callback_required: bool | None = None
    search: str | None = None


class RecordStore:
    """CRUD over call records for one request (one DB session)."""

    def __init__(
        self,
        session: Session,
        scheduler: ReminderScheduler,
        locks: KeyedLocks = record_locks,
    ) -> None:
        self._session = session
        self._scheduler = scheduler
        self._locks = locks

    def create(self, user: CurrentUser, data: CallRecordCreate) -> CallRecordOut:
        """Insert a record owned by the caller; registers its reminder when a callback is requested."""
        require(user, Operation.CREATE_RECORD, owner_id=user.id)
        if self._session.get(User, user.id) is None:
            raise UnauthenticatedError("User not found")

        record = CallRecord(owner_id=user.id, **data.model_dump())
        reminder: ScheduledReminder | None = None
        try:
            self._session.add(record)
            self._session.flush()
            if record.callback_required and record.callback_at is not None:
                reminder = self._scheduler.stage_schedule(
                    self._session, record.id, record.callback_at
                )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        if reminder is not None:
            self._after_commit("arm", reminder, record.id)
        self._session.refresh(record)
        logger.info(
            "Call record created",
            extra={"record_id": record.id, "owner_id": user.id, "reminder": reminder is not None},
        )
        return self._present(user, record)

    def get(self, user: CurrentUser, record_id: int) -> CallRecordOut:
        record = self._load(user, record_id, Operation.READ_RECORD)
        return self._present(user, record)

    def list(self, user: CurrentUser, filters: RecordFilters | None = None) -> list[CallRecordOut]:
        """
        Records visible to the caller, newest first. Agents only ever see their own
        rows; foreign rows are excluded in the query, not rejected.
        """
        filters = filters or RecordFilters()
        stmt = select(CallRecord)
        visible = visible_owner_id(user)
        if visible is not None:
            stmt = stmt.where(CallRecord.owner_id == visible)
        if filters.owner_id is not None:
            stmt = stmt.where(CallRecord.owner_id == filters.owner_id)
        if filters.sale_completed is not None:
            stmt = stmt.where(CallRecord.sale_completed.is_(filters.sale_completed))
        if filters.callback_required is not None:
            stmt = stmt.where(CallRecord.callback_required.is_(filters.callback_required))
        if filters.search and filters.search.strip():
            stmt = stmt.where(self._search_clause(user, filters.search))
        stmt = stmt.order_by(CallRecord.created_at.desc(), CallRecord.id.desc())
        records = self._session.scalars(stmt).all()
        return [self._present(user, r) for r in records]

    def update(self, user: CurrentUser, record_id: int, data: CallRecordUpdate) -> CallRecordOut:
        """
        Write every supplied field or none of them. Phone values from callers who
        may not edit raw phones are ignored. A changed callback re-registers the
        reminder; a cleared one cancels it.
        """
        changes = data.supplied_fields()
        nulled = sorted(f for f in REQUIRED_FIELDS if f in changes and changes[f] is None)
        if nulled:
            raise ValidationFailedError(f"Fields may not be null: {', '.join(nulled)}")

        with self._locks.hold(record_id):
            record = self._load(user, record_id, Operation.UPDATE_RECORD)
            if decide_for(user, record.owner_id, Operation.UPDATE_PHONE) is not Decision.ALLOW:
                self._drop_phone_changes(user, record, changes)

            before = (record.callback_required, as_utc(record.callback_at))
            for name, value in changes.items():
                setattr(record, name, value)
            after = (record.callback_required, as_utc(record.callback_at))

            reminder: ScheduledReminder | None = None
            cancelled = False
            try:
                if after != before:
                    if after[0] and after[1] is not None:
                        reminder = self._scheduler.stage_schedule(
                            self._session, record.id, after[1]
                        )
                    else:
                        self._scheduler.stage_cancel(self._session, record.id)
                        cancelled = True
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
            if reminder is not None:
                self._after_commit("arm", reminder, record_id)
            elif cancelled:
                self._after_commit("disarm", record_id, record_id)
            self._session.refresh(record)

        logger.info(
            "Call record updated",
            extra={"record_id": record_id, "user_id": user.id, "fields": sorted(changes)},
        )
        return self._present(user, record)

    def delete(self, user: CurrentUser, record_id: int) -> None:
        """Delete the record and cancel its pending reminder in the same transaction."""
        with self._locks.hold(record_id):
            record = self._load(user, record_id, Operation.DELETE_RECORD)
            try:
                self._scheduler.stage_cancel(self._session, record_id)
                self._session.delete(record)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
            self._after_commit("disarm", record_id, record_id)
        logger.info("Call record deleted", extra={"record_id": record_id, "user_id": user.id})

    def _after_commit(self, action: str, arg: object, record_id: int) -> None:
        # The job row is already committed; a stopped scheduler re-reads it on its next start.
        try:
            getattr(self._scheduler, action)(arg)
        except SchedulerNotStartedError:
            logger.warning(
                "Reminder scheduler not running; job state left for recovery",
                extra={"record_id": record_id, "action": action},
            )

    def _load(self, user: CurrentUser, record_id: int, operation: Operation) -> CallRecord:
        # Ownership comes from the stored row, never from the request body.
        record = self._session.get(CallRecord, record_id)
        if record is None:
            raise NotFoundOrForbiddenError("Record not found")
        if not decide_for(user, record.owner_id, operation).permits:
            logger.warning(
                "Record access denied",
                extra={
                    "record_id": record_id,
                    "user_id": user.id,
                    "user_role": user.role,
                    "operation": operation.value,
                },
            )
            raise NotFoundOrForbiddenError("Record not found")
        return record

    def _drop_phone_changes(
        self, user: CurrentUser, record: CallRecord, changes: dict
    ) -> None:
        for name in PHONE_FIELDS:
            if name not in changes:
                continue
            submitted = changes.pop(name)
            current = getattr(record, name)
            if submitted not in (current, mask_phone(current) or None):
                logger.info(
                    "Ignored phone change from caller without raw phone access",
                    extra={"record_id": record.id, "user_id": user.id, "field": name},
                )

    def _search_clause(self, user: CurrentUser, term: str):
        pattern = f"%{term.strip()[:SEARCH_MAX_LENGTH]}%"
        columns = [
            CallRecord.first_name,
            CallRecord.last_name,
            CallRecord.email,
            CallRecord.sale_type,
        ]
        # Matching on phone digits would let redacted viewers probe raw numbers.
        if decide(user.role, True, Operation.VIEW_PHONE) is Decision.ALLOW:
            columns.append(CallRecord.principal_phone)
        return or_(*(col.ilike(pattern) for col in columns))

    def _present(self, user: CurrentUser, record: CallRecord) -> CallRecordOut:
        values = {
            name: getattr(record, name)
            for name in CallRecordOut.model_fields
            if hasattr(record, name)
        }
        for name in ("callback_at", "created_at", "updated_at"):
            values[name] = as_utc(values[name])
        out = CallRecordOut(**values)
        if decide_for(user, record.owner_id, Operation.VIEW_PHONE) is not Decision.ALLOW:
            out.principal_phone = mask_phone(record.principal_phone)
            out.alternative_phone = (
                mask_phone(record.alternative_phone) if record.alternative_phone else None
            )
            out.phones_masked = True
        return out
