"""Call record endpoints. Ownership checks and phone masking happen in the record store."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from callbook.api.v1.auth import get_current_user
from callbook.core.database import get_db
from callbook.core.errors import ValidationFailedError
from callbook.schemas.auth import CurrentUser
from callbook.schemas.records import (
    CallRecordCreate,
    CallRecordOut,
    CallRecordUpdate,
    RecordListResponse,
    normalize_flag,
)
from callbook.services.record_store import SEARCH_MAX_LENGTH, RecordFilters, RecordStore
from callbook.services.scheduler import ReminderScheduler

router = APIRouter()


def get_scheduler(request: Request) -> ReminderScheduler:
    """Dependency: the process-wide reminder scheduler started in the app lifespan."""
    return request.app.state.scheduler


def get_record_store(
    db: Annotated[Session, Depends(get_db)],
    scheduler: Annotated[ReminderScheduler, Depends(get_scheduler)],
) -> RecordStore:
    return RecordStore(db, scheduler)


def _optional_flag(name: str, value: str | None) -> bool | None:
    if value is None or not value.strip():
        return None
    try:
        return normalize_flag(value)
    except ValueError as e:
        raise ValidationFailedError(f"{name}: {e}") from e


@router.get("", response_model=RecordListResponse)
def list_records(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    owner_id: Annotated[int | None, Query(alias="ownerId")] = None,
    sale_completed: Annotated[str | None, Query(alias="saleCompleted")] = None,
    callback_required: Annotated[str | None, Query(alias="callbackRequired")] = None,
    search: Annotated[str | None, Query(max_length=SEARCH_MAX_LENGTH)] = None,
) -> RecordListResponse:
    """
    List call records, newest first. Admins see every record; agents see only
    their own (other agents' rows are filtered out, not rejected).
    """
    filters = RecordFilters(
        owner_id=owner_id,
        sale_completed=_optional_flag("saleCompleted", sale_completed),
        callback_required=_optional_flag("callbackRequired", callback_required),
        search=search,
    )
    records = store.list(user, filters)
    return RecordListResponse(records=records, count=len(records))


@router.get("/{record_id}", response_model=CallRecordOut)
def get_record(
    record_id: int,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> CallRecordOut:
    """One record; 404 unless the caller owns it or is an admin."""
    return store.get(user, record_id)


@router.post("", response_model=CallRecordOut, status_code=status.HTTP_201_CREATED)
def create_record(
    body: CallRecordCreate,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> CallRecordOut:
    """
    Log a call. The record is owned by the caller. With callbackRequired and a
    future callbackAt, a reminder is scheduled; a past callbackAt is rejected (400).
    """
    return store.create(user, body)


@router.put("/{record_id}", response_model=CallRecordOut)
def update_record(
    record_id: int,
    body: CallRecordUpdate,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> CallRecordOut:
    """
    Update the supplied fields of a record (owner or admin; 404 otherwise).
    Agents cannot change phone numbers: submitted phone values are ignored.
    """
    return store.update(user, record_id, body)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_record(
    record_id: int,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> Response:
    """Delete a record (owner or admin; 404 otherwise) and cancel its pending reminder."""
    store.delete(user, record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
