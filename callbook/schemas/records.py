"""Pydantic schemas for call records and their list responses."""

from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

NAME_MAX_LENGTH = 255
PHONE_MAX_LENGTH = 64
ADDRESS_MAX_LENGTH = 1024
NOTES_MAX_LENGTH = 10_000

_TRUE_VALUES = frozenset({"true", "1", "yes"})
_FALSE_VALUES = frozenset({"false", "0", "no"})

# Columns that may not be set to null once a record exists.
REQUIRED_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "principal_phone",
        "sale_type",
        "sale_date",
        "sale_completed",
        "callback_required",
    }
)

PHONE_FIELDS = ("principal_phone", "alternative_phone")


def normalize_flag(value: Any) -> bool:
    """
    Turn the loose boolean spellings clients send (True, 1, "1", "true", "yes" and
    their negatives) into a strict bool. Anything else raises ValueError.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE_VALUES:
            return True
        if s in _FALSE_VALUES:
            return False
    raise ValueError(f"Expected a boolean, got {value!r}")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _RecordFields(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("sale_completed", "callback_required", mode="before", check_fields=False)
    @classmethod
    def validate_flag(cls, v: Any) -> bool:
        return normalize_flag(v)

    @field_validator(
        "alternative_phone",
        "email",
        "address",
        "sale_id_1",
        "sale_id_2",
        "notes",
        "callback_at",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def validate_optional_blank(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("callback_at", check_fields=False)
    @classmethod
    def validate_callback_at(cls, v: datetime | None) -> datetime | None:
        # Naive timestamps are taken as UTC; aware ones are stored in UTC.
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class CallRecordCreate(_RecordFields):
    """Body for POST /records. The owner is always the caller and cannot be supplied."""

    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    principal_phone: str = Field(..., min_length=1, max_length=PHONE_MAX_LENGTH)
    alternative_phone: str | None = Field(default=None, max_length=PHONE_MAX_LENGTH)
    email: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    address: str | None = Field(default=None, max_length=ADDRESS_MAX_LENGTH)
    sale_type: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    sale_id_1: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    sale_id_2: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    sale_completed: bool = False
    callback_required: bool = False
    callback_at: datetime | None = None
    sale_date: date
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)


class CallRecordUpdate(_RecordFields):
    """
    Body for PUT /records/{id}. Only supplied fields are written; required
    columns may be omitted but not nulled.
    """

    first_name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)
    principal_phone: str | None = Field(default=None, min_length=1, max_length=PHONE_MAX_LENGTH)
    alternative_phone: str | None = Field(default=None, max_length=PHONE_MAX_LENGTH)
    email: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    address: str | None = Field(default=None, max_length=ADDRESS_MAX_LENGTH)
    sale_type: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)
    sale_id_1: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    sale_id_2: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    sale_completed: bool | None = None
    callback_required: bool | None = None
    callback_at: datetime | None = None
    sale_date: date | None = None
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)

    def supplied_fields(self) -> dict[str, Any]:
        """Fields the client actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class CallRecordOut(BaseModel):
    """A call record as returned to a caller; phones are masked unless the caller may see raw values."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    owner_id: int
    first_name: str
    last_name: str
    principal_phone: str
    alternative_phone: str | None = None
    email: str | None = None
    address: str | None = None
    sale_type: str
    sale_id_1: str | None = None
    sale_id_2: str | None = None
    sale_completed: bool
    callback_required: bool
    callback_at: datetime | None = None
    sale_date: date
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    phones_masked: bool = Field(
        default=False, description="True when phone values are redacted for this caller"
    )


class RecordListResponse(BaseModel):
    """Response for GET /records."""

    records: list[CallRecordOut]
    count: int
