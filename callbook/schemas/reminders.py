"""Payload delivered to the notification sink when a callback reminder fires."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

REMINDER_TITLE = "Callback Reminder"


class CallbackNotification(BaseModel):
    """One fired reminder. The phone is always masked; sinks may forward it to agents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: int
    record_id: int
    owner_id: int
    title: str = Field(default=REMINDER_TITLE)
    body: str = Field(..., description="Human-readable reminder text")
    phone: str = Field(..., description="Masked principal phone of the contact")
    due_at: datetime
    fired_at: datetime

    def to_payload(self) -> dict:
        """JSON-ready dict with camelCase keys, as sent to webhooks."""
        return self.model_dump(mode="json", by_alias=True)
