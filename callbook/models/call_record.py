"""ORM model for logged sales calls."""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)

from callbook.models.base import Base


class CallRecord(Base):
    """
    Outcome of one sales call, owned by the user who logged it.

    owner_id never changes after insert. callback_required + callback_at drive the
    reminder job for this record.
    """

    __tablename__ = "call_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    principal_phone = Column(String(64), nullable=False)
    alternative_phone = Column(String(64), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(1024), nullable=True)
    sale_type = Column(String(255), nullable=False)
    sale_id_1 = Column(String(255), nullable=True)
    sale_id_2 = Column(String(255), nullable=True)
    sale_completed = Column(Boolean, nullable=False, default=False)
    callback_required = Column(Boolean, nullable=False, default=False)
    callback_at = Column(DateTime(timezone=True), nullable=True)
    sale_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
