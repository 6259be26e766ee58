"""ORM model for application users (auth and ownership)."""

from sqlalchemy import Column, DateTime, Integer, String, func

from callbook.models.base import Base


class User(Base):
    """
    User account for JWT authentication and ownership-scoped access control.

    role: 'admin' or 'agent'
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="agent")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
