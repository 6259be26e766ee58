"""User administration, own-profile maintenance and credential checks."""

import logging

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from callbook.core.errors import ConflictError, NotFoundOrForbiddenError, UnauthenticatedError
from callbook.core.security import hash_password, verify_password
from callbook.models import CallRecord, User
from callbook.schemas.auth import CurrentUser, UserCreate, UserUpdate
from callbook.services.access_policy import Operation, Role, require

logger = logging.getLogger(__name__)


def authenticate(session: Session, username: str, password: str) -> User | None:
    """Return the user when username and password match, None otherwise."""
    user = session.scalars(select(User).where(User.username == username)).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


class UserService:
    """User operations for one request; every method is checked against the access policy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_profile(self, user: CurrentUser) -> User:
        require(user, Operation.READ_OWN_PROFILE, owner_id=user.id)
        row = self._session.get(User, user.id)
        if row is None:
            raise UnauthenticatedError("User not found")
        return row

    def list_users(self, user: CurrentUser) -> list[tuple[User, int, int]]:
        """All users, newest first, each with (total, completed) counts of the records they own."""
        require(user, Operation.MANAGE_USERS)
        users = self._session.scalars(
            select(User).order_by(User.created_at.desc(), User.id.desc())
        ).all()
        stats = {
            owner_id: (total, completed or 0)
            for owner_id, total, completed in self._session.execute(
                select(
                    CallRecord.owner_id,
                    func.count(CallRecord.id),
                    func.sum(case((CallRecord.sale_completed.is_(True), 1), else_=0)),
                ).group_by(CallRecord.owner_id)
            )
        }
        return [(u, *stats.get(u.id, (0, 0))) for u in users]

    def create_user(self, user: CurrentUser, data: UserCreate) -> User:
        require(user, Operation.MANAGE_USERS)
        username = data.username.strip()
        self._check_username_free(username)
        row = User(
            username=username,
            password_hash=hash_password(data.password),
            role=data.role,
        )
        self._session.add(row)
        self._commit_or_conflict()
        self._session.refresh(row)
        logger.info(
            "User created",
            extra={"user_id": row.id, "role": row.role, "created_by": user.id},
        )
        return row

    def update_user(self, user: CurrentUser, user_id: int, data: UserUpdate) -> User:
        """Self or admin may update; only admins may change a role."""
        require(user, Operation.UPDATE_PROFILE, owner_id=user_id)
        row = self._session.get(User, user_id)
        if row is None:
            raise NotFoundOrForbiddenError("User not found")

        if data.role is not None and data.role != row.role:
            require(user, Operation.CHANGE_ROLE)
            row.role = Role.from_string(data.role).value
        if data.username is not None:
            username = data.username.strip()
            if username != row.username:
                self._check_username_free(username)
                row.username = username
        if data.password is not None:
            row.password_hash = hash_password(data.password)
        self._commit_or_conflict()
        self._session.refresh(row)
        logger.info("User updated", extra={"user_id": row.id, "updated_by": user.id})
        return row

    def delete_user(self, user: CurrentUser, user_id: int) -> None:
        """Delete a user. Users who still own call records are kept (no orphaned records)."""
        require(user, Operation.MANAGE_USERS)
        row = self._session.get(User, user_id)
        if row is None:
            raise NotFoundOrForbiddenError("User not found")
        owned = self._session.scalar(
            select(func.count()).select_from(CallRecord).where(CallRecord.owner_id == user_id)
        )
        if owned:
            raise ConflictError(f"User owns {owned} call record(s) and cannot be deleted")
        self._session.delete(row)
        self._commit_or_conflict()
        logger.info("User deleted", extra={"user_id": user_id, "deleted_by": user.id})

    def _check_username_free(self, username: str) -> None:
        exists = self._session.scalars(select(User.id).where(User.username == username)).first()
        if exists is not None:
            raise ConflictError("Username already exists")

    def _commit_or_conflict(self) -> None:
        # Unique/foreign-key races between the check and the write surface here.
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise ConflictError("Change conflicts with existing data") from e


def ensure_bootstrap_admin(session: Session, username: str, password: str) -> bool:
    """Create the first admin when none exists. Returns True if a user was created."""
    has_admin = session.scalars(
        select(User.id).where(User.role == Role.ADMIN.value)
    ).first()
    if has_admin is not None:
        return False
    if session.scalars(select(User.id).where(User.username == username)).first() is not None:
        logger.warning("Bootstrap admin skipped: username %r already taken", username)
        return False
    session.add(
        User(username=username, password_hash=hash_password(password), role=Role.ADMIN.value)
    )
    session.commit()
    logger.info("Bootstrap admin created: %s", username)
    return True
