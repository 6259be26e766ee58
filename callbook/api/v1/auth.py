"""JWT login and the get_current_user dependency."""

import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from callbook.core.database import get_db
from callbook.core.errors import UnauthenticatedError
from callbook.core.security import create_access_token, decode_access_token
from callbook.schemas.auth import CurrentUser, LoginRequest, LoginResponse, UserOut
from callbook.services.access_policy import Role
from callbook.services.users import authenticate

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> LoginResponse:
    """
    Authenticate with username and password; returns a JWT and the user it belongs to.
    Include the token in the Authorization header as: Bearer <token>
    """
    user = authenticate(db, body.username, body.password)
    if user is None:
        logger.warning("Login failed", extra={"username": body.username[:255]})
        raise UnauthenticatedError("Invalid username or password.")
    token = create_access_token(user.id, user.username, user.role)
    logger.info("Login succeeded", extra={"user_id": user.id, "role": user.role})
    return LoginResponse(token=token, user=UserOut.from_row(user))


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> CurrentUser:
    """
    Dependency: verify the Bearer JWT and return the caller it names.

    Stateless: identity and role come from the signed token alone. Raises
    UnauthenticatedError (401) if the token is missing, malformed, expired,
    badly signed or carries an unknown role.
    """
    if credentials is None:
        raise UnauthenticatedError("Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.PyJWTError:
        raise UnauthenticatedError("Invalid or expired token")
    user_id = payload.get("id")
    username = payload.get("username")
    role = payload.get("role")
    if not isinstance(user_id, int) or not isinstance(username, str) or not isinstance(role, str):
        raise UnauthenticatedError("Invalid token payload")
    try:
        Role.from_string(role)
    except ValueError:
        raise UnauthenticatedError("Invalid token payload")
    return CurrentUser(id=user_id, username=username, role=role)
