"""
Ownership-scoped access control: one decision table for every record and user operation.

Handlers never compare role strings themselves; they ask `decide` (or one of the
helpers below) and act on the returned Decision.
"""

from enum import Enum

from callbook.core.errors import ForbiddenError
from callbook.schemas.auth import CurrentUser


class Role(str, Enum):
    """User roles."""

    ADMIN = "admin"
    AGENT = "agent"

    @classmethod
    def from_string(cls, role_str: str) -> "Role":
        """Convert string to Role. Raises ValueError for unknown roles."""
        try:
            return cls(role_str)
        except ValueError:
            raise ValueError(f"Invalid role: {role_str}")


class Operation(str, Enum):
    """Operations the policy decides on."""

    LIST_RECORDS = "list_records"
    READ_RECORD = "read_record"
    CREATE_RECORD = "create_record"
    UPDATE_RECORD = "update_record"
    VIEW_PHONE = "view_phone"
    UPDATE_PHONE = "update_phone"
    DELETE_RECORD = "delete_record"
    MANAGE_USERS = "manage_users"
    READ_OWN_PROFILE = "read_own_profile"
    UPDATE_PROFILE = "update_profile"
    CHANGE_ROLE = "change_role"


class Decision(str, Enum):
    """Outcome of a policy decision."""

    ALLOW = "allow"
    ALLOW_REDACTED = "allow_redacted"
    DENY = "deny"

    @property
    def permits(self) -> bool:
        return self is not Decision.DENY


# Agent decisions as (when owner, when not owner). Admins are allowed everything.
_AGENT_TABLE: dict[Operation, tuple[Decision, Decision]] = {
    Operation.LIST_RECORDS: (Decision.ALLOW, Decision.DENY),
    Operation.READ_RECORD: (Decision.ALLOW, Decision.DENY),
    # A created record is always owned by its creator.
    Operation.CREATE_RECORD: (Decision.ALLOW, Decision.ALLOW),
    Operation.UPDATE_RECORD: (Decision.ALLOW, Decision.DENY),
    Operation.VIEW_PHONE: (Decision.ALLOW_REDACTED, Decision.DENY),
    Operation.UPDATE_PHONE: (Decision.ALLOW_REDACTED, Decision.DENY),
    Operation.DELETE_RECORD: (Decision.ALLOW, Decision.DENY),
    Operation.MANAGE_USERS: (Decision.DENY, Decision.DENY),
    Operation.READ_OWN_PROFILE: (Decision.ALLOW, Decision.ALLOW),
    Operation.UPDATE_PROFILE: (Decision.ALLOW, Decision.DENY),
    Operation.CHANGE_ROLE: (Decision.DENY, Decision.DENY),
}


def decide(role: Role | str, is_owner: bool, operation: Operation) -> Decision:
    """
    Decide whether a caller with `role` may perform `operation` on a target it
    does (or does not) own. Unknown roles and operations are denied.
    """
    try:
        role = Role.from_string(role) if isinstance(role, str) else role
    except ValueError:
        return Decision.DENY
    if role is Role.ADMIN:
        return Decision.ALLOW
    row = _AGENT_TABLE.get(operation)
    if row is None:
        return Decision.DENY
    return row[0] if is_owner else row[1]


def decide_for(user: CurrentUser, owner_id: int | None, operation: Operation) -> Decision:
    """decide() with ownership derived from the caller id and the target's stored owner."""
    return decide(user.role, owner_id is not None and owner_id == user.id, operation)


def visible_owner_id(user: CurrentUser) -> int | None:
    """
    Visibility predicate for record listings: None means every owner is visible,
    otherwise only rows with this owner id may be returned.
    """
    if decide(user.role, False, Operation.LIST_RECORDS) is Decision.ALLOW:
        return None
    return user.id


def require(user: CurrentUser, operation: Operation, owner_id: int | None = None) -> Decision:
    """Raise ForbiddenError unless the operation is permitted; return the decision otherwise."""
    decision = decide_for(user, owner_id, operation)
    if not decision.permits:
        raise ForbiddenError("Permission denied")
    return decision
