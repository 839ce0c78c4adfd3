"""
Role-scoped access rules shared by complaints, logs, notifications and ratings.

Admins see and touch everything. Citizens are confined to rows they own,
where "own" means the owning complaint's user for logs and notifications.
"""

from typing import Optional
from models.user import User, UserRole
from utils.errors import ForbiddenError


def is_admin(actor: User) -> bool:
    return actor.role == UserRole.admin


def scope_filters(actor: User, owner_id: Optional[int] = None) -> Optional[int]:
    """Return the owner filter a list query must actually apply.

    Citizens always get their own id, whatever they asked for. Admins keep
    the requested owner filter, or None for no owner restriction.
    """
    if is_admin(actor):
        return owner_id
    return actor.user_id


def check_access(actor: User, owner_id: Optional[int], message: str = "You do not have access to this resource") -> None:
    """Raise ForbiddenError unless the actor is an admin or the owner."""
    if is_admin(actor):
        return
    if owner_id is None or owner_id != actor.user_id:
        raise ForbiddenError(message)


def require_admin_actor(actor: User, message: str = "Admin access required") -> None:
    if not is_admin(actor):
        raise ForbiddenError(message)
