from fastapi import Depends, Header
from sqlalchemy.orm import Session
from typing import Optional
from database import get_db
from models.user import User, UserRole
from utils.security import verify_token
from utils.errors import UnauthorizedError, ForbiddenError
import logging

# Set up logging
logger = logging.getLogger(__name__)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """Extract and verify user from Authorization header"""
    from services.auth_service import AuthService

    if not authorization:
        raise UnauthorizedError("Not authenticated")

    try:
        # Extract token from "Bearer <token>"
        scheme, token = authorization.split()
    except ValueError:
        raise UnauthorizedError("Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise UnauthorizedError("Invalid authentication scheme")

    payload = verify_token(token)
    user_id = payload.get("sub")

    if not user_id or not str(user_id).isdigit():
        raise UnauthorizedError("Invalid token payload")

    return AuthService(db).validate_user(int(user_id))


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Get current active user"""
    if not current_user.is_active:
        raise UnauthorizedError("User account is inactive")
    return current_user


def require_roles(*allowed: UserRole):
    """Dependency factory: the acting user's role must be one of *allowed*"""

    async def _checker(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in allowed:
            logger.warning(
                f"Role check failed for user {current_user.user_id}: "
                f"{current_user.role.value} not in {[r.value for r in allowed]}"
            )
            raise ForbiddenError("You do not have permission to perform this action")
        return current_user

    return _checker


require_admin = require_roles(UserRole.admin)
require_citizen = require_roles(UserRole.citizen)
