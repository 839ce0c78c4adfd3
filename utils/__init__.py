from .security import hash_password, verify_password, create_access_token, create_refresh_token, verify_token
from .dependencies import get_current_user, get_current_active_user, require_roles, require_admin
from .responses import error_response, paginated_response
from .errors import BadRequestError, UnauthorizedError, ForbiddenError, NotFoundError, ConflictError

__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "verify_token",
    "get_current_user",
    "get_current_active_user",
    "require_roles",
    "require_admin",
    "error_response",
    "paginated_response",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
]
