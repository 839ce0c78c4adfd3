from .auth import router as auth_router
from .users import router as users_router
from .complaint_categories import router as complaint_categories_router
from .complaints import router as complaints_router
from .complaint_logs import router as complaint_logs_router
from .notifications import router as notifications_router
from .ratings import router as ratings_router

__all__ = [
    "auth_router",
    "users_router",
    "complaint_categories_router",
    "complaints_router",
    "complaint_logs_router",
    "notifications_router",
    "ratings_router",
]
