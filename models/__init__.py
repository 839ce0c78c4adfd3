from .user import User, UserRole
from .complaint_category import ComplaintCategory
from .complaint import Complaint, ComplaintSequence, ComplaintStatus, ComplaintPriority
from .complaint_log import ComplaintLog
from .notification import Notification, NotificationType
from .rating import Rating

__all__ = [
    "User",
    "UserRole",
    "ComplaintCategory",
    "Complaint",
    "ComplaintSequence",
    "ComplaintStatus",
    "ComplaintPriority",
    "ComplaintLog",
    "Notification",
    "NotificationType",
    "Rating",
]
