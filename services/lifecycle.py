"""
Complaint lifecycle events and their fan-out handlers.

Complaint operations commit their own write first and then emit an event.
Every handler registered for that event runs on its own: a handler that
raises is logged, its pending changes are rolled back, and the remaining
handlers still run. Nothing is retried and the triggering request still
succeeds.
"""

import enum
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional
from sqlalchemy.orm import Session
from models.complaint import Complaint, ComplaintStatus
from models.notification import NotificationType
from models.user import User

logger = logging.getLogger(__name__)


class ComplaintEvent(str, enum.Enum):
    created = "created"
    status_changed = "status_changed"
    assigned = "assigned"
    images_uploaded = "images_uploaded"


Handler = Callable[..., None]


class LifecycleHooks:
    """Registry of best-effort handlers keyed by complaint event"""

    def __init__(self):
        self._handlers: Dict[ComplaintEvent, List[Handler]] = defaultdict(list)

    def register(self, event: ComplaintEvent, handler: Optional[Handler] = None):
        """Register a handler; usable directly or as a decorator"""
        def _register(fn: Handler) -> Handler:
            self._handlers[event].append(fn)
            return fn

        if handler is not None:
            return _register(handler)
        return _register

    def unregister(self, event: ComplaintEvent, handler: Handler) -> None:
        if handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    def handlers(self, event: ComplaintEvent) -> List[Handler]:
        return list(self._handlers[event])

    def emit(self, event: ComplaintEvent, db: Session, complaint: Complaint, actor: User, **payload) -> int:
        """Run every handler for *event*; returns how many of them failed"""
        failures = 0
        # Read before any rollback expires the instance
        code = complaint.complaint_code
        for handler in self.handlers(event):
            try:
                handler(db, complaint, actor, **payload)
            except Exception as e:
                failures += 1
                db.rollback()
                logger.error(
                    f"❌ {event.value} side effect {handler.__name__} failed for complaint "
                    f"{code}: {str(e)}",
                    exc_info=True
                )
        return failures


hooks = LifecycleHooks()


# ============================================================================
# ACTIVITY LOG HANDLERS
# ============================================================================

def _log_service(db: Session):
    from services.complaint_log_service import ComplaintLogService
    return ComplaintLogService(db)


@hooks.register(ComplaintEvent.status_changed)
def log_status_change(db, complaint, actor, old_status=None, new_status=None, note=None, **_):
    description = f"Complaint status changed from {old_status.value} to {new_status.value}"
    if note:
        description = f"{description}: {note}"
    _log_service(db).create_auto_log(complaint.complaint_id, actor.user_id, "status_change", description)


@hooks.register(ComplaintEvent.assigned)
def log_assignment(db, complaint, actor, assignee=None, **_):
    _log_service(db).create_auto_log(
        complaint.complaint_id,
        actor.user_id,
        "assignment",
        f"Complaint assigned to {assignee.full_name} (ID {assignee.user_id})"
    )


@hooks.register(ComplaintEvent.images_uploaded)
def log_image_upload(db, complaint, actor, count=0, **_):
    _log_service(db).create_auto_log(
        complaint.complaint_id,
        actor.user_id,
        "upload_images",
        f"{count} new image(s) added to the complaint"
    )


# ============================================================================
# NOTIFICATION HANDLERS
# ============================================================================

def _notification_service(db: Session):
    from services.notification_service import NotificationService
    return NotificationService(db)


@hooks.register(ComplaintEvent.created)
def notify_complaint_received(db, complaint, actor, **_):
    _notification_service(db).create_auto_notification(
        user_id=complaint.user_id,
        complaint_id=complaint.complaint_id,
        notification_type=NotificationType.new_comment,
        message=f"Your complaint {complaint.complaint_code} was received and is under review."
    )


@hooks.register(ComplaintEvent.status_changed)
def notify_status_change(db, complaint, actor, old_status=None, new_status=None, note=None, **_):
    _notification_service(db).create_auto_notification(
        user_id=complaint.user_id,
        complaint_id=complaint.complaint_id,
        notification_type=NotificationType.status_update,
        message=f"Your complaint {complaint.complaint_code} status changed to {new_status.value}",
        old_status=old_status,
        new_status=new_status,
        assigned_to=actor.user_id,
        note=note
    )


@hooks.register(ComplaintEvent.assigned)
def notify_assignment(db, complaint, actor, assignee=None, old_status=None, **_):
    _notification_service(db).create_auto_notification(
        user_id=complaint.user_id,
        complaint_id=complaint.complaint_id,
        notification_type=NotificationType.status_update,
        message=f"Your complaint {complaint.complaint_code} was assigned to {assignee.full_name}",
        old_status=old_status or ComplaintStatus.pending,
        new_status=complaint.status,
        assigned_to=assignee.user_id
    )


@hooks.register(ComplaintEvent.images_uploaded)
def notify_image_upload(db, complaint, actor, count=0, **_):
    _notification_service(db).create_auto_notification(
        user_id=complaint.user_id,
        complaint_id=complaint.complaint_id,
        notification_type=NotificationType.new_comment,
        message=f"{count} new image(s) added to complaint {complaint.complaint_code}."
    )
