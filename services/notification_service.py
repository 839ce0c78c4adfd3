import logging
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from models.complaint import Complaint, ComplaintStatus
from models.notification import Notification, NotificationType
from models.user import User
from utils.access_policy import check_access, is_admin, require_admin_actor, scope_filters
from utils.cache import cache, notification_cache_key
from utils.errors import ForbiddenError, NotFoundError
from utils.pagination import PaginationParams, paginate

logger = logging.getLogger(__name__)

ACCESS_DENIED = "You do not have access to this notification"
DASHBOARD_TTL = 30


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    # ── Helpers ────────────────────────────────────────────────

    def _user_exists(self, user_id: int, message: str) -> None:
        if not self.db.query(User.user_id).filter(User.user_id == user_id).first():
            raise NotFoundError(message)

    def _complaint(self, complaint_id: int) -> Complaint:
        complaint = self.db.query(Complaint).filter(Complaint.complaint_id == complaint_id).first()
        if not complaint:
            raise NotFoundError("Complaint not found")
        return complaint

    def _get(self, notification_id: int) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.notification_id == notification_id
        ).first()
        if not notification:
            raise NotFoundError("Notification not found")
        return notification

    def _check_access(self, notification: Notification, actor: User) -> None:
        """Admins pass; citizens must own the complaint and be the recipient"""
        if is_admin(actor):
            return
        complaint = self.db.query(Complaint).filter(
            Complaint.complaint_id == notification.complaint_id
        ).first()
        check_access(actor, complaint.user_id if complaint else None, ACCESS_DENIED)
        if notification.user_id != actor.user_id:
            raise ForbiddenError(ACCESS_DENIED)

    def _citizen_scope(self, query, actor: User):
        if is_admin(actor):
            return query
        own_complaints = self.db.query(Complaint.complaint_id).filter(Complaint.user_id == actor.user_id)
        return query.filter(
            Notification.user_id == actor.user_id,
            Notification.complaint_id.in_(own_complaints)
        )

    # ── Create ─────────────────────────────────────────────────

    def create(self, data: dict, actor: User) -> Notification:
        require_admin_actor(actor, "Only admins can create notifications")

        self._user_exists(data["user_id"], "User not found")
        self._complaint(data["complaint_id"])
        if data.get("assigned_to") is not None:
            self._user_exists(data["assigned_to"], "Assigned user not found")

        return self._insert(
            user_id=data["user_id"],
            complaint_id=data["complaint_id"],
            notification_type=data["type"],
            message=data["message"],
            old_status=data.get("old_status"),
            new_status=data.get("new_status"),
            assigned_to=data.get("assigned_to"),
            note=data.get("note"),
            file=data.get("file")
        )

    def create_auto_notification(
        self,
        user_id: int,
        complaint_id: int,
        notification_type: NotificationType,
        message: str,
        old_status: Optional[ComplaintStatus] = None,
        new_status: Optional[ComplaintStatus] = None,
        assigned_to: Optional[int] = None,
        note: Optional[str] = None,
        file: Optional[str] = None
    ) -> Notification:
        """Internal writer used by complaint lifecycle events"""
        self._user_exists(user_id, "User not found")
        self._complaint(complaint_id)

        return self._insert(
            user_id=user_id,
            complaint_id=complaint_id,
            notification_type=notification_type,
            message=message,
            old_status=old_status,
            new_status=new_status,
            assigned_to=assigned_to,
            note=note,
            file=file
        )

    def _insert(self, old_status=None, new_status=None, **fields) -> Notification:
        notification = Notification(
            old_status=old_status or ComplaintStatus.pending,
            new_status=new_status or ComplaintStatus.pending,
            **fields
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)

        cache.invalidate_notifications(notification.user_id)
        logger.info(
            f"🔔 Notification {notification.notification_id} ({notification.notification_type.value}) "
            f"sent to user {notification.user_id}"
        )
        return notification

    # ── Read ───────────────────────────────────────────────────

    def find_all(
        self,
        actor: User,
        params: PaginationParams,
        search: Optional[str] = None,
        user_id: Optional[int] = None,
        complaint_id: Optional[int] = None,
        notification_type: Optional[NotificationType] = None,
        new_status: Optional[ComplaintStatus] = None,
        assigned_to: Optional[int] = None
    ):
        query = self._citizen_scope(self.db.query(Notification), actor)

        recipient = scope_filters(actor, user_id)
        if recipient is not None:
            query = query.filter(Notification.user_id == recipient)
        if complaint_id is not None:
            query = query.filter(Notification.complaint_id == complaint_id)
        if notification_type:
            query = query.filter(Notification.notification_type == notification_type)
        if new_status:
            query = query.filter(Notification.new_status == new_status)
        if assigned_to is not None:
            query = query.filter(Notification.assigned_to == assigned_to)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Notification.message.ilike(pattern),
                Notification.note.ilike(pattern)
            ))

        return paginate(query, Notification, params)

    def find_one(self, notification_id: int, actor: User) -> Notification:
        notification = self._get(notification_id)
        self._check_access(notification, actor)
        return notification

    def my_notifications(
        self,
        actor: User,
        params: PaginationParams,
        notification_type: Optional[NotificationType] = None
    ):
        query = self._citizen_scope(self.db.query(Notification), actor) \
            .filter(Notification.user_id == actor.user_id)
        if notification_type:
            query = query.filter(Notification.notification_type == notification_type)
        return paginate(query, Notification, params)

    def recent(self, actor: User, limit: int = 10) -> List[dict]:
        """Newest notifications addressed to the actor, for dashboards"""
        def load():
            rows = self._citizen_scope(self.db.query(Notification), actor) \
                .filter(Notification.user_id == actor.user_id) \
                .order_by(Notification.created_at.desc(), Notification.notification_id.desc()) \
                .limit(limit) \
                .all()
            return [n.to_dict() for n in rows]

        return cache.get_or_set(
            notification_cache_key(actor.user_id, "recent", limit), load, ttl=DASHBOARD_TTL
        )

    def by_complaint(self, complaint_id: int, actor: User) -> List[Notification]:
        complaint = self._complaint(complaint_id)
        check_access(actor, complaint.user_id, "You do not have access to these notifications")

        query = self.db.query(Notification).filter(Notification.complaint_id == complaint_id)
        if not is_admin(actor):
            query = query.filter(Notification.user_id == actor.user_id)
        return query.order_by(Notification.created_at.desc(), Notification.notification_id.desc()).all()

    def by_assigned_user(self, user_id: int, actor: User, params: PaginationParams):
        require_admin_actor(actor)
        query = self.db.query(Notification).filter(Notification.assigned_to == user_id)
        return paginate(query, Notification, params)

    # ── Update / delete ────────────────────────────────────────

    def update(self, notification_id: int, data: dict, actor: User) -> Notification:
        require_admin_actor(actor, "Only admins can update notifications")
        notification = self._get(notification_id)

        if data.get("assigned_to") is not None:
            self._user_exists(data["assigned_to"], "Assigned user not found")

        if "type" in data:
            data["notification_type"] = data.pop("type")
        for field in ("notification_type", "message"):
            if data.get(field) is not None:
                setattr(notification, field, data[field])
        for field in ("old_status", "new_status", "assigned_to", "note", "file"):
            if field in data:
                setattr(notification, field, data[field])

        self.db.commit()
        self.db.refresh(notification)
        cache.invalidate_notifications(notification.user_id)
        return notification

    def remove(self, notification_id: int, actor: User) -> None:
        notification = self._get(notification_id)
        self._check_access(notification, actor)

        user_id = notification.user_id
        self.db.delete(notification)
        self.db.commit()
        cache.invalidate_notifications(user_id)

    def remove_by_complaint(self, complaint_id: int, actor: User) -> int:
        require_admin_actor(actor, "Only admins can delete notifications")
        query = self.db.query(Notification).filter(Notification.complaint_id == complaint_id)
        recipients = [user_id for (user_id,) in query.with_entities(Notification.user_id).distinct().all()]

        deleted = query.delete(synchronize_session=False)
        self.db.commit()
        cache.invalidate_notifications(*recipients)
        logger.info(f"🗑️ {deleted} notification(s) deleted for complaint {complaint_id}")
        return deleted

    # ── Statistics ─────────────────────────────────────────────

    def _compute_statistics(self, actor: User) -> dict:
        base = self._citizen_scope(self.db.query(Notification), actor)
        by_type = self._citizen_scope(
            self.db.query(Notification.notification_type, func.count(Notification.notification_id)),
            actor
        ).group_by(Notification.notification_type).all()
        by_status = self._citizen_scope(
            self.db.query(Notification.new_status, func.count(Notification.notification_id)),
            actor
        ).group_by(Notification.new_status).all()

        return {
            "total_notifications": base.count(),
            "by_type": {t.value: count for t, count in by_type},
            "by_status": {s.value: count for s, count in by_status if s is not None},
        }

    def statistics(self, actor: User) -> dict:
        if is_admin(actor):
            # Global figures; no single recipient to invalidate them against
            return self._compute_statistics(actor)
        return cache.get_or_set(
            notification_cache_key(actor.user_id, "statistics"),
            lambda: self._compute_statistics(actor),
            ttl=DASHBOARD_TTL
        )
