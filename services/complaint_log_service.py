import logging
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from models.complaint import Complaint
from models.complaint_log import ComplaintLog
from models.user import User
from utils.access_policy import check_access, is_admin, require_admin_actor
from utils.errors import NotFoundError
from utils.pagination import PaginationParams, paginate

logger = logging.getLogger(__name__)

ACCESS_DENIED = "You do not have access to these logs"


class ComplaintLogService:
    def __init__(self, db: Session):
        self.db = db

    def _complaint(self, complaint_id: int) -> Complaint:
        complaint = self.db.query(Complaint).filter(Complaint.complaint_id == complaint_id).first()
        if not complaint:
            raise NotFoundError("Complaint not found")
        return complaint

    def _own_complaint_ids(self, actor: User):
        return self.db.query(Complaint.complaint_id).filter(Complaint.user_id == actor.user_id)

    def _scoped(self, query, actor: User):
        """Citizens only ever see logs of complaints they own"""
        if is_admin(actor):
            return query
        return query.filter(ComplaintLog.complaint_id.in_(self._own_complaint_ids(actor)))

    # ── Create ─────────────────────────────────────────────────

    def create(self, complaint_id: int, action_type: str, description: str, actor: User) -> ComplaintLog:
        """Manual entry; open to any authenticated actor"""
        self._complaint(complaint_id)
        return self.create_auto_log(complaint_id, actor.user_id, action_type, description)

    def create_auto_log(self, complaint_id: int, action_by: int, action_type: str, description: str) -> ComplaintLog:
        log = ComplaintLog(
            complaint_id=complaint_id,
            action_by=action_by,
            action_type=action_type,
            description=description
        )
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        logger.info(f"Log {log.log_id} ({action_type}) written for complaint {complaint_id}")
        return log

    # ── Read ───────────────────────────────────────────────────

    def find_all(
        self,
        actor: User,
        params: PaginationParams,
        search: Optional[str] = None,
        complaint_id: Optional[int] = None,
        action_by: Optional[int] = None,
        action_type: Optional[str] = None
    ):
        query = self._scoped(self.db.query(ComplaintLog), actor)

        if complaint_id is not None:
            query = query.filter(ComplaintLog.complaint_id == complaint_id)
        if action_by is not None:
            query = query.filter(ComplaintLog.action_by == action_by)
        if action_type:
            query = query.filter(ComplaintLog.action_type.ilike(f"%{action_type}%"))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                ComplaintLog.action_type.ilike(pattern),
                ComplaintLog.description.ilike(pattern)
            ))

        return paginate(query, ComplaintLog, params)

    def find_one(self, log_id: int, actor: User) -> ComplaintLog:
        log = self.db.query(ComplaintLog).filter(ComplaintLog.log_id == log_id).first()
        if not log:
            raise NotFoundError("Log not found")

        if not is_admin(actor):
            complaint = self._complaint(log.complaint_id)
            check_access(actor, complaint.user_id, ACCESS_DENIED)
        return log

    def find_by_complaint(self, complaint_id: int, actor: User) -> List[ComplaintLog]:
        """Newest first"""
        complaint = self._complaint(complaint_id)
        check_access(actor, complaint.user_id, ACCESS_DENIED)
        return self.db.query(ComplaintLog).filter(
            ComplaintLog.complaint_id == complaint_id
        ).order_by(ComplaintLog.created_at.desc(), ComplaintLog.log_id.desc()).all()

    def timeline(self, complaint_id: int, actor: User) -> List[ComplaintLog]:
        """Oldest first, the reverse of every other listing"""
        complaint = self._complaint(complaint_id)
        check_access(actor, complaint.user_id, "You do not have access to this timeline")
        return self.db.query(ComplaintLog).filter(
            ComplaintLog.complaint_id == complaint_id
        ).order_by(ComplaintLog.created_at.asc(), ComplaintLog.log_id.asc()).all()

    def find_by_user(self, user_id: int, actor: User, params: PaginationParams):
        check_access(actor, user_id, ACCESS_DENIED)
        query = self._scoped(
            self.db.query(ComplaintLog).filter(ComplaintLog.action_by == user_id),
            actor
        )
        return paginate(query, ComplaintLog, params)

    # ── Delete ─────────────────────────────────────────────────

    def remove(self, log_id: int, actor: User) -> None:
        require_admin_actor(actor, "Only admins can delete logs")
        log = self.db.query(ComplaintLog).filter(ComplaintLog.log_id == log_id).first()
        if not log:
            raise NotFoundError("Log not found")
        self.db.delete(log)
        self.db.commit()

    def remove_by_complaint(self, complaint_id: int, actor: User) -> int:
        require_admin_actor(actor, "Only admins can delete logs")
        deleted = self.db.query(ComplaintLog).filter(
            ComplaintLog.complaint_id == complaint_id
        ).delete(synchronize_session=False)
        self.db.commit()
        logger.info(f"🗑️ {deleted} log(s) deleted for complaint {complaint_id}")
        return deleted

    # ── Statistics ─────────────────────────────────────────────

    def statistics(self, actor: User) -> dict:
        total = self._scoped(self.db.query(ComplaintLog), actor).count()

        by_type = self._scoped(
            self.db.query(ComplaintLog.action_type, func.count(ComplaintLog.log_id)),
            actor
        ).group_by(ComplaintLog.action_type).all()

        top_users = self._scoped(
            self.db.query(User.user_id, User.full_name, func.count(ComplaintLog.log_id).label("count"))
            .select_from(ComplaintLog)
            .join(User, User.user_id == ComplaintLog.action_by),
            actor
        ).group_by(User.user_id, User.full_name) \
            .order_by(func.count(ComplaintLog.log_id).desc()) \
            .limit(10) \
            .all()

        return {
            "total_logs": total,
            "logs_by_action_type": {action_type: count for action_type, count in by_type},
            "top_users": [
                {"user_id": user_id, "full_name": full_name, "count": count}
                for user_id, full_name, count in top_users
            ],
        }
