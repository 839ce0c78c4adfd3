"""
Complaint store: CRUD, lifecycle transitions and image management.

State-changing operations commit the complaint first and then emit a
lifecycle event (see services.lifecycle); the activity log and
notification writes hanging off those events never fail the request.
"""

import logging
import os
from datetime import datetime
from typing import List, Optional
from fastapi import UploadFile
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.complaint import Complaint, ComplaintPriority, ComplaintSequence, ComplaintStatus
from models.complaint_category import ComplaintCategory
from models.user import User
from services.lifecycle import ComplaintEvent, hooks
from utils.access_policy import check_access, require_admin_actor, scope_filters
from utils.cloudinary_manager import CloudinaryManager, build_image_urls, upload_complaint_images
from utils.errors import NotFoundError
from utils.pagination import PaginationParams, paginate

logger = logging.getLogger(__name__)

SEQUENCE_NAME = "complaint_code"
ACCESS_DENIED = "You do not have access to this complaint"


def serialize_complaint(complaint: Complaint) -> dict:
    data = complaint.to_dict()
    data["images"] = build_image_urls(complaint.images)
    return data


class ComplaintService:
    def __init__(self, db: Session):
        self.db = db

    # ── Helpers ────────────────────────────────────────────────

    def _next_sequence(self) -> int:
        """Atomically bump the global counter; the row lock lives until commit"""
        for _ in range(2):
            updated = self.db.query(ComplaintSequence).filter(
                ComplaintSequence.name == SEQUENCE_NAME
            ).update({ComplaintSequence.value: ComplaintSequence.value + 1}, synchronize_session=False)

            if updated:
                return self.db.query(ComplaintSequence.value).filter(
                    ComplaintSequence.name == SEQUENCE_NAME
                ).scalar()

            self.db.add(ComplaintSequence(name=SEQUENCE_NAME, value=1))
            try:
                self.db.flush()
                return 1
            except IntegrityError:
                # Another request created the counter first
                self.db.rollback()
        raise RuntimeError("Could not allocate a complaint sequence number")

    def generate_complaint_code(self) -> str:
        sequence = self._next_sequence()
        return f"CMP-{datetime.utcnow().strftime('%Y%m%d')}-{sequence:06d}"

    def _get(self, complaint_id: int) -> Complaint:
        complaint = self.db.query(Complaint).filter(Complaint.complaint_id == complaint_id).first()
        if not complaint:
            raise NotFoundError("Complaint not found")
        return complaint

    def _ensure_category(self, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        exists = self.db.query(ComplaintCategory.category_id).filter(
            ComplaintCategory.category_id == category_id
        ).first()
        if not exists:
            raise NotFoundError("Category not found")

    # ── Create / read ──────────────────────────────────────────

    def create(self, data: dict, owner: User) -> dict:
        self._ensure_category(data.get("category_id"))

        complaint = Complaint(
            complaint_code=self.generate_complaint_code(),
            user_id=owner.user_id,
            category_id=data.get("category_id"),
            title=data["title"],
            description=data["description"],
            location=data.get("location"),
            status=ComplaintStatus.pending,
            priority=data.get("priority") or ComplaintPriority.medium,
            images=[],
            is_read=False
        )
        self.db.add(complaint)
        self.db.commit()
        self.db.refresh(complaint)
        logger.info(f"📝 Complaint {complaint.complaint_code} created by user {owner.user_id}")

        hooks.emit(ComplaintEvent.created, self.db, complaint, owner)
        return serialize_complaint(complaint)

    def find_all(
        self,
        actor: User,
        params: PaginationParams,
        search: Optional[str] = None,
        user_id: Optional[int] = None,
        category_id: Optional[int] = None,
        status: Optional[ComplaintStatus] = None,
        priority: Optional[ComplaintPriority] = None,
        is_read: Optional[bool] = None
    ):
        query = self.db.query(Complaint)

        owner_id = scope_filters(actor, user_id)
        if owner_id is not None:
            query = query.filter(Complaint.user_id == owner_id)
        if category_id is not None:
            query = query.filter(Complaint.category_id == category_id)
        if status:
            query = query.filter(Complaint.status == status)
        if priority:
            query = query.filter(Complaint.priority == priority)
        if is_read is not None:
            query = query.filter(Complaint.is_read == is_read)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Complaint.title.ilike(pattern),
                Complaint.description.ilike(pattern),
                Complaint.location.ilike(pattern),
                Complaint.complaint_code.ilike(pattern)
            ))

        complaints, total = paginate(query, Complaint, params)
        return [serialize_complaint(c) for c in complaints], total

    def my_complaints(
        self,
        actor: User,
        params: PaginationParams,
        status: Optional[ComplaintStatus] = None,
        priority: Optional[ComplaintPriority] = None
    ):
        query = self.db.query(Complaint).filter(Complaint.user_id == actor.user_id)
        if status:
            query = query.filter(Complaint.status == status)
        if priority:
            query = query.filter(Complaint.priority == priority)

        complaints, total = paginate(query, Complaint, params)
        return [serialize_complaint(c) for c in complaints], total

    def find_one(self, complaint_id: int, actor: User) -> dict:
        complaint = self._get(complaint_id)
        check_access(actor, complaint.user_id, ACCESS_DENIED)
        return serialize_complaint(complaint)

    # ── Update ─────────────────────────────────────────────────

    def update(self, complaint_id: int, data: dict, actor: User) -> dict:
        complaint = self._get(complaint_id)
        check_access(actor, complaint.user_id, ACCESS_DENIED)

        if "category_id" in data:
            self._ensure_category(data["category_id"])

        for field in ("title", "description", "priority"):
            if data.get(field) is not None:
                setattr(complaint, field, data[field])
        # Optional columns may be cleared with an explicit null
        for field in ("location", "category_id"):
            if field in data:
                setattr(complaint, field, data[field])

        self.db.commit()
        self.db.refresh(complaint)
        return serialize_complaint(complaint)

    def update_status(
        self,
        complaint_id: int,
        new_status: ComplaintStatus,
        actor: User,
        note: Optional[str] = None
    ) -> dict:
        require_admin_actor(actor, "Only admins can change a complaint's status")
        complaint = self._get(complaint_id)

        old_status = complaint.status
        complaint.status = new_status

        # Terminal timestamps are set once and never overwritten
        now = datetime.utcnow()
        if new_status == ComplaintStatus.resolved and not complaint.resolved_at:
            complaint.resolved_at = now
        if new_status == ComplaintStatus.closed and not complaint.closed_at:
            complaint.closed_at = now

        self.db.commit()
        self.db.refresh(complaint)
        logger.info(
            f"🔄 Complaint {complaint.complaint_code} status {old_status.value} -> {new_status.value} "
            f"by admin {actor.user_id}"
        )

        hooks.emit(
            ComplaintEvent.status_changed, self.db, complaint, actor,
            old_status=old_status, new_status=new_status, note=note
        )
        return serialize_complaint(complaint)

    def assign(self, complaint_id: int, assignee_id: int, actor: User) -> dict:
        require_admin_actor(actor, "Only admins can assign complaints")
        complaint = self._get(complaint_id)

        assignee = self.db.query(User).filter(User.user_id == assignee_id).first()
        if not assignee:
            raise NotFoundError("Assignee not found")

        old_status = complaint.status
        complaint.assigned_to = assignee.user_id
        if complaint.status == ComplaintStatus.pending:
            complaint.status = ComplaintStatus.in_progress

        self.db.commit()
        self.db.refresh(complaint)
        logger.info(f"👷 Complaint {complaint.complaint_code} assigned to user {assignee.user_id}")

        hooks.emit(
            ComplaintEvent.assigned, self.db, complaint, actor,
            assignee=assignee, old_status=old_status
        )
        return serialize_complaint(complaint)

    def mark_as_read(self, complaint_id: int, actor: User) -> dict:
        require_admin_actor(actor, "Only admins can mark complaints as read")
        complaint = self._get(complaint_id)
        complaint.is_read = True
        self.db.commit()
        self.db.refresh(complaint)
        return serialize_complaint(complaint)

    # ── Images ─────────────────────────────────────────────────

    async def upload_images(self, complaint_id: int, files: List[UploadFile], actor: User) -> dict:
        complaint = self._get(complaint_id)
        check_access(actor, complaint.user_id, ACCESS_DENIED)

        urls = await upload_complaint_images(files, complaint.complaint_id)

        # Assign a new list so the JSON column is flagged dirty
        complaint.images = list(complaint.images or []) + urls
        self.db.commit()
        self.db.refresh(complaint)
        logger.info(f"🖼️ {len(urls)} image(s) added to complaint {complaint.complaint_code}")

        hooks.emit(ComplaintEvent.images_uploaded, self.db, complaint, actor, count=len(urls))
        return serialize_complaint(complaint)

    def delete_image(self, complaint_id: int, image: str, actor: User) -> dict:
        """Remove one image; *image* may be the stored URL or just its file name"""
        complaint = self._get(complaint_id)
        check_access(actor, complaint.user_id, ACCESS_DENIED)

        images = list(complaint.images or [])
        match = next(
            (i for i in images if i == image or os.path.basename(i.split("?", 1)[0]) == image),
            None
        )
        if match is None:
            raise NotFoundError("Image not found on this complaint")

        if not CloudinaryManager.delete_file(match):
            logger.warning(f"Storage delete failed for {match}; removing the reference anyway")

        complaint.images = [i for i in images if i != match]
        self.db.commit()
        self.db.refresh(complaint)
        return serialize_complaint(complaint)

    # ── Delete ─────────────────────────────────────────────────

    def remove(self, complaint_id: int, actor: User) -> None:
        complaint = self._get(complaint_id)
        check_access(actor, complaint.user_id, ACCESS_DENIED)

        for image in complaint.images or []:
            CloudinaryManager.delete_file(image)

        code = complaint.complaint_code
        self.db.delete(complaint)
        self.db.commit()
        logger.info(f"🗑️ Complaint {code} deleted by user {actor.user_id}")

    # ── Statistics ─────────────────────────────────────────────

    def statistics(self, actor: User) -> dict:
        owner_id = scope_filters(actor)

        def scoped(query):
            if owner_id is not None:
                return query.filter(Complaint.user_id == owner_id)
            return query

        total = scoped(self.db.query(Complaint)).count()
        unread = scoped(self.db.query(Complaint).filter(Complaint.is_read == False)).count()

        by_status = scoped(
            self.db.query(Complaint.status, func.count(Complaint.complaint_id))
        ).group_by(Complaint.status).all()
        by_priority = scoped(
            self.db.query(Complaint.priority, func.count(Complaint.complaint_id))
        ).group_by(Complaint.priority).all()

        return {
            "total_complaints": total,
            "unread_count": unread,
            "by_status": {s.value: count for s, count in by_status},
            "by_priority": {p.value: count for p, count in by_priority},
        }
