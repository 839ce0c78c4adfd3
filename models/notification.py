from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base
from models.complaint import ComplaintStatus
import enum


class NotificationType(str, enum.Enum):
    status_update = "status_update"
    new_comment = "new_comment"


class Notification(Base):
    __tablename__ = "notifications"

    notification_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    # No FK: deleting a complaint leaves its satellite rows in place
    complaint_id = Column(Integer, nullable=False, index=True)
    notification_type = Column(Enum(NotificationType), nullable=False, index=True)
    message = Column(Text, nullable=False)
    old_status = Column(Enum(ComplaintStatus), default=ComplaintStatus.pending)
    new_status = Column(Enum(ComplaintStatus), default=ComplaintStatus.pending)
    assigned_to = Column(Integer, ForeignKey("users.user_id"), nullable=True, index=True)
    note = Column(Text, nullable=True)
    file = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    assignee = relationship("User", foreign_keys=[assigned_to])
    complaint = relationship(
        "Complaint",
        primaryjoin="foreign(Notification.complaint_id) == Complaint.complaint_id",
        viewonly=True,
    )

    def to_dict(self) -> dict:
        return {
            "notification_id": self.notification_id,
            "user_id": self.user_id,
            "complaint_id": self.complaint_id,
            "complaint_code": self.complaint.complaint_code if self.complaint else None,
            "type": self.notification_type.value if self.notification_type else None,
            "message": self.message,
            "old_status": self.old_status.value if self.old_status else None,
            "new_status": self.new_status.value if self.new_status else None,
            "assigned_to": self.assigned_to,
            "assignee_name": self.assignee.full_name if self.assignee else None,
            "note": self.note,
            "file": self.file,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
