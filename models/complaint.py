from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Boolean, Enum, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base
import enum


class ComplaintStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    resolved = "resolved"
    closed = "closed"


class ComplaintPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class Complaint(Base):
    __tablename__ = "complaints"

    complaint_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    complaint_code = Column(String(32), unique=True, nullable=False, index=True)  # CMP-YYYYMMDD-NNNNNN
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    # No FK constraint: deleting a category leaves the reference dangling
    category_id = Column(Integer, nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255), nullable=True)
    status = Column(Enum(ComplaintStatus), nullable=False, default=ComplaintStatus.pending, index=True)
    priority = Column(Enum(ComplaintPriority), nullable=False, default=ComplaintPriority.medium, index=True)
    images = Column(JSON, nullable=False, default=list)
    assigned_to = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    is_read = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_complaints_owner_created", "user_id", "created_at"),
    )

    # Relationships
    owner = relationship("User", foreign_keys=[user_id])
    assignee = relationship("User", foreign_keys=[assigned_to])
    category = relationship(
        "ComplaintCategory",
        primaryjoin="foreign(Complaint.category_id) == ComplaintCategory.category_id",
        viewonly=True,
    )

    def to_dict(self) -> dict:
        """Raw row projection; image references are rendered to URLs by the service layer"""
        return {
            "complaint_id": self.complaint_id,
            "complaint_code": self.complaint_code,
            "user_id": self.user_id,
            "owner_name": self.owner.full_name if self.owner else None,
            "category_id": self.category_id,
            # Dangling category references render as null
            "category": self.category.to_dict() if self.category else None,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "status": self.status.value if self.status else None,
            "priority": self.priority.value if self.priority else None,
            "images": list(self.images or []),
            "assigned_to": self.assigned_to,
            "assignee_name": self.assignee.full_name if self.assignee else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ComplaintSequence(Base):
    """Global counter behind complaint codes; incremented in place, never reset."""
    __tablename__ = "complaint_sequences"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
