from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base


class ComplaintLog(Base):
    __tablename__ = "complaint_logs"

    log_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # No FK: deleting a complaint leaves its satellite rows in place
    complaint_id = Column(Integer, nullable=False, index=True)
    action_by = Column(Integer, ForeignKey("users.user_id"), nullable=False, index=True)
    action_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_logs_complaint_created", "complaint_id", "created_at"),
    )

    # Relationships
    complaint = relationship(
        "Complaint",
        primaryjoin="foreign(ComplaintLog.complaint_id) == Complaint.complaint_id",
        viewonly=True,
    )
    actor = relationship("User")

    def to_dict(self) -> dict:
        return {
            "log_id": self.log_id,
            "complaint_id": self.complaint_id,
            "complaint_code": self.complaint.complaint_code if self.complaint else None,
            "action_by": self.action_by,
            "actor_name": self.actor.full_name if self.actor else None,
            "action_type": self.action_type,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
