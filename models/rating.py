from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base


class Rating(Base):
    __tablename__ = "complaint_ratings"

    rating_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # No FK: deleting a complaint leaves its satellite rows in place
    complaint_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    feedback = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("complaint_id", "user_id", name="uq_rating_complaint_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_rating_range"),
    )

    # Relationships
    complaint = relationship(
        "Complaint",
        primaryjoin="foreign(Rating.complaint_id) == Complaint.complaint_id",
        viewonly=True,
    )
    user = relationship("User")

    def to_dict(self) -> dict:
        return {
            "rating_id": self.rating_id,
            "complaint_id": self.complaint_id,
            "complaint_code": self.complaint.complaint_code if self.complaint else None,
            "user_id": self.user_id,
            "user_name": self.user.full_name if self.user else None,
            "rating": self.rating,
            "feedback": self.feedback,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
