from sqlalchemy import Column, Integer, String, Text, DateTime
from datetime import datetime
from database import Base


class ComplaintCategory(Base):
    __tablename__ = "complaint_categories"

    category_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    # Lower-cased copy of name; the unique index gives case-insensitive uniqueness
    name_normalized = Column(String(150), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @staticmethod
    def normalize(name: str) -> str:
        return name.strip().lower()

    def to_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
