import logging
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.complaint_category import ComplaintCategory
from utils.errors import ConflictError, NotFoundError
from utils.pagination import PaginationParams, paginate

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "A category with this name already exists"


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    def _by_normalized(self, name: str) -> Optional[ComplaintCategory]:
        return self.db.query(ComplaintCategory).filter(
            ComplaintCategory.name_normalized == ComplaintCategory.normalize(name)
        ).first()

    def create(self, name: str, description: str) -> ComplaintCategory:
        if self._by_normalized(name):
            raise ConflictError(DUPLICATE_MESSAGE)

        category = ComplaintCategory(
            name=name.strip(),
            name_normalized=ComplaintCategory.normalize(name),
            description=description
        )
        self.db.add(category)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(DUPLICATE_MESSAGE)
        self.db.refresh(category)
        logger.info(f"Category created: {category.name}")
        return category

    def bulk_create(self, items: List[dict]) -> dict:
        """Create many categories; existing names are skipped, failures collected"""
        created = 0
        skipped = 0
        errors = []

        for item in items:
            name = item["name"]
            if self._by_normalized(name):
                skipped += 1
                continue
            self.db.add(ComplaintCategory(
                name=name.strip(),
                name_normalized=ComplaintCategory.normalize(name),
                description=item["description"]
            ))
            try:
                self.db.commit()
                created += 1
            except IntegrityError as e:
                self.db.rollback()
                errors.append(f"{name}: {e.orig}")

        logger.info(f"Bulk category create: created={created} skipped={skipped} errors={len(errors)}")
        return {"created": created, "skipped": skipped, "errors": errors}

    def find_all(self, params: PaginationParams, search: Optional[str] = None):
        query = self.db.query(ComplaintCategory)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                ComplaintCategory.name.ilike(pattern),
                ComplaintCategory.description.ilike(pattern)
            ))
        return paginate(query, ComplaintCategory, params)

    def find_all_simple(self) -> List[ComplaintCategory]:
        return self.db.query(ComplaintCategory).order_by(ComplaintCategory.name_normalized.asc()).all()

    def find_one(self, category_id: int) -> ComplaintCategory:
        category = self.db.query(ComplaintCategory).filter(
            ComplaintCategory.category_id == category_id
        ).first()
        if not category:
            raise NotFoundError("Category not found")
        return category

    def find_by_name(self, name: str) -> ComplaintCategory:
        category = self._by_normalized(name)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def exists(self, name: str) -> bool:
        return self._by_normalized(name) is not None

    def update(self, category_id: int, name: Optional[str] = None, description: Optional[str] = None) -> ComplaintCategory:
        category = self.find_one(category_id)

        if name is not None:
            existing = self._by_normalized(name)
            if existing and existing.category_id != category.category_id:
                raise ConflictError(DUPLICATE_MESSAGE)
            category.name = name.strip()
            category.name_normalized = ComplaintCategory.normalize(name)
        if description is not None:
            category.description = description

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(DUPLICATE_MESSAGE)
        self.db.refresh(category)
        return category

    def remove(self, category_id: int) -> None:
        # Complaints keep their category_id; it simply stops resolving
        category = self.find_one(category_id)
        self.db.delete(category)
        self.db.commit()
        logger.info(f"Category {category_id} deleted")

    def statistics(self) -> dict:
        return {"total_categories": self.db.query(ComplaintCategory).count()}
