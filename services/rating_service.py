import logging
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.complaint import Complaint
from models.rating import Rating
from models.user import User
from utils.access_policy import check_access, is_admin, require_admin_actor, scope_filters
from utils.errors import ConflictError, ForbiddenError, NotFoundError
from utils.pagination import PaginationParams, paginate

logger = logging.getLogger(__name__)

ACCESS_DENIED = "You do not have access to this rating"
ALREADY_RATED = "You have already rated this complaint. Update the existing rating instead."


class RatingService:
    def __init__(self, db: Session):
        self.db = db

    def _complaint(self, complaint_id: int) -> Complaint:
        complaint = self.db.query(Complaint).filter(Complaint.complaint_id == complaint_id).first()
        if not complaint:
            raise NotFoundError("Complaint not found")
        return complaint

    def _get(self, rating_id: int) -> Rating:
        rating = self.db.query(Rating).filter(Rating.rating_id == rating_id).first()
        if not rating:
            raise NotFoundError("Rating not found")
        return rating

    # ── Create ─────────────────────────────────────────────────

    def create(self, complaint_id: int, rating: int, feedback: Optional[str], actor: User) -> Rating:
        complaint = self._complaint(complaint_id)
        if complaint.user_id != actor.user_id:
            raise ForbiddenError("You can only rate your own complaints")

        if self.has_user_rated(complaint_id, actor.user_id):
            raise ConflictError(ALREADY_RATED)

        entry = Rating(
            complaint_id=complaint_id,
            user_id=actor.user_id,
            rating=rating,
            feedback=feedback
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent create for the same pair
            self.db.rollback()
            raise ConflictError(ALREADY_RATED)
        self.db.refresh(entry)
        logger.info(f"⭐ Complaint {complaint_id} rated {rating} by user {actor.user_id}")
        return entry

    # ── Read ───────────────────────────────────────────────────

    def find_all(
        self,
        actor: User,
        params: PaginationParams,
        search: Optional[str] = None,
        complaint_id: Optional[int] = None,
        user_id: Optional[int] = None,
        rating: Optional[int] = None,
        min_rating: Optional[int] = None,
        max_rating: Optional[int] = None
    ):
        query = self.db.query(Rating)

        owner_id = scope_filters(actor, user_id)
        if owner_id is not None:
            query = query.filter(Rating.user_id == owner_id)
        if complaint_id is not None:
            query = query.filter(Rating.complaint_id == complaint_id)
        if rating is not None:
            query = query.filter(Rating.rating == rating)
        else:
            if min_rating is not None:
                query = query.filter(Rating.rating >= min_rating)
            if max_rating is not None:
                query = query.filter(Rating.rating <= max_rating)
        if search:
            query = query.filter(Rating.feedback.ilike(f"%{search}%"))

        return paginate(query, Rating, params)

    def find_one(self, rating_id: int, actor: User) -> Rating:
        entry = self._get(rating_id)
        check_access(actor, entry.user_id, ACCESS_DENIED)
        return entry

    def by_complaint(self, complaint_id: int, actor: User) -> List[Rating]:
        complaint = self._complaint(complaint_id)
        check_access(actor, complaint.user_id, ACCESS_DENIED)

        query = self.db.query(Rating).filter(Rating.complaint_id == complaint_id)
        if not is_admin(actor):
            query = query.filter(Rating.user_id == actor.user_id)
        return query.order_by(Rating.created_at.desc(), Rating.rating_id.desc()).all()

    def my_ratings(self, actor: User, params: PaginationParams, rating: Optional[int] = None):
        query = self.db.query(Rating).filter(Rating.user_id == actor.user_id)
        if rating is not None:
            query = query.filter(Rating.rating == rating)
        return paginate(query, Rating, params)

    def with_feedback(self, params: PaginationParams):
        query = self.db.query(Rating).filter(Rating.feedback.isnot(None), Rating.feedback != "")
        return paginate(query, Rating, params)

    def average_by_complaint(self, complaint_id: int) -> float:
        average = self.db.query(func.avg(Rating.rating)).filter(Rating.complaint_id == complaint_id).scalar()
        return float(average) if average is not None else 0

    def has_user_rated(self, complaint_id: int, user_id: int) -> bool:
        return self.db.query(Rating.rating_id).filter(
            Rating.complaint_id == complaint_id,
            Rating.user_id == user_id
        ).first() is not None

    # ── Update / delete ────────────────────────────────────────

    def update(self, rating_id: int, data: dict, actor: User) -> Rating:
        entry = self._get(rating_id)
        check_access(actor, entry.user_id, "You can only update your own ratings")

        if data.get("rating") is not None:
            entry.rating = data["rating"]
        if "feedback" in data:
            entry.feedback = data["feedback"]

        self.db.commit()
        self.db.refresh(entry)
        return entry

    def remove(self, rating_id: int, actor: User) -> None:
        entry = self._get(rating_id)
        check_access(actor, entry.user_id, "You can only delete your own ratings")
        self.db.delete(entry)
        self.db.commit()

    def remove_by_complaint(self, complaint_id: int, actor: User) -> int:
        require_admin_actor(actor, "Only admins can delete ratings")
        deleted = self.db.query(Rating).filter(
            Rating.complaint_id == complaint_id
        ).delete(synchronize_session=False)
        self.db.commit()
        logger.info(f"🗑️ {deleted} rating(s) deleted for complaint {complaint_id}")
        return deleted

    # ── Statistics ─────────────────────────────────────────────

    def statistics(self, actor: User) -> dict:
        owner_id = scope_filters(actor)

        def scoped(query):
            if owner_id is not None:
                return query.filter(Rating.user_id == owner_id)
            return query

        total = scoped(self.db.query(Rating)).count()
        average = scoped(self.db.query(func.avg(Rating.rating))).scalar()
        distribution = scoped(
            self.db.query(Rating.rating, func.count(Rating.rating_id))
        ).group_by(Rating.rating).order_by(Rating.rating.asc()).all()

        def ranked(condition, order):
            rows = scoped(
                self.db.query(Rating.rating_id, Rating.rating, Rating.feedback, Complaint.complaint_code)
                .join(Complaint, Complaint.complaint_id == Rating.complaint_id)
                .filter(condition)
            ).order_by(order, Rating.rating_id.asc()).limit(5).all()
            return [
                {"rating_id": rating_id, "rating": value, "feedback": feedback, "complaint_code": code}
                for rating_id, value, feedback, code in rows
            ]

        return {
            "total_ratings": total,
            "average_rating": float(average) if average is not None else 0,
            "rating_distribution": {f"{stars}_stars": count for stars, count in distribution},
            "top_rated": ranked(Rating.rating >= 4, Rating.rating.desc()),
            "low_rated": ranked(Rating.rating <= 2, Rating.rating.asc()),
        }
