# routes/ratings.py
# Citizens rate how their own complaints were handled, once per complaint

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Optional
from database import get_db
from models.user import User
from services.rating_service import RatingService
from utils.dependencies import get_current_active_user, require_admin, require_citizen
from utils.pagination import PaginationParams
from utils.responses import paginated_response

router = APIRouter(prefix="/ratings", tags=["Ratings"])


# ===== SCHEMAS =====

class CreateRatingRequest(BaseModel):
    complaint_id: int
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=500)


class UpdateRatingRequest(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=500)


# ===== ENDPOINTS =====

@router.post("", status_code=status.HTTP_201_CREATED)
def create_rating(
    request: CreateRatingRequest,
    current_user: User = Depends(require_citizen),
    db: Session = Depends(get_db)
):
    """Rate one of your own complaints; a second rating for it is rejected"""
    rating = RatingService(db).create(request.complaint_id, request.rating, request.feedback, current_user)
    return {
        "success": True,
        "message": "Rating submitted successfully",
        "data": rating.to_dict()
    }


@router.get("")
def list_ratings(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    complaint_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    rating: Optional[int] = Query(None, ge=1, le=5),
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    max_rating: Optional[int] = Query(None, ge=1, le=5),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    ratings, total = RatingService(db).find_all(
        current_user, params,
        search=search, complaint_id=complaint_id, user_id=user_id,
        rating=rating, min_rating=min_rating, max_rating=max_rating
    )
    return paginated_response([r.to_dict() for r in ratings], params.page, params.limit, total, "Ratings retrieved successfully")


@router.get("/statistics")
def get_rating_statistics(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Statistics retrieved successfully",
        "data": RatingService(db).statistics(current_user)
    }


@router.get("/with-feedback")
def get_ratings_with_feedback(
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db)
):
    """Public list of ratings that carry written feedback"""
    ratings, total = RatingService(db).with_feedback(params)
    return paginated_response([r.to_dict() for r in ratings], params.page, params.limit, total, "Ratings retrieved successfully")


@router.get("/my-ratings")
def get_my_ratings(
    params: PaginationParams = Depends(),
    rating: Optional[int] = Query(None, ge=1, le=5),
    current_user: User = Depends(require_citizen),
    db: Session = Depends(get_db)
):
    ratings, total = RatingService(db).my_ratings(current_user, params, rating=rating)
    return paginated_response([r.to_dict() for r in ratings], params.page, params.limit, total, "Ratings retrieved successfully")


@router.get("/complaint/{complaint_id}")
def get_ratings_by_complaint(
    complaint_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    ratings = RatingService(db).by_complaint(complaint_id, current_user)
    return {
        "success": True,
        "message": "Ratings retrieved successfully",
        "data": [r.to_dict() for r in ratings]
    }


@router.get("/average/{complaint_id}")
def get_average_rating(complaint_id: int, db: Session = Depends(get_db)):
    """Mean rating of a complaint, 0 when it has none"""
    return {
        "success": True,
        "message": "Average rating retrieved successfully",
        "data": {
            "complaint_id": complaint_id,
            "average_rating": RatingService(db).average_by_complaint(complaint_id)
        }
    }


@router.get("/check/{complaint_id}")
def check_user_rated(
    complaint_id: int,
    current_user: User = Depends(require_citizen),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Check completed",
        "data": {"has_rated": RatingService(db).has_user_rated(complaint_id, current_user.user_id)}
    }


@router.get("/{rating_id}")
def get_rating(
    rating_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Rating retrieved successfully",
        "data": RatingService(db).find_one(rating_id, current_user).to_dict()
    }


@router.patch("/{rating_id}")
def update_rating(
    rating_id: int,
    request: UpdateRatingRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    rating = RatingService(db).update(rating_id, request.model_dump(exclude_unset=True), current_user)
    return {
        "success": True,
        "message": "Rating updated successfully",
        "data": rating.to_dict()
    }


@router.delete("/complaint/{complaint_id}")
def delete_ratings_by_complaint(
    complaint_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    deleted = RatingService(db).remove_by_complaint(complaint_id, current_user)
    return {
        "success": True,
        "message": "Ratings deleted successfully",
        "data": {"deleted_count": deleted}
    }


@router.delete("/{rating_id}")
def delete_rating(
    rating_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    RatingService(db).remove(rating_id, current_user)
    return {
        "success": True,
        "message": "Rating deleted successfully"
    }
