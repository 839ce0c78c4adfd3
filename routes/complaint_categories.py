from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from database import get_db
from models.user import User
from services.category_service import CategoryService
from utils.dependencies import require_admin
from utils.pagination import PaginationParams
from utils.responses import paginated_response

router = APIRouter(prefix="/complaint-categories", tags=["Complaint Categories"])


# Schemas
class CreateCategoryRequest(BaseModel):
    name: str = Field(..., max_length=150)
    description: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Category name is required')
        return v.strip()


class BulkCreateCategoryRequest(BaseModel):
    categories: List[CreateCategoryRequest] = Field(..., min_length=1)


class UpdateCategoryRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=150)
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Category name cannot be empty')
        return v.strip() if v else v


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(
    request: CreateCategoryRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a category; names are unique ignoring case (admin only)"""
    category = CategoryService(db).create(request.name, request.description)
    return {
        "success": True,
        "message": "Category created successfully",
        "data": category.to_dict()
    }


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
def bulk_create_categories(
    request: BulkCreateCategoryRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create many categories at once; existing names are skipped"""
    result = CategoryService(db).bulk_create([c.model_dump() for c in request.categories])
    return {
        "success": True,
        "message": f"{result['created']} categories created, {result['skipped']} skipped",
        "data": result
    }


@router.get("")
def list_categories(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Public paginated category list"""
    categories, total = CategoryService(db).find_all(params, search=search)
    return paginated_response(
        [c.to_dict() for c in categories], params.page, params.limit, total,
        "Categories retrieved successfully"
    )


@router.get("/simple")
def list_categories_simple(db: Session = Depends(get_db)):
    """All categories sorted by name, without pagination"""
    return {
        "success": True,
        "message": "Categories retrieved successfully",
        "data": [c.to_dict() for c in CategoryService(db).find_all_simple()]
    }


@router.get("/statistics")
def get_category_statistics(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Statistics retrieved successfully",
        "data": CategoryService(db).statistics()
    }


@router.get("/name/{name}")
def get_category_by_name(name: str, db: Session = Depends(get_db)):
    return {
        "success": True,
        "message": "Category retrieved successfully",
        "data": CategoryService(db).find_by_name(name).to_dict()
    }


@router.get("/exists/{name}")
def category_exists(name: str, db: Session = Depends(get_db)):
    return {
        "success": True,
        "message": "Check completed",
        "data": {"exists": CategoryService(db).exists(name)}
    }


@router.get("/{category_id}")
def get_category(category_id: int, db: Session = Depends(get_db)):
    return {
        "success": True,
        "message": "Category retrieved successfully",
        "data": CategoryService(db).find_one(category_id).to_dict()
    }


@router.patch("/{category_id}")
def update_category(
    category_id: int,
    request: UpdateCategoryRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    category = CategoryService(db).update(category_id, request.name, request.description)
    return {
        "success": True,
        "message": "Category updated successfully",
        "data": category.to_dict()
    }


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a category; complaints pointing at it keep a dangling reference"""
    CategoryService(db).remove(category_id)
    return {
        "success": True,
        "message": "Category deleted successfully"
    }
