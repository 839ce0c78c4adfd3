from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from database import get_db
from models.complaint import ComplaintPriority, ComplaintStatus
from models.user import User
from services.complaint_service import ComplaintService
from utils.dependencies import get_current_active_user, require_admin
from utils.pagination import PaginationParams
from utils.responses import paginated_response

router = APIRouter(prefix="/complaints", tags=["Complaints"])


# Schemas
class CreateComplaintRequest(BaseModel):
    title: str = Field(..., max_length=255)
    description: str
    location: Optional[str] = Field(None, max_length=255)
    category_id: Optional[int] = None
    priority: Optional[ComplaintPriority] = None

    @field_validator('title', 'description')
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError('Field cannot be empty')
        return v.strip()


class UpdateComplaintRequest(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    category_id: Optional[int] = None
    priority: Optional[ComplaintPriority] = None

    @field_validator('title', 'description')
    @classmethod
    def not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Field cannot be empty')
        return v.strip() if v else v


class UpdateStatusRequest(BaseModel):
    status: ComplaintStatus
    note: Optional[str] = None


class AssignComplaintRequest(BaseModel):
    assigned_to: int


@router.post("", status_code=status.HTTP_201_CREATED)
def create_complaint(
    request: CreateComplaintRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Create a new complaint owned by the current user"""
    complaint = ComplaintService(db).create(request.model_dump(), current_user)
    return {
        "success": True,
        "message": "Complaint created successfully",
        "data": complaint
    }


@router.get("")
def list_complaints(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    category_id: Optional[int] = Query(None),
    status: Optional[ComplaintStatus] = Query(None),
    priority: Optional[ComplaintPriority] = Query(None),
    is_read: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """List complaints; citizens only ever see their own"""
    complaints, total = ComplaintService(db).find_all(
        current_user, params,
        search=search, user_id=user_id, category_id=category_id,
        status=status, priority=priority, is_read=is_read
    )
    return paginated_response(complaints, params.page, params.limit, total, "Complaints retrieved successfully")


@router.get("/statistics")
def get_complaint_statistics(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Statistics retrieved successfully",
        "data": ComplaintService(db).statistics(current_user)
    }


@router.get("/my-complaints")
def get_my_complaints(
    params: PaginationParams = Depends(),
    status: Optional[ComplaintStatus] = Query(None),
    priority: Optional[ComplaintPriority] = Query(None),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Get current user's complaints with pagination"""
    complaints, total = ComplaintService(db).my_complaints(current_user, params, status=status, priority=priority)
    return paginated_response(complaints, params.page, params.limit, total, "Complaints retrieved successfully")


@router.get("/{complaint_id}")
def get_complaint_details(
    complaint_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Complaint details retrieved successfully",
        "data": ComplaintService(db).find_one(complaint_id, current_user)
    }


@router.patch("/{complaint_id}")
def update_complaint(
    complaint_id: int,
    request: UpdateComplaintRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    complaint = ComplaintService(db).update(complaint_id, request.model_dump(exclude_unset=True), current_user)
    return {
        "success": True,
        "message": "Complaint updated successfully",
        "data": complaint
    }


@router.patch("/{complaint_id}/status")
def update_complaint_status(
    complaint_id: int,
    request: UpdateStatusRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Change a complaint's status (admin only); logs and notifies the owner"""
    complaint = ComplaintService(db).update_status(complaint_id, request.status, current_user, request.note)
    return {
        "success": True,
        "message": "Complaint status updated successfully",
        "data": complaint
    }


@router.patch("/{complaint_id}/assign")
def assign_complaint(
    complaint_id: int,
    request: AssignComplaintRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Assign a complaint (admin only); a pending complaint moves to in_progress"""
    complaint = ComplaintService(db).assign(complaint_id, request.assigned_to, current_user)
    return {
        "success": True,
        "message": "Complaint assigned successfully",
        "data": complaint
    }


@router.patch("/{complaint_id}/read")
def mark_complaint_as_read(
    complaint_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Complaint marked as read",
        "data": ComplaintService(db).mark_as_read(complaint_id, current_user)
    }


@router.post("/{complaint_id}/images")
async def upload_complaint_images(
    complaint_id: int,
    images: List[UploadFile] = File(...),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Attach up to 5 images (jpg/jpeg/png/pdf, 5MB each)"""
    complaint = await ComplaintService(db).upload_images(complaint_id, images, current_user)
    return {
        "success": True,
        "message": "Images uploaded successfully",
        "data": complaint
    }


@router.delete("/{complaint_id}/images")
def delete_complaint_image(
    complaint_id: int,
    image: str = Query(..., description="Stored image URL or its file name"),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    complaint = ComplaintService(db).delete_image(complaint_id, image, current_user)
    return {
        "success": True,
        "message": "Image deleted successfully",
        "data": complaint
    }


@router.delete("/{complaint_id}")
def delete_complaint(
    complaint_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Delete a complaint and its stored images; logs, notifications and ratings are kept"""
    ComplaintService(db).remove(complaint_id, current_user)
    return {
        "success": True,
        "message": "Complaint deleted successfully"
    }
