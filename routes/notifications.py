from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from database import get_db
from models.complaint import ComplaintStatus
from models.notification import NotificationType
from models.user import User
from services.notification_service import NotificationService
from utils.dependencies import get_current_active_user, require_admin, require_citizen
from utils.pagination import PaginationParams
from utils.responses import paginated_response

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# Schemas
class CreateNotificationRequest(BaseModel):
    user_id: int
    complaint_id: int
    type: NotificationType
    message: str = Field(..., min_length=1)
    old_status: Optional[ComplaintStatus] = None
    new_status: Optional[ComplaintStatus] = None
    assigned_to: Optional[int] = None
    note: Optional[str] = None
    file: Optional[str] = Field(None, max_length=500)


class UpdateNotificationRequest(BaseModel):
    type: Optional[NotificationType] = None
    message: Optional[str] = Field(None, min_length=1)
    old_status: Optional[ComplaintStatus] = None
    new_status: Optional[ComplaintStatus] = None
    assigned_to: Optional[int] = None
    note: Optional[str] = None
    file: Optional[str] = Field(None, max_length=500)

    @field_validator('message')
    @classmethod
    def not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Message cannot be empty')
        return v


@router.post("", status_code=status.HTTP_201_CREATED)
def create_notification(
    request: CreateNotificationRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Send a notification by hand (admin only)"""
    notification = NotificationService(db).create(request.model_dump(), current_user)
    return {
        "success": True,
        "message": "Notification created successfully",
        "data": notification.to_dict()
    }


@router.get("")
def get_notifications(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    complaint_id: Optional[int] = Query(None),
    type: Optional[NotificationType] = Query(None),
    new_status: Optional[ComplaintStatus] = Query(None),
    assigned_to: Optional[int] = Query(None),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """List notifications; citizens only see their own inbox"""
    notifications, total = NotificationService(db).find_all(
        current_user, params,
        search=search, user_id=user_id, complaint_id=complaint_id,
        notification_type=type, new_status=new_status, assigned_to=assigned_to
    )
    return paginated_response(
        [n.to_dict() for n in notifications], params.page, params.limit, total,
        "Notifications retrieved successfully"
    )


@router.get("/statistics")
def get_notification_statistics(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Statistics retrieved successfully",
        "data": NotificationService(db).statistics(current_user)
    }


@router.get("/my-notifications")
def get_my_notifications(
    params: PaginationParams = Depends(),
    type: Optional[NotificationType] = Query(None),
    current_user: User = Depends(require_citizen),
    db: Session = Depends(get_db)
):
    notifications, total = NotificationService(db).my_notifications(current_user, params, notification_type=type)
    return paginated_response(
        [n.to_dict() for n in notifications], params.page, params.limit, total,
        "Notifications retrieved successfully"
    )


@router.get("/recent")
def get_recent_notifications(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Most recent notifications for the dashboard"""
    return {
        "success": True,
        "message": "Recent notifications retrieved successfully",
        "data": NotificationService(db).recent(current_user, limit)
    }


@router.get("/complaint/{complaint_id}")
def get_notifications_by_complaint(
    complaint_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    notifications = NotificationService(db).by_complaint(complaint_id, current_user)
    return {
        "success": True,
        "message": "Notifications retrieved successfully",
        "data": [n.to_dict() for n in notifications]
    }


@router.get("/assigned/{user_id}")
def get_notifications_by_assignee(
    user_id: int,
    params: PaginationParams = Depends(),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    notifications, total = NotificationService(db).by_assigned_user(user_id, current_user, params)
    return paginated_response(
        [n.to_dict() for n in notifications], params.page, params.limit, total,
        "Notifications retrieved successfully"
    )


@router.get("/{notification_id}")
def get_notification(
    notification_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Notification retrieved successfully",
        "data": NotificationService(db).find_one(notification_id, current_user).to_dict()
    }


@router.patch("/{notification_id}")
def update_notification(
    notification_id: int,
    request: UpdateNotificationRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    notification = NotificationService(db).update(
        notification_id, request.model_dump(exclude_unset=True), current_user
    )
    return {
        "success": True,
        "message": "Notification updated successfully",
        "data": notification.to_dict()
    }


@router.delete("/complaint/{complaint_id}")
def delete_notifications_by_complaint(
    complaint_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    deleted = NotificationService(db).remove_by_complaint(complaint_id, current_user)
    return {
        "success": True,
        "message": "Notifications deleted successfully",
        "data": {"deleted_count": deleted}
    }


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    NotificationService(db).remove(notification_id, current_user)
    return {
        "success": True,
        "message": "Notification deleted successfully"
    }
