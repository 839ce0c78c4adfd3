from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Optional
from database import get_db
from models.user import User
from services.complaint_log_service import ComplaintLogService
from utils.dependencies import get_current_active_user, require_admin
from utils.pagination import PaginationParams
from utils.responses import paginated_response

router = APIRouter(prefix="/complaint-logs", tags=["Complaint Logs"])


# Schemas
class CreateLogRequest(BaseModel):
    complaint_id: int
    action_type: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_log(
    request: CreateLogRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Write a manual log entry against an existing complaint"""
    log = ComplaintLogService(db).create(
        request.complaint_id, request.action_type, request.description, current_user
    )
    return {
        "success": True,
        "message": "Log created successfully",
        "data": log.to_dict()
    }


@router.get("")
def list_logs(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    complaint_id: Optional[int] = Query(None),
    action_by: Optional[int] = Query(None),
    action_type: Optional[str] = Query(None),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    logs, total = ComplaintLogService(db).find_all(
        current_user, params,
        search=search, complaint_id=complaint_id, action_by=action_by, action_type=action_type
    )
    return paginated_response([l.to_dict() for l in logs], params.page, params.limit, total, "Logs retrieved successfully")


@router.get("/statistics")
def get_log_statistics(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Statistics retrieved successfully",
        "data": ComplaintLogService(db).statistics(current_user)
    }


@router.get("/complaint/{complaint_id}")
def get_logs_by_complaint(
    complaint_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """All logs of one complaint, newest first"""
    logs = ComplaintLogService(db).find_by_complaint(complaint_id, current_user)
    return {
        "success": True,
        "message": "Logs retrieved successfully",
        "data": [l.to_dict() for l in logs]
    }


@router.get("/timeline/{complaint_id}")
def get_activity_timeline(
    complaint_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Activity timeline of one complaint, oldest first"""
    logs = ComplaintLogService(db).timeline(complaint_id, current_user)
    return {
        "success": True,
        "message": "Timeline retrieved successfully",
        "data": [l.to_dict() for l in logs]
    }


@router.get("/user/{user_id}")
def get_logs_by_user(
    user_id: int,
    params: PaginationParams = Depends(),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Logs written by one user (admin, or the user themself)"""
    logs, total = ComplaintLogService(db).find_by_user(user_id, current_user, params)
    return paginated_response([l.to_dict() for l in logs], params.page, params.limit, total, "Logs retrieved successfully")


@router.get("/{log_id}")
def get_log(
    log_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Log retrieved successfully",
        "data": ComplaintLogService(db).find_one(log_id, current_user).to_dict()
    }


@router.delete("/complaint/{complaint_id}")
def delete_logs_by_complaint(
    complaint_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    deleted = ComplaintLogService(db).remove_by_complaint(complaint_id, current_user)
    return {
        "success": True,
        "message": "Logs deleted successfully",
        "data": {"deleted_count": deleted}
    }


@router.delete("/{log_id}")
def delete_log(
    log_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ComplaintLogService(db).remove(log_id, current_user)
    return {
        "success": True,
        "message": "Log deleted successfully"
    }
