from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, field_validator
from typing import Optional
from database import get_db
from models.user import User, UserRole
from services.auth_service import public_user
from services.user_service import UserService
from utils.access_policy import check_access
from utils.dependencies import get_current_active_user, require_admin
from utils.pagination import PaginationParams
from utils.responses import paginated_response
import re

router = APIRouter(prefix="/users", tags=["Users"])


# Schemas
def _check_phone(v):
    if v is None:
        return v
    if not re.match(r'^\+?\d{7,15}$', v.replace(' ', '').replace('-', '')):
        raise ValueError('Invalid phone number format')
    return v


def _check_password(v):
    if v is None:
        return v
    if len(v.encode('utf-8')) > 72:
        raise ValueError('Password must be no longer than 72 bytes when encoded in UTF-8')
    if len(v) < 6:
        raise ValueError('Password must be at least 6 characters')
    return v


class CreateUserRequest(BaseModel):
    national_id: str
    password: str
    full_name: str
    phone: str
    role: UserRole = UserRole.citizen
    profile_image: Optional[str] = None
    is_active: Optional[bool] = True

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _check_phone(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


class UpdateProfileRequest(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _check_phone(v)


class UpdateUserRequest(UpdateProfileRequest):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    new_password: Optional[str] = None

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        return _check_password(v)


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        return _check_password(v)


# ============================================================================
# ADMIN COLLECTION ROUTES
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    request: CreateUserRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a user with any role (admin only)"""
    user = UserService(db).create(request.model_dump())
    return {
        "success": True,
        "message": "User created successfully",
        "data": user
    }


@router.get("")
def list_users(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List users with search over name, national ID and phone (admin only)"""
    users, total = UserService(db).find_all(params, search=search, role=role)
    return paginated_response(users, params.page, params.limit, total, "Users retrieved successfully")


@router.get("/statistics")
def get_user_statistics(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "Statistics retrieved successfully",
        "data": UserService(db).statistics()
    }


# ============================================================================
# CURRENT USER ROUTES
# ============================================================================

@router.get("/me")
def get_current_user_info(current_user: User = Depends(get_current_active_user)):
    """Get current logged in user information"""
    return {
        "success": True,
        "message": "User retrieved successfully",
        "data": public_user(current_user)
    }


@router.patch("/me")
def update_current_user(
    request: UpdateProfileRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Update current user information"""
    user = UserService(db).update(current_user.user_id, request.model_dump(exclude_unset=True), current_user)
    return {
        "success": True,
        "message": "User updated successfully",
        "data": user
    }


@router.patch("/me/change-password")
def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    UserService(db).change_password(current_user, request.old_password, request.new_password)
    return {
        "success": True,
        "message": "Password changed successfully"
    }


@router.post("/me/profile-image")
async def upload_my_profile_image(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Upload or replace the current user's profile image (jpg/jpeg/png, max 2MB)"""
    user = await UserService(db).upload_profile_image(current_user.user_id, image)
    return {
        "success": True,
        "message": "Profile image uploaded successfully",
        "data": user
    }


@router.delete("/me/profile-image")
def delete_my_profile_image(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    user = UserService(db).delete_profile_image(current_user.user_id)
    return {
        "success": True,
        "message": "Profile image deleted successfully",
        "data": user
    }


# ============================================================================
# SINGLE USER ROUTES
# ============================================================================

@router.get("/national-id/{national_id}")
def get_user_by_national_id(
    national_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "message": "User retrieved successfully",
        "data": UserService(db).find_by_national_id(national_id)
    }


@router.get("/{user_id}")
def get_user_by_id(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get user by ID (admin only or own profile)"""
    check_access(current_user, user_id, "Not authorized to view this user")
    return {
        "success": True,
        "message": "User retrieved successfully",
        "data": UserService(db).find_one(user_id)
    }


@router.patch("/{user_id}")
def update_user(
    user_id: int,
    request: UpdateUserRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Update a user (admin, or the user themself for name and phone)"""
    user = UserService(db).update(user_id, request.model_dump(exclude_unset=True), current_user)
    return {
        "success": True,
        "message": "User updated successfully",
        "data": user
    }


@router.patch("/{user_id}/toggle-active")
def toggle_user_active(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    user = UserService(db).toggle_active(user_id)
    return {
        "success": True,
        "message": "User activated" if user["is_active"] else "User deactivated",
        "data": user
    }


@router.post("/{user_id}/profile-image")
async def upload_user_profile_image(
    user_id: int,
    image: UploadFile = File(...),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Upload a profile image for any user (admin only)"""
    user = await UserService(db).upload_profile_image(user_id, image)
    return {
        "success": True,
        "message": "Profile image uploaded successfully",
        "data": user
    }


@router.delete("/{user_id}")
def deactivate_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Soft delete: deactivate the account"""
    UserService(db).remove(user_id)
    return {
        "success": True,
        "message": "User deactivated successfully"
    }


@router.delete("/{user_id}/hard")
def hard_delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Permanently delete a user and their profile image"""
    UserService(db).hard_delete(user_id)
    return {
        "success": True,
        "message": "User permanently deleted"
    }
