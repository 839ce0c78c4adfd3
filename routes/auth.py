from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, field_validator
from typing import Optional
from database import get_db
from models.user import User
from services.auth_service import AuthService, public_user
from utils.dependencies import get_current_active_user
import logging
import re

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ============================================================================
# SCHEMAS
# ============================================================================

def _check_password(v: str) -> str:
    if len(v.encode('utf-8')) > 72:
        raise ValueError('Password must be no longer than 72 bytes when encoded in UTF-8')
    if len(v) < 6:
        raise ValueError('Password must be at least 6 characters')
    return v


class RegisterRequest(BaseModel):
    national_id: str
    password: str
    full_name: str
    phone: str
    profile_image: Optional[str] = None

    @field_validator('national_id')
    @classmethod
    def validate_national_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('National ID is required')
        if len(v) > 50:
            raise ValueError('National ID cannot exceed 50 characters')
        return v

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, v):
        """Validate full name"""
        if not v or len(v.strip()) < 2:
            raise ValueError('Full name must be at least 2 characters')
        if len(v) > 100:
            raise ValueError('Full name cannot exceed 100 characters')
        return v.strip()

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        """Validate phone number format"""
        phone_pattern = r'^\+?\d{7,15}$'
        if not re.match(phone_pattern, v.replace(' ', '').replace('-', '')):
            raise ValueError('Invalid phone number format')
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


class LoginRequest(BaseModel):
    national_id: str
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


# ============================================================================
# ROUTES
# ============================================================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new citizen account

    Returns an access/refresh token pair and the public user profile.
    Registering an already used national ID fails with 409.
    """
    result = AuthService(db).register(
        national_id=request.national_id,
        password=request.password,
        full_name=request.full_name,
        phone=request.phone,
        profile_image=request.profile_image
    )
    return {
        "success": True,
        "message": "Registration successful",
        "data": result
    }


@router.post("/login")
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Login with national ID and password"""
    result = AuthService(db).login(request.national_id.strip(), request.password)
    return {
        "success": True,
        "message": "Login successful",
        "data": result
    }


@router.post("/refresh")
def refresh_token(request: RefreshTokenRequest, db: Session = Depends(get_db)):
    """Exchange a valid refresh token for a fresh token pair"""
    result = AuthService(db).refresh_token(request.refresh_token)
    return {
        "success": True,
        "message": "Token refreshed successfully",
        "data": result
    }


@router.get("/me")
def get_me(current_user: User = Depends(get_current_active_user)):
    """Get the current user's profile"""
    return {
        "success": True,
        "message": "User retrieved successfully",
        "data": public_user(current_user)
    }
