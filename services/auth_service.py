import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.user import User, UserRole
from utils.cloudinary_manager import profile_image_url
from utils.errors import ConflictError, UnauthorizedError
from utils.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    verify_refresh_token
)

logger = logging.getLogger(__name__)


def public_user(user: User) -> dict:
    """User projection safe to return to clients"""
    data = user.to_dict()
    data["profile_image_url"] = profile_image_url(user.profile_image)
    return data


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register(
        self,
        national_id: str,
        password: str,
        full_name: str,
        phone: str,
        profile_image: Optional[str] = None
    ) -> dict:
        """Public sign-up; always creates a citizen"""
        if self.db.query(User).filter(User.national_id == national_id).first():
            raise ConflictError("National ID is already registered")

        user = User(
            national_id=national_id,
            password_hash=hash_password(password),
            full_name=full_name,
            phone=phone,
            role=UserRole.citizen,
            profile_image=profile_image,
            is_active=True
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("National ID is already registered")
        self.db.refresh(user)

        logger.info(f"✅ User registered: {user.user_id}")
        return self.generate_auth_response(user)

    def login(self, national_id: str, password: str) -> dict:
        user = self.db.query(User).filter(User.national_id == national_id).first()

        if not user:
            logger.warning("Login failed: unknown national id")
            raise UnauthorizedError("Invalid national ID or password")

        if not user.is_active:
            logger.warning(f"Login rejected for inactive user {user.user_id}")
            raise UnauthorizedError("Account is not active")

        if not verify_password(password, user.password_hash):
            logger.warning(f"Login failed: wrong password for user {user.user_id}")
            raise UnauthorizedError("Invalid national ID or password")

        logger.info(f"✅ User logged in: {user.user_id}")
        return self.generate_auth_response(user)

    def refresh_token(self, refresh_token: str) -> dict:
        payload = verify_refresh_token(refresh_token)
        user_id = payload.get("sub")

        user = None
        if user_id and str(user_id).isdigit():
            user = self.db.query(User).filter(User.user_id == int(user_id)).first()
        if not user or not user.is_active:
            raise UnauthorizedError("Refresh token is invalid or expired")

        logger.info(f"🔄 Tokens refreshed for user {user.user_id}")
        return self.generate_auth_response(user)

    def validate_user(self, user_id: int) -> User:
        """Resolve the acting user behind a token; missing or inactive users are rejected"""
        user = self.db.query(User).filter(User.user_id == user_id).first()
        if not user or not user.is_active:
            raise UnauthorizedError("User not found or inactive")
        return user

    def generate_auth_response(self, user: User) -> dict:
        claims = {
            "sub": str(user.user_id),
            "national_id": user.national_id,
            "role": user.role.value,
            "full_name": user.full_name,
        }
        return {
            "access_token": create_access_token(claims),
            "refresh_token": create_refresh_token(claims),
            "token_type": "bearer",
            "user": public_user(user)
        }
