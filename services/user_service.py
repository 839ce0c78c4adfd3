import logging
from typing import Optional
from fastapi import UploadFile
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from models.complaint import Complaint
from models.user import User, UserRole
from services.auth_service import public_user
from utils.access_policy import check_access, is_admin
from utils.cloudinary_manager import CloudinaryManager, upload_profile_image
from utils.errors import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError
from utils.pagination import PaginationParams, paginate
from utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

ADMIN_ONLY_FIELDS = ("role", "is_active")


class UserService:
    def __init__(self, db: Session):
        self.db = db

    # ── Create ─────────────────────────────────────────────────

    def create(self, data: dict) -> dict:
        """Admin creation; unlike public sign-up the role may be chosen"""
        if self.db.query(User).filter(User.national_id == data["national_id"]).first():
            raise ConflictError("National ID is already registered")

        user = User(
            national_id=data["national_id"],
            password_hash=hash_password(data["password"]),
            full_name=data["full_name"],
            phone=data["phone"],
            role=data.get("role") or UserRole.citizen,
            profile_image=data.get("profile_image"),
            is_active=data.get("is_active") if data.get("is_active") is not None else True
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("National ID is already registered")
        self.db.refresh(user)

        logger.info(f"User {user.user_id} created with role {user.role.value}")
        return public_user(user)

    def seed_bootstrap_admin(self) -> Optional[User]:
        """Create the configured first admin when no admin exists yet"""
        national_id = settings.BOOTSTRAP_ADMIN_NATIONAL_ID
        password = settings.BOOTSTRAP_ADMIN_PASSWORD
        if not national_id or not password:
            return None

        if self.db.query(User).filter(User.role == UserRole.admin).first():
            return None

        admin = self.db.query(User).filter(User.national_id == national_id).first()
        if admin:
            admin.role = UserRole.admin
            admin.is_active = True
        else:
            admin = User(
                national_id=national_id,
                password_hash=hash_password(password),
                full_name="Administrator",
                phone="0000000000",
                role=UserRole.admin,
                is_active=True
            )
            self.db.add(admin)
        self.db.commit()
        self.db.refresh(admin)
        logger.info(f"👤 Bootstrap admin ready: user {admin.user_id}")
        return admin

    # ── Read ───────────────────────────────────────────────────

    def find_all(self, params: PaginationParams, search: Optional[str] = None, role: Optional[UserRole] = None):
        query = self.db.query(User)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                User.full_name.ilike(pattern),
                User.national_id.ilike(pattern),
                User.phone.ilike(pattern)
            ))
        if role:
            query = query.filter(User.role == role)

        users, total = paginate(query, User, params)
        return [public_user(u) for u in users], total

    def _get(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.user_id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def find_one(self, user_id: int) -> dict:
        return public_user(self._get(user_id))

    def find_by_national_id(self, national_id: str) -> dict:
        user = self.db.query(User).filter(User.national_id == national_id).first()
        if not user:
            raise NotFoundError("User not found")
        return public_user(user)

    def statistics(self) -> dict:
        base = self.db.query(User)
        return {
            "total_users": base.count(),
            "active_users": base.filter(User.is_active == True).count(),
            "inactive_users": base.filter(User.is_active == False).count(),
            "citizens_count": base.filter(User.role == UserRole.citizen).count(),
            "admins_count": base.filter(User.role == UserRole.admin).count(),
        }

    # ── Update ─────────────────────────────────────────────────

    def update(self, user_id: int, data: dict, actor: User) -> dict:
        check_access(actor, user_id, "You can only update your own profile")
        user = self._get(user_id)

        if not is_admin(actor) and any(data.get(f) is not None for f in ADMIN_ONLY_FIELDS):
            raise ForbiddenError("Only admins can change role or activation status")

        new_password = data.pop("new_password", None)
        if new_password:
            user.password_hash = hash_password(new_password)

        for field in ("full_name", "phone", "role", "is_active"):
            if data.get(field) is not None:
                setattr(user, field, data[field])

        self.db.commit()
        self.db.refresh(user)
        return public_user(user)

    def change_password(self, user: User, old_password: str, new_password: str) -> None:
        if not verify_password(old_password, user.password_hash):
            raise UnauthorizedError("Old password is incorrect")
        user.password_hash = hash_password(new_password)
        self.db.commit()
        logger.info(f"🔑 Password changed for user {user.user_id}")

    def toggle_active(self, user_id: int) -> dict:
        user = self._get(user_id)
        user.is_active = not user.is_active
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.user_id} active={user.is_active}")
        return public_user(user)

    # ── Profile image ──────────────────────────────────────────

    async def upload_profile_image(self, user_id: int, file: UploadFile) -> dict:
        user = self._get(user_id)
        url = await upload_profile_image(file)

        old_image = user.profile_image
        user.profile_image = url
        self.db.commit()
        self.db.refresh(user)

        if old_image and old_image != url:
            CloudinaryManager.delete_file(old_image)
        return public_user(user)

    def delete_profile_image(self, user_id: int) -> dict:
        user = self._get(user_id)
        if user.profile_image:
            CloudinaryManager.delete_file(user.profile_image)
            user.profile_image = None
            self.db.commit()
            self.db.refresh(user)
        return public_user(user)

    # ── Delete ─────────────────────────────────────────────────

    def remove(self, user_id: int) -> None:
        """Soft delete: the account is deactivated and kept"""
        user = self._get(user_id)
        user.is_active = False
        self.db.commit()
        logger.info(f"User {user_id} deactivated")

    def hard_delete(self, user_id: int) -> None:
        user = self._get(user_id)

        if self.db.query(Complaint).filter(Complaint.user_id == user_id).first():
            raise ConflictError("User still owns complaints; deactivate the account instead")

        profile_image = user.profile_image
        self.db.delete(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("User is still referenced by other records; deactivate the account instead")

        # Only drop the asset once the row is really gone
        if profile_image:
            CloudinaryManager.delete_file(profile_image)
        logger.info(f"🗑️ User {user_id} permanently deleted")
