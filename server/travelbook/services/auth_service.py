"""Account service: registration, login, Google sign-in and profiles."""

import logging
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from fastapi import UploadFile
from google.auth.exceptions import GoogleAuthError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from ..core.observability import get_logger, metrics_collector
from ..core.security import create_access_token, hash_password, verify_password
from ..models.user import User, UserRole
from ..schemas.auth import ProfileUpdateData, RegisterData
from .google_identity import verify_google_id_token
from .media_service import MediaStorage

logger = logging.getLogger(__name__)
audit_log = get_logger("travelbook.audit")

GoogleVerifier = Callable[[str, str], Awaitable[dict[str, Any]]]


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Service for account-related operations."""

    def __init__(
        self,
        db: AsyncSession,
        storage: Optional[MediaStorage] = None,
        google_verifier: Optional[GoogleVerifier] = None,
    ):
        self.db = db
        self.storage = storage
        self.google_verifier = google_verifier or verify_google_id_token

    @staticmethod
    def issue_token(user: User) -> str:
        """Create a bearer token for the user."""
        return create_access_token(str(user.id), user.email, str(getattr(user.role, "value", user.role)))

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == normalize_email(email))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_id_or_raise(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError(resource_type="user", resource_id=str(user_id))
        return user

    async def register(self, data: RegisterData, picture: Optional[UploadFile] = None) -> tuple[User, str]:
        """
        Create a password account.

        Args:
            data: Validated registration fields
            picture: Optional profile picture upload

        Returns:
            The new user and a bearer token

        Raises:
            ValidationError: If the email is already registered
            AuthorizationError: If an admin role is requested while self
                registration of admins is disabled
        """
        if data.role == UserRole.ADMIN and not settings.allow_admin_registration:
            logger.warning("Admin self-registration rejected", extra={"email": data.email})
            raise AuthorizationError(detail="Registering as an admin is not allowed")

        email = normalize_email(data.email)
        if await self.get_user_by_email(email):
            logger.warning("Registration failed - email already exists", extra={"email": email})
            raise ValidationError(detail="User already exists")

        profile_picture = ""
        if picture is not None and picture.filename and self.storage is not None:
            profile_picture = await self.storage.save_profile_picture(picture)

        user = User(
            email=email,
            password_hash=hash_password(data.password),
            name=data.name,
            role=data.role.value,
            profile_picture=profile_picture,
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Registration failed due to integrity constraint",
                extra={"email": email, "error": str(e)}
            )
            if profile_picture and self.storage is not None:
                self.storage.delete_by_url(profile_picture)
            raise ValidationError(detail="User already exists")
        except Exception:
            await self.db.rollback()
            if profile_picture and self.storage is not None:
                self.storage.delete_by_url(profile_picture)
            raise

        metrics_collector.record_registration("password")
        audit_log.info("user_registered", user_id=str(user.id), role=user.role)

        return user, self.issue_token(user)

    async def login(self, email: Optional[str], password: Optional[str]) -> tuple[User, str]:
        """
        Authenticate with email and password.

        Raises:
            ValidationError: If a field is missing or the account is Google-only
            NotFoundError: If no account has this email
            AuthenticationError: If the password does not match
        """
        if not email or not password:
            raise ValidationError(detail="Please enter both email and password")

        user = await self.get_user_by_email(email)
        if not user:
            logger.info("Login failed - unknown email", extra={"email": email})
            raise NotFoundError(resource_type="user", detail="User not found")

        if user.google_id and not user.password_hash:
            raise ValidationError(detail="Please login with Google")

        if not verify_password(password, user.password_hash):
            logger.warning("Login failed - invalid credentials", extra={"user_id": str(user.id)})
            raise AuthenticationError(detail="Invalid credentials")

        metrics_collector.record_login("password")
        audit_log.info("user_logged_in", user_id=str(user.id), method="password")

        return user, self.issue_token(user)

    async def google_login(self, token: str) -> tuple[User, str]:
        """
        Sign in with a Google ID token, creating or linking the account.

        Raises:
            AuthenticationError: If the token cannot be verified
            ValidationError: If Google reports the email as unverified
        """
        if not settings.google_client_id:
            raise ServiceUnavailableError(detail="Google sign-in is not configured")

        try:
            claims = await self.google_verifier(token, settings.google_client_id)
        except (ValueError, GoogleAuthError) as e:
            logger.warning("Google token verification failed", extra={"error": str(e)})
            raise AuthenticationError(detail="Google login failed")

        if not claims.get("email_verified"):
            raise ValidationError(detail="Google email not verified")

        email = normalize_email(claims["email"])
        google_id = str(claims["sub"])
        picture = claims.get("picture") or ""

        user = await self.get_user_by_email(email)
        created = False
        if user is None:
            user = User(
                email=email,
                name=claims.get("name") or email.split("@")[0],
                google_id=google_id,
                profile_picture=picture,
                role=UserRole.USER.value,
            )
            self.db.add(user)
            created = True
        elif not user.google_id:
            user.google_id = google_id
            user.profile_picture = picture or user.profile_picture

        try:
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Google login failed due to integrity constraint",
                extra={"email": email, "error": str(e)}
            )
            raise ConflictError(detail="This Google account is linked to another user")

        if created:
            metrics_collector.record_registration("google")
        metrics_collector.record_login("google")
        audit_log.info("user_logged_in", user_id=str(user.id), method="google", created=created)

        return user, self.issue_token(user)

    def _is_stored_upload(self, url: str) -> bool:
        return bool(url) and self.storage is not None and url.startswith(f"{self.storage.base_url}/")

    async def update_profile(
        self,
        user: User,
        data: ProfileUpdateData,
        picture: Optional[UploadFile] = None,
    ) -> User:
        """
        Update name, email and profile picture.

        A new picture replaces the old one, which is deleted when it was
        stored by this service.

        Raises:
            ConflictError: If the new email belongs to another account
        """
        if data.email is not None:
            email = normalize_email(data.email)
            if email != user.email:
                other = await self.get_user_by_email(email)
                if other is not None:
                    raise ConflictError(
                        detail=f"Email '{email}' is already in use",
                        conflicting_resource={"field": "email"},
                    )
                user.email = email

        if data.name:
            user.name = data.name

        old_picture = None
        new_picture = None
        if picture is not None and picture.filename and self.storage is not None:
            old_picture = user.profile_picture
            new_picture = await self.storage.save_profile_picture(picture)
            user.profile_picture = new_picture

        try:
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            if new_picture:
                self.storage.delete_by_url(new_picture)
            logger.error("Profile update failed", extra={"user_id": str(user.id), "error": str(e)})
            raise ConflictError(detail="Profile update conflicts with another account")
        except Exception:
            await self.db.rollback()
            if new_picture:
                self.storage.delete_by_url(new_picture)
            raise

        if old_picture and self._is_stored_upload(old_picture):
            self.storage.delete_by_url(old_picture)

        audit_log.info("profile_updated", user_id=str(user.id), picture_replaced=old_picture is not None)
        return user

    async def list_clients(self) -> list[User]:
        """All accounts with the user role, oldest first."""
        stmt = select(User).where(User.role == UserRole.USER.value).order_by(User.created_at)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
