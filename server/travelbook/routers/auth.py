"""Auth router for registration, login and profile operations."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_user, require_admin
from ..core.exceptions import InternalServerError, ProblemDetailsException, ValidationError
from ..models.user import User
from ..schemas.auth import (
    AuthResponse,
    ClientsResponse,
    GoogleLoginRequest,
    LoginRequest,
    ProfileResponse,
    ProfileUpdateData,
    RegisterData,
    UserProfile,
)
from ..services.auth_service import AuthService
from ..services.media_service import MediaStorage, get_media_storage
from .converters import user_to_auth_schema, user_to_profile_schema
from .forms import parse_model

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
STORAGE_DEPENDENCY = Depends(get_media_storage)
USER_DEPENDENCY = Depends(get_current_user)
ADMIN_DEPENDENCY = Depends(require_admin)


@router.post("/reg", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    role: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None, alias="profilePicture"),
    db: AsyncSession = DB_DEPENDENCY,
    storage: MediaStorage = STORAGE_DEPENDENCY,
) -> AuthResponse:
    """
    Register a password account.

    Accepts form fields and an optional profile picture, or the same
    fields as a JSON object.
    """
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise ValidationError(detail="Request body must be valid JSON")
        if not isinstance(payload, dict):
            raise ValidationError(detail="Request body must be a JSON object")
        email, password, name, role = (payload.get(key) for key in ("email", "password", "name", "role"))

    if not email or not password or not name:
        raise ValidationError(detail="Please enter name, email and password")

    data = parse_model(RegisterData, {"email": email, "password": password, "name": name, "role": role})
    auth_service = AuthService(db, storage)

    try:
        user, token = await auth_service.register(data, profile_picture)
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error in registration",
            extra={"email": email, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError() from e

    return AuthResponse(
        message="Registered Successfully!",
        token=token,
        user=user_to_auth_schema(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> AuthResponse:
    """Log in with email and password."""
    auth_service = AuthService(db)
    user, token = await auth_service.login(request.email, request.password)

    return AuthResponse(
        message="Logged in successfully!",
        token=token,
        user=user_to_auth_schema(user),
    )


@router.post("/g-login", response_model=AuthResponse)
async def google_login(
    request: GoogleLoginRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> AuthResponse:
    """Log in with a Google ID token, creating the account on first use."""
    auth_service = AuthService(db)
    user, token = await auth_service.google_login(request.id_token)

    return AuthResponse(
        message="Logged in with Google successfully!",
        token=token,
        user=user_to_auth_schema(user),
    )


@router.get("/me", response_model=UserProfile)
async def get_me(current_user: User = USER_DEPENDENCY) -> UserProfile:
    """Return the authenticated user's profile."""
    return user_to_profile_schema(current_user)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None, alias="profilePicture"),
    current_user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    storage: MediaStorage = STORAGE_DEPENDENCY,
) -> ProfileResponse:
    """Update the authenticated user's name, email or profile picture."""
    data = parse_model(ProfileUpdateData, {"name": name, "email": email})
    auth_service = AuthService(db, storage)

    try:
        user = await auth_service.update_profile(current_user, data, profile_picture)
    except ProblemDetailsException:
        raise
    except Exception as e:
        logger.error(
            "Unexpected error in profile update",
            extra={"user_id": str(current_user.id), "error": str(e)},
            exc_info=True
        )
        raise InternalServerError() from e

    return ProfileResponse(
        message="Profile updated successfully!",
        user=user_to_auth_schema(user),
    )


@router.get("/clients", response_model=ClientsResponse)
async def get_clients(
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> ClientsResponse:
    """List every account with the user role. Admin only."""
    auth_service = AuthService(db)
    users = await auth_service.list_clients()

    logger.info("Clients listed", extra={"admin_id": str(admin.id), "count": len(users)})

    return ClientsResponse(users=[user_to_profile_schema(user) for user in users])
