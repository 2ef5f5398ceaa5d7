"""Authentication and user-related Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from ..models.user import UserRole
from .common import CamelModel


class LoginRequest(CamelModel):
    """Request schema for password login."""

    email: Optional[str] = Field(None, description="Account email")
    password: Optional[str] = Field(None, description="Account password")


class GoogleLoginRequest(CamelModel):
    """Request schema for Google sign-in."""

    id_token: str = Field(..., min_length=1, description="Google ID token from the client SDK")


class RegisterData(CamelModel):
    """Validated registration fields."""

    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=6, max_length=128, description="Account password")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    role: UserRole = Field(UserRole.USER, description="Requested role")


class ProfileUpdateData(CamelModel):
    """Validated profile update fields."""

    name: Optional[str] = Field(None, min_length=1, max_length=255, description="New display name")
    email: Optional[EmailStr] = Field(None, description="New email")


class Address(CamelModel):
    """Postal address."""

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class AuthUser(CamelModel):
    """User as returned alongside a token."""

    id: str = Field(..., alias="_id", description="User ID")
    email: str = Field(..., description="Account email")
    name: str = Field(..., description="Display name")
    role: UserRole = Field(..., description="Account role")
    profile_picture: str = Field("", description="Profile picture URL")


class UserProfile(AuthUser):
    """Full user profile, without credentials."""

    google_linked: bool = Field(False, description="Whether a Google identity is linked")
    address: Address = Field(default_factory=Address, description="Postal address")
    created_at: datetime = Field(..., description="Account creation time (ISO 8601)")
    updated_at: datetime = Field(..., description="Last update time (ISO 8601)")


class AuthResponse(CamelModel):
    """Response schema for register and login operations."""

    success: bool = Field(True, description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable outcome")
    token: str = Field(..., description="Bearer access token")
    user: AuthUser = Field(..., description="Authenticated user")


class ProfileResponse(CamelModel):
    """Response schema for profile updates."""

    success: bool = Field(True, description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable outcome")
    user: AuthUser = Field(..., description="Updated user")


class ClientsResponse(CamelModel):
    """Response schema for listing client accounts."""

    success: bool = Field(True, description="Whether the operation succeeded")
    users: list[UserProfile] = Field(..., description="Accounts with the user role")
