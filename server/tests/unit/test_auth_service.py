"""Unit tests for the account service."""

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from travelbook.core.config import settings
from travelbook.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ProblemDetailsException,
    ValidationError,
)
from travelbook.core.security import decode_access_token, verify_password
from travelbook.models.user import User
from travelbook.schemas.auth import ProfileUpdateData, RegisterData, UserRole
from travelbook.services.auth_service import AuthService, normalize_email


def google_verifier(claims=None, error=None):
    """Build a stand-in for Google token verification."""

    async def verify(token, audience):
        if error is not None:
            raise error
        return {
            "sub": "google-sub-1",
            "email": "Explorer@Example.com",
            "email_verified": True,
            "name": "Explorer",
            "picture": "https://lh3.example.com/photo.jpg",
            **(claims or {}),
        }

    return verify


def make_upload(filename: str, content: bytes = b"image-bytes") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": "image/png"}))


@pytest.fixture
def google_enabled(monkeypatch):
    monkeypatch.setattr(settings, "google_client_id", "test-client-id")


def test_normalize_email():
    assert normalize_email("  Mixed.Case@Example.COM ") == "mixed.case@example.com"


@pytest.mark.asyncio
async def test_register(test_session):
    """Test registering a password account."""
    service = AuthService(test_session)

    user, token = await service.register(
        RegisterData(email="New.Person@Example.com", password="hunter22", name="New Person")
    )

    assert user.id is not None
    assert user.email == "new.person@example.com"
    assert user.role == UserRole.USER.value
    assert user.profile_picture == ""
    assert verify_password("hunter22", user.password_hash)

    claims = decode_access_token(token)
    assert claims["id"] == str(user.id)
    assert claims["email"] == "new.person@example.com"
    assert claims["role"] == "user"


@pytest.mark.asyncio
async def test_register_duplicate_email(test_session, regular_user):
    """Test registering an existing email, in any case, is rejected."""
    service = AuthService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.register(
            RegisterData(email="TRAVELER@example.com", password="another1", name="Copy")
        )

    assert exc_info.value.problem_details["detail"] == "User already exists"


@pytest.mark.asyncio
async def test_register_admin_disabled(test_session):
    service = AuthService(test_session)

    with pytest.raises(AuthorizationError):
        await service.register(
            RegisterData(email="boss@example.com", password="boss123", name="Boss", role=UserRole.ADMIN)
        )


@pytest.mark.asyncio
async def test_register_admin_enabled(test_session, monkeypatch):
    monkeypatch.setattr(settings, "allow_admin_registration", True)
    service = AuthService(test_session)

    user, _ = await service.register(
        RegisterData(email="boss@example.com", password="boss123", name="Boss", role=UserRole.ADMIN)
    )

    assert user.is_admin


@pytest.mark.asyncio
async def test_login(test_session, regular_user):
    service = AuthService(test_session)

    user, token = await service.login("Traveler@Example.com", "secret123")

    assert user.id == regular_user.id
    assert decode_access_token(token)["id"] == str(regular_user.id)


@pytest.mark.asyncio
async def test_login_missing_fields(test_session):
    service = AuthService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.login("traveler@example.com", None)

    assert exc_info.value.problem_details["detail"] == "Please enter both email and password"


@pytest.mark.asyncio
async def test_login_unknown_email(test_session):
    service = AuthService(test_session)

    with pytest.raises(NotFoundError) as exc_info:
        await service.login("nobody@example.com", "whatever")

    assert exc_info.value.problem_details["detail"] == "User not found"


@pytest.mark.asyncio
async def test_login_wrong_password(test_session, regular_user):
    service = AuthService(test_session)

    with pytest.raises(AuthenticationError) as exc_info:
        await service.login("traveler@example.com", "wrong-password")

    assert exc_info.value.problem_details["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_google_only_account(test_session):
    test_session.add(User(email="gonly@example.com", google_id="g-123", name="G Only"))
    await test_session.commit()
    service = AuthService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.login("gonly@example.com", "anything")

    assert exc_info.value.problem_details["detail"] == "Please login with Google"


@pytest.mark.asyncio
async def test_google_login_creates_account(test_session, google_enabled):
    """Test first Google sign-in creates a Google-only account."""
    service = AuthService(test_session, google_verifier=google_verifier())

    user, token = await service.google_login("id-token")

    assert user.email == "explorer@example.com"
    assert user.google_id == "google-sub-1"
    assert user.password_hash is None
    assert user.profile_picture == "https://lh3.example.com/photo.jpg"
    assert decode_access_token(token)["role"] == "user"


@pytest.mark.asyncio
async def test_google_login_links_existing_account(test_session, regular_user, google_enabled):
    service = AuthService(
        test_session,
        google_verifier=google_verifier({"email": "traveler@example.com", "sub": "google-sub-2"}),
    )

    user, _ = await service.google_login("id-token")

    assert user.id == regular_user.id
    assert user.google_id == "google-sub-2"
    assert user.password_hash == regular_user.password_hash


@pytest.mark.asyncio
async def test_google_login_unverified_email(test_session, google_enabled):
    service = AuthService(test_session, google_verifier=google_verifier({"email_verified": False}))

    with pytest.raises(ValidationError) as exc_info:
        await service.google_login("id-token")

    assert exc_info.value.problem_details["detail"] == "Google email not verified"


@pytest.mark.asyncio
async def test_google_login_invalid_token(test_session, google_enabled):
    service = AuthService(test_session, google_verifier=google_verifier(error=ValueError("Wrong audience")))

    with pytest.raises(AuthenticationError) as exc_info:
        await service.google_login("id-token")

    assert exc_info.value.problem_details["detail"] == "Google login failed"


@pytest.mark.asyncio
async def test_google_login_not_configured(test_session, monkeypatch):
    monkeypatch.setattr(settings, "google_client_id", "")
    service = AuthService(test_session, google_verifier=google_verifier())

    with pytest.raises(ProblemDetailsException) as exc_info:
        await service.google_login("id-token")

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_update_profile(test_session, regular_user):
    service = AuthService(test_session)

    user = await service.update_profile(
        regular_user, ProfileUpdateData(name="Renamed", email="Renamed@Example.com")
    )

    assert user.name == "Renamed"
    assert user.email == "renamed@example.com"


@pytest.mark.asyncio
async def test_update_profile_email_taken(test_session, regular_user, other_user):
    service = AuthService(test_session)

    with pytest.raises(ConflictError):
        await service.update_profile(regular_user, ProfileUpdateData(email=other_user.email))


@pytest.mark.asyncio
async def test_list_clients(test_session, admin_user, regular_user, other_user):
    service = AuthService(test_session)

    clients = await service.list_clients()

    assert {client.email for client in clients} == {regular_user.email, other_user.email}


def test_schemas_share_model_enums():
    from travelbook.models import user as user_model

    assert UserRole is user_model.UserRole
    assert RegisterData.model_fields["role"].annotation is user_model.UserRole


@pytest.mark.asyncio
async def test_register_commit_failure_removes_picture(test_session, media_storage, monkeypatch):
    """Test a failed commit leaves no stored profile picture behind."""

    async def failing_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(test_session, "commit", failing_commit)
    service = AuthService(test_session, storage=media_storage)
    picture = make_upload("me.png")

    with pytest.raises(RuntimeError):
        await service.register(
            RegisterData(email="lost@example.com", password="hunter22", name="Lost"), picture
        )

    assert list(media_storage.root.iterdir()) == []


@pytest.mark.asyncio
async def test_update_profile_commit_failure_removes_picture(test_session, regular_user, media_storage, monkeypatch):
    async def failing_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(test_session, "commit", failing_commit)
    service = AuthService(test_session, storage=media_storage)

    with pytest.raises(RuntimeError):
        await service.update_profile(regular_user, ProfileUpdateData(), make_upload("new.png"))

    assert list(media_storage.root.iterdir()) == []
