"""
Tests for the session store.

Validates:
- Login success, rejected credentials and transport failures
- Registration validation and the no-auto-login rule
- Logout clears local state even when the backend fails
- Profile updates, avatar upload and session persistence
"""
import pytest

from proconnect.schemas.account import ProfileUpdateRequest
from proconnect.schemas.post import ImageUpload
from proconnect.stores.session import SessionStore

import sample_rows


# =============================================================================
# login
# =============================================================================

@pytest.mark.asyncio
async def test_login_success(session_store: SessionStore, member, remote):
    assert await session_store.login(sample_rows.MEMBER_EMAIL, sample_rows.MEMBER_PASSWORD) is True

    assert session_store.is_authenticated is True
    assert session_store.error is None
    assert session_store.is_loading is False
    account = session_store.account
    assert account.id == member["id"]
    assert account.full_name == "Sarah Johnson"
    assert account.headline == "Product Manager at TechCorp"
    assert account.connections_count == 487
    assert remote.access_token == f"token-{member['id']}"


@pytest.mark.asyncio
async def test_login_invalid_credentials(session_store: SessionStore, member, remote):
    assert await session_store.login(sample_rows.MEMBER_EMAIL, "wrong-password") is False

    assert session_store.is_authenticated is False
    assert session_store.account is None
    assert session_store.error == "Invalid login credentials"
    assert remote.access_token is None


@pytest.mark.asyncio
async def test_login_transport_failure(session_store: SessionStore, member, backend):
    backend.fail("auth")

    assert await session_store.login(sample_rows.MEMBER_EMAIL, sample_rows.MEMBER_PASSWORD) is False

    assert session_store.is_authenticated is False
    assert session_store.error == "Service temporarily unavailable"
    assert session_store.is_loading is False


@pytest.mark.asyncio
async def test_login_profile_lookup_failure_drops_token(session_store: SessionStore, member, backend, remote):
    backend.fail("profiles")

    assert await session_store.login(sample_rows.MEMBER_EMAIL, sample_rows.MEMBER_PASSWORD) is False

    assert session_store.is_authenticated is False
    assert remote.access_token is None


@pytest.mark.asyncio
async def test_login_without_profile_row_uses_metadata(session_store: SessionStore, backend):
    user = backend.add_user("new@example.com", "secret123", full_name="New Member")

    assert await session_store.login("new@example.com", "secret123") is True

    assert session_store.account.id == user["id"]
    assert session_store.account.full_name == "New Member"
    assert session_store.account.email == "new@example.com"


# =============================================================================
# register
# =============================================================================

@pytest.mark.asyncio
async def test_register_does_not_sign_in(session_store: SessionStore, backend):
    account = await session_store.register(
        "dana@example.com",
        "longenough",
        {"full_name": "Dana Scully", "headline": "Special Agent"},
    )

    assert account is not None
    assert account.full_name == "Dana Scully"
    assert account.headline == "Special Agent"
    assert session_store.is_authenticated is False
    assert session_store.account is None
    assert backend.users["dana@example.com"]["user_metadata"]["full_name"] == "Dana Scully"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email,password,fields,expected",
    [
        ("dana@example.com", "short", {"full_name": "Dana"}, "Password must be at least 6 characters"),
        ("dana@example.com", "longenough", {"full_name": "   "}, "Full name is required"),
        ("dana@example.com", "longenough", {}, "full_name: Field required"),
    ],
)
async def test_register_validation_happens_before_network(session_store: SessionStore, backend,
                                                          email, password, fields, expected):
    assert await session_store.register(email, password, fields) is None

    assert session_store.error == expected
    assert backend.calls_to("auth") == 0
    assert session_store.is_loading is False


@pytest.mark.asyncio
async def test_register_rejects_malformed_email(session_store: SessionStore, backend):
    assert await session_store.register("not-an-email", "longenough", {"full_name": "Dana"}) is None

    assert session_store.error.startswith("email:")
    assert backend.calls_to("auth") == 0


@pytest.mark.asyncio
async def test_register_existing_email(session_store: SessionStore, member):
    account = await session_store.register(sample_rows.MEMBER_EMAIL, "longenough", {"full_name": "Copy"})

    assert account is None
    assert session_store.error == "User already registered"


# =============================================================================
# logout
# =============================================================================

@pytest.mark.asyncio
async def test_logout_clears_session(signed_in: SessionStore, storage, remote):
    await signed_in.logout()

    assert signed_in.account is None
    assert signed_in.is_authenticated is False
    assert signed_in.error is None
    assert remote.access_token is None
    assert await storage.get_item("auth-storage") is None
    assert await storage.get_item("auth-token") is None


@pytest.mark.asyncio
async def test_logout_remote_failure_still_clears_locally(signed_in: SessionStore, backend, remote):
    backend.fail("auth")

    await signed_in.logout()

    assert signed_in.account is None
    assert signed_in.is_authenticated is False
    assert signed_in.error == "Service temporarily unavailable"
    assert remote.access_token is None


# =============================================================================
# update_profile / upload_avatar
# =============================================================================

@pytest.mark.asyncio
async def test_update_profile(signed_in: SessionStore, backend, storage):
    assert await signed_in.update_profile({"headline": "VP Product", "location": "Denver, CO"}) is True

    assert signed_in.account.headline == "VP Product"
    assert signed_in.account.location == "Denver, CO"
    assert signed_in.account.full_name == "Sarah Johnson"
    assert backend.tables["profiles"][0]["headline"] == "VP Product"

    saved = await storage.get_item("auth-storage")
    assert saved["account"]["headline"] == "VP Product"


@pytest.mark.asyncio
async def test_update_profile_accepts_request_model(signed_in: SessionStore):
    assert await signed_in.update_profile(ProfileUpdateRequest(about="Building things")) is True

    assert signed_in.account.about == "Building things"


@pytest.mark.asyncio
async def test_update_profile_unknown_field_rejected(signed_in: SessionStore, backend):
    patches = backend.calls_to("profiles", "PATCH")

    assert await signed_in.update_profile({"nickname": "SJ"}) is False

    assert signed_in.error.startswith("nickname:")
    assert backend.calls_to("profiles", "PATCH") == patches


@pytest.mark.asyncio
async def test_update_profile_failure_reverts(signed_in: SessionStore, backend):
    backend.fail("profiles", "PATCH")

    assert await signed_in.update_profile({"headline": "VP Product"}) is False

    assert signed_in.account.headline == "Product Manager at TechCorp"
    assert signed_in.error == "Service temporarily unavailable"
    assert signed_in.is_loading is False


@pytest.mark.asyncio
async def test_update_profile_requires_account(session_store: SessionStore, backend):
    assert await session_store.update_profile({"headline": "VP"}) is False

    assert session_store.error == "User not authenticated"
    assert backend.requests == []


@pytest.mark.asyncio
async def test_upload_avatar(signed_in: SessionStore, backend, member):
    image = ImageUpload(data=b"jpeg-bytes", file_name="me.jpg")

    url = await signed_in.upload_avatar(image)

    assert url is not None
    assert signed_in.account.avatar_url == url
    key = next(iter(backend.objects))
    assert key.startswith(f"avatars/{member['id']}-avatar-")
    assert backend.tables["profiles"][0]["avatar_url"] == url


@pytest.mark.asyncio
async def test_upload_avatar_failure(signed_in: SessionStore, backend):
    backend.fail("storage")

    assert await signed_in.upload_avatar(ImageUpload(data=b"x")) is None

    assert signed_in.account.avatar_url is None
    assert backend.calls_to("profiles", "PATCH") == 0
    assert signed_in.error is not None


# =============================================================================
# Persistence
# =============================================================================

@pytest.mark.asyncio
async def test_login_persists_account_and_flag(signed_in: SessionStore, storage):
    saved = await storage.get_item("auth-storage")

    assert set(saved) == {"account", "is_authenticated"}
    assert saved["is_authenticated"] is True
    assert saved["account"]["id"] == signed_in.account.id


@pytest.mark.asyncio
async def test_login_persists_token_under_its_own_key(signed_in: SessionStore, storage, member):
    saved = await storage.get_item("auth-token")

    assert saved["access_token"] == f"token-{member['id']}"
    assert "access_token" not in await storage.get_item("auth-storage")


@pytest.mark.asyncio
async def test_restore_after_restart(signed_in: SessionStore, remote, storage, member):
    remote.set_access_token(None)
    restarted = SessionStore(remote, storage=storage)

    assert await restarted.restore() is True

    assert restarted.is_authenticated is True
    assert restarted.account == signed_in.account
    assert remote.access_token == f"token-{member['id']}"


@pytest.mark.asyncio
async def test_restore_without_token_needs_fresh_login(session_store: SessionStore, storage, remote):
    account = {"id": "me", "email": "me@example.com", "full_name": "Test Member"}
    await storage.set_item("auth-storage", {"account": account, "is_authenticated": True})

    assert await session_store.restore() is False

    assert session_store.is_authenticated is False
    assert session_store.account.id == "me"
    assert remote.access_token is None


@pytest.mark.asyncio
async def test_restore_with_nothing_saved(session_store: SessionStore):
    assert await session_store.restore() is False

    assert session_store.account is None
    assert session_store.is_authenticated is False


@pytest.mark.asyncio
async def test_restore_discards_unreadable_document(session_store: SessionStore, storage):
    await storage.set_item("auth-storage", {"account": {"email": "no-id"}, "is_authenticated": True})

    assert await session_store.restore() is False

    assert session_store.account is None
