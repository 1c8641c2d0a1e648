"""
Session store: the signed-in account and its persisted copy.

This is the only store whose state survives a restart; `account` and
`is_authenticated` are written as one JSON document under a single key in
local key-value storage. The access token that goes with them is kept
under a second key so a restored session can keep making authenticated
calls.
"""
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from proconnect.errors import (
    InvalidCredentialsError,
    NotAuthenticatedError,
    ProConnectError,
    RecordParseError,
    StorageError,
    ValidationFailedError,
)
from proconnect.schemas.account import Account, ProfileUpdateRequest
from proconnect.schemas.auth import AuthSession, RegisterRequest
from proconnect.schemas.post import ImageUpload
from proconnect.services.persistence import KeyValueStorage
from proconnect.services.records import parse_record, validation_message
from proconnect.services.supabase_client import SupabaseClient
from proconnect.stores.base import BaseStore

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"


class SessionStore(BaseStore):
    name = "session"
    state_fields = ("account", "is_authenticated")

    def __init__(
        self,
        remote: SupabaseClient,
        storage: Optional[KeyValueStorage] = None,
        storage_key: str = "auth-storage",
        avatars_bucket: str = "avatars",
        token_storage_key: str = "auth-token",
    ):
        super().__init__(remote)
        self.storage = storage
        self.storage_key = storage_key
        self.token_storage_key = token_storage_key
        self.avatars_bucket = avatars_bucket
        self.account: Optional[Account] = None
        self.is_authenticated = False

    @property
    def account_id(self) -> Optional[str]:
        return self.account.id if self.account else None

    def require_account(self) -> Account:
        """Return the signed-in account or raise NotAuthenticatedError."""
        if self.account is None:
            raise NotAuthenticatedError()
        return self.account

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def restore(self) -> bool:
        """
        Reload the persisted session. Returns whether it is authenticated.

        A session is only restored as authenticated together with its access
        token; without one the account is kept but a fresh login is needed.
        """
        if self.storage is None:
            return False
        try:
            data = await self.storage.get_item(self.storage_key)
            token = await self.storage.get_item(self.token_storage_key)
        except StorageError as e:
            logger.warning(f"Could not restore session: {e}")
            return False
        if not data:
            return False

        try:
            account = parse_record(Account, data["account"]) if data.get("account") else None
        except RecordParseError as e:
            logger.warning(f"Discarding unreadable persisted session: {e}")
            return False

        authenticated = bool(data.get("is_authenticated")) and account is not None
        access_token = token.get("access_token") if isinstance(token, dict) else None
        if authenticated and not access_token:
            logger.warning("Persisted session has no access token, sign in again")
            authenticated = False
        if authenticated:
            self.remote.set_access_token(access_token)

        self._set(account=account, is_authenticated=authenticated)
        logger.info(f"Restored session (authenticated={self.is_authenticated})")
        return self.is_authenticated

    async def _persist(self) -> None:
        if self.storage is None:
            return
        try:
            if self.account is None and not self.is_authenticated:
                await self.storage.remove_item(self.storage_key)
            else:
                await self.storage.set_item(self.storage_key, {
                    "account": self.account.model_dump(mode="json") if self.account else None,
                    "is_authenticated": self.is_authenticated,
                })
        except StorageError as e:
            # Memory state is authoritative; the next successful write catches up
            logger.warning(f"Could not persist session: {e}")

    async def _persist_token(self, session: Optional[AuthSession]) -> None:
        if self.storage is None:
            return
        try:
            if session is None:
                await self.storage.remove_item(self.token_storage_key)
            else:
                await self.storage.set_item(self.token_storage_key, {
                    "access_token": session.access_token,
                    "refresh_token": session.refresh_token,
                })
        except StorageError as e:
            logger.warning(f"Could not persist access token: {e}")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _account_for(self, user: Dict[str, Any]) -> Account:
        """Auth identity overlaid with its profile row, when one exists."""
        merged: Dict[str, Any] = {"id": user.get("id"), "email": user.get("email")}
        merged.update(user.get("user_metadata") or {})
        rows = await self.remote.query(PROFILES_TABLE, {"id": user.get("id")})
        if rows:
            merged.update({key: value for key, value in rows[0].items() if value is not None})
        return parse_record(Account, merged)

    async def login(self, email: str, password: str) -> bool:
        """
        Sign in with email/password.

        Every failure, rejected credentials included, is reported through
        `error`; the return value only mirrors `is_authenticated`.
        """
        self._set(is_loading=True, error=None)
        try:
            session = await self.remote.sign_in_with_password(email, password)
            account = await self._account_for(session.user)
        except InvalidCredentialsError as e:
            logger.info("Sign-in rejected: invalid credentials")
            self._fail("logging in", e, account=None, is_authenticated=False, is_loading=False)
            return False
        except ProConnectError as e:
            self.remote.set_access_token(None)
            self._fail("logging in", e, is_loading=False)
            return False

        self._set(account=account, is_authenticated=True, is_loading=False)
        logger.info(f"Signed in as account {account.id}")
        await self._persist()
        await self._persist_token(session)
        return True

    async def register(
        self,
        email: str,
        password: str,
        profile_fields: Optional[Dict[str, Any]] = None,
    ) -> Optional[Account]:
        """
        Create an account without signing in; email verification comes first.

        Returns:
            The created account, or None with `error` set
        """
        self._set(is_loading=True, error=None)
        try:
            form = RegisterRequest(email=email, password=password, **(profile_fields or {}))
        except ValidationError as e:
            self._fail("registering", ValidationFailedError(validation_message(e)), is_loading=False)
            return None

        try:
            user = await self.remote.sign_up(form.email, form.password, form.metadata())
            account = parse_record(Account, {
                **(user.get("user_metadata") or {}),
                "id": user.get("id"),
                "email": user.get("email", form.email),
            })
        except ProConnectError as e:
            self._fail("registering", e, is_loading=False)
            return None

        self._set(is_loading=False)
        logger.info(f"Registered account {account.id}, awaiting email verification")
        return account

    async def logout(self) -> None:
        """Clear the local session and invalidate the remote one."""
        remote_error: Optional[ProConnectError] = None
        try:
            await self.remote.sign_out()
        except ProConnectError as e:
            remote_error = e

        self._set(account=None, is_authenticated=False)
        await self._persist()
        await self._persist_token(None)
        if remote_error is not None:
            self._fail("logging out", remote_error)
        else:
            logger.info("Signed out")

    async def update_profile(self, fields: Union[Dict[str, Any], ProfileUpdateRequest]) -> bool:
        """Merge `fields` into the account optimistically and persist them remotely."""
        try:
            update = fields if isinstance(fields, ProfileUpdateRequest) else ProfileUpdateRequest(**fields)
        except ValidationError as e:
            self._fail("updating profile", ValidationFailedError(validation_message(e)))
            return False

        previous = self.account
        if previous is None:
            self._fail("updating profile", NotAuthenticatedError())
            return False

        changes = update.model_dump(exclude_unset=True)
        if not changes:
            return True

        def confirm(row: Dict[str, Any]) -> None:
            current = self.account.model_dump() if self.account else {}
            stored = {key: value for key, value in row.items() if value is not None}
            self._set(account=parse_record(Account, {**current, **stored}))

        ok = await self._mutate(
            "updating profile",
            lambda: self.remote.update(PROFILES_TABLE, previous.id, changes),
            apply=lambda: self._set(account=previous.model_copy(update=changes)),
            compensate=lambda: self._set(account=previous),
            confirm=confirm,
            track_loading=True,
        )
        if ok:
            await self._persist()
        return ok

    async def upload_avatar(self, image: ImageUpload) -> Optional[str]:
        """Upload a new avatar and point the profile at it. Returns its URL."""
        if self.account is None:
            self._fail("uploading avatar", NotAuthenticatedError())
            return None

        name = image.object_name(self.account.id, "avatar")
        self._set(is_loading=True, error=None)
        try:
            url = await self.remote.upload_object(self.avatars_bucket, name, image.data, image.content_type)
        except ProConnectError as e:
            self._fail("uploading avatar", e, is_loading=False)
            return None
        self._set(is_loading=False)

        if not await self.update_profile({"avatar_url": url}):
            return None
        return url
