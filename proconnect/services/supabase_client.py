"""
Backend-as-a-service client module.
Handles sign-in/sign-up/sign-out, row CRUD against the REST tables, and
object uploads for post images and avatars.

Every failure (transport error or HTTP status >= 400) is raised as a
RemoteError; callers never see raw httpx exceptions.
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from proconnect.errors import InvalidCredentialsError, RemoteError
from proconnect.schemas.auth import AuthSession
from proconnect.services.records import parse_record

logger = logging.getLogger(__name__)

AUTH_PATH = "/auth/v1"
REST_PATH = "/rest/v1"
STORAGE_PATH = "/storage/v1"


def encode_filter_value(value: Any) -> str:
    """Render a filter value the way the REST layer expects it in `col=eq.value`."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _eq_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
    return {column: f"eq.{encode_filter_value(value)}" for column, value in (filters or {}).items()}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"Request failed with status {response.status_code}"


class SupabaseClient:
    """
    Thin async client for the hosted backend.

    The store layer treats it purely as:
        query(table, filters, order) -> rows
        insert(table, record) -> row
        update(table, id, fields) -> row
        delete(table, id) -> None
        delete_where(table, filters) -> None
        upload_object(bucket, name, data) -> public URL
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token: Optional[str] = None
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=self.url, timeout=timeout)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def set_access_token(self, token: Optional[str]) -> None:
        """Use `token` for subsequent calls (None falls back to the anon key)."""
        self.access_token = token

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                f"{self.url}{path}",
                params=params,
                json=json,
                content=content,
                headers=self._headers(headers),
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {type(e).__name__}: {e}")
            raise RemoteError(f"Network error: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {message}")
            raise RemoteError(message, status_code=response.status_code)

        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError("Server returned a malformed response", status_code=response.status_code) from e

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """
        Exchange credentials for a session.

        Raises:
            InvalidCredentialsError: If the backend rejects the email/password
            RemoteError: On any other failure
        """
        try:
            response = await self._request(
                "POST",
                f"{AUTH_PATH}/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except RemoteError as e:
            if e.status_code in (400, 401):
                raise InvalidCredentialsError(str(e), status_code=e.status_code) from e
            raise

        body = self._json(response) or {}
        if not isinstance(body, dict) or not body.get("access_token"):
            raise InvalidCredentialsError("Invalid login credentials")

        session = parse_record(AuthSession, body)
        self.set_access_token(session.access_token)
        return session

    async def sign_up(self, email: str, password: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Create an account. Returns the new user (email confirmation still pending)."""
        response = await self._request(
            "POST",
            f"{AUTH_PATH}/signup",
            json={"email": email, "password": password, "data": data or {}},
        )
        body = self._json(response) or {}
        # With confirmations enabled the user comes back bare, otherwise wrapped
        user = body.get("user", body) if isinstance(body, dict) else None
        if not isinstance(user, dict) or not user.get("id"):
            raise RemoteError("Sign-up did not return an account")
        return user

    async def sign_out(self) -> None:
        """Invalidate the remote session. The local token is dropped either way."""
        try:
            if self.access_token:
                await self._request("POST", f"{AUTH_PATH}/logout")
        finally:
            self.set_access_token(None)

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    async def query(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        any_of: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Select rows from `table`.

        Args:
            table: Table or view name
            filters: Column equality filters, all of which must hold
            order: Ordering such as "created_at.desc"
            any_of: Column equality filters of which at least one must hold
        """
        params = _eq_params(filters)
        params["select"] = "*"
        if any_of:
            terms = ",".join(
                f"{column}.eq.{encode_filter_value(value)}" for column, value in any_of.items()
            )
            params["or"] = f"({terms})"
        if order:
            params["order"] = order

        response = await self._request("GET", f"{REST_PATH}/{table}", params=params)
        rows = self._json(response)
        if not isinstance(rows, list):
            raise RemoteError(f"Expected a list of {table} rows")
        return rows

    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"{REST_PATH}/{table}",
            json=record,
            headers={"Prefer": "return=representation"},
        )
        return self._single(table, self._json(response))

    async def update(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "PATCH",
            f"{REST_PATH}/{table}",
            params=_eq_params({"id": record_id}),
            json=fields,
            headers={"Prefer": "return=representation"},
        )
        return self._single(table, self._json(response))

    async def delete(self, table: str, record_id: str) -> None:
        await self.delete_where(table, {"id": record_id})

    async def delete_where(self, table: str, filters: Dict[str, Any]) -> None:
        """Delete every row matching all of `filters`."""
        if not filters:
            raise ValueError("delete_where needs at least one filter")
        await self._request("DELETE", f"{REST_PATH}/{table}", params=_eq_params(filters))

    @staticmethod
    def _single(table: str, body: Any) -> Dict[str, Any]:
        if isinstance(body, list):
            if not body:
                raise RemoteError(f"No {table} record was affected", status_code=404)
            body = body[0]
        if not isinstance(body, dict):
            raise RemoteError(f"Expected a {table} record")
        return body

    # ------------------------------------------------------------------
    # Object storage
    # ------------------------------------------------------------------

    def public_url(self, bucket: str, name: str) -> str:
        return f"{self.url}{STORAGE_PATH}/object/public/{bucket}/{quote(name)}"

    async def upload_object(
        self,
        bucket: str,
        name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload `data` as `bucket/name` and return its public URL."""
        await self._request(
            "POST",
            f"{STORAGE_PATH}/object/{bucket}/{quote(name)}",
            content=data,
            headers={"Content-Type": content_type},
        )
        logger.info(f"Uploaded {len(data)} bytes to {bucket}/{name}")
        return self.public_url(bucket, name)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
