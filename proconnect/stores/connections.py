"""Connections store: accepted links, incoming requests and suggestions."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from proconnect.errors import ProConnectError
from proconnect.schemas.account import Account
from proconnect.schemas.connection import Connection, ConnectionStatus
from proconnect.services.records import parse_records
from proconnect.services.state_machine import transition_connection
from proconnect.services.supabase_client import SupabaseClient
from proconnect.stores.base import BaseStore, find_by_id, index_of, upsert, without_id
from proconnect.stores.session import SessionStore

logger = logging.getLogger(__name__)

CONNECTIONS_TABLE = "connections"
SUGGESTIONS_TABLE = "connection_suggestions"


class ConnectionsStore(BaseStore):
    """
    A connection is never in `connections` and `pending_connections` at the
    same time: accepting moves it, every other action only removes.
    """

    name = "connections"
    state_fields = ("connections", "pending_connections", "connection_suggestions")

    def __init__(self, remote: SupabaseClient, session: SessionStore):
        super().__init__(remote)
        self.session = session
        self.connections: List[Connection] = []
        self.pending_connections: List[Connection] = []
        self.connection_suggestions: List[Account] = []

    def connection_status(self, account_id: str) -> Optional[ConnectionStatus]:
        """Status of the viewer's link with `account_id`, if any."""
        for connection in self.connections:
            if connection.involves(account_id):
                return ConnectionStatus.ACCEPTED
        for connection in self.pending_connections:
            if connection.involves(account_id):
                return ConnectionStatus.PENDING
        return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _accepted_connections(self) -> List[Connection]:
        """Accepted links on either side of the viewer."""
        viewer_id = self.session.require_account().id
        rows = await self.remote.query(
            CONNECTIONS_TABLE,
            {"status": ConnectionStatus.ACCEPTED.value},
            order="created_at.desc",
            any_of={"user_id": viewer_id, "connected_user_id": viewer_id},
        )
        return parse_records(Connection, rows)

    async def _incoming_requests(self) -> List[Connection]:
        """Pending requests sent to the viewer; outgoing ones are not listed."""
        viewer_id = self.session.require_account().id
        rows = await self.remote.query(
            CONNECTIONS_TABLE,
            {"status": ConnectionStatus.PENDING.value, "connected_user_id": viewer_id},
            order="created_at.desc",
        )
        return parse_records(Connection, rows)

    async def fetch_connections(self) -> bool:
        return await self._load("fetching connections", self._accepted_connections, "connections")

    async def fetch_pending_connections(self) -> bool:
        return await self._load(
            "fetching pending connections", self._incoming_requests, "pending_connections"
        )

    async def fetch_connection_suggestions(self) -> bool:
        async def load() -> List[Account]:
            rows = await self.remote.query(SUGGESTIONS_TABLE)
            return parse_records(Account, rows)

        return await self._load("fetching connection suggestions", load, "connection_suggestions")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def send_connection_request(self, account_id: str) -> bool:
        """Invite `account_id`; it leaves the suggestions immediately."""
        try:
            me = self.session.require_account()
        except ProConnectError as e:
            self._fail("sending connection request", e)
            return False

        position = index_of(self.connection_suggestions, account_id)
        suggestion = self.connection_suggestions[position] if position != -1 else None

        def restore() -> None:
            if suggestion is not None and index_of(self.connection_suggestions, account_id) == -1:
                suggestions = list(self.connection_suggestions)
                suggestions.insert(min(position, len(suggestions)), suggestion)
                self._set(connection_suggestions=suggestions)

        return await self._mutate(
            "sending connection request",
            lambda: self.remote.insert(CONNECTIONS_TABLE, {
                "user_id": me.id,
                "connected_user_id": account_id,
                "status": ConnectionStatus.PENDING.value,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }),
            apply=lambda: self._set(connection_suggestions=without_id(self.connection_suggestions, account_id)),
            compensate=restore,
            track_loading=True,
        )

    async def accept_connection_request(self, connection_id: str) -> bool:
        """
        Move a pending request into `connections`.

        No-op unless the request is pending and addressed to the viewer.
        """
        pending = find_by_id(self.pending_connections, connection_id)
        if pending is None or pending.connected_user_id != self.session.account_id:
            return False

        try:
            accepted = transition_connection(pending, ConnectionStatus.ACCEPTED)
        except ProConnectError as e:
            self._fail("accepting connection request", e)
            return False

        def apply() -> None:
            self._set(
                connections=upsert(self.connections, accepted),
                pending_connections=without_id(self.pending_connections, connection_id),
            )

        def revert() -> None:
            self._set(
                connections=without_id(self.connections, connection_id),
                pending_connections=upsert(self.pending_connections, pending),
            )

        return await self._mutate(
            "accepting connection request",
            lambda: self.remote.update(CONNECTIONS_TABLE, connection_id, {"status": ConnectionStatus.ACCEPTED.value}),
            apply=apply,
            compensate=revert,
            track_loading=True,
        )

    async def ignore_connection_request(self, connection_id: str) -> bool:
        """Discard a pending request."""
        pending = find_by_id(self.pending_connections, connection_id)

        def revert() -> None:
            if pending is not None:
                self._set(pending_connections=upsert(self.pending_connections, pending))

        return await self._mutate(
            "ignoring connection request",
            lambda: self.remote.delete(CONNECTIONS_TABLE, connection_id),
            apply=lambda: self._set(pending_connections=without_id(self.pending_connections, connection_id)),
            compensate=revert,
            track_loading=True,
        )

    async def remove_connection(self, connection_id: str) -> bool:
        """Delete an accepted connection."""
        existing = find_by_id(self.connections, connection_id)

        def revert() -> None:
            if existing is not None:
                self._set(connections=upsert(self.connections, existing))

        return await self._mutate(
            "removing connection",
            lambda: self.remote.delete(CONNECTIONS_TABLE, connection_id),
            apply=lambda: self._set(connections=without_id(self.connections, connection_id)),
            compensate=revert,
            track_loading=True,
        )
