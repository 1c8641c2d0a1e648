"""
Shared machinery for the client-side data stores.

A store owns a few in-memory collections plus `is_loading`/`error`, and
exposes async actions that sync those collections with the backend:

- query actions go through `_load`: one remote call replaces a collection;
  on failure the previous collection is kept and `error` is set.
- mutation actions go through `_mutate`: an optimistic local patch, one
  remote call, then either `confirm` (fold the server result in) or the
  declared `compensate` step (inverse patch or reconciling refetch).

Actions never raise ProConnectError to the caller.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from proconnect.errors import ProConnectError
from proconnect.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[["BaseStore"], None]
Compensation = Callable[[], Union[None, Awaitable[None]]]


def find_by_id(items: Sequence[T], record_id: str) -> Optional[T]:
    for item in items:
        if item.id == record_id:
            return item
    return None


def index_of(items: Sequence[T], record_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == record_id:
            return index
    return -1


def without_id(items: Sequence[T], record_id: str) -> List[T]:
    return [item for item in items if item.id != record_id]


def replace_by_id(items: Sequence[T], record: T) -> List[T]:
    return [record if item.id == record.id else item for item in items]


def upsert(items: Sequence[T], record: T, at_start: bool = False) -> List[T]:
    """Insert `record`, replacing any existing record with the same id."""
    if index_of(items, record.id) != -1:
        return replace_by_id(items, record)
    return [record, *items] if at_start else [*items, record]


class BaseStore:
    """In-memory state container plus its async action set."""

    name = "store"
    # Public state attributes besides is_loading/error
    state_fields: Tuple[str, ...] = ()

    def __init__(self, remote: SupabaseClient):
        self.remote = remote
        self.is_loading = False
        self.error: Optional[str] = None
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Presentation boundary
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Current state as a plain dict."""
        fields = (*self.state_fields, "is_loading", "error")
        return {field: getattr(self, field) for field in fields}

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call `listener(store)` after every state change.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_error(self) -> None:
        self._set(error=None)

    def _set(self, **changes: Any) -> None:
        for field, value in changes.items():
            setattr(self, field, value)
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as exc:
                # One broken subscriber must not stop the others from rendering
                logger.exception(f"{self.name}: listener {listener!r} failed", exc_info=exc)

    # ------------------------------------------------------------------
    # Action helpers
    # ------------------------------------------------------------------

    def _fail(self, description: str, exc: ProConnectError, **changes: Any) -> None:
        message = str(exc) or f"An error occurred while {description}"
        logger.error(f"{self.name}: {description} failed: {message}")
        self._set(error=message, **changes)

    async def _load(self, description: str, loader: Callable[[], Awaitable[Any]], field: str) -> bool:
        """
        Run a query action.

        Args:
            description: Human-readable action, e.g. "fetching posts"
            loader: Performs the remote call and returns the new collection
            field: State attribute replaced on success

        Returns:
            True on success, False if `error` was set
        """
        self._set(is_loading=True, error=None)
        try:
            value = await loader()
        except ProConnectError as e:
            self._fail(description, e, is_loading=False)
            return False

        self._set(**{field: value, "is_loading": False})
        logger.info(f"{self.name}: {description} done")
        return True

    async def _mutate(
        self,
        description: str,
        remote: Callable[[], Awaitable[Any]],
        *,
        apply: Optional[Callable[[], None]] = None,
        compensate: Optional[Compensation] = None,
        confirm: Optional[Callable[[Any], None]] = None,
        track_loading: bool = False,
    ) -> bool:
        """
        Run a mutating action as apply -> remote -> confirm | compensate.

        Args:
            description: Human-readable action, e.g. "liking the post"
            remote: The single remote call
            apply: Optimistic local patch, applied before the call
            compensate: Recovery run when the call fails; either an inverse
                patch or a coroutine function that refetches
            confirm: Receives the remote result on success
            track_loading: Whether the action flips `is_loading`

        Returns:
            True on success, False if `error` was set
        """
        if track_loading:
            self._set(is_loading=True, error=None)
        if apply is not None:
            apply()

        try:
            result = await remote()
            if confirm is not None:
                confirm(result)
        except ProConnectError as e:
            if compensate is not None:
                logger.warning(f"{self.name}: compensating after failed {description}")
                outcome = compensate()
                if inspect.isawaitable(outcome):
                    await outcome
            # After compensation so a reconciling refetch cannot clear it
            if track_loading:
                self._fail(description, e, is_loading=False)
            else:
                self._fail(description, e)
            return False

        if track_loading:
            self._set(is_loading=False)
        logger.info(f"{self.name}: {description} done")
        return True
