"""
Client-side data stores, one per domain.

Screens read store attributes (or `snapshot()`), subscribe for changes and
call the async actions; they never talk to the backend directly.
"""
from proconnect.stores.base import BaseStore
from proconnect.stores.connections import ConnectionsStore
from proconnect.stores.jobs import JobsStore
from proconnect.stores.messages import MessagesStore
from proconnect.stores.posts import PostsStore
from proconnect.stores.session import SessionStore

__all__ = [
    "BaseStore",
    "ConnectionsStore",
    "JobsStore",
    "MessagesStore",
    "PostsStore",
    "SessionStore",
]
