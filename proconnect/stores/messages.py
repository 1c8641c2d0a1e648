"""Messages store: conversation summaries and per-conversation threads."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from proconnect.errors import ProConnectError, RecordParseError, ValidationFailedError
from proconnect.schemas.message import Conversation, Message
from proconnect.services.records import parse_record, parse_records
from proconnect.services.supabase_client import SupabaseClient
from proconnect.stores.base import BaseStore, find_by_id, replace_by_id, without_id
from proconnect.stores.session import SessionStore

logger = logging.getLogger(__name__)

CONVERSATIONS_TABLE = "conversations"
MESSAGES_TABLE = "messages"


class MessagesStore(BaseStore):
    name = "messages"
    state_fields = ("conversations", "messages")

    def __init__(self, remote: SupabaseClient, session: SessionStore):
        super().__init__(remote)
        self.session = session
        self.conversations: List[Conversation] = []
        # Keyed by conversation id
        self.messages: Dict[str, List[Message]] = {}

    def search_conversations(self, query: str) -> List[Conversation]:
        """Conversations whose counterpart name or last message contains `query`."""
        needle = query.strip().lower()
        if not needle:
            return list(self.conversations)
        return [
            conversation for conversation in self.conversations
            if needle in (conversation.user.full_name or "").lower()
            or needle in (conversation.last_message or "").lower()
        ]

    async def fetch_conversations(self) -> bool:
        async def load() -> List[Conversation]:
            rows = await self.remote.query(CONVERSATIONS_TABLE, order="last_message_time.desc")
            return parse_records(Conversation, rows)

        return await self._load("fetching conversations", load, "conversations")

    async def fetch_messages(self, conversation_id: str) -> bool:
        """Load one thread, oldest first, leaving the other threads alone."""
        async def load() -> Dict[str, List[Message]]:
            rows = await self.remote.query(
                MESSAGES_TABLE, {"conversation_id": conversation_id}, order="created_at.asc"
            )
            return {**self.messages, conversation_id: parse_records(Message, rows)}

        return await self._load("fetching messages", load, "messages")

    def _put_thread(self, conversation_id: str, thread: List[Message]) -> None:
        self._set(messages={**self.messages, conversation_id: thread})

    async def send_message(self, conversation_id: str, content: str) -> bool:
        """
        Append the viewer's message and refresh the conversation summary.

        The sender's own copy is stored as read; the unread counter is a
        receiver-side concept and is left untouched.
        """
        try:
            me = self.session.require_account()
            if not content.strip():
                raise ValidationFailedError("Message cannot be empty")
            conversation = find_by_id(self.conversations, conversation_id)
            if conversation is None:
                raise ValidationFailedError("Conversation not found")
        except ProConnectError as e:
            self._fail("sending message", e)
            return False

        sent_at = datetime.now(timezone.utc)
        draft = Message(
            id=f"local-{uuid.uuid4().hex}",
            sender_id=me.id,
            receiver_id=conversation.user.id,
            content=content,
            created_at=sent_at,
            read=True,
            conversation_id=conversation_id,
        )

        def apply() -> None:
            self._put_thread(conversation_id, [*self.messages.get(conversation_id, []), draft])
            self._set(conversations=replace_by_id(
                self.conversations,
                conversation.model_copy(update={"last_message": content, "last_message_time": sent_at}),
            ))

        def revert() -> None:
            self._put_thread(conversation_id, without_id(self.messages.get(conversation_id, []), draft.id))
            if find_by_id(self.conversations, conversation_id) is not None:
                self._set(conversations=replace_by_id(self.conversations, conversation))

        def confirm(row: Dict[str, Any]) -> None:
            try:
                stored = parse_record(Message, row)
            except RecordParseError:
                # The insert went through, so the draft stands in for the stored copy
                logger.warning(f"Keeping local copy of message sent to conversation {conversation_id}")
                return
            thread = [stored if message.id == draft.id else message
                      for message in self.messages.get(conversation_id, [])]
            self._put_thread(conversation_id, thread)

        return await self._mutate(
            "sending message",
            lambda: self.remote.insert(MESSAGES_TABLE, {
                "conversation_id": conversation_id,
                "sender_id": draft.sender_id,
                "receiver_id": draft.receiver_id,
                "content": content,
                "created_at": sent_at.isoformat(),
                "read": True,
            }),
            apply=apply,
            compensate=revert,
            confirm=confirm,
        )

    async def mark_conversation_as_read(self, conversation_id: str) -> bool:
        """Zero the unread counter of one conversation. No-op if it is unknown."""
        conversation = find_by_id(self.conversations, conversation_id)
        if conversation is None:
            return False
        if conversation.unread_count == 0:
            return True

        def revert() -> None:
            current = find_by_id(self.conversations, conversation_id)
            if current is not None:
                restored = current.model_copy(update={"unread_count": conversation.unread_count})
                self._set(conversations=replace_by_id(self.conversations, restored))

        return await self._mutate(
            "marking conversation as read",
            lambda: self.remote.update(CONVERSATIONS_TABLE, conversation_id, {"unread_count": 0}),
            apply=lambda: self._set(conversations=replace_by_id(
                self.conversations, conversation.model_copy(update={"unread_count": 0})
            )),
            compensate=revert,
        )
