import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ragchat.chat.memory_models import ChatMessage, Conversation

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 20


@dataclass(frozen=True)
class Turn:
    role: str  # "user" | "assistant"
    content: str


def get_or_create_conversation(db: Session, *, conversation_id: str) -> Conversation:
    """
    Returns the conversation row for `conversation_id`, creating it on first use.

    Must be the first write of the transaction: losing a creation race rolls the
    session back and re-reads the row the other caller inserted.
    """
    conv = db.get(Conversation, conversation_id)
    if conv:
        return conv

    conv = Conversation(
        id=conversation_id,
        created_at=datetime.utcnow(),
        last_activity_at=datetime.utcnow(),
    )
    db.add(conv)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        conv = db.execute(
            select(Conversation).where(Conversation.id == conversation_id)
        ).scalar_one()
    return conv


def fetch_recent_messages(db: Session, *, conversation_id: str, limit: int) -> list[ChatMessage]:
    limit = max(0, int(limit or 0))
    if limit == 0:
        return []

    rows = db.execute(
        select(ChatMessage)
        .where(ChatMessage.conversation_id == conversation_id)
        .order_by(ChatMessage.id.desc())
        .limit(limit)
    ).scalars().all()

    # reverse -> oldest to newest
    return list(reversed(rows))


def append_messages(
    db: Session,
    *,
    conversation: Conversation,
    turns: Sequence[Turn],
    max_messages: int,
) -> int:
    """Appends turns in order, then evicts the oldest messages beyond the window.

    Returns the number of evicted messages.
    """
    for turn in turns:
        db.add(
            ChatMessage(
                conversation_id=conversation.id,
                role=turn.role,
                content=turn.content,
                created_at=datetime.utcnow(),
            )
        )
    conversation.last_activity_at = datetime.utcnow()
    db.flush()

    stale_ids = db.execute(
        select(ChatMessage.id)
        .where(ChatMessage.conversation_id == conversation.id)
        .order_by(ChatMessage.id.desc())
        .offset(max_messages)
    ).scalars().all()
    if stale_ids:
        db.execute(delete(ChatMessage).where(ChatMessage.id.in_(stale_ids)))
    return len(stale_ids)


class ChatMemory:
    """Windowed conversation store backed by the relational database.

    Every public method runs in its own session and transaction, so an append of
    a user/assistant pair is atomic per call.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        max_messages: int = DEFAULT_MAX_MESSAGES,
    ) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._session_factory = session_factory
        self.max_messages = max_messages

    def get_or_create(self, conversation_id: str) -> None:
        with self._session_factory() as db:
            get_or_create_conversation(db, conversation_id=conversation_id)
            db.commit()

    def get(self, conversation_id: str) -> list[Turn]:
        with self._session_factory() as db:
            rows = fetch_recent_messages(
                db,
                conversation_id=conversation_id,
                limit=self.max_messages,
            )
            return [Turn(role=r.role, content=r.content) for r in rows]

    def add(self, conversation_id: str, turns: Sequence[Turn]) -> None:
        if not turns:
            return
        with self._session_factory() as db:
            conversation = get_or_create_conversation(db, conversation_id=conversation_id)
            evicted = append_messages(
                db,
                conversation=conversation,
                turns=turns,
                max_messages=self.max_messages,
            )
            db.commit()
        if evicted:
            logger.debug("Evicted %d message(s) from conversation %s", evicted, conversation_id)
