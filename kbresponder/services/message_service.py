"""Message service"""

from sqlalchemy.orm import Session
from kbresponder.models.message import Message, MessageRole
from datetime import datetime
import logging
from typing import Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    """Delivers a reply to the chat platform"""

    async def send(self, chat_id: int, text: str) -> None:
        ...


def save_message(
    db: Session,
    chat_id: int,
    role: MessageRole,
    content: str,
    user_id: Optional[int] = None
) -> Optional[Message]:
    """Append a message to a chat; empty content is not stored"""
    if not content:
        return None

    message = Message(
        chat_id=chat_id,
        user_id=user_id,
        role=role.value,
        content=content,
        created_at=datetime.utcnow()
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(f"Saved {role.value} message {message.id} in chat {chat_id}")
    return message


def get_recent_messages_for_llm(
    db: Session,
    chat_id: int,
    limit: int = 14
) -> List[Dict[str, str]]:
    """
    Get the most recent messages of a chat, oldest first

    Args:
        db: Database session
        chat_id: Chat ID
        limit: Number of messages to return

    Returns:
        Dicts with 'role' ('user' or 'agent') and 'content'
    """
    if not chat_id or limit <= 0:
        return []

    messages = db.query(Message).filter(
        Message.chat_id == chat_id
    ).order_by(Message.created_at.desc(), Message.id.desc()).limit(limit).all()

    # Return in chronological order
    return [
        {
            "role": MessageRole.AGENT.value if msg.role == MessageRole.AGENT.value else MessageRole.USER.value,
            "content": msg.content or ""
        }
        for msg in reversed(messages)
    ]


def make_history_loader(session_factory: Callable[[], Session]) -> Callable[[int, int], List[Dict[str, str]]]:
    """History lookup that opens its own session per call"""
    def load(chat_id: int, limit: int) -> List[Dict[str, str]]:
        db = session_factory()
        try:
            return get_recent_messages_for_llm(db, chat_id, limit)
        finally:
            db.close()

    return load


async def handle_incoming_message(
    db: Session,
    composer,
    sender: MessageSender,
    chat_id: int,
    text: Optional[str],
    user_id: Optional[int] = None
) -> Optional[str]:
    """
    Store an incoming message, compose a reply and deliver it

    Args:
        db: Database session
        composer: ResponseComposer used to generate the reply
        sender: Delivery channel for the reply
        chat_id: Chat ID
        text: Incoming message text
        user_id: Author of the message, if known

    Returns:
        The reply that was sent, or None when nothing was sent
    """
    if not text or not text.strip():
        logger.warning(f"Received non-text message in chat {chat_id}; skipping reply")
        return None

    save_message(db, chat_id, MessageRole.USER, text, user_id=user_id)

    reply = await composer.compose(text, chat_id)
    if not reply:
        logger.error(f"Failed to generate reply for chat {chat_id}")
        return None

    save_message(db, chat_id, MessageRole.AGENT, reply, user_id=user_id)

    try:
        await sender.send(chat_id, reply)
    except Exception as e:
        logger.error(f"Error delivering reply to chat {chat_id}: {e}", exc_info=True)

    return reply
