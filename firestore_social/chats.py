"""
One-to-one chats and their unread-message bookkeeping.

Each chat document keeps ``unreadCounts``, a map from participant uid to
the number of messages that participant has not opened yet. Sending a
message bumps the recipient's entry, opening the chat zeroes the
viewer's own entry.

Both updates are read-modify-write on the whole map: concurrent sends
from several devices can lose increments. ``atomic=True`` switches the
send path to a server-side ``Increment`` on the single map entry.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from .errors import NotFoundError, PermissionDeniedError
from .models import Chat, Message, UserProfile, UserSnapshot, created_at_key, updated_at_key
from .session import Session

logger = logging.getLogger(__name__)


@dataclass
class ChatSummary:
    """A chat as listed for one viewer, with the other side's profile."""

    chat: Chat
    other_user_id: Optional[str]
    other_user: UserSnapshot

    @property
    def id(self) -> str:
        return self.chat.id


def most_recent_first(chats: List[Chat]) -> List[Chat]:
    return sorted(chats, key=updated_at_key, reverse=True)


def oldest_first(messages: List[Message]) -> List[Message]:
    return sorted(messages, key=created_at_key)


async def list_chats(uid: str) -> List[Chat]:
    chats = await Chat.find_all(filters=[Chat.participants.array_contains(uid)])
    return most_recent_first(chats)


async def summarize(uid: str, chats: Iterable[Chat]) -> List[ChatSummary]:
    """Attach the other participant's profile to each chat, one read per chat."""
    summaries = []
    for chat in chats:
        other_id = chat.other_participant(uid)
        other = UserSnapshot(username="User", photo_url="")
        if other_id:
            profile = await UserProfile.get(other_id)
            if profile is not None:
                other = profile.snapshot()
            else:
                logger.warning(f"Chat {chat.id}: no profile for participant {other_id}")
        summaries.append(ChatSummary(chat=chat, other_user_id=other_id, other_user=other))
    return summaries


async def start_chat(
    session: Session,
    target_uid: str,
    existing: Optional[Iterable[Chat]] = None,
) -> Chat:
    """
    Return the viewer's chat with ``target_uid``, creating it if needed.

    Duplicates are detected by scanning the viewer's chats (``existing``
    when given, otherwise a fresh query); two clients starting the same
    chat at once can still both create one.
    """
    uid = session.require_uid()
    chats = list(existing) if existing is not None else await list_chats(uid)
    for chat in chats:
        if chat.other_participant(uid) == target_uid:
            return chat

    chat = Chat(participants=[uid, target_uid], unread_counts={uid: 0, target_uid: 0})
    await chat.save()
    logger.info(f"Started chat {chat.id} between {uid} and {target_uid}")
    return chat


async def send_message(
    session: Session,
    chat_id: str,
    text: str,
    atomic: bool = False,
) -> Optional[Message]:
    """
    Add a message and update the chat's preview and unread counter.

    Blank text is ignored and returns None.
    """
    if not text.strip():
        return None
    uid = session.require_uid()
    chat_path = Chat.document_path_for(chat_id)

    message = Message(text=text, sender_id=uid, read=False)
    await message.save(parent=chat_path)

    chat = await Chat.get(chat_id)
    if chat is None:
        raise NotFoundError(f"Chat {chat_id} not found")
    recipient = chat.other_participant(uid)

    updates: Dict[str, object] = {
        "last_message": {
            "text": text,
            "senderId": uid,
            "createdAt": SERVER_TIMESTAMP,
            "read": False,
        },
        "updated_at": SERVER_TIMESTAMP,
    }
    if atomic:
        await Chat.update_fields(chat_id, updates)
        if recipient:
            await Chat.increment(chat_id, f"unread_counts.{recipient}")
    else:
        unread_counts = dict(chat.unread_counts)
        if recipient:
            unread_counts[recipient] = unread_counts.get(recipient, 0) + 1
        updates["unread_counts"] = unread_counts
        await Chat.update_fields(chat_id, updates)
    return message


async def open_chat(session: Session, chat: Chat) -> Chat:
    """
    Reset the viewer's own unread counter when the chat is shown.

    Uses the counts already on ``chat`` (as delivered by the chat list
    subscription) and writes the whole map back; ``chat`` is updated in
    place. A failed write is logged and leaves the counter as it was.
    """
    uid = session.require_uid()
    if chat.unread_for(uid) > 0:
        unread_counts = {**chat.unread_counts, uid: 0}
        try:
            await Chat.update_fields(chat.id, {"unread_counts": unread_counts})
        except GoogleAPIError:
            logger.exception(f"Could not reset unread count of {uid} in chat {chat.id}")
            return chat
        chat.unread_counts = unread_counts
    return chat


async def delete_message(session: Session, chat_id: str, message: Message) -> None:
    uid = session.require_uid()
    if message.sender_id != uid:
        raise PermissionDeniedError("Only the sender can delete this message.")
    await Message.delete_by_id(message.id, parent=Chat.document_path_for(chat_id))


async def list_messages(chat_id: str) -> List[Message]:
    messages = await Message.find_all(parent=Chat.document_path_for(chat_id))
    return oldest_first(messages)


async def chat_suggestions(
    session: Session,
    chats: Iterable[Chat],
    limit: int = 10,
) -> List[UserProfile]:
    """
    Followers and followed users the viewer has no chat with yet.

    Profiles are read one by one; at most ``limit`` are returned.
    """
    uid = session.require_uid()
    me = await UserProfile.get(uid)
    if me is None:
        return []

    related = list(dict.fromkeys([*me.following, *me.followers]))
    chatting_with = {chat.other_participant(uid) for chat in chats}
    candidates = [other for other in related if other not in chatting_with and other != uid]

    suggestions = []
    for other in candidates[:limit]:
        profile = await UserProfile.get(other)
        if profile is not None:
            suggestions.append(profile)
    return suggestions
