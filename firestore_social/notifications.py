import logging
from typing import Iterable, Optional

from .enums import NotificationType
from .models import Notification
from .session import Session

logger = logging.getLogger(__name__)


async def notify(
    session: Session,
    recipient_id: str,
    type: NotificationType,
    message: str,
    post_id: Optional[str] = None,
) -> Notification:
    """Create one notification carrying a snapshot of the sender."""
    sender = session.profile.snapshot() if session.profile else None
    notification = Notification(
        recipient_id=recipient_id,
        sender_id=session.require_uid(),
        type=type,
        message=message,
        post_id=post_id,
        read=False,
    )
    if sender is not None:
        notification.sender = sender
    await notification.save()
    logger.debug(f"Notified {recipient_id}: {type}")
    return notification


async def mark_all_read(session: Session, notifications: Iterable[Notification]) -> int:
    """
    Flag the viewer's unread notifications as read, one write each.

    Called by the recipient's own client when the list is shown; returns
    the number of documents updated.
    """
    uid = session.require_uid()
    updated = 0
    for notification in notifications:
        if notification.read or notification.recipient_id != uid:
            continue
        await Notification.update_fields(notification.id, {"read": True})
        notification.read = True
        updated += 1
    return updated


def unread_count(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.read)
