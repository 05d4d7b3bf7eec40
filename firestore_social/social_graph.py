"""
Follow graph stored as two arrays on the user profiles.

A follow is two independent array writes (target's ``followers``, then
the actor's ``following``) and, for a new follow, a notification. They
are not atomic: if the second write fails the graph stays asymmetric and
nothing repairs it.
"""

import logging
from typing import Optional

from google.api_core.exceptions import GoogleAPIError

from .enums import NotificationType
from .models import UserProfile
from .notifications import notify
from .session import Session

logger = logging.getLogger(__name__)


def is_following(profile: UserProfile, uid: Optional[str]) -> bool:
    return uid is not None and uid in profile.followers


async def follow(session: Session, target_uid: str) -> None:
    actor = session.require_uid()
    await UserProfile.array_union(target_uid, "followers", [actor])
    await UserProfile.array_union(actor, "following", [target_uid])
    if session.profile is not None and target_uid not in session.profile.following:
        session.profile.following.append(target_uid)

    if actor == target_uid:
        return
    try:
        await notify(
            session,
            recipient_id=target_uid,
            type=NotificationType.FOLLOW,
            message=f"{session.display_name} started following you",
        )
    except GoogleAPIError:
        logger.exception(f"Could not notify {target_uid} of new follower {actor}")


async def unfollow(session: Session, target_uid: str) -> None:
    actor = session.require_uid()
    await UserProfile.array_remove(target_uid, "followers", [actor])
    await UserProfile.array_remove(actor, "following", [target_uid])
    if session.profile is not None and target_uid in session.profile.following:
        session.profile.following.remove(target_uid)


async def toggle_follow(session: Session, target: UserProfile) -> bool:
    """
    Follow or unfollow ``target`` depending on its current followers.

    ``target.followers`` is updated in place once the writes succeed;
    returns the new following state.
    """
    actor = session.require_uid()
    if is_following(target, actor):
        await unfollow(session, target.uid)
        target.followers = [uid for uid in target.followers if uid != actor]
        return False
    await follow(session, target.uid)
    target.followers = [*target.followers, actor]
    return True
