import logging
from typing import TYPE_CHECKING, List, Optional

from .errors import NotFoundError, UsernameTakenError
from .models import UserProfile
from .session import AuthUser, Session
from .uploads import ImageSource, ImageUploader

if TYPE_CHECKING:
    from .auth import IdentityProvider

logger = logging.getLogger(__name__)


async def is_username_taken(username: str, uid: Optional[str] = None) -> bool:
    """
    Return True when another identity already uses ``username``.

    A match on ``uid`` itself never counts. The check is best effort: two
    concurrent sign-ups can both pass it.
    """
    matches = await UserProfile.find_all(filters=[UserProfile.username == username])
    return any(profile.id != uid for profile in matches)


async def ensure_username_available(username: str, uid: Optional[str] = None) -> None:
    if await is_username_taken(username, uid=uid):
        raise UsernameTakenError(username)


async def get_profile(uid: str) -> UserProfile:
    profile = await UserProfile.get(uid)
    if profile is None:
        raise NotFoundError(f"User {uid} not found")
    return profile


async def create_profile(
    user: AuthUser,
    username: str,
    display_name: str = "",
    photo_url: Optional[str] = "",
    is_profile_complete: Optional[bool] = None,
) -> UserProfile:
    """Write the profile document keyed by the identity's uid."""
    profile = UserProfile(
        id=user.uid,
        uid=user.uid,
        username=username,
        display_name=display_name or "",
        email=user.email,
        photo_url=photo_url or "",
        bio="",
        followers=[],
        following=[],
        is_profile_complete=is_profile_complete,
    )
    await profile.create_or_replace()
    logger.info(f"Created profile {user.uid} ({username})")
    return profile


async def update_profile(
    session: Session,
    username: str,
    display_name: str = "",
    bio: str = "",
    image: Optional[ImageSource] = None,
    uploader: Optional[ImageUploader] = None,
    provider: Optional["IdentityProvider"] = None,
) -> UserProfile:
    """
    Save the edit-profile form and mark the profile complete.

    The username check runs first, then the optional avatar upload, then
    a single write. The identity's display name and photo are mirrored
    when a provider is given.
    """
    uid = session.require_uid()
    await ensure_username_available(username, uid=uid)

    photo_url = session.profile.photo_url if session.profile else ""
    if image is not None:
        if uploader is None:
            raise ValueError("An uploader is required to change the profile picture.")
        photo_url = await uploader.upload(image)

    updates = {
        "username": username,
        "display_name": display_name,
        "bio": bio,
        "photo_url": photo_url,
        "is_profile_complete": True,
    }
    await UserProfile.update_fields(uid, updates)

    if provider is not None and session.user and session.user.id_token:
        session.user = await provider.update_profile(
            session.user, display_name=display_name, photo_url=photo_url
        )

    if session.profile is not None:
        session.profile = session.profile.model_copy(update=updates)
    else:
        session.profile = await UserProfile.get(uid)
    return session.profile


async def search_users(term: str) -> List[UserProfile]:
    """Prefix search on usernames; a blank term returns nothing."""
    term = term.strip().lower()
    if not term:
        return []
    return await UserProfile.find_all(filters=UserProfile.username.startswith(term))
