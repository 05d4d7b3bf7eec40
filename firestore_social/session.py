import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import AuthenticationError
from .models import UserProfile

logger = logging.getLogger(__name__)


class AuthUser(BaseModel):
    """Identity record returned by the identity provider."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uid: str = Field(alias="localId")
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    photo_url: Optional[str] = Field(default=None, alias="photoUrl")
    id_token: Optional[str] = Field(default=None, alias="idToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    is_new_user: bool = Field(default=False, alias="isNewUser")


class Session:
    """
    The signed-in user, passed explicitly to every workflow.

    Lifecycle: created by a sign-in, :meth:`hydrate` loads the stored
    profile, :meth:`clear` forgets both on sign-out.
    """

    def __init__(self, user: Optional[AuthUser] = None, profile: Optional[UserProfile] = None):
        self.user = user
        self.profile = profile

    def __repr__(self) -> str:
        return f"Session(uid={self.uid!r})"

    @property
    def uid(self) -> Optional[str]:
        return self.user.uid if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def needs_profile_setup(self) -> bool:
        # Only an explicit False triggers setup; older profiles lack the flag.
        return self.profile is not None and self.profile.is_profile_complete is False

    @property
    def display_name(self) -> str:
        if self.user and self.user.display_name:
            return self.user.display_name
        if self.profile and self.profile.username:
            return self.profile.username
        return "User"

    def require_uid(self) -> str:
        if not self.user:
            raise AuthenticationError("You must be signed in.")
        return self.user.uid

    async def hydrate(self) -> "Session":
        if self.user:
            self.profile = await UserProfile.get(self.user.uid)
            if self.profile is None:
                logger.warning(f"No profile document for {self.user.uid}")
        return self

    def clear(self) -> None:
        logger.debug(f"Clearing session for {self.uid}")
        self.user = None
        self.profile = None
