import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional
from urllib.parse import parse_qs, urlsplit

from .session import Session

logger = logging.getLogger(__name__)


class Page(str, Enum):
    LOGIN = "login"
    SIGNUP = "signup"
    HOME = "home"
    CREATE_POST = "create"
    PROFILE = "profile"
    SEARCH = "search"
    NOTIFICATIONS = "notifications"
    CHAT = "chat"


@dataclass(frozen=True)
class Route:
    page: Page
    pattern: str
    public: bool = False

    def match(self, path: str) -> Optional[Dict[str, str]]:
        found = re.fullmatch(self.pattern, path)
        return found.groupdict() if found else None


ROUTES = [
    Route(Page.LOGIN, r"/login", public=True),
    Route(Page.SIGNUP, r"/signup", public=True),
    Route(Page.HOME, r"/"),
    Route(Page.CREATE_POST, r"/create"),
    Route(Page.PROFILE, r"/profile/(?P<uid>[^/]+)"),
    Route(Page.SEARCH, r"/search"),
    Route(Page.NOTIFICATIONS, r"/notifications"),
    Route(Page.CHAT, r"/chat(?:/(?P<chat_id>[^/]+))?"),
]


@dataclass(frozen=True)
class Resolution:
    """Either the page to show or, when ``redirect`` is set, where to go."""

    page: Optional[Page] = None
    params: Dict[str, str] = field(default_factory=dict)
    redirect: Optional[str] = None

    @property
    def setup_mode(self) -> bool:
        return self.params.get("setup") == "true"


def setup_path(uid: str) -> str:
    return f"/profile/{uid}?setup=true"


def resolve(location: str, session: Optional[Session]) -> Resolution:
    """
    Apply the access gates to ``location``.

    Public pages send a signed-in user home, private pages send an
    anonymous one to ``/login``, and a signed-in user with an incomplete
    profile is held on their own profile in setup mode. Unknown paths go
    home.
    """
    parts = urlsplit(location)
    path = parts.path.rstrip("/") or "/"
    query = {key: values[-1] for key, values in parse_qs(parts.query).items()}
    signed_in = session is not None and session.is_authenticated

    for route in ROUTES:
        params = route.match(path)
        if params is None:
            continue
        params = {k: v for k, v in params.items() if v is not None}
        params.update(query)

        if route.public:
            return Resolution(redirect="/") if signed_in else Resolution(route.page, params)
        if not signed_in:
            return Resolution(redirect="/login")
        if session.needs_profile_setup:
            own_profile = route.page is Page.PROFILE and params.get("uid") == session.uid
            if not own_profile:
                logger.debug(f"Profile of {session.uid} incomplete, redirecting to setup")
                return Resolution(redirect=setup_path(session.uid))
        return Resolution(route.page, params)

    return Resolution(redirect="/")
