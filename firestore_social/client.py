import logging
from typing import Iterable, List, Optional

import httpx

from . import auth, chats, posts, profiles
from .config import SocialSettings
from .firestore_client import FirestoreDB
from .firestore_model import init_firestore_odm
from .models import ALL_MODELS, Chat, Message, Post, UserProfile
from .session import Session
from .uploads import ImageSource, ImageUploader

logger = logging.getLogger(__name__)


class SocialClient:
    """
    Wires the hosted services together from one :class:`SocialSettings`.

    Owns the Firestore clients, the identity provider and the image
    uploader (sharing one ``httpx.AsyncClient``), registers every model,
    and exposes the workflows that need those dependencies. The other
    workflows are plain functions in their modules.
    """

    def __init__(
        self,
        settings: SocialSettings,
        db: Optional[FirestoreDB] = None,
        identity: Optional[auth.IdentityProvider] = None,
        uploader: Optional[ImageUploader] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.db = db or FirestoreDB.from_settings(settings)
        self._http = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self.identity = identity or auth.IdentityProvider(
            settings.firebase_api_key,
            emulator_host=settings.auth_emulator_host,
            http_client=self._http,
        )
        self.uploader = uploader or ImageUploader(
            settings.cloudinary_cloud_name,
            settings.cloudinary_upload_preset,
            http_client=self._http,
        )
        init_firestore_odm(self.db, ALL_MODELS)
        logger.info(f"Social client ready for project {settings.project_id}")

    @classmethod
    def from_env(cls) -> "SocialClient":
        return cls(SocialSettings.from_env())

    async def __aenter__(self) -> "SocialClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------ #
    # Authentication                                                     #
    # ------------------------------------------------------------------ #

    async def sign_up(self, email: str, password: str, username: str, full_name: str = "") -> Session:
        return await auth.sign_up_with_email(self.identity, email, password, username, full_name)

    async def sign_in(self, email: str, password: str) -> Session:
        return await auth.sign_in_with_email(self.identity, email, password)

    async def sign_in_with_google(self, id_token: str, request_uri: str = "http://localhost") -> Session:
        return await auth.sign_in_with_google(self.identity, id_token, request_uri=request_uri)

    def sign_out(self, session: Session) -> None:
        auth.sign_out(session)

    # ------------------------------------------------------------------ #
    # Workflows with injected dependencies                               #
    # ------------------------------------------------------------------ #

    async def update_profile(
        self,
        session: Session,
        username: str,
        display_name: str = "",
        bio: str = "",
        image: Optional[ImageSource] = None,
    ) -> UserProfile:
        return await profiles.update_profile(
            session,
            username,
            display_name=display_name,
            bio=bio,
            image=image,
            uploader=self.uploader,
            provider=self.identity,
        )

    async def create_post(self, session: Session, image: ImageSource, caption: str = "") -> Post:
        return await posts.create_post(session, image, caption, self.uploader)

    async def send_message(self, session: Session, chat_id: str, text: str) -> Optional[Message]:
        return await chats.send_message(
            session, chat_id, text, atomic=self.settings.atomic_unread_counters
        )

    async def chat_suggestions(self, session: Session, existing: Iterable[Chat]) -> List[UserProfile]:
        return await chats.chat_suggestions(
            session, existing, limit=self.settings.chat_suggestion_limit
        )
