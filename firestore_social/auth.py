"""
Identity provider boundary and the sign-in workflows built on it.

Firebase Authentication is reached through its Identity Toolkit REST API.
Every workflow returns a hydrated :class:`~firestore_social.session.Session`
or raises :class:`~firestore_social.errors.AuthenticationError` whose
``message`` is the inline text for the form.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from google.api_core.exceptions import GoogleAPIError

from .errors import AuthenticationError, ConfigurationError, SocialError, UsernameTakenError
from .models import UserProfile
from .profiles import create_profile, ensure_username_available
from .session import AuthUser, Session

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
GOOGLE_PROVIDER_ID = "google.com"


class IdentityProvider:
    """Thin async client for the Firebase Identity Toolkit endpoints."""

    def __init__(
        self,
        api_key: str,
        emulator_host: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.emulator_host = emulator_host
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def base_url(self) -> str:
        if self.emulator_host:
            return f"http://{self.emulator_host}/identitytoolkit.googleapis.com/v1"
        return IDENTITY_TOOLKIT_URL

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("Firebase API key missing")
        response = await self._http.post(
            f"{self.base_url}/accounts:{method}",
            params={"key": self.api_key},
            json=payload,
        )
        if response.is_error:
            try:
                code = response.json().get("error", {}).get("message", "UNKNOWN_ERROR")
            except ValueError:
                code = f"HTTP {response.status_code}"
            logger.info(f"Identity Toolkit {method} failed: {code}")
            raise AuthenticationError(code, code=code)
        return response.json()

    async def sign_up(self, email: str, password: str) -> AuthUser:
        body = await self._call(
            "signUp", {"email": email, "password": password, "returnSecureToken": True}
        )
        return AuthUser.model_validate(body)

    async def sign_in(self, email: str, password: str) -> AuthUser:
        body = await self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return AuthUser.model_validate(body)

    async def sign_in_with_idp(
        self,
        id_token: str,
        provider_id: str = GOOGLE_PROVIDER_ID,
        request_uri: str = "http://localhost",
    ) -> AuthUser:
        body = await self._call(
            "signInWithIdp",
            {
                "postBody": f"id_token={id_token}&providerId={provider_id}",
                "requestUri": request_uri,
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        return AuthUser.model_validate(body)

    async def update_profile(
        self,
        user: AuthUser,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> AuthUser:
        payload: Dict[str, Any] = {"idToken": user.id_token, "returnSecureToken": False}
        if display_name is not None:
            payload["displayName"] = display_name
        if photo_url is not None:
            payload["photoUrl"] = photo_url
        body = await self._call("update", payload)
        return user.model_copy(
            update={
                "display_name": body.get("displayName", user.display_name),
                "photo_url": body.get("photoUrl", user.photo_url),
            }
        )

    async def aclose(self) -> None:
        await self._http.aclose()


def username_from_display_name(display_name: Optional[str]) -> str:
    return "".join((display_name or "").split(" ")).lower()


async def sign_up_with_email(
    provider: IdentityProvider,
    email: str,
    password: str,
    username: str,
    full_name: str = "",
) -> Session:
    if not username.strip():
        raise AuthenticationError("Username is required")

    try:
        await ensure_username_available(username)
        user = await provider.sign_up(email, password)
        user = await provider.update_profile(user, display_name=username)
        profile = await create_profile(
            user, username=username, display_name=full_name, is_profile_complete=True
        )
    except UsernameTakenError as exc:
        raise AuthenticationError(exc.message) from exc
    except SocialError as exc:
        raise AuthenticationError(f"Failed to sign up: {exc.message}") from exc
    except (httpx.HTTPError, GoogleAPIError) as exc:
        raise AuthenticationError(f"Failed to sign up: {exc}") from exc
    return Session(user=user, profile=profile)


async def sign_in_with_email(provider: IdentityProvider, email: str, password: str) -> Session:
    try:
        user = await provider.sign_in(email, password)
        return await Session(user=user).hydrate()
    except SocialError as exc:
        raise AuthenticationError(f"Failed to login: {exc.message}") from exc
    except (httpx.HTTPError, GoogleAPIError) as exc:
        raise AuthenticationError(f"Failed to login: {exc}") from exc


async def sign_in_with_google(
    provider: IdentityProvider,
    id_token: str,
    request_uri: str = "http://localhost",
) -> Session:
    """
    Sign in with a Google ID token, creating the profile on first login.

    The username is derived from the display name; the profile is left
    incomplete so the user is sent to profile setup.
    """
    try:
        user = await provider.sign_in_with_idp(id_token, request_uri=request_uri)
        profile = await UserProfile.get(user.uid)
        if profile is None:
            profile = await create_profile(
                user,
                username=username_from_display_name(user.display_name),
                display_name=user.display_name or "",
                photo_url=user.photo_url,
                is_profile_complete=False,
            )
    except SocialError as exc:
        raise AuthenticationError(f"Failed to login with Google: {exc.message}") from exc
    except (httpx.HTTPError, GoogleAPIError) as exc:
        raise AuthenticationError(f"Failed to login with Google: {exc}") from exc
    return Session(user=user, profile=profile)


def sign_out(session: Session) -> None:
    logger.info(f"Signing out {session.uid}")
    session.clear()
