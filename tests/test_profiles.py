import pytest
from unittest.mock import AsyncMock, MagicMock

from firestore_social import profiles
from firestore_social.errors import NotFoundError, UsernameTakenError
from firestore_social.session import AuthUser, Session

from .factories import make_session, seed_profile

pytestmark = pytest.mark.asyncio


async def test_username_taken_by_someone_else(initialized_models, store):
    seed_profile(store, "u1", "ada")

    assert await profiles.is_username_taken("ada") is True
    assert await profiles.is_username_taken("ada", uid="u1") is False
    assert await profiles.is_username_taken("grace") is False


async def test_update_profile_rejects_taken_username(initialized_models, store):
    seed_profile(store, "u1", "ada")
    grace = seed_profile(store, "u2", "grace", bio="old bio")

    with pytest.raises(UsernameTakenError) as excinfo:
        await profiles.update_profile(make_session(grace), "ada", bio="new bio")

    assert excinfo.value.message == "Username is already taken. Please choose another one."
    assert store.data("users", "u2")["username"] == "grace"
    assert store.data("users", "u2")["bio"] == "old bio"


async def test_update_profile_keeps_own_username(initialized_models, store):
    ada = seed_profile(store, "u1", "ada", is_profile_complete=False)
    session = make_session(ada)

    profile = await profiles.update_profile(session, "ada", display_name="Ada L", bio="maths")

    stored = store.data("users", "u1")
    assert stored["displayName"] == "Ada L"
    assert stored["bio"] == "maths"
    assert stored["isProfileComplete"] is True
    assert profile.is_profile_complete is True
    assert session.needs_profile_setup is False


async def test_update_profile_uploads_avatar_and_mirrors_identity(initialized_models, store):
    ada = seed_profile(store, "u1", "ada")
    session = make_session(ada)
    uploader = MagicMock()
    uploader.upload = AsyncMock(return_value="https://res.cloudinary.com/demo/ada.png")
    provider = MagicMock()
    provider.update_profile = AsyncMock(
        side_effect=lambda user, display_name, photo_url: user.model_copy(
            update={"display_name": display_name, "photo_url": photo_url}
        )
    )

    await profiles.update_profile(
        session, "ada", display_name="Ada", image=b"png-bytes", uploader=uploader, provider=provider
    )

    uploader.upload.assert_awaited_once_with(b"png-bytes")
    assert store.data("users", "u1")["photoURL"] == "https://res.cloudinary.com/demo/ada.png"
    assert session.user.photo_url == "https://res.cloudinary.com/demo/ada.png"
    assert session.user.display_name == "Ada"


async def test_update_profile_image_needs_uploader(initialized_models, store):
    ada = seed_profile(store, "u1", "ada")

    with pytest.raises(ValueError):
        await profiles.update_profile(make_session(ada), "ada", image=b"png-bytes")


async def test_create_and_get_profile(initialized_models, store):
    user = AuthUser(uid="u9", email="new@example.com")

    await profiles.create_profile(user, "newbie", is_profile_complete=True)
    profile = await profiles.get_profile("u9")

    assert profile.username == "newbie"
    assert profile.email == "new@example.com"
    assert profile.followers == [] and profile.following == []

    with pytest.raises(NotFoundError):
        await profiles.get_profile("missing")


async def test_search_users_prefix_match(initialized_models, store):
    seed_profile(store, "u1", "ada")
    seed_profile(store, "u2", "adam")
    seed_profile(store, "u3", "grace")

    found = await profiles.search_users("  AD ")
    assert sorted(p.username for p in found) == ["ada", "adam"]

    assert await profiles.search_users("   ") == []
    assert await profiles.search_users("zed") == []


async def test_session_hydrate_and_clear(initialized_models, store):
    seed_profile(store, "u1", "ada")
    session = Session(user=AuthUser(uid="u1"))

    await session.hydrate()
    assert session.profile.username == "ada"
    assert session.display_name == "ada"

    session.clear()
    assert session.is_authenticated is False
    assert session.profile is None
