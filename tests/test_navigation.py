import pytest

from firestore_social.models import UserProfile
from firestore_social.navigation import Page, resolve, setup_path
from firestore_social.session import AuthUser, Session


def session_for(uid="u1", complete=True):
    profile = UserProfile(id=uid, uid=uid, username="ada", is_profile_complete=complete)
    return Session(user=AuthUser(uid=uid), profile=profile)


@pytest.mark.parametrize("path", ["/", "/create", "/search", "/notifications", "/chat", "/profile/u2"])
def test_anonymous_users_are_sent_to_login(path):
    assert resolve(path, None).redirect == "/login"
    assert resolve(path, Session()).redirect == "/login"


@pytest.mark.parametrize("path", ["/login", "/signup"])
def test_public_pages(path):
    assert resolve(path, None).page in (Page.LOGIN, Page.SIGNUP)
    assert resolve(path, session_for()).redirect == "/"


def test_signed_in_routes_and_params():
    session = session_for()

    assert resolve("/", session).page is Page.HOME
    chat = resolve("/chat/c42", session)
    assert chat.page is Page.CHAT
    assert chat.params == {"chat_id": "c42"}
    assert resolve("/chat", session).params == {}
    profile = resolve("/profile/u2/", session)
    assert profile.page is Page.PROFILE
    assert profile.params == {"uid": "u2"}


def test_incomplete_profile_is_held_in_setup():
    session = session_for(complete=False)

    for path in ["/", "/create", "/chat/c1", "/profile/u2"]:
        assert resolve(path, session).redirect == setup_path("u1")

    own = resolve("/profile/u1?setup=true", session)
    assert own.page is Page.PROFILE
    assert own.setup_mode is True


def test_profile_without_flag_is_not_forced_into_setup():
    assert resolve("/create", session_for(complete=None)).page is Page.CREATE_POST


def test_unknown_paths_go_home():
    assert resolve("/does/not/exist", session_for()).redirect == "/"
