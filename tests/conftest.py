import pytest

from firestore_social import FirestoreDB, init_firestore_odm
from firestore_social.models import ALL_MODELS

from .fake_firestore import FakeClient, FakeStore


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def firestore_db(store):
    """FirestoreDB wired to the in-memory fake; no network, no credentials."""
    db = FirestoreDB.__new__(FirestoreDB)
    db.project_id = "test-project"
    db.database = None
    db.credentials = None
    db._emulator_host = None
    db.use_clients(FakeClient(store), listener_client=FakeClient(store))
    return db


@pytest.fixture
def initialized_models(firestore_db):
    init_firestore_odm(firestore_db, ALL_MODELS)
    return {cls.__name__: cls for cls in ALL_MODELS}
