"""
Fixtures for the emulator-backed integration tests.

The whole directory is skipped unless ``FIRESTORE_EMULATOR_HOST`` points
at a running Firestore emulator:

    FIRESTORE_EMULATOR_HOST=localhost:8080 pytest tests/integration
"""

import logging
import os

import httpx
import pytest
import pytest_asyncio

from firestore_social import FirestoreDB, init_firestore_odm
from firestore_social.models import ALL_MODELS

logger = logging.getLogger(__name__)

EMULATOR_HOST = os.environ.get("FIRESTORE_EMULATOR_HOST", "").strip()
DATABASE = os.environ.get("FIRESTORE_DATABASE") or None
# ``or`` so an empty CI variable still falls back.
PROJECT_ID = os.environ.get("GOOGLE_CLOUD_PROJECT") or "demo-social"


def pytest_collection_modifyitems(config, items):
    if EMULATOR_HOST:
        return
    skip = pytest.mark.skip(reason="FIRESTORE_EMULATOR_HOST is not set")
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(skip)


@pytest.fixture()
def firestore_db():
    """Function-scoped so each test gets an AsyncClient bound to its own event loop."""
    return FirestoreDB(project_id=PROJECT_ID, database=DATABASE, emulator_host=EMULATOR_HOST)


@pytest.fixture()
def raw_client(firestore_db):
    return firestore_db.client


@pytest_asyncio.fixture(autouse=True)
async def clean_firestore(firestore_db):
    """Wipe the emulator before and after each test."""
    await _wipe_emulator()
    yield
    await _wipe_emulator()


async def _wipe_emulator():
    db_name = DATABASE or "(default)"
    url = (
        f"http://{EMULATOR_HOST}/emulator/v1/projects/"
        f"{PROJECT_ID}/databases/{db_name}/documents"
    )
    async with httpx.AsyncClient() as client:
        response = await client.delete(url)
        if response.is_error:
            logger.warning(f"Emulator cleanup returned HTTP {response.status_code}")


@pytest_asyncio.fixture
async def initialized_models(firestore_db):
    init_firestore_odm(firestore_db, ALL_MODELS)
    return {cls.__name__: cls for cls in ALL_MODELS}
