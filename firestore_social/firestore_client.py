import os
import logging
from typing import Optional

from google.cloud.firestore_v1 import AsyncClient, Client

from .config import SocialSettings

logger = logging.getLogger(__name__)


class FirestoreDB:
    """
    Wrapper that owns the Firestore clients used by the application.

    Two clients are kept because the async client cannot open listeners:

    * ``client`` – a :class:`google.cloud.firestore_v1.AsyncClient` used
      for every read and write.
    * ``listener_client`` – a synchronous :class:`Client`, created on first
      use, whose queries expose ``on_snapshot`` for live subscriptions.

    Both point to the same backend: the local emulator when an emulator
    host is configured, the real Firestore service otherwise.
    """

    def __init__(
        self,
        project_id: str,
        database: Optional[str] = None,
        credentials=None,
        emulator_host: Optional[str] = None,
    ):
        """
        Parameters
        ----------
        project_id :
            Google Cloud project identifier.
        database :
            Optional Firestore database ID (defaults to the default database).
        credentials :
            Explicit credentials object; if *None*, the Google SDK default
            credentials chain is used.
        emulator_host :
            ``host:port`` of a running Firestore emulator.
        """
        self.project_id = project_id
        self.database = database
        self.credentials = credentials
        self._emulator_host = emulator_host
        self._listener_client: Optional[Client] = None

        self.client: AsyncClient = self._init_client()

    @classmethod
    def from_settings(cls, settings: SocialSettings, credentials=None) -> "FirestoreDB":
        return cls(
            project_id=settings.project_id,
            database=settings.database,
            credentials=credentials,
            emulator_host=settings.emulator_host,
        )

    # --------------------------------------------------------------------- #
    # Internal helpers                                                      #
    # --------------------------------------------------------------------- #

    def _export_emulator_host(self) -> None:
        # The Google client libraries only look at the environment.
        if self._emulator_host:
            os.environ["FIRESTORE_EMULATOR_HOST"] = self._emulator_host
        else:
            os.environ.pop("FIRESTORE_EMULATOR_HOST", None)

    def _init_client(self) -> AsyncClient:
        self._export_emulator_host()
        if self._emulator_host:
            logger.info(f"Using Firestore emulator on {self._emulator_host}")
        return AsyncClient(
            project=self.project_id,
            database=self.database,
            credentials=self.credentials,
        )

    def _init_listener_client(self) -> Client:
        self._export_emulator_host()
        return Client(
            project=self.project_id,
            database=self.database,
            credentials=self.credentials,
        )

    # --------------------------------------------------------------------- #
    # Public utility methods                                                #
    # --------------------------------------------------------------------- #

    @property
    def listener_client(self) -> Client:
        if self._listener_client is None:
            self._listener_client = self._init_listener_client()
        return self._listener_client

    def use_emulator(self, host: str = "localhost:8080"):
        """Switch to a local emulator and recreate both clients."""
        self._emulator_host = host
        self.client = self._init_client()
        self._listener_client = None
        logger.info(f"Emulator enabled on {host}")

    def clear_emulator(self):
        """Disable the emulator and reconnect to the production endpoint."""
        self._emulator_host = None
        self.client = self._init_client()
        self._listener_client = None
        logger.info("Emulator disabled, using real Firestore.")

    def use_clients(self, client, listener_client=None):
        """
        Replace the underlying clients with pre-built ones.

        Unit tests use this to plug in mocks or an in-memory fake without
        touching the network.
        """
        self.client = client
        self._listener_client = listener_client
        logger.info(f"Firestore clients replaced: {type(client).__name__}")
