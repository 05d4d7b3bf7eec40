import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() not in ("", "0", "false", "no")


@dataclass(frozen=True)
class SocialSettings:
    """
    Runtime configuration, read from the environment by :meth:`from_env`.

    Only ``project_id`` is needed to talk to Firestore; the identity and
    upload settings are checked when those services are first used.
    """

    project_id: str = "demo-social"
    database: Optional[str] = None
    emulator_host: Optional[str] = None

    # Firebase Authentication (Identity Toolkit REST API)
    firebase_api_key: str = ""
    auth_emulator_host: Optional[str] = None

    # Cloudinary unsigned uploads
    cloudinary_cloud_name: str = ""
    cloudinary_upload_preset: str = ""

    http_timeout_seconds: float = 30.0
    atomic_unread_counters: bool = False
    chat_suggestion_limit: int = 10

    @classmethod
    def from_env(cls) -> "SocialSettings":
        # An unset secret in CI can expand to "", so fall back with ``or``.
        return cls(
            project_id=os.environ.get("GOOGLE_CLOUD_PROJECT") or "demo-social",
            database=os.environ.get("FIRESTORE_DATABASE") or None,
            emulator_host=os.environ.get("FIRESTORE_EMULATOR_HOST", "").strip() or None,
            firebase_api_key=os.environ.get("FIREBASE_API_KEY", ""),
            auth_emulator_host=os.environ.get("FIREBASE_AUTH_EMULATOR_HOST", "").strip() or None,
            cloudinary_cloud_name=os.environ.get("CLOUDINARY_CLOUD_NAME", ""),
            cloudinary_upload_preset=os.environ.get("CLOUDINARY_UPLOAD_PRESET", ""),
            http_timeout_seconds=float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30")),
            atomic_unread_counters=_env_flag("ATOMIC_UNREAD_COUNTERS"),
            chat_suggestion_limit=int(os.environ.get("CHAT_SUGGESTION_LIMIT", "10")),
        )
