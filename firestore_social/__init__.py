# firestore_social/__init__.py
from .firestore_model import BaseFirestoreModel, init_firestore_odm
from .firestore_fields import FirestoreField
from .firestore_client import FirestoreDB
from .enums import FirestoreOperators, NotificationType, OrderByDirection
from .config import SocialSettings
from .errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    SocialError,
    UploadError,
    UsernameTakenError,
)
from .models import ALL_MODELS, Chat, Comment, Message, Notification, Post, UserProfile
from .session import AuthUser, Session
from .client import SocialClient

__all__ = [
    "BaseFirestoreModel",
    "FirestoreField",
    "FirestoreDB",
    "FirestoreOperators",
    "NotificationType",
    "OrderByDirection",
    "SocialSettings",
    "SocialError",
    "AuthenticationError",
    "ConfigurationError",
    "NotFoundError",
    "PermissionDeniedError",
    "UploadError",
    "UsernameTakenError",
    "UserProfile",
    "Post",
    "Comment",
    "Chat",
    "Message",
    "Notification",
    "ALL_MODELS",
    "AuthUser",
    "Session",
    "SocialClient",
    "init_firestore_odm",
]
