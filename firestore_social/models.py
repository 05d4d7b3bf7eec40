"""
Document models of the social application.

Collections::

    users/{uid}
    posts/{postId}
    posts/{postId}/comments/{commentId}
    chats/{chatId}
    chats/{chatId}/messages/{messageId}
    notifications/{notificationId}

Field names on the wire are camelCase; the Python attributes are
snake_case aliases of them and either spelling is accepted on input.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import NotificationType
from .firestore_model import BaseFirestoreModel

_JUST_NOW = datetime.max.replace(tzinfo=timezone.utc)


def created_at_key(document) -> datetime:
    """Sort key on ``created_at``; a pending server timestamp sorts as now."""
    return document.created_at or _JUST_NOW


def updated_at_key(document) -> datetime:
    return document.updated_at or _JUST_NOW


class UserSnapshot(BaseModel):
    """Denormalized copy of a profile, written once at creation time."""

    model_config = ConfigDict(populate_by_name=True)

    username: str = "User"
    photo_url: Optional[str] = Field(default="", alias="photoURL")


class UserProfile(BaseFirestoreModel):
    class Settings:
        name = "users"

    uid: str
    username: str = ""
    display_name: str = Field(default="", alias="displayName")
    email: Optional[str] = None
    photo_url: Optional[str] = Field(default="", alias="photoURL")
    bio: str = ""
    followers: List[str] = Field(default_factory=list)
    following: List[str] = Field(default_factory=list)
    is_profile_complete: Optional[bool] = Field(default=None, alias="isProfileComplete")

    def snapshot(self) -> UserSnapshot:
        return UserSnapshot(username=self.username or "User", photo_url=self.photo_url or "")

    @property
    def name(self) -> str:
        return self.display_name or self.username


class Post(BaseFirestoreModel):
    class Settings:
        name = "posts"
        server_timestamps = ("created_at",)

    user_id: str = Field(alias="userId")
    image_url: str = Field(alias="imageUrl")
    caption: str = ""
    likes: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    user: UserSnapshot = Field(default_factory=UserSnapshot)


class Comment(BaseFirestoreModel):
    class Settings:
        name = "comments"
        parent = Post
        server_timestamps = ("created_at",)

    text: str
    user_id: str = Field(alias="userId")
    username: str = "User"
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class LastMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    sender_id: str = Field(alias="senderId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    read: bool = False


class Chat(BaseFirestoreModel):
    class Settings:
        name = "chats"
        server_timestamps = ("created_at", "updated_at")

    participants: List[str]
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    last_message: Optional[LastMessage] = Field(default=None, alias="lastMessage")
    unread_counts: Dict[str, int] = Field(default_factory=dict, alias="unreadCounts")

    def other_participant(self, uid: str) -> Optional[str]:
        return next((p for p in self.participants if p != uid), None)

    def unread_for(self, uid: str) -> int:
        return self.unread_counts.get(uid, 0)


class Message(BaseFirestoreModel):
    class Settings:
        name = "messages"
        parent = Chat
        server_timestamps = ("created_at",)

    text: str
    sender_id: str = Field(alias="senderId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    read: bool = False


class Notification(BaseFirestoreModel):
    class Settings:
        name = "notifications"
        server_timestamps = ("created_at",)

    recipient_id: str = Field(alias="recipientId")
    sender_id: str = Field(alias="senderId")
    type: NotificationType = NotificationType.OTHER
    message: str = ""
    post_id: Optional[str] = Field(default=None, alias="postId")
    read: bool = False
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    sender: UserSnapshot = Field(default_factory=UserSnapshot)


ALL_MODELS = [UserProfile, Post, Comment, Chat, Message, Notification]
