"""
Live views: standing queries whose whole result set is replaced on every
push from the store.

A :class:`LiveView` never patches its ``items`` incrementally. Each
snapshot delivered by the listener replaces the list, the optional
client-side sort is applied, and ``on_change`` is called with the new
list. Close the view (or leave its ``with`` block) when it is no longer
shown.
"""

import logging
import threading
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar

from .enums import OrderByDirection
from .firestore_model import BaseFirestoreModel, FilterType, OrderType, ParentType
from .models import Chat, Comment, Message, Notification, Post, created_at_key, updated_at_key

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseFirestoreModel)


class LiveView(Generic[T]):
    def __init__(
        self,
        model: Type[T],
        filters: Optional[List[FilterType]] = None,
        order_by: OrderType = None,
        parent: ParentType = None,
        sort_key: Optional[Callable[[T], Any]] = None,
        reverse: bool = False,
        on_change: Optional[Callable[[List[T]], None]] = None,
    ):
        self.model = model
        self.filters = filters or []
        self.order_by = order_by
        self.parent = parent
        self.sort_key = sort_key
        self.reverse = reverse
        self.on_change = on_change

        self.items: List[T] = []
        self.loaded = threading.Event()
        self._lock = threading.Lock()
        self._watch = None

    def __repr__(self) -> str:
        return f"LiveView({self.model.__name__}, items={len(self.items)})"

    @property
    def is_open(self) -> bool:
        return self._watch is not None

    def open(self) -> "LiveView[T]":
        if self._watch is None:
            self._watch = self.model.listen(
                self._replace,
                filters=self.filters,
                order_by=self.order_by,
                parent=self.parent,
            )
        return self

    def close(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None
            logger.debug(f"Closed live view on {self.model.get_collection_name()}")

    def __enter__(self) -> "LiveView[T]":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _replace(self, documents: List[T]) -> None:
        if self.sort_key is not None:
            documents = sorted(documents, key=self.sort_key, reverse=self.reverse)
        with self._lock:
            self.items = documents
        self.loaded.set()
        if self.on_change is None:
            return
        try:
            self.on_change(documents)
        except Exception:
            # Listener thread: exceptions must not escape.
            logger.exception(f"Live view callback failed for {self.model.get_collection_name()}")

    def wait_loaded(self, timeout: Optional[float] = None) -> bool:
        return self.loaded.wait(timeout)


# --------------------------------------------------------------------------
# View factories
# --------------------------------------------------------------------------
def feed_view(on_change=None) -> LiveView[Post]:
    return LiveView(
        Post,
        order_by=[(Post.created_at, OrderByDirection.DESCENDING)],
        on_change=on_change,
    )


def profile_posts_view(uid: str, on_change=None) -> LiveView[Post]:
    return LiveView(
        Post,
        filters=[Post.user_id == uid],
        sort_key=created_at_key,
        reverse=True,
        on_change=on_change,
    )


def comments_view(post_id: str, on_change=None) -> LiveView[Comment]:
    return LiveView(
        Comment,
        parent=Post.document_path_for(post_id),
        order_by=[(Comment.created_at, OrderByDirection.ASCENDING)],
        on_change=on_change,
    )


def chats_view(uid: str, on_change=None) -> LiveView[Chat]:
    return LiveView(
        Chat,
        filters=[Chat.participants.array_contains(uid)],
        sort_key=updated_at_key,
        reverse=True,
        on_change=on_change,
    )


def messages_view(chat_id: str, on_change=None) -> LiveView[Message]:
    return LiveView(
        Message,
        parent=Chat.document_path_for(chat_id),
        sort_key=created_at_key,
        on_change=on_change,
    )


def notifications_view(uid: str, on_change=None) -> LiveView[Notification]:
    return LiveView(
        Notification,
        filters=[Notification.recipient_id == uid],
        sort_key=created_at_key,
        reverse=True,
        on_change=on_change,
    )
