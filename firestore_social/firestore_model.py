import logging
from typing import (
    Any,
    AsyncGenerator,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
    Union,
)

from google.cloud.firestore_v1 import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    AsyncClient,
    Increment,
)
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from .enums import FirestoreOperators, OrderByDirection
from .firestore_client import FirestoreDB
from .firestore_fields import FirestoreField

# Alias for the first element in order-by tuple
FieldType = Union[str, FirestoreField]
# Alias for field ordering tuples
FieldOrderType = Tuple[FieldType, OrderByDirection]
FilterType = Tuple[FieldType, Union[FirestoreOperators, str], Any]
OrderType = Optional[
    Union[List[Union[FieldType, FieldOrderType]], Union[FieldType, FieldOrderType]]
]
# A parent is either a loaded model or a document path such as "posts/abc".
ParentType = Union["BaseFirestoreModel", str, None]

logger = logging.getLogger(__name__)


class BaseFirestoreModel(BaseModel):
    """
    Base ODM for Firestore with asynchronous operations.

    Subclasses declare a nested ``Settings`` class:

    * ``name`` – the collection name.
    * ``parent`` – optional model class; documents then live in the
      subcollection ``{parent path}/{name}``.
    * ``server_timestamps`` – attribute names written as the server
      timestamp sentinel when they are unset on create.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: Optional[str] = Field(default=None)

    _db: ClassVar[Optional[FirestoreDB]] = None
    _parent_path: Optional[str] = PrivateAttr(default=None)

    class Settings:
        name: str = "BaseCollection"

    # --------------------------------------------------------------------------
    # Registration
    # --------------------------------------------------------------------------
    @classmethod
    def initialize_fields(cls) -> None:
        for field_name, field_info in cls.model_fields.items():
            alias = (
                FieldPath.document_id() if field_name == "id"
                else (field_info.alias or field_name)
            )
            setattr(cls, field_name, FirestoreField(alias))

    @classmethod
    def initialize_db(cls, db: FirestoreDB):
        """Inject the FirestoreDB instance to be used for all operations."""
        cls._db = db

    @classmethod
    def _client(cls) -> AsyncClient:
        if not cls._db:
            raise RuntimeError("Database must be initialized before using the model.")
        return cls._db.client

    # --------------------------------------------------------------------------
    # Paths
    # --------------------------------------------------------------------------
    @classmethod
    def get_collection_name(cls) -> str:
        if hasattr(cls, "Settings") and hasattr(cls.Settings, "name"):
            return cls.Settings.name
        return cls.__name__

    @property
    def collection_name(self) -> str:
        return self.get_collection_name()

    @staticmethod
    def _parent_path_of(parent: ParentType) -> Optional[str]:
        if parent is None:
            return None
        if isinstance(parent, str):
            return parent.strip("/")
        return parent.document_path

    @classmethod
    def collection_path(cls, parent: ParentType = None) -> str:
        """Return the collection path, resolving the parent for subcollections."""
        parent_cls = getattr(cls.Settings, "parent", None)
        if parent_cls is None:
            return cls.get_collection_name()
        parent_path = cls._parent_path_of(parent)
        if not parent_path:
            raise RuntimeError(
                f"{cls.__name__} is a subcollection of {parent_cls.__name__} "
                f"and requires a parent."
            )
        return f"{parent_path}/{cls.get_collection_name()}"

    @classmethod
    def document_path_for(cls, doc_id: str, parent: ParentType = None) -> str:
        return f"{cls.collection_path(parent)}/{doc_id}"

    @property
    def document_path(self) -> str:
        if not self.id:
            raise ValueError(f"{type(self).__name__} has no ID yet.")
        return self.document_path_for(self.id, parent=self._parent_path)

    def _resolve_parent(self, parent: ParentType) -> ParentType:
        return parent if parent is not None else self._parent_path

    # --------------------------------------------------------------------------
    # Serialization
    # --------------------------------------------------------------------------
    @classmethod
    def wire_name(cls, attribute: str) -> str:
        """Map a Python attribute (or dotted path) to its stored field path."""
        head, dot, rest = attribute.partition(".")
        field_info = cls.model_fields.get(head)
        if field_info is not None and field_info.alias:
            head = field_info.alias
        return head + dot + rest

    def to_firestore(self, exclude_none=True, exclude_unset=False) -> Dict[str, Any]:
        data = self.model_dump(
            exclude={"id"},
            by_alias=True,
            exclude_none=exclude_none,
            exclude_unset=exclude_unset,
        )
        for attribute in getattr(self.Settings, "server_timestamps", ()):
            if getattr(self, attribute, None) is None:
                data[self.wire_name(attribute)] = SERVER_TIMESTAMP
        return data

    @classmethod
    def _wire_updates(cls, updates: Dict[str, Any]) -> Dict[str, Any]:
        wire = {}
        for key, value in updates.items():
            if isinstance(value, BaseModel):
                value = value.model_dump(by_alias=True, exclude_none=True)
            wire[cls.wire_name(key)] = value
        return wire

    @classmethod
    def from_snapshot(cls, snapshot, parent_path: Optional[str] = None) -> "BaseFirestoreModel":
        """Validate a document snapshot into a model instance."""
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        instance = cls.model_validate(data)
        instance._parent_path = parent_path
        return instance

    # --------------------------------------------------------------------------
    # CRUD operations: create/update/delete
    # --------------------------------------------------------------------------
    async def save(self, parent: ParentType = None, exclude_none=True) -> "BaseFirestoreModel":
        """
        Create the document in Firestore.

        Without an ID a new one is generated; with an ID the document must
        not exist yet.
        """
        db_client = self._client()
        parent = self._resolve_parent(parent)
        collection_ref = db_client.collection(self.collection_path(parent))
        data_to_save = self.to_firestore(exclude_none=exclude_none)

        if not self.id:
            doc_ref = collection_ref.document()
            self.id = doc_ref.id
        else:
            doc_ref = collection_ref.document(self.id)
            if (await doc_ref.get()).exists:
                raise RuntimeError("Error creating object: provided ID already exists.")

        logger.debug(f"Create: {collection_ref.id}/{self.id}")
        await doc_ref.set(data_to_save)
        self._parent_path = self._parent_path_of(parent)
        return self

    async def create_or_replace(self, parent: ParentType = None) -> "BaseFirestoreModel":
        """Write the whole document under its explicit ID, replacing any existing one."""
        if not self.id:
            raise ValueError("Cannot replace a document without an ID.")
        db_client = self._client()
        parent = self._resolve_parent(parent)
        doc_ref = db_client.collection(self.collection_path(parent)).document(self.id)
        await doc_ref.set(self.to_firestore())
        self._parent_path = self._parent_path_of(parent)
        return self

    async def update(
        self,
        include: Optional[set] = None,
        exclude_none=True,
        exclude_unset=True,
    ) -> "BaseFirestoreModel":
        """Write the (optionally selected) fields of this instance."""
        if not self.id:
            raise ValueError("Cannot update a document without an ID.")

        updates = self.model_dump(
            exclude={"id"},
            include=include,
            exclude_unset=exclude_unset,
            exclude_none=exclude_none,
            by_alias=True,
        )
        if updates:
            await self.update_fields(self.id, updates, parent=self._parent_path)
        return self

    async def delete(self) -> None:
        if not self.id:
            raise ValueError("Cannot delete a document without an ID.")
        await self.delete_by_id(self.id, parent=self._parent_path)

    @classmethod
    async def delete_by_id(cls, doc_id: str, parent: ParentType = None) -> None:
        db_client = cls._client()
        doc_ref = db_client.collection(cls.collection_path(parent)).document(doc_id)
        logger.debug(f"Delete: {cls.collection_path(parent)}/{doc_id}")
        await doc_ref.delete()

    # --------------------------------------------------------------------------
    # Partial writes
    # --------------------------------------------------------------------------
    @classmethod
    async def update_fields(
        cls, doc_id: str, updates: Dict[str, Any], parent: ParentType = None
    ) -> None:
        """
        Update selected fields of one document.

        Keys may be attribute names, wire names or dotted field paths
        (``"unread_counts.u2"``); values may be transforms such as
        ``ArrayUnion`` or ``Increment``.
        """
        db_client = cls._client()
        path = cls.collection_path(parent)
        wire = cls._wire_updates(updates)
        logger.debug(f"Update: {path} - id={doc_id}, updates={wire}")
        await db_client.collection(path).document(doc_id).update(wire)

    @classmethod
    async def array_union(
        cls, doc_id: str, attribute: str, values: Iterable[Any], parent: ParentType = None
    ) -> None:
        await cls.update_fields(doc_id, {attribute: ArrayUnion(list(values))}, parent=parent)

    @classmethod
    async def array_remove(
        cls, doc_id: str, attribute: str, values: Iterable[Any], parent: ParentType = None
    ) -> None:
        await cls.update_fields(doc_id, {attribute: ArrayRemove(list(values))}, parent=parent)

    @classmethod
    async def increment(
        cls, doc_id: str, attribute: str, amount: int = 1, parent: ParentType = None
    ) -> None:
        await cls.update_fields(doc_id, {attribute: Increment(amount)}, parent=parent)

    # --------------------------------------------------------------------------
    # Reads
    # --------------------------------------------------------------------------
    @classmethod
    async def get(cls, doc_id: str, parent: ParentType = None) -> Optional["BaseFirestoreModel"]:
        """Retrieve a document by its ID, or None when it does not exist."""
        db_client = cls._client()
        doc_ref = db_client.collection(cls.collection_path(parent)).document(doc_id)
        doc_snap = await doc_ref.get()

        if doc_snap.exists:
            return cls.from_snapshot(doc_snap, cls._parent_path_of(parent))
        return None

    @classmethod
    async def exists(cls, doc_id: str, parent: ParentType = None) -> bool:
        db_client = cls._client()
        doc_ref = db_client.collection(cls.collection_path(parent)).document(doc_id)
        doc_snap = await doc_ref.get()
        return doc_snap.exists

    @classmethod
    async def count(cls, filters: List[FilterType], parent: ParentType = None) -> int:
        """
        Return the number of documents matching the given filters.
        If the SDK does not support .count(), a manual approach is used.
        """
        db_client = cls._client()
        query = cls._build_query(db_client, filters=filters, parent=parent)
        try:
            count_snapshot = await query.count().get()
            return count_snapshot[0][0].value
        except AttributeError:
            logger.warning("Firestore: Performing count by fetching all items with empty select")
            docs = await query.select([]).get()
            return len(docs)

    @classmethod
    async def find(
        cls,
        filters: Optional[List[FilterType]] = None,
        order_by: OrderType = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        parent: ParentType = None,
    ) -> AsyncGenerator["BaseFirestoreModel", None]:
        """Asynchronously search for documents matching filters and yield instances."""
        db_client = cls._client()
        query = cls._build_query(db_client, filters=filters or [], parent=parent)
        query = cls._apply_order(query, order_by)

        if offset is not None:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        parent_path = cls._parent_path_of(parent)
        async for doc in query.stream():
            yield cls.from_snapshot(doc, parent_path)

    @classmethod
    async def find_all(cls, *args, **kwargs) -> List["BaseFirestoreModel"]:
        return [doc async for doc in cls.find(*args, **kwargs)]

    @classmethod
    async def find_one(
        cls,
        filters: List[FilterType],
        order_by: OrderType = None,
        parent: ParentType = None,
    ) -> Optional["BaseFirestoreModel"]:
        async for obj in cls.find(filters=filters, order_by=order_by, limit=1, parent=parent):
            return obj
        return None

    # --------------------------------------------------------------------------
    # Live subscriptions
    # --------------------------------------------------------------------------
    @classmethod
    def listen(
        cls,
        callback: Callable[[List["BaseFirestoreModel"]], None],
        filters: Optional[List[FilterType]] = None,
        order_by: OrderType = None,
        parent: ParentType = None,
    ):
        """
        Open a live subscription and call ``callback`` with the full,
        validated result set on every change.

        Documents that fail validation are logged and left out of the list.
        Returns the watch handle; call ``unsubscribe()`` on it to stop.
        Callbacks run on the listener client's background thread.
        """
        if not cls._db:
            raise RuntimeError("Database must be initialized before using the model.")
        query = cls._build_query(cls._db.listener_client, filters=filters or [], parent=parent)
        query = cls._apply_order(query, order_by)
        parent_path = cls._parent_path_of(parent)

        def on_snapshot(docs, changes, read_time):
            documents = []
            for doc in docs:
                try:
                    documents.append(cls.from_snapshot(doc, parent_path))
                except ValidationError:
                    # Listener thread: skip the document, keep the subscription.
                    logger.exception(
                        f"Skipping malformed document {doc.id} in {cls.collection_path(parent)}"
                    )
            callback(documents)

        logger.debug(f"Listen: {cls.collection_path(parent)} filters={filters}")
        return query.on_snapshot(on_snapshot)

    # --------------------------------------------------------------------------
    # Internal query builder
    # --------------------------------------------------------------------------
    @classmethod
    def _build_query(cls, db_client, filters: List[FilterType], parent: ParentType = None):
        query = db_client.collection(cls.collection_path(parent))
        for (field_name, op, value) in filters:
            query = query.where(filter=FieldFilter(str(field_name), str(op), value))
        return query

    @staticmethod
    def _apply_order(query, order_by: OrderType):
        if not order_by:
            return query
        if not isinstance(order_by, list):
            order_by = [order_by]
        for order_by_field in order_by:
            if isinstance(order_by_field, tuple):
                field, direction = order_by_field
                query = query.order_by(str(field), direction=str(direction))
            else:
                query = query.order_by(str(order_by_field))
        return query


def init_firestore_odm(database: FirestoreDB, document_models: Iterable[type]) -> None:
    """Inject ``database`` into every model and build its query descriptors."""
    for model in document_models:
        model.initialize_db(database)
        model.initialize_fields()
