from typing import Any, List, Tuple

from .enums import FirestoreOperators

# Highest code point Firestore sorts strings by; closes a prefix range.
PREFIX_UPPER_BOUND = "\uf8ff"


class FirestoreField:
    """
    Descriptor that allows class-level attribute access to build
    Firestore filters.

    Examples
    --------
    >>> UserProfile.username == "ada"
    ('username', FirestoreOperators.EQ, 'ada')

    Instance access returns the real value; class access yields the
    descriptor so rich comparison operators can build query tuples.
    The descriptor reports the *wire* name (the pydantic alias), so
    ``Post.user_id == uid`` filters on ``userId``.
    """

    def __init__(self, field_name: str):
        self.field_name = field_name

    def __get__(self, instance, owner):
        if instance is None:
            return self
        return getattr(instance, self.field_name, None)

    def __str__(self) -> str:
        return self.field_name

    __repr__ = __str__

    def __hash__(self) -> int:
        return hash(self.field_name)

    # ------------------------------------------------------------------ #
    # Comparison operators build (field, operator, value) tuples         #
    # ------------------------------------------------------------------ #

    def __eq__(self, other):  # type: ignore[override]
        return (self.field_name, FirestoreOperators.EQ, other)

    def __ne__(self, other):  # type: ignore[override]
        return (self.field_name, FirestoreOperators.NE, other)

    def __lt__(self, other):
        return (self.field_name, FirestoreOperators.LT, other)

    def __le__(self, other):
        return (self.field_name, FirestoreOperators.LTE, other)

    def __gt__(self, other):
        return (self.field_name, FirestoreOperators.GT, other)

    def __ge__(self, other):
        return (self.field_name, FirestoreOperators.GTE, other)

    # ------------------------------------------------------------------ #
    # Firestore-specific helpers                                         #
    # ------------------------------------------------------------------ #

    def in_(self, values: List[Any]) -> tuple:
        return (self.field_name, FirestoreOperators.IN, values)

    def not_in_(self, values: List[Any]) -> tuple:
        return (self.field_name, FirestoreOperators.NOT_IN, values)

    def array_contains(self, value: Any) -> tuple:
        return (self.field_name, FirestoreOperators.ARRAY_CONTAINS, value)

    def array_contains_any(self, values: List[Any]) -> tuple:
        return (self.field_name, FirestoreOperators.ARRAY_CONTAINS_ANY, values)

    def startswith(self, prefix: str) -> List[Tuple[str, FirestoreOperators, str]]:
        """
        Return the pair of range filters emulating a prefix match.

        Firestore has no ``LIKE``; a lexicographic range between ``prefix``
        and ``prefix + "\\uf8ff"`` selects every string starting with it.
        """
        return [
            (self.field_name, FirestoreOperators.GTE, prefix),
            (self.field_name, FirestoreOperators.LTE, prefix + PREFIX_UPPER_BOUND),
        ]
