"""Current selection key and the catalog entry it resolves to."""

from __future__ import annotations

from typing import Callable, Dict, Generic, Iterable, Optional, TypeVar

from .types import SelectionKey

T = TypeVar("T")


class ResourceKeyStore(Generic[T]):
    """Holds the selected key and its structured inputs.

    The catalog is read-only session configuration (the account list or the
    template list). A key absent from the catalog is still stored, it simply
    resolves to no resource (free-form entry).
    """

    def __init__(self, catalog: Iterable[T], key_of: Callable[[T], SelectionKey]):
        self._catalog: Dict[SelectionKey, T] = {key_of(item): item for item in catalog}
        self._key: Optional[SelectionKey] = None

    @property
    def key(self) -> Optional[SelectionKey]:
        return self._key

    @property
    def resource(self) -> Optional[T]:
        return self._catalog.get(self._key) if self._key is not None else None

    def catalog(self) -> Dict[SelectionKey, T]:
        return dict(self._catalog)

    def resolve(self, key: Optional[SelectionKey]) -> Optional[T]:
        return self._catalog.get(key) if key is not None else None

    def select(self, key: Optional[SelectionKey]) -> bool:
        """Store ``key``. Returns True when the selection changed."""
        if key == self._key:
            return False
        self._key = key
        return True

    def clear(self) -> None:
        self._key = None
