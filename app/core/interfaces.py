"""
Abstractions for pluggable storage. Inversion of control: the store and the
sync component depend on these protocols, not on a concrete storage facility.
Enables in-memory fakes for tests and a file-backed origin for real use.

Common protocols:
- PersistenceAdapter.load(key) / keys() / save(key, blob) / subscribe(handler)
- StorageBackend.get_item(key) / set_item(key, blob) / keys()
- StoreObserver(namespace, snapshot)

Testing: Use MemoryBackend-backed origins; two contexts on one origin stand in
for two browser tabs.
"""

from __future__ import annotations
from typing import Callable, Optional, Protocol

from .models import RecordMap

ChangeHandler = Callable[[str, Optional[str]], None]
Unsubscribe = Callable[[], None]


class PersistenceAdapter(Protocol):
    def load(self, key: str) -> Optional[str]: ...

    def keys(self) -> list[str]: ...

    def save(self, key: str, blob: str) -> None: ...

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe: ...


class StorageBackend(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, blob: str) -> None: ...

    def keys(self) -> list[str]: ...


class StoreObserver(Protocol):
    def __call__(self, namespace: Optional[str], snapshot: RecordMap) -> None: ...
