"""
Purpose: The in-memory Record Map for the active namespace, written through to
the persistence adapter on every local mutation.

States: Unloaded (no namespace) and Loaded (cache reflects the persisted blob
or accumulated local mutations).
- bind_namespace(key): load + decode, replace any prior cache.
- mutate(records): replace the cache, then save it.
- replace(records): overwrite the cache only (inbound sync).
- unbind(): clear the cache, persisted data is untouched.

Observers are called with (namespace, snapshot) after every cache change so a
UI can refresh without polling the adapter.
"""

from __future__ import annotations
import logging
import threading
from typing import Optional

from ..errors import StoreNotBoundError
from ..interfaces import PersistenceAdapter, StoreObserver, Unsubscribe
from ..models import RecordMap
from ..utils.records_json import dump_records, load_records

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "kv_store_"


def namespace_for(server_address: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}{server_address}"


class NamespacedStore:
    def __init__(self, adapter: PersistenceAdapter) -> None:
        self.adapter = adapter
        self.lock = threading.RLock()
        self._namespace: Optional[str] = None
        self._records: RecordMap = {}
        self._observers: list[StoreObserver] = []
        self.version = 0

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    @property
    def is_loaded(self) -> bool:
        return self._namespace is not None

    def bind_namespace(self, key: str) -> None:
        with self.lock:
            records = load_records(self.adapter.load(key))
            self._namespace = key
            self._records = records
            logger.info("Bound namespace %s (%d records)", key, len(records))
            self._changed()

    def unbind(self) -> None:
        with self.lock:
            if self._namespace is not None:
                logger.info("Unbound namespace %s", self._namespace)
            self._namespace = None
            self._records = {}
            self._changed()

    def mutate(self, records: RecordMap) -> None:
        """Replace the cache and persist it.

        If the save raises, the new cache stays visible locally and the error
        propagates to the caller. No rollback.
        """
        with self.lock:
            if self._namespace is None:
                raise StoreNotBoundError()
            self._records = dict(records)
            self._changed()
            self.adapter.save(self._namespace, dump_records(self._records))

    def replace(self, records: RecordMap) -> None:
        with self.lock:
            if self._namespace is None:
                raise StoreNotBoundError()
            self._records = dict(records)
            self._changed()

    def get(self, key: str) -> Optional[str]:
        with self.lock:
            return self._records.get(key)

    def contains(self, key: str) -> bool:
        with self.lock:
            return key in self._records

    def snapshot(self) -> RecordMap:
        with self.lock:
            return dict(self._records)

    def subscribe(self, observer: StoreObserver) -> Unsubscribe:
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _changed(self) -> None:
        self.version += 1
        snapshot = dict(self._records)
        for observer in list(self._observers):
            try:
                observer(self._namespace, snapshot)
            except Exception:
                logger.exception("Store observer failed")
