"""
Purpose: Keep the local cache in step with writes made by other tabs.
Content: listens on the persistence adapter; a change to the bound namespace
overwrites the cache wholesale (last writer wins, no merge). Changes to other
keys are ignored. Never writes anything itself.
"""

from __future__ import annotations
import logging
from typing import Optional

from ..interfaces import PersistenceAdapter, Unsubscribe
from ..persistence.namespaced_store import NamespacedStore
from ..utils.records_json import load_records

logger = logging.getLogger(__name__)


class CrossContextSync:
    def __init__(self, adapter: PersistenceAdapter, store: NamespacedStore) -> None:
        self.store = store
        self._unsubscribe: Optional[Unsubscribe] = adapter.subscribe(self.on_external_change)

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def on_external_change(self, changed_key: str, new_blob: Optional[str]) -> None:
        with self.store.lock:
            if not self.store.is_loaded or changed_key != self.store.namespace:
                logger.debug("Ignoring external change to %s", changed_key)
                return
            records = load_records(new_blob)
            self.store.replace(records)
        logger.info(
            "Applied external change to %s (%d records)", changed_key, len(records)
        )

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
