"""
Purpose: The single orchestration point for a tab. Owns the session, the
namespaced store, the history and the last result.
It centralizes session lifecycle (connect, disconnect, close) and one-shot
operations so the UI never touches storage directly.

Key responsibilities:
- connect(): remember the session, bind the store to the address namespace,
  reset history.
- disconnect(): unbind the store, clear session/history/result. Persisted
  data is kept.
- set/get/delete/run_command(): delegate to the OperationExecutor and keep
  the latest result string for display.
- Keep the cross-context sync attached for the lifetime of the tab.

Testing: Pure unit tests with an in-memory StorageOrigin; two controllers on
one origin behave like two tabs.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, Optional

from .errors import CommandSyntaxError, SessionNotConnectedError
from .models import HistoryEntry, RecordMap, Session
from .persistence.local_storage import LocalStorageAdapter
from .persistence.namespaced_store import DEFAULT_PREFIX, NamespacedStore, namespace_for
from .persistence.session_store import HISTORY_LIMIT, HistoryRecorder
from .services.commands import parse_command
from .services.operations import OperationExecutor, error_result
from .services.sync import CrossContextSync

logger = logging.getLogger(__name__)


class KVSessionController:
    def __init__(
        self,
        adapter: LocalStorageAdapter,
        *,
        prefix: str = DEFAULT_PREFIX,
        history_limit: int = HISTORY_LIMIT,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.adapter = adapter
        self.prefix = prefix
        self.session = Session()
        self.store = NamespacedStore(adapter)
        self.history = HistoryRecorder(history_limit)
        self.executor = OperationExecutor(self.store, self.history, clock=clock)
        self.sync = CrossContextSync(adapter, self.store)
        self.last_result: str = ""
        self.store_version = 0
        self.store.subscribe(self._on_store_change)

    def is_ready(self) -> bool:
        """True if a session is connected and operations may run."""
        return self.session.connected

    @property
    def namespace(self) -> Optional[str]:
        return self.store.namespace

    def connect(
        self, server_address: str, transport_port: str = "", secondary_port: str = ""
    ) -> None:
        """Start a session; values are kept as given."""
        self.session = Session(
            server_address=server_address,
            transport_port=transport_port,
            secondary_port=secondary_port,
            connected=True,
        )
        self.store.bind_namespace(namespace_for(server_address, self.prefix))
        self.history.reset()
        self.last_result = ""
        logger.info(
            "Connected to %s (transport port %s, secondary port %s)",
            server_address,
            transport_port,
            secondary_port,
        )

    def disconnect(self) -> None:
        """End the session. Persisted data stays where it is."""
        address = self.session.server_address
        self.store.unbind()
        self.session = Session()
        self.history.reset()
        self.last_result = ""
        logger.info("Disconnected from %s", address)

    def close(self) -> None:
        """Release the tab's storage subscriptions."""
        self.sync.detach()
        self.adapter.close()

    def set(self, key: str, value: str) -> str:
        self._require_session()
        return self._remember(self.executor.set(key, value))

    def get(self, key: str) -> str:
        self._require_session()
        return self._remember(self.executor.get(key))

    def delete(self, key: str) -> str:
        self._require_session()
        return self._remember(self.executor.delete(key))

    def run_command(self, line: str) -> str:
        """Parse and run a console-style command. Syntax errors are shown, not recorded."""
        self._require_session()
        try:
            command = parse_command(line)
        except CommandSyntaxError as e:
            return self._remember(error_result(e))
        return self._remember(self.executor.execute(command))

    def get_history(self) -> list[HistoryEntry]:
        """Newest first."""
        return self.history.entries()

    def records(self) -> RecordMap:
        return self.store.snapshot()

    def known_namespaces(self) -> list[str]:
        """Addresses with stored data under this prefix, as stored on the origin."""
        return [
            key[len(self.prefix):]
            for key in self.adapter.keys()
            if key.startswith(self.prefix)
        ]

    def _require_session(self) -> None:
        if not self.session.connected:
            raise SessionNotConnectedError()

    def _on_store_change(self, namespace: Optional[str], snapshot: RecordMap) -> None:
        # bumped for local mutations and for writes applied from other tabs
        self.store_version += 1
        logger.debug("Store %s changed (%d records)", namespace, len(snapshot))

    def _remember(self, result: str) -> str:
        self.last_result = result
        return result
