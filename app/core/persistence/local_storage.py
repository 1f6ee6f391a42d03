"""
Purpose: Per-origin key/blob persistence shared by every tab of the app.
Why: One origin is one storage area; each tab opens its own context on it and
hears about writes made by the other contexts, never about its own.

What is inside:
- MemoryBackend: process-lifetime storage (default).
- DirectoryBackend: one JSON file per storage key, survives restarts.
- StorageChannel: message-passing channel that fans a write out to every
  other subscribed context.
- StorageOrigin: backend + channel; open_context() hands out adapters.
- LocalStorageAdapter: load/save/subscribe for one context.

Testing:
Two contexts opened on one MemoryBackend origin behave like two tabs.
DirectoryBackend: tmp_path fixture.
"""

from __future__ import annotations
import hashlib
import logging
import os
import queue
import tempfile
import threading
import uuid
import weakref
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import quote, unquote

from ..interfaces import ChangeHandler, StorageBackend, Unsubscribe
from ..models import StorageEvent

logger = logging.getLogger(__name__)

BLOB_SUFFIX = ".json"
KEY_SUFFIX = ".key"
# quote() always escapes "@", so hashed names never collide with quoted keys
HASHED_PREFIX = "@sha256-"
MAX_NAME_LENGTH = 255


class MemoryBackend:
    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, blob: str) -> None:
        with self._lock:
            self._items[key] = blob

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._items)


class DirectoryBackend:
    """File-backed storage area.

    Layout: <base_dir>/<url-quoted storage key>.json
    Keys whose quoted name is too long for the filesystem are stored as
    @sha256-<digest>.json with the original key in @sha256-<digest>.key.
    """

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, key: str) -> Path:
        name = quote(key, safe="")
        if len(name) + len(BLOB_SUFFIX) > MAX_NAME_LENGTH:
            name = HASHED_PREFIX + hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._base_dir / (name + BLOB_SUFFIX)

    def get_item(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            logger.warning("Discarding undecodable storage file %s: %s", path.name, e)
            return None

    def set_item(self, key: str, blob: str) -> None:
        dst = self.path_for(key)
        if dst.name.startswith(HASHED_PREFIX):
            self._write_atomic(dst.with_suffix(KEY_SUFFIX), key)
        self._write_atomic(dst, blob)

    def keys(self) -> list[str]:
        found = []
        for p in self._base_dir.glob("*" + BLOB_SUFFIX):
            if p.name.startswith(HASHED_PREFIX):
                try:
                    found.append(p.with_suffix(KEY_SUFFIX).read_text(encoding="utf-8"))
                except (FileNotFoundError, UnicodeDecodeError):
                    logger.warning("Missing key file for %s", p.name)
            else:
                found.append(unquote(p.name[: -len(BLOB_SUFFIX)]))
        return sorted(found)

    def _write_atomic(self, dst: Path, text: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self._base_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as out:
                out.write(text)
            os.replace(tmp_name, dst)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class StorageChannel:
    """Fans storage writes out to every context except the writer.

    Inline delivery runs handlers inside publish(). Asynchronous delivery
    hands events to one dispatcher thread, so a writer holding its own store
    lock never waits on another context's lock.
    """

    def __init__(self, asynchronous: bool = False) -> None:
        self._subscribers: dict[int, tuple[str, Callable[[], Optional[ChangeHandler]]]] = {}
        self._next_token = 0
        self._lock = threading.Lock()
        self.asynchronous = asynchronous
        self._queue: "queue.Queue[StorageEvent]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None

    def subscribe(self, context_id: str, handler: ChangeHandler) -> Unsubscribe:
        # Bound methods are held weakly so a dropped tab stops receiving events.
        if hasattr(handler, "__self__"):
            ref = weakref.WeakMethod(handler)
        else:
            ref = lambda: handler  # noqa: E731

        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = (context_id, ref)

        def _unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return _unsubscribe

    def drop_context(self, context_id: str) -> None:
        with self._lock:
            for token in [t for t, (cid, _) in self._subscribers.items() if cid == context_id]:
                del self._subscribers[token]

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: StorageEvent) -> None:
        if not self.asynchronous:
            self._deliver(event)
            return
        self._ensure_worker()
        self._queue.put(event)

    def join(self) -> None:
        """Block until every queued event has been delivered."""
        if self.asynchronous:
            self._queue.join()

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name="storage-channel", daemon=True
                )
                self._worker.start()

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                self._deliver(event)
            finally:
                self._queue.task_done()

    def _deliver(self, event: StorageEvent) -> None:
        with self._lock:
            targets = list(self._subscribers.items())

        for token, (context_id, ref) in targets:
            if context_id == event.sender:
                continue
            handler = ref()
            if handler is None:
                with self._lock:
                    self._subscribers.pop(token, None)
                continue
            try:
                handler(event.key, event.blob)
            except Exception:
                logger.exception(
                    "Storage change handler failed for context %s", context_id
                )


class LocalStorageAdapter:
    """One execution context's view of a storage origin."""

    def __init__(self, origin: "StorageOrigin", context_id: Optional[str] = None) -> None:
        self._origin = origin
        self.context_id = context_id or uuid.uuid4().hex

    def load(self, key: str) -> Optional[str]:
        return self._origin.backend.get_item(key)

    def keys(self) -> list[str]:
        return self._origin.backend.keys()

    def save(self, key: str, blob: str) -> None:
        self._origin.backend.set_item(key, blob)
        self._origin.channel.publish(
            StorageEvent(key=key, blob=blob, sender=self.context_id)
        )

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        return self._origin.channel.subscribe(self.context_id, handler)

    def close(self) -> None:
        self._origin.channel.drop_context(self.context_id)


class StorageOrigin:
    def __init__(
        self, backend: Optional[StorageBackend] = None, *, asynchronous: bool = False
    ) -> None:
        self.backend: StorageBackend = backend if backend is not None else MemoryBackend()
        self.channel = StorageChannel(asynchronous=asynchronous)

    def open_context(self, context_id: Optional[str] = None) -> LocalStorageAdapter:
        return LocalStorageAdapter(self, context_id)


def build_storage_origin(
    directory: Optional[str] = None, *, asynchronous: bool = False
) -> StorageOrigin:
    """Memory-backed origin unless a storage directory is configured."""
    if directory:
        backend = DirectoryBackend(Path(directory).expanduser())
        logger.info("Using file-backed storage under %s", backend.base_dir)
        return StorageOrigin(backend, asynchronous=asynchronous)
    logger.info("Using in-memory storage")
    return StorageOrigin(MemoryBackend(), asynchronous=asynchronous)
