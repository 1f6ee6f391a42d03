"""
Purpose: SET / GET / DELETE against the namespaced store.
Every request ends in a literal result string; errors never escape this
boundary. Each request with a non-empty key is appended to the history.

Result strings are surfaced verbatim to the user and stored verbatim in the
history, so their wording is fixed.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, Optional

from ..errors import EmptyKeyError, KeyNotFoundError
from ..models import ERROR_MARKER, Command, HistoryEntry, Operation
from ..persistence.namespaced_store import NamespacedStore
from ..persistence.session_store import HistoryRecorder

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%H:%M:%S"


def error_result(message: object) -> str:
    return f"{ERROR_MARKER}: {message}"


class OperationExecutor:
    def __init__(
        self,
        store: NamespacedStore,
        history: HistoryRecorder,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.history = history
        self.clock = clock

    def set(self, key: str, value: str) -> str:
        return self._run(Operation.SET, key, value if value is not None else "")

    def get(self, key: str) -> str:
        return self._run(Operation.GET, key, None)

    def delete(self, key: str) -> str:
        return self._run(Operation.DELETE, key, None)

    def execute(self, command: Command) -> str:
        if command.operation is Operation.SET:
            return self.set(command.key, command.value)
        if command.operation is Operation.GET:
            return self.get(command.key)
        return self.delete(command.key)

    def _run(self, operation: Operation, key: str, value: Optional[str]) -> str:
        if not key:
            return error_result(EmptyKeyError())

        with self.store.lock:
            try:
                result = self._apply(operation, key, value)
            except KeyNotFoundError as e:
                result = error_result(e)
            except Exception as e:
                logger.exception("%s %r failed", operation.value, key)
                result = error_result(e)

        self.history.record(
            HistoryEntry(
                timestamp=self.clock().strftime(TIMESTAMP_FORMAT),
                operation=operation,
                key=key,
                value=value,
                result=result,
            )
        )
        return result

    def _apply(self, operation: Operation, key: str, value: Optional[str]) -> str:
        if operation is Operation.SET:
            records = self.store.snapshot()
            records[key] = value
            self.store.mutate(records)
            return f'Successfully set key "{key}" with value "{value}"'

        current = self.store.get(key)
        if current is None:
            raise KeyNotFoundError(key)

        if operation is Operation.GET:
            return f'Value for key "{key}": "{current}"'

        records = self.store.snapshot()
        del records[key]
        self.store.mutate(records)
        return f'Successfully deleted key "{key}"'
