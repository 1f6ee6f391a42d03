from __future__ import annotations

from datetime import datetime

import pytest

from core.controller import KVSessionController
from core.persistence.local_storage import MemoryBackend, StorageOrigin


class TickingClock:
    """Deterministic clock: one second per call."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> datetime:
        self.calls += 1
        return datetime(2024, 1, 1, 12, 0, 0).replace(second=self.calls % 60)


@pytest.fixture()
def origin() -> StorageOrigin:
    return StorageOrigin(MemoryBackend())


@pytest.fixture()
def make_controller(origin: StorageOrigin):
    def _make(**kwargs) -> KVSessionController:
        kwargs.setdefault("clock", TickingClock())
        return KVSessionController(origin.open_context(), **kwargs)

    return _make


@pytest.fixture()
def controller(make_controller) -> KVSessionController:
    ctl = make_controller()
    ctl.connect("10.31.17.1", "18515", "1")
    return ctl
