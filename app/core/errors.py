"""
Error kinds raised inside the core. The operation executor resolves them into
result strings; only StoreNotBoundError and SessionNotConnectedError escape,
and only when the UI calls the core in a state it should never expose.
"""

from __future__ import annotations


class KVStoreError(Exception):
    """Base class for key-value core errors."""


class EmptyKeyError(KVStoreError, ValueError):
    def __init__(self) -> None:
        super().__init__("Key cannot be empty")


class KeyNotFoundError(KVStoreError, KeyError):
    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f'Key "{self.key}" not found'


class StoreNotBoundError(KVStoreError, RuntimeError):
    def __init__(self) -> None:
        super().__init__("No namespace is bound")


class SessionNotConnectedError(KVStoreError, RuntimeError):
    def __init__(self) -> None:
        super().__init__("Not connected to a server")


class CommandSyntaxError(KVStoreError, ValueError):
    """Raised when a console command cannot be parsed."""
