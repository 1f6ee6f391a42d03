"""
Canonical data shapes, shared truth for typing between layers.

Typical contents:
- Session (server address, transport port, secondary port, connected flag).
- HistoryEntry (one recorded operation and its literal result string).
- Command (a parsed textual request for the executor).

Testing: Trivial; mostly types.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Optional
from enum import Enum

ERROR_MARKER = "Error"

RecordMap = dict[str, str]


class Operation(str, Enum):
    SET = "SET"
    GET = "GET"
    DELETE = "DELETE"


@dataclass
class Session:
    server_address: str = ""
    transport_port: str = ""
    secondary_port: str = ""
    connected: bool = False


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: str
    operation: Operation
    key: str
    value: Optional[str]
    result: str

    @property
    def is_error(self) -> bool:
        return self.result.startswith(ERROR_MARKER)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["operation"] = self.operation.value
        data["is_error"] = self.is_error
        return data


@dataclass(frozen=True)
class Command:
    operation: Operation
    key: str
    value: Optional[str] = None


@dataclass
class StorageEvent:
    key: str
    blob: Optional[str]
    sender: str = field(default="", compare=False)
