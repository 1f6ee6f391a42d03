"""
Purpose: Parse console-style requests ("set k v", "get k", "delete k").
Content: shell-style splitting so keys and values may contain spaces when
quoted. Early, predictable failures with a usage hint.
"""

from __future__ import annotations
import shlex

from ..errors import CommandSyntaxError
from ..models import Command, Operation

USAGE = "Usage: set <key> <value> | get <key> | delete <key>"

VERBS = {
    "set": Operation.SET,
    "get": Operation.GET,
    "delete": Operation.DELETE,
    "del": Operation.DELETE,
}


def parse_command(line: str) -> Command:
    try:
        args = shlex.split(line or "")
    except ValueError:
        raise CommandSyntaxError("Invalid quoting")

    if not args:
        raise CommandSyntaxError(f"Empty command. {USAGE}")

    verb, *rest = args
    operation = VERBS.get(verb.lower())
    if operation is None:
        raise CommandSyntaxError(f"Unknown command '{verb}'. {USAGE}")

    expected = 2 if operation is Operation.SET else 1
    if len(rest) < expected:
        raise CommandSyntaxError(f"Missing arguments for '{verb}'. {USAGE}")
    if len(rest) > expected:
        raise CommandSyntaxError(f"Unexpected argument '{rest[expected]}'. {USAGE}")

    if operation is Operation.SET:
        return Command(operation=operation, key=rest[0], value=rest[1])
    return Command(operation=operation, key=rest[0])
