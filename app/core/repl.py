"""
Console client: the same operations as the web form, one command per line.

    $ set greeting "hello world"
    $ get greeting
    $ delete greeting
"""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Iterable, Optional, TextIO

from .config import load_app_config
from .controller import KVSessionController
from .logging_setup import configure_logging
from .persistence.local_storage import build_storage_origin

PROMPT = "$ "
EXIT_WORDS = {"exit", "quit"}

logger = logging.getLogger(__name__)


def run_repl(
    controller: KVSessionController,
    lines: Iterable[str],
    out: TextIO,
    *,
    prompt: str = PROMPT,
) -> int:
    """Run commands until EOF or exit. Returns the number of commands run."""
    count = 0
    out.write(prompt)
    out.flush()
    for raw in lines:
        line = raw.strip()
        if line.lower() in EXIT_WORDS:
            break
        if line:
            out.write(controller.run_command(line) + "\n")
            count += 1
        out.write(prompt)
        out.flush()
    out.write("\n")
    return count


def build_parser(defaults) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kvweb-repl", description="Interactive SET/GET/DELETE console."
    )
    parser.add_argument("server", nargs="?", default=defaults.server_address)
    parser.add_argument("-p", "--transport-port", default=defaults.transport_port)
    parser.add_argument("-i", "--secondary-port", default=defaults.secondary_port)
    parser.add_argument(
        "--storage-dir", default=None, help="Directory for file-backed storage."
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    config = load_app_config()
    args = build_parser(config.defaults).parse_args(argv)
    configure_logging(config.logging)

    origin = build_storage_origin(args.storage_dir or config.storage.directory)
    controller = KVSessionController(
        origin.open_context(),
        prefix=config.storage.prefix,
        history_limit=config.history_limit,
    )
    controller.connect(args.server, args.transport_port, args.secondary_port)
    try:
        run_repl(controller, sys.stdin, sys.stdout)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        controller.disconnect()
        controller.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
