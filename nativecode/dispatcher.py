"""Command dispatch and the two run modes of the helper process.

Single-invocation mode joins the process arguments into one command and
returns its result code as the exit status. Persistent mode answers one
command per input line with the decimal result code until the input closes.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Callable, Iterable, TextIO

from .lookup import table_lookup
from .models import FAILURE, LOOKUP_KEYWORD, TERMINATION_MESSAGE

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "NATIVECODE_LOG_LEVEL"

Handler = Callable[[str], int]

COMMANDS: dict[str, Handler] = {}


def register_command(keyword: str) -> Callable[[Handler], Handler]:
    if not keyword or any(char.isspace() for char in keyword):
        raise ValueError(f"invalid command keyword: {keyword!r}")

    def decorator(handler: Handler) -> Handler:
        COMMANDS[keyword] = handler
        return handler

    return decorator


register_command(LOOKUP_KEYWORD)(table_lookup)


def process_command(line: str) -> int:
    for keyword, handler in COMMANDS.items():
        prefix = f"{keyword} "
        if not line.startswith(prefix):
            continue
        try:
            result = handler(line[len(prefix):])
        except Exception:
            logger.exception("command %s raised", keyword)
            return FAILURE
        if not isinstance(result, int) or not 0 <= result <= FAILURE:
            logger.error("command %s returned %r outside the result code range", keyword, result)
            return FAILURE
        return result

    logger.debug("unrecognized command: %r", line.rstrip("\r\n"))
    return FAILURE


def join_arguments(arguments: Iterable[str]) -> str:
    return " ".join(arguments)


def run_single(arguments: Iterable[str]) -> int:
    command = join_arguments(arguments)
    result = process_command(command)
    logger.info("single command finished with %s", result)
    return result


def run_persistent(stdin: TextIO, stdout: TextIO) -> int:
    logger.info("waiting for commands")
    handled = 0
    for line in iter(stdin.readline, ""):
        result = process_command(line)
        stdout.write(f"{result}\n")
        stdout.flush()
        handled += 1
    stdout.write(f"{TERMINATION_MESSAGE}\n")
    stdout.flush()
    logger.info("input closed after %s command(s)", handled)
    return 0


def configure_logging() -> None:
    level_name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, stream=sys.stderr, format="%(asctime)s %(levelname)s %(name)s %(message)s")


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    arguments = sys.argv[1:] if argv is None else argv
    if arguments:
        return run_single(arguments)
    # undecodable bytes stay in the line as surrogates and still round-trip through open()
    if hasattr(sys.stdin, "reconfigure"):
        sys.stdin.reconfigure(errors="surrogateescape")
    return run_persistent(sys.stdin, sys.stdout)
