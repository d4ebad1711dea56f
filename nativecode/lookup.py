from __future__ import annotations

import logging
import math
import os
import re
import stat
from typing import BinaryIO, Iterator

from .models import FAILURE, MAX_OFFSET, MAX_PATH_LENGTH, MAX_SEEK, LookupRequest

logger = logging.getLogger(__name__)

NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class LookupFailure(Exception):
    """Reason a lookup answered with the failure sentinel."""


def _parse_number(token: str, name: str) -> float:
    if not NUMBER_RE.fullmatch(token):
        raise LookupFailure(f"{name} is not a number: {token!r}")
    value = float(token)
    if not math.isfinite(value):
        raise LookupFailure(f"{name} is out of range: {token!r}")
    return value


def parse_lookup_request(parameters: str) -> LookupRequest:
    tokens = parameters.split()
    if len(tokens) < 4:
        raise LookupFailure(f"expected a path and three numbers, got {len(tokens)} field(s)")

    path = tokens[0]
    if len(path) > MAX_PATH_LENGTH:
        raise LookupFailure(f"path longer than {MAX_PATH_LENGTH} characters")

    return LookupRequest(
        path=path,
        bytes_per_row=_parse_number(tokens[1], "bytes_per_row"),
        row=_parse_number(tokens[2], "row"),
        column=_parse_number(tokens[3], "column"),
    )


def validate_lookup_request(request: LookupRequest) -> None:
    if request.bytes_per_row < 1:
        raise LookupFailure(f"bytes_per_row must be at least 1, got {request.bytes_per_row}")
    if request.row < 0:
        raise LookupFailure(f"row must not be negative, got {request.row}")
    if request.column < 0:
        raise LookupFailure(f"column must not be negative, got {request.column}")


def seek_steps(offset: int, max_step: int = MAX_SEEK) -> Iterator[int]:
    """Split a forward seek into relative steps of at most ``max_step`` bytes.

    The steps always add up to ``offset``; an offset of zero yields nothing.
    """
    remaining = offset
    while remaining > max_step:
        yield max_step
        remaining -= max_step
    if remaining > 0:
        yield remaining


def seek_forward(handle: BinaryIO, offset: int, max_step: int = MAX_SEEK) -> None:
    for step in seek_steps(offset, max_step):
        handle.seek(step, os.SEEK_CUR)


def read_byte_at(path: str, offset: int) -> int:
    if offset > MAX_OFFSET:
        raise LookupFailure(f"offset {offset} exceeds the addressable range")

    try:
        handle = open(path, "rb", buffering=0)
    except (OSError, ValueError) as exc:
        raise LookupFailure(f"cannot open {path!r}: {getattr(exc, 'strerror', None) or exc}") from exc

    with handle:
        try:
            status = os.fstat(handle.fileno())
            if stat.S_ISREG(status.st_mode) and offset >= status.st_size:
                raise LookupFailure(f"offset {offset} is beyond the end of {path} ({status.st_size} bytes)")
            seek_forward(handle, offset)
            data = handle.read(1)
        except OSError as exc:
            raise LookupFailure(f"cannot read {path} at offset {offset}: {exc.strerror or exc}") from exc

    if not data:
        raise LookupFailure(f"no byte at offset {offset} in {path}")
    return data[0]


def perform_lookup(request: LookupRequest) -> int:
    validate_lookup_request(request)
    return read_byte_at(request.path, request.offset)


def lookup(path: str, bytes_per_row: float, row: float, column: float) -> int:
    request = LookupRequest(path=path, bytes_per_row=bytes_per_row, row=row, column=column)
    try:
        for name in ("bytes_per_row", "row", "column"):
            value = getattr(request, name)
            if isinstance(value, float) and not math.isfinite(value):
                raise LookupFailure(f"{name} is out of range")
        return perform_lookup(request)
    except LookupFailure as exc:
        logger.debug("lookup failed: %s", exc)
        return FAILURE


def table_lookup(parameters: str) -> int:
    """Handle the parameter tail of a ``tablelookup`` command."""
    try:
        request = parse_lookup_request(parameters)
        value = perform_lookup(request)
    except LookupFailure as exc:
        logger.debug("tablelookup %r failed: %s", parameters.strip(), exc)
        return FAILURE
    logger.debug("tablelookup %s offset=%s value=%s", request.path, request.offset, value)
    return value
