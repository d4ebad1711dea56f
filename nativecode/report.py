from __future__ import annotations

import posixpath
from pathlib import Path

from .dispatcher import process_command
from .lookup import LookupFailure, parse_lookup_request
from .models import FAILURE, LOOKUP_KEYWORD, LookupRecord, LookupRequest, format_number


def build_lookup_command(
    path: str | Path,
    bytes_per_row: float,
    row: float,
    column: float,
    base_dir: str | Path | None = None,
) -> str:
    path_text = str(path)
    if base_dir and not Path(path_text).is_absolute():
        path_text = posixpath.join(Path(base_dir).as_posix(), path_text)
    return LookupRequest(path=path_text, bytes_per_row=bytes_per_row, row=row, column=column).command


def run_recorded_lookup(command: str) -> LookupRecord:
    """Run ``command`` through the dispatcher and keep what was asked for next to the answer."""
    result = process_command(command)
    keyword, _, parameters = command.partition(" ")
    try:
        if keyword != LOOKUP_KEYWORD:
            raise LookupFailure(f"not a lookup command: {keyword!r}")
        request = parse_lookup_request(parameters)
    except LookupFailure:
        request = LookupRequest(path=parameters.strip(), bytes_per_row=0, row=0, column=0)
        return LookupRecord(request=request, offset=-1, result=result)
    return LookupRecord(request=request, offset=request.offset, result=result)


def describe_result(result: int) -> str:
    if result == FAILURE:
        return f"{FAILURE} (failure or byte 0xFF)"
    return f"{result} (0x{result:02X})"


def records_to_markdown(records: list[LookupRecord]) -> str:
    headers = ["Path", "Bytes per row", "Row", "Column", "Offset", "Result"]
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(["---"] * len(headers)) + " |",
    ]
    for record in records:
        request = record.request
        offset = str(record.offset) if record.offset >= 0 else "invalid"
        lines.append(
            "| "
            + " | ".join(
                [
                    request.path,
                    format_number(request.bytes_per_row),
                    format_number(request.row),
                    format_number(request.column),
                    offset,
                    describe_result(record.result),
                ]
            )
            + " |"
        )
    return "\n".join(lines)
