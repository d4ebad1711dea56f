from __future__ import annotations

from dataclasses import dataclass


FAILURE = 255
MAX_SEEK = 2_147_483_647
MAX_OFFSET = 2**63 - 1
MAX_PATH_LENGTH = 999

LOOKUP_KEYWORD = "tablelookup"
TERMINATION_MESSAGE = "Ending native code process..."


@dataclass(frozen=True)
class LookupRequest:
    path: str
    bytes_per_row: float
    row: float
    column: float

    @property
    def offset(self) -> int:
        # Python ints do not overflow, so the product is exact at any size.
        return int(self.bytes_per_row) * int(self.row) + int(self.column)

    @property
    def command(self) -> str:
        return f"{LOOKUP_KEYWORD} {self.path} {format_number(self.bytes_per_row)} {format_number(self.row)} {format_number(self.column)}"


@dataclass(frozen=True)
class LookupRecord:
    request: LookupRequest
    offset: int
    result: int

    @property
    def failed(self) -> bool:
        return self.result == FAILURE


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
