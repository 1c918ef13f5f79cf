from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Union

from ..errors import MalformedFileError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedCSV:
    headers: List[str]
    data: List[List[str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.data)


def _decode(content: Union[bytes, str]) -> str:
    if isinstance(content, str):
        text = content
    else:
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFileError("The file could not be read.") from e

    # Binary content that happens to decode (e.g. UTF-16 without BOM) still carries NULs.
    if "\x00" in text:
        raise MalformedFileError("The file could not be read.")

    return text.lstrip("\ufeff")


def parse_csv_line(line: str) -> List[str]:
    """
    Split one line on commas, honoring double-quoted fields.

    A double quote only toggles quoting; it is never kept and never escaped,
    so `"a,b"` -> `a,b` and `""` -> empty.
    """
    result: List[str] = []
    in_quote = False
    current: List[str] = []

    for char in line:
        if char == '"':
            in_quote = not in_quote
        elif char == "," and not in_quote:
            result.append("".join(current))
            current = []
        else:
            current.append(char)

    result.append("".join(current))
    return result


def parse_csv(content: Union[bytes, str]) -> ParsedCSV:
    """
    Parse raw CSV content into trimmed headers and a string matrix.

    Raises MalformedFileError when the content is not text or there is no
    header line plus at least one data line.
    """
    text = _decode(content)
    lines = [line for line in text.split("\n") if line.strip() != ""]

    if len(lines) < 2:
        raise MalformedFileError("CSV must contain headers and at least one row of data")

    parsed = [parse_csv_line(line) for line in lines]

    headers = [h.strip() for h in parsed[0]]
    data = [[cell.rstrip("\r").strip() for cell in row] for row in parsed[1:]]

    logger.debug("parsed csv: %d headers, %d rows", len(headers), len(data))
    return ParsedCSV(headers=headers, data=data)
