"""Payload parsing for positional data lines."""
from __future__ import annotations

import re
from typing import List

_SEPARATOR_RE = re.compile(r"[\s,]+")
_COLUMN_ROW_RE = re.compile(r"^[\d ]+$")


def parse_payload(payload: str, *, packed: bool = True) -> List[int]:
    """Parse a positional payload into integers.

    Two encodings appear in FFmpeg debug output: separated values
    (``"26 27 28"``, ``"26,27"``, ``"QP=26 QP=27"``) and fixed-width packed
    two-digit columns (``"262728"``, or ``"26 927"`` where a value below 10
    is space padded).  A trailing incomplete column is dropped.  With
    ``packed=False`` a digit run is always a single value.
    """

    text = payload.strip().strip('[]').strip()
    if not text:
        return []
    row = payload.rstrip()
    if packed and _COLUMN_ROW_RE.match(row) and any(len(token) > 2 for token in row.split()):
        return _parse_columns(row)
    if _SEPARATOR_RE.search(text):
        return _parse_separated(text)
    if '=' in text:
        text = text.split('=', 1)[1]
    if not text.isdigit():
        return []
    if not packed or len(text) <= 2:
        return [int(text)]
    return _parse_columns(text)


def _parse_columns(row: str) -> List[int]:
    values: List[int] = []
    for i in range(0, len(row) - 1, 2):
        column = row[i:i + 2].strip()
        if column:
            values.append(int(column))
    return values


def _parse_separated(text: str) -> List[int]:
    values: List[int] = []
    for part in _SEPARATOR_RE.split(text):
        if not part:
            continue
        if '=' in part:
            part = part.split('=', 1)[1]
        if part.isdigit():
            values.append(int(part))
    return values
