"""Decode Bulk API 2.0 query results (CSV, LF line endings) into records.

Quoted fields may span lines (Description, Street...), so the payload is
scanned as a whole and a line feed only ends a record outside quotes.

The decoder is deliberately lenient: an unterminated quote simply swallows the
rest of the payload unless ``strict=True`` is requested.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Iterator, List, Tuple

from .exceptions import DecodeError
from .models import JsonValue, RecordMap

_QUOTE = '"'
_SEP = ","
_EOL = "\n"
_CR = "\r"


def _scan(text: str) -> Iterator[Tuple[List[str], int, bool]]:
    """Yield (fields, first_line_number, ends_inside_quotes) per record."""
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    line = 1
    start = 1
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == _QUOTE:
            if in_quotes and i + 1 < n and text[i + 1] == _QUOTE:
                current.append(_QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == _SEP and not in_quotes:
            fields.append("".join(current))
            current = []
        elif ch == _CR and not in_quotes and i + 1 < n and text[i + 1] == _EOL:
            pass
        elif ch == _EOL and not in_quotes:
            fields.append("".join(current))
            yield fields, start, False
            fields, current = [], []
            start = line + 1
        else:
            current.append(ch)
        if ch == _EOL:
            line += 1
        i += 1

    if fields or current:
        fields.append("".join(current))
        yield fields, start, in_quotes


def _blank(fields: List[str]) -> bool:
    return len(fields) == 1 and not fields[0].strip()


def split_csv_line(line: str) -> List[str]:
    """Split one CSV line into raw field texts, honouring quotes and ``""`` escapes."""
    for fields, _, _ in _scan(line):
        return fields
    return [""]


def _number_text(num: float) -> str:
    """Canonical text for a number, the way the inspector UI re-renders it.

    Fixed notation for 1e-6 <= |x| < 1e21, otherwise ``1e-7`` / ``1.5e+21``.
    """
    if num.is_integer() and abs(num) < 1e21:
        return str(int(num))
    shortest = repr(num)
    if 1e-6 <= abs(num) < 1e21:
        return format(Decimal(shortest), "f")
    mantissa, _, exp = shortest.partition("e")
    power = int(exp)
    return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def coerce_value(text: str) -> JsonValue:
    """Best-effort typing of a CSV field: null, bool, number, else the string.

    A value is only treated as a number when re-rendering the parsed number
    gives back the original text (a trailing ``.0`` is tolerated), so ids,
    zip codes with leading zeros and the like stay strings.
    """
    if text == "":
        return None
    if text == "true":
        return True
    if text == "false":
        return False

    try:
        num = float(text)
    except ValueError:
        return text
    if not math.isfinite(num):
        return text

    canonical = _number_text(num)
    if canonical == text or canonical + ".0" == text:
        return int(num) if num.is_integer() and abs(num) < 1e21 else num
    return text


def _header_name(raw: str) -> str:
    name = raw
    if name.startswith(_QUOTE):
        name = name[1:]
    if name.endswith(_QUOTE):
        name = name[:-1]
    return name


def decode_csv(text: str, strict: bool = False) -> List[RecordMap]:
    """Decode CSV text (first record is the header) into ordered records.

    Blank lines are skipped. Rows shorter than the header get None for the
    missing columns; extra values are dropped.
    """
    scanned = _scan(text)
    first = next(scanned, None)
    if first is None or _blank(first[0]):
        return []

    header_fields, _, open_quote = first
    if strict and open_quote:
        raise DecodeError("Unterminated quoted field in CSV header")
    headers = [_header_name(h) for h in header_fields]

    records: List[RecordMap] = []
    for values, lineno, open_quote in scanned:
        if strict and open_quote:
            raise DecodeError(f"Unterminated quoted field starting on line {lineno}")
        if _blank(values):
            continue
        records.append(
            {h: coerce_value(values[i] if i < len(values) else "") for i, h in enumerate(headers)}
        )
    return records
