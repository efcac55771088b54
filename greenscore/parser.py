"""
Green Score — Tabular Parser
Turns the raw CSV text published by NESO into records of typed cells.

Rules
-----
  * Blank lines are dropped; the first remaining line is the header row.
    Every line is one row; quoted fields never span lines.
  * Commas inside double-quoted fields do not split the field, and a
    doubled quote inside a quoted field is an escaped quote.
  * Every field is whitespace-trimmed, then typed:
        Number  when the text is a decimal literal (see NUMERIC_LITERAL)
        Text    otherwise, including the empty string
  * Rows shorter than the header are padded with empty Text cells; extra
    trailing values are ignored.

Column sets are not validated here.  Consumers read cells with
``as_number`` / ``as_text`` and default absent columns themselves.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from loguru import logger

# Optional sign, digits with an optional fraction (or a bare fraction), and an
# optional exponent.  Rejects "1.2.3", "0x1F", "inf", "nan" and "1_000".
NUMERIC_LITERAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Text:
    value: str


Cell = Union[Number, Text]
ParsedRecord = dict[str, Cell]


def to_cell(raw: str) -> Cell:
    """Type a single trimmed field."""
    text = raw.strip()
    if NUMERIC_LITERAL.fullmatch(text):
        return Number(float(text))
    return Text(text)


def as_number(cell: Optional[Cell], default: float = 0.0) -> float:
    """Numeric value of a cell; *default* for Text or a missing column."""
    if isinstance(cell, Number):
        return cell.value
    return default


def as_text(cell: Optional[Cell]) -> str:
    """String form of a cell; integral numbers render without a fraction."""
    if isinstance(cell, Number):
        value = cell.value
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(cell, Text):
        return cell.value
    return ""


def split_line(line: str) -> list[str]:
    """
    Split one physical line into fields.

    Each line is read on its own, so an unbalanced quote only affects the
    row it appears in.
    """
    try:
        return next(csv.reader([line], skipinitialspace=True), [])
    except csv.Error as exc:
        logger.warning("Parser: unreadable row {!r} ({}); splitting on commas.", line, exc)
        return line.split(",")


def parse(text: str) -> list[ParsedRecord]:
    """Parse CSV text into a list of records keyed by header name."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        logger.warning("Parser: no non-blank lines in input.")
        return []

    headers = [h.replace('"', "").strip() for h in split_line(lines[0])]

    records: list[ParsedRecord] = []
    for line in lines[1:]:
        values = split_line(line)
        record: ParsedRecord = {}
        for index, header in enumerate(headers):
            raw = values[index] if index < len(values) else ""
            record[header] = to_cell(raw)
        records.append(record)

    logger.debug("Parser: {} records x {} columns.", len(records), len(headers))
    return records


def dump(headers: list[str], records: Iterable[ParsedRecord]) -> str:
    """
    Serialise records back to CSV text, quoting only where needed.

    ``parse(dump(h, rows))`` reproduces the typed values of *rows*, provided
    every Text cell is already trimmed and is not itself a numeric literal.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for record in records:
        writer.writerow([as_text(record.get(h)) for h in headers])
    return buffer.getvalue()
