"""
import_engine.csv_codec - CSV tokenizer and serializer.

Responsibilities:
  • BOM removal on read, BOM emission on write (Excel opens UTF-8 correctly)
  • Quote-aware tokenizing: embedded commas, quotes and newlines survive
  • Header zipping into field-name → value dicts
  • Minimal quoting on write: only fields that need it are wrapped

The reader is a small state machine with a single ``in_quotes`` flag.
It is not a regex splitter; quoted newlines must not end a row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

BOM = "\ufeff"
QUOTE = '"'
DELIMITER = ","
LINE_END = "\n"


# ── Reading ───────────────────────────────────────────────────────────

def _to_text(raw: str | bytes) -> str:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if raw.startswith(BOM):
        return raw[1:]
    return raw


class _FieldBuffer:
    """
    Characters of the field being read, remembering which span came
    from inside quotes so only unquoted padding gets trimmed.
    """

    def __init__(self):
        self.chars: list[str] = []
        self.quoted_start: int | None = None
        self.quoted_end = 0

    def add(self, ch: str, quoted: bool):
        if quoted:
            if self.quoted_start is None:
                self.quoted_start = len(self.chars)
            self.quoted_end = len(self.chars) + 1
        self.chars.append(ch)

    def mark_quote(self):
        # An opening quote protects the position even if the field is "".
        if self.quoted_start is None:
            self.quoted_start = len(self.chars)
        self.quoted_end = max(self.quoted_end, len(self.chars))

    def value(self) -> str:
        text = "".join(self.chars)
        if self.quoted_start is None:
            return text.strip()
        head = text[:self.quoted_start].lstrip()
        body = text[self.quoted_start:self.quoted_end]
        tail = text[self.quoted_end:].rstrip()
        return head + body + tail


def tokenize(raw: str | bytes) -> list[list[str]]:
    """
    Split CSV text into rows of string fields.

    Blank lines (nothing but whitespace outside quotes) are dropped.
    An unterminated quote swallows the rest of the input into the
    current field.
    """
    text = _to_text(raw)
    rows: list[list[str]] = []
    row: list[str] = []
    field = _FieldBuffer()
    in_quotes = False
    has_content = False

    def end_row():
        nonlocal row, field, has_content
        row.append(field.value())
        if has_content:
            rows.append(row)
        row = []
        field = _FieldBuffer()
        has_content = False

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == QUOTE:
                if i + 1 < n and text[i + 1] == QUOTE:
                    field.add(QUOTE, quoted=True)
                    i += 1
                else:
                    in_quotes = False
            else:
                field.add(ch, quoted=True)
        elif ch == QUOTE:
            in_quotes = True
            has_content = True
            field.mark_quote()
        elif ch == DELIMITER:
            row.append(field.value())
            field = _FieldBuffer()
            has_content = True
        elif ch in "\r\n":
            end_row()
            if ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                i += 1
        else:
            if not ch.isspace():
                has_content = True
            field.add(ch, quoted=False)
        i += 1

    if has_content:
        end_row()
    return rows


def decode(raw: str | bytes) -> list[dict[str, str]]:
    """
    Parse CSV text into a list of header → value dicts.

    Returns [] unless there is a header row plus at least one data row.
    Missing trailing values become "", surplus values are ignored.
    """
    rows = tokenize(raw)
    if len(rows) < 2:
        return []

    headers = rows[0]
    records: list[dict[str, str]] = []
    for values in rows[1:]:
        record: dict[str, str] = {}
        for idx, header in enumerate(headers):
            record[header] = values[idx] if idx < len(values) else ""
        records.append(record)
    return records


# ── Writing ───────────────────────────────────────────────────────────

def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def escape_field(value: Any) -> str:
    """Quote a single field iff it contains a quote, comma, CR or LF."""
    text = _stringify(value)
    if any(c in text for c in (QUOTE, DELIMITER, "\n", "\r")):
        return QUOTE + text.replace(QUOTE, QUOTE + QUOTE) + QUOTE
    return text


def _lookup(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def encode(
    rows: Iterable[Any],
    columns: Sequence[tuple[str, str]],
) -> str:
    """
    Serialise rows to CSV text.

    Parameters
    ----------
    rows    : mappings or objects; values are looked up per column key
    columns : ordered (key, header) pairs

    Output starts with a BOM and every line, the last one included,
    ends with a newline.
    """
    lines = [DELIMITER.join(escape_field(header) for _, header in columns)]
    for row in rows:
        lines.append(DELIMITER.join(
            escape_field(_lookup(row, key)) for key, _ in columns
        ))
    return BOM + LINE_END.join(lines) + LINE_END
