"""
CSV codec: CSV text <-> rows / records.

Parsing:
    - The document is split on raw newlines; every line is trimmed and
      split into fields separately. Enclosed fields spanning several lines
      are NOT supported.
    - The first row fixes the column count for the whole document.

Dumping:
    - Plain rows (lists/tuples) are written verbatim.
    - Records (mappings, dataclasses, namespaces) get a header row built
      from the first record's keys.
    - A field is enclosed iff it contains the delimiter, the enclosure or
      whitespace. Delimiters and enclosures may be longer than one character.
"""

import dataclasses
import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from xfilesystem import config
from xfilesystem.errors import (
    ColumnCountMismatchError,
    InvalidArgumentError,
    InvalidDumpShapeError,
    InvalidRowDataError,
)

Row = List[str]
Record = Dict[str, Any]

_STRING_SOURCE = "<string>"


class ParseMode(Enum):
    """How parsed data is structured."""
    ARRAY = "array"    # Every line as a list of fields
    ASSOC = "assoc"    # Header-keyed dicts
    OBJECT = "object"  # Header-keyed SimpleNamespace objects


class CsvDumpMode(Enum):
    """How data passed for dumping is interpreted."""
    PLAIN = "plain"
    STRUCTURED = "structured"
    DETECT = "detect"


def coerce_mode(enum_cls, value, argument: str):
    """Turn an enum member or its value into a member, or raise InvalidArgumentError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(f"{enum_cls.__name__}.{m.name}" for m in enum_cls)
        raise InvalidArgumentError(
            f'Invalid {argument}: "{value}", must be one of {allowed}.',
            argument=argument,
            value=value,
        )


@dataclass(frozen=True)
class CsvDialect:
    """
    Delimiter/enclosure/escape configuration of one CSV document.

    Properties:
        delimiter: Field separator, one or more characters
        enclosure: Field wrapper, one or more characters
        escape_char: Prefix escaping the enclosure inside enclosed fields.
            An empty string disables escaping; enclosures are doubled instead.
    """

    delimiter: str = config.DEFAULT_DELIMITER
    enclosure: str = config.DEFAULT_ENCLOSURE
    escape_char: str = config.DEFAULT_ESCAPE_CHAR

    def __post_init__(self):
        for name in ("delimiter", "enclosure", "escape_char"):
            if not isinstance(getattr(self, name), str):
                raise InvalidArgumentError(f"{name} must be a string", argument=name, value=getattr(self, name))
        if not self.delimiter:
            raise InvalidArgumentError("delimiter must not be empty", argument="delimiter", value=self.delimiter)
        if not self.enclosure:
            raise InvalidArgumentError("enclosure must not be empty", argument="enclosure", value=self.enclosure)
        if self.delimiter == self.enclosure:
            raise InvalidArgumentError(
                "delimiter and enclosure must differ", argument="enclosure", value=self.enclosure
            )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _read_enclosed(line: str, pos: int, dialect: CsvDialect) -> Tuple[str, int]:
    """Read an enclosed field body starting after the opening enclosure."""
    enclosure = dialect.enclosure
    escape = dialect.escape_char if dialect.escape_char != enclosure else ""
    buf = []
    n = len(line)

    while pos < n:
        if escape and line.startswith(escape, pos):
            nxt = pos + len(escape)
            if line.startswith(enclosure, nxt):
                buf.append(enclosure)
                pos = nxt + len(enclosure)
            elif line.startswith(escape, nxt):
                buf.append(escape)
                pos = nxt + len(escape)
            else:
                buf.append(escape)
                pos = nxt
            continue

        if line.startswith(enclosure, pos):
            nxt = pos + len(enclosure)
            if line.startswith(enclosure, nxt):
                buf.append(enclosure)
                pos = nxt + len(enclosure)
                continue
            return "".join(buf), nxt

        buf.append(line[pos])
        pos += 1

    # Unterminated enclosure: the rest of the line belongs to the field
    return "".join(buf), pos


def _split_fields(line: str, dialect: CsvDialect) -> Row:
    """Split one line into fields, for any delimiter/enclosure length."""
    delimiter = dialect.delimiter
    fields = []
    pos = 0

    while True:
        if line.startswith(dialect.enclosure, pos):
            value, pos = _read_enclosed(line, pos + len(dialect.enclosure), dialect)
        else:
            value = ""

        end = line.find(delimiter, pos)
        if end == -1:
            fields.append(value + line[pos:])
            return fields

        fields.append(value + line[pos:end])
        pos = end + len(delimiter)


def split_lines(text: str) -> List[str]:
    """Split a document into trimmed lines. Whitespace-only text has no lines."""
    text = text.strip()
    if not text:
        return []
    return [line.strip() for line in text.split("\n")]


def parse_csv_rows(
    text: str,
    dialect: Optional[CsvDialect] = None,
    source: Optional[str] = None,
) -> List[Row]:
    """
    Parse CSV text into rows.

    Args:
        text: CSV document
        dialect: Delimiter/enclosure/escape configuration (defaults if None)
        source: File identity used in error messages

    Returns:
        List of rows, the header (if any) included

    Raises:
        ColumnCountMismatchError: If a row's field count differs from the first row's
    """
    dialect = dialect or CsvDialect()
    source = source or _STRING_SOURCE

    rows: List[Row] = []
    length: Optional[int] = None

    for index, line in enumerate(split_lines(text)):
        fields = _split_fields(line, dialect)

        if length is None:
            length = len(fields)
        elif len(fields) != length:
            raise ColumnCountMismatchError(
                f"Column count mismatch: Header row has {length} columns, "
                f"{len(fields)} columns found in line {index + 1} of {source}",
                file_path=source,
                row_index=index + 1,
                expected=length,
                found=len(fields),
            )

        rows.append(fields)

    return rows


def rows_to_records(rows: List[Row], mode: ParseMode = ParseMode.ASSOC) -> List[Any]:
    """Zip every row after the first against the first (header) row."""
    if not rows:
        return []

    keys = rows[0]
    records = []
    for row in rows[1:]:
        record = dict(zip(keys, row))
        records.append(SimpleNamespace(**record) if mode is ParseMode.OBJECT else record)
    return records


def parse_csv_string(
    text: str,
    mode: Union[ParseMode, str] = ParseMode.OBJECT,
    dialect: Optional[CsvDialect] = None,
    source: Optional[str] = None,
) -> List[Any]:
    """
    Parse CSV text and structure it according to mode.

    Args:
        text: CSV document
        mode: ParseMode.ARRAY, ParseMode.ASSOC or ParseMode.OBJECT
        dialect: Delimiter/enclosure/escape configuration
        source: File identity used in error messages

    Returns:
        Rows (ARRAY) or records (ASSOC/OBJECT)

    Raises:
        InvalidArgumentError: If mode is not a ParseMode
        ColumnCountMismatchError: If the column count is inconsistent
    """
    mode = coerce_mode(ParseMode, mode, "mode")
    rows = parse_csv_rows(text, dialect=dialect, source=source)

    if mode is ParseMode.ARRAY:
        return rows
    return rows_to_records(rows, mode)


# ---------------------------------------------------------------------------
# Dumping
# ---------------------------------------------------------------------------


def _is_record(item: Any) -> bool:
    if isinstance(item, Mapping):
        return True
    if isinstance(item, (str, bytes, list, tuple, type)):
        return False
    return dataclasses.is_dataclass(item) or hasattr(item, "__dict__")


def _record_to_dict(item: Any) -> Dict[Any, Any]:
    if isinstance(item, Mapping):
        return dict(item)
    if dataclasses.is_dataclass(item):
        return {f.name: getattr(item, f.name) for f in dataclasses.fields(item)}
    return dict(vars(item))


def detect_dump_mode(data: Sequence[Any]) -> CsvDumpMode:
    """
    Detect how data should be dumped from its first element.

    Raises:
        InvalidDumpShapeError: If the first element is neither a record nor a plain row
    """
    if not data:
        return CsvDumpMode.PLAIN

    first = data[0]
    if isinstance(first, (list, tuple)):
        return CsvDumpMode.PLAIN
    if _is_record(first):
        return CsvDumpMode.STRUCTURED

    raise InvalidDumpShapeError(
        f"Could not detect dump mode from CSV data: first item is {type(first).__name__}",
        row_index=1,
    )


def _flatten(data: Sequence[Any], mode: CsvDumpMode) -> List[Tuple[Optional[int], Sequence[Any]]]:
    """
    Turn data into (item number, row) pairs.

    The item number is 1-based in the caller's data; None marks the
    synthesized header row.
    """
    if mode is CsvDumpMode.PLAIN:
        flat = []
        for index, row in enumerate(data, start=1):
            if not isinstance(row, (list, tuple)):
                raise InvalidRowDataError(
                    f"Invalid data in item #{index}: expected a list of fields, got {type(row).__name__}",
                    row_index=index,
                )
            flat.append((index, row))
        return flat

    if not data:
        return []

    records = []
    for index, item in enumerate(data, start=1):
        if not _is_record(item):
            raise InvalidDumpShapeError(
                f"Invalid data in item #{index}: expected a record, got {type(item).__name__}",
                row_index=index,
            )
        records.append(_record_to_dict(item))

    header = list(records[0].keys())
    flat = [(None, header)]
    for index, record in enumerate(records, start=1):
        if len(record) != len(header):
            # Leave it to the column count check
            flat.append((index, list(record.values())))
            continue
        try:
            flat.append((index, [record[key] for key in header]))
        except KeyError as e:
            raise InvalidRowDataError(f"Invalid data in item #{index}: missing key {e}", row_index=index)
    return flat


class RowEncoder:
    """
    Encodes rows of fields into CSV lines for one dialect.

    Built once per dump; the quoting and escaping patterns are compiled
    up front so every field is handled by the same rule.
    """

    def __init__(self, dialect: CsvDialect):
        self.dialect = dialect
        self._needs_enclosure = re.compile(
            "|".join([re.escape(dialect.delimiter), re.escape(dialect.enclosure), r"\s"])
        )

        escape = dialect.escape_char
        if escape:
            # Longest first so one token never shadows a longer one
            tokens = sorted({dialect.enclosure, escape}, key=len, reverse=True)
            self._escape_pattern = re.compile("|".join(re.escape(t) for t in tokens))
            self._escape_prefix = escape
        else:
            self._escape_pattern = re.compile(re.escape(dialect.enclosure))
            self._escape_prefix = dialect.enclosure

    @staticmethod
    def to_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, bytes):
            return value.decode("utf-8")
        if isinstance(value, (bool, int, float, Decimal)):
            return str(value)
        raise TypeError(f"cannot write {type(value).__name__} as a CSV field")

    def encode_field(self, value: Any) -> str:
        text = self.to_text(value)
        if not self._needs_enclosure.search(text):
            return text

        prefix = self._escape_prefix
        escaped = self._escape_pattern.sub(lambda m: prefix + m.group(0), text)
        return f"{self.dialect.enclosure}{escaped}{self.dialect.enclosure}"

    def encode_row(self, fields: Sequence[Any]) -> str:
        return self.dialect.delimiter.join(self.encode_field(f) for f in fields)


def dump_csv_string(
    data: Sequence[Any],
    dialect: Optional[CsvDialect] = None,
    mode: Union[CsvDumpMode, str] = CsvDumpMode.DETECT,
    source: Optional[str] = None,
) -> str:
    """
    Encode rows or records as CSV text.

    The whole document is built in memory; nothing is returned unless every
    row encoded successfully.

    Args:
        data: List of rows (lists/tuples) or records (mappings/objects)
        dialect: Delimiter/enclosure/escape configuration
        mode: CsvDumpMode.PLAIN, CsvDumpMode.STRUCTURED or CsvDumpMode.DETECT
        source: Destination identity used in error messages

    Returns:
        CSV text, every row newline-terminated ("" for no rows)

    Raises:
        InvalidArgumentError: If mode is not a CsvDumpMode
        InvalidDumpShapeError: If the data shape cannot be used with mode
        ColumnCountMismatchError: If row lengths are inconsistent
        InvalidRowDataError: If a field cannot be written
    """
    mode = coerce_mode(CsvDumpMode, mode, "dump_mode")
    dialect = dialect or CsvDialect()
    source = source or _STRING_SOURCE

    data = list(data)
    if mode is CsvDumpMode.DETECT:
        mode = detect_dump_mode(data)

    encoder = RowEncoder(dialect)
    lines = []
    length: Optional[int] = None

    for item_number, row in _flatten(data, mode):
        if length is None:
            length = len(row)
        elif len(row) != length:
            raise ColumnCountMismatchError(
                f"Column count mismatch: There are {length} header columns, "
                f"{len(row)} columns found in item #{item_number} of {source}",
                file_path=source,
                row_index=item_number,
                expected=length,
                found=len(row),
            )

        try:
            lines.append(encoder.encode_row(row))
        except (TypeError, UnicodeDecodeError) as e:
            where = "headline" if item_number is None else f"item #{item_number}"
            raise InvalidRowDataError(f"Invalid data in {where}: {e}", file_path=source, row_index=item_number)

    return "".join(line + "\n" for line in lines)


__all__ = [
    "ParseMode",
    "CsvDumpMode",
    "CsvDialect",
    "RowEncoder",
    "coerce_mode",
    "split_lines",
    "parse_csv_rows",
    "rows_to_records",
    "parse_csv_string",
    "detect_dump_mode",
    "dump_csv_string",
]
