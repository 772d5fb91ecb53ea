"""
Tests for the CSV codec (csv_codec).

Tests cover:
    - Parsing into rows, dicts and namespaces
    - Column count checks with 1-based line numbers
    - Enclosures, escape prefixes and doubled enclosures
    - Quoting rules on dump, including multi-character tokens
    - Dump shape detection (rows vs records)
    - Round-trips across dialects
"""

from dataclasses import dataclass
from types import SimpleNamespace

import pytest

from xfilesystem.csv_codec import (
    CsvDialect,
    CsvDumpMode,
    ParseMode,
    RowEncoder,
    detect_dump_mode,
    dump_csv_string,
    parse_csv_rows,
    parse_csv_string,
)
from xfilesystem.errors import (
    ColumnCountMismatchError,
    InvalidArgumentError,
    InvalidDumpShapeError,
    InvalidRowDataError,
)


FAMILY_CSV = (
    "name,birthday,profession\n"
    "John,1992-02-08,Teacher\n"
    "Jane,1994-03-22,Developer\n"
    "Charly,2016-11-11,\n"
)

FAMILY_ASSOC = [
    {"name": "John", "birthday": "1992-02-08", "profession": "Teacher"},
    {"name": "Jane", "birthday": "1994-03-22", "profession": "Developer"},
    {"name": "Charly", "birthday": "2016-11-11", "profession": ""},
]

FAMILY_ARRAY = [list(FAMILY_ASSOC[0].keys())] + [list(r.values()) for r in FAMILY_ASSOC]


class TestParsing:
    """Parse CSV text into the three result shapes."""

    def test_array_mode_keeps_header(self):
        rows = parse_csv_string(FAMILY_CSV, ParseMode.ARRAY)
        assert len(rows) == 4
        assert rows == FAMILY_ARRAY

    def test_assoc_mode(self):
        records = parse_csv_string(FAMILY_CSV, ParseMode.ASSOC)
        assert len(records) == 3
        assert records == FAMILY_ASSOC
        assert list(records[0].keys()) == ["name", "birthday", "profession"]

    def test_object_mode(self):
        records = parse_csv_string(FAMILY_CSV, ParseMode.OBJECT)
        assert records[1] == SimpleNamespace(name="Jane", birthday="1994-03-22", profession="Developer")

    def test_mode_given_by_value(self):
        assert parse_csv_string(FAMILY_CSV, "array") == FAMILY_ARRAY

    def test_invalid_mode(self):
        with pytest.raises(InvalidArgumentError):
            parse_csv_string(FAMILY_CSV, "table")

    def test_empty_document(self):
        """Empty and whitespace-only documents have no rows and no records."""
        assert parse_csv_string("", ParseMode.ARRAY) == []
        assert parse_csv_string("  \n\n", ParseMode.ASSOC) == []

    def test_header_only(self):
        assert parse_csv_string("a,b,c\n", ParseMode.ASSOC) == []

    def test_lines_are_trimmed(self):
        rows = parse_csv_rows("  a,b\r\n c,d  \r\n")
        assert rows == [["a", "b"], ["c", "d"]]

    def test_trailing_empty_field(self):
        assert parse_csv_rows("a,b,\n1,2,") == [["a", "b", ""], ["1", "2", ""]]


class TestColumnCount:
    """Every row must have as many fields as the first row."""

    def test_mismatch_reports_line(self):
        with pytest.raises(ColumnCountMismatchError) as exc_info:
            parse_csv_rows("a,b\n1,2\n3\n", source="/data/numbers.csv")

        error = exc_info.value
        assert error.row_index == 3
        assert error.expected == 2
        assert error.found == 1
        assert error.file_path == "/data/numbers.csv"
        assert "line 3" in str(error)
        assert "/data/numbers.csv" in str(error)

    def test_mismatch_in_first_data_row(self):
        with pytest.raises(ColumnCountMismatchError) as exc_info:
            parse_csv_string("a,b\n1,2,3\n", ParseMode.ASSOC)
        assert exc_info.value.row_index == 2

    def test_delimiter_inside_enclosure_is_not_a_column(self):
        rows = parse_csv_rows('a,b\n"1,5",2\n')
        assert rows[1] == ["1,5", "2"]


class TestFieldSplitting:
    """Enclosures and escapes inside a line."""

    def test_enclosed_fields(self):
        rows = parse_csv_rows('"John Smith","a,b",plain')
        assert rows == [["John Smith", "a,b", "plain"]]

    def test_escaped_enclosure(self):
        rows = parse_csv_rows('"say \\"hi\\""')
        assert rows == [['say "hi"']]

    def test_doubled_enclosure(self):
        rows = parse_csv_rows('"say ""hi"""')
        assert rows == [['say "hi"']]

    def test_escaped_escape_char(self):
        rows = parse_csv_rows('"a \\\\ b"')
        assert rows == [["a \\ b"]]

    def test_escape_outside_enclosure_is_literal(self):
        rows = parse_csv_rows("C:\\path,x")
        assert rows == [["C:\\path", "x"]]

    def test_text_after_closing_enclosure(self):
        rows = parse_csv_rows('"ab"c,d')
        assert rows == [["abc", "d"]]

    def test_multi_char_delimiter(self):
        dialect = CsvDialect(delimiter="||")
        rows = parse_csv_rows('a||"b||c"||d', dialect)
        assert rows == [["a", "b||c", "d"]]

    def test_multi_char_enclosure(self):
        dialect = CsvDialect(delimiter=";", enclosure="~~", escape_char="")
        rows = parse_csv_rows("~~x;y~~;~~a~~~~b~~", dialect)
        assert rows == [["x;y", "a~~b"]]

    def test_single_char_tokens_without_escape(self):
        dialect = CsvDialect(delimiter=";", enclosure="'", escape_char="")
        rows = parse_csv_rows("'it''s';b\\c;\n'x y';;z", dialect)
        assert rows == [["it's", "b\\c", ""], ["x y", "", "z"]]


@pytest.mark.parametrize("escape_char", ["", "\\"])
@pytest.mark.parametrize(
    "line, expected",
    [
        ("a;b\rc;d", ["a", "b\rc", "d"]),
        ("'it''s';q", ["it's", "q"]),
        ("'x;y'z;w", ["x;yz", "w"]),
        ("a;" + "x" * 200_000, ["a", "x" * 200_000]),
        ("'" + "y" * 200_000 + "';b", ["y" * 200_000, "b"]),
    ],
)
def test_lines_parse_the_same_with_and_without_escape(escape_char, line, expected):
    """Lines without escape sequences don't depend on the escape setting."""
    dialect = CsvDialect(delimiter=";", enclosure="'", escape_char=escape_char)
    assert parse_csv_rows(line, dialect) == [expected]


class TestDialect:
    def test_defaults(self):
        dialect = CsvDialect()
        assert (dialect.delimiter, dialect.enclosure, dialect.escape_char) == (",", '"', "\\")

    def test_empty_delimiter_rejected(self):
        with pytest.raises(InvalidArgumentError):
            CsvDialect(delimiter="")

    def test_empty_enclosure_rejected(self):
        with pytest.raises(InvalidArgumentError):
            CsvDialect(enclosure="")

    def test_delimiter_equal_to_enclosure_rejected(self):
        with pytest.raises(InvalidArgumentError):
            CsvDialect(delimiter='"')


class TestQuoting:
    """A field is enclosed iff it has the delimiter, the enclosure or whitespace."""

    def test_quoting_rules(self):
        line = RowEncoder(CsvDialect()).encode_row(["plain", "with space", "tab\there", "com,ma", 'quo"te'])
        assert line == 'plain,"with space","tab\there","com,ma","quo\\"te"'

    def test_escape_char_is_escaped_inside_enclosure(self):
        encoder = RowEncoder(CsvDialect())
        assert encoder.encode_field("a\\b c") == '"a\\\\b c"'

    def test_escape_char_alone_does_not_enclose(self):
        assert RowEncoder(CsvDialect()).encode_field("C:\\path") == "C:\\path"

    def test_escaped_enclosure_is_not_escaped_twice(self):
        encoder = RowEncoder(CsvDialect())
        assert encoder.encode_field('\\"') == '"\\\\\\""'

    def test_without_escape_char_enclosure_is_doubled(self):
        encoder = RowEncoder(CsvDialect(escape_char=""))
        assert encoder.encode_field('quo"te') == '"quo""te"'

    def test_multi_char_delimiter_is_enclosed(self):
        text = dump_csv_string([["a||b", "c"]], CsvDialect(delimiter="||"))
        assert text == '"a||b"||c\n'

    def test_multi_char_enclosure_is_escaped(self):
        encoder = RowEncoder(CsvDialect(enclosure="~~"))
        assert encoder.encode_field("x ~~ y") == "~~x \\~~ y~~"

    def test_multi_char_escape_char(self):
        dialect = CsvDialect(escape_char="!!")
        encoder = RowEncoder(dialect)
        assert encoder.encode_field('a "b" !! c') == '"a !!"b!!" !!!! c"'

        text = dump_csv_string([['a "b" !! c', "x"]], dialect)
        assert parse_csv_rows(text, dialect) == [['a "b" !! c', "x"]]

    def test_partial_delimiter_at_field_end_is_not_enclosed(self):
        """A field ending in part of a multi-char delimiter is written bare."""
        dialect = CsvDialect(delimiter="||")
        text = dump_csv_string([["a|", "b"]], dialect)
        assert text == "a|||b\n"
        assert parse_csv_rows(text, dialect) == [["a", "|b"]]

    def test_scalar_values(self):
        encoder = RowEncoder(CsvDialect())
        assert encoder.encode_row([1, 2.5, None, True, b"raw"]) == "1,2.5,,True,raw"


class TestDumping:
    """Dump rows and records, with shape detection."""

    def test_family_rows(self):
        assert dump_csv_string(FAMILY_ARRAY) == FAMILY_CSV

    def test_family_records(self):
        assert dump_csv_string(FAMILY_ASSOC) == FAMILY_CSV

    def test_family_objects(self):
        objects = [SimpleNamespace(**r) for r in FAMILY_ASSOC]
        assert dump_csv_string(objects) == FAMILY_CSV

    def test_dataclass_records(self):
        @dataclass
        class Member:
            name: str
            age: int

        text = dump_csv_string([Member("John", 30), Member("Jane", 28)])
        assert text == "name,age\nJohn,30\nJane,28\n"

    def test_records_and_rows_dump_identically(self):
        assert dump_csv_string(FAMILY_ASSOC) == dump_csv_string(FAMILY_ARRAY)

    def test_record_values_follow_header_order(self):
        data = [{"a": 1, "b": 2}, {"b": 4, "a": 3}]
        assert dump_csv_string(data) == "a,b\n1,2\n3,4\n"

    def test_empty_data(self):
        assert dump_csv_string([]) == ""
        assert dump_csv_string([], mode=CsvDumpMode.STRUCTURED) == ""

    def test_explicit_plain_mode_writes_no_header(self):
        text = dump_csv_string([["1", "2"]], mode=CsvDumpMode.PLAIN)
        assert text == "1,2\n"

    def test_detect_dump_mode(self):
        assert detect_dump_mode([]) is CsvDumpMode.PLAIN
        assert detect_dump_mode([["a"]]) is CsvDumpMode.PLAIN
        assert detect_dump_mode([("a",)]) is CsvDumpMode.PLAIN
        assert detect_dump_mode([{"a": 1}]) is CsvDumpMode.STRUCTURED
        assert detect_dump_mode([SimpleNamespace(a=1)]) is CsvDumpMode.STRUCTURED

    def test_undetectable_shape(self):
        with pytest.raises(InvalidDumpShapeError):
            dump_csv_string(["just", "strings"])
        with pytest.raises(InvalidDumpShapeError):
            dump_csv_string([42])

    def test_structured_mode_requires_records(self):
        with pytest.raises(InvalidDumpShapeError):
            dump_csv_string([["a", "b"]], mode=CsvDumpMode.STRUCTURED)

    def test_invalid_dump_mode(self):
        with pytest.raises(InvalidArgumentError):
            dump_csv_string(FAMILY_ARRAY, mode="auto")

    def test_row_length_mismatch(self):
        with pytest.raises(ColumnCountMismatchError) as exc_info:
            dump_csv_string([["a", "b"], ["1", "2"], ["3"]])
        assert exc_info.value.row_index == 3

    def test_record_length_mismatch(self):
        with pytest.raises(ColumnCountMismatchError) as exc_info:
            dump_csv_string([{"a": 1, "b": 2}, {"a": 3}])
        assert exc_info.value.row_index == 2

    def test_record_with_other_keys(self):
        with pytest.raises(InvalidRowDataError) as exc_info:
            dump_csv_string([{"a": 1, "b": 2}, {"a": 3, "c": 4}])
        assert exc_info.value.row_index == 2
        assert not exc_info.value.is_header

    def test_nested_value_is_invalid_row_data(self):
        with pytest.raises(InvalidRowDataError) as exc_info:
            dump_csv_string([["a", "b"], ["1", ["nested"]]])
        assert exc_info.value.row_index == 2

    def test_invalid_header(self):
        with pytest.raises(InvalidRowDataError) as exc_info:
            dump_csv_string([{("a", "b"): 1}])
        assert exc_info.value.is_header

    def test_undecodable_bytes(self):
        with pytest.raises(InvalidRowDataError):
            dump_csv_string([[b"\xff\xfe"]])


class TestRoundTrip:
    """parse(dump(rows)) == rows for consistent rows."""

    ROWS = [
        ["name", "note", "path"],
        ["John Smith", 'said "hi"', "C:\\dir\\x"],
        ["Jane", "a,b;c||d", ""],
        ["x y", "~~", "\\"],
        ["tail \\", '\\"', " lead"],
    ]

    @pytest.mark.parametrize(
        "dialect",
        [
            CsvDialect(),
            CsvDialect(delimiter=";", enclosure="'", escape_char=""),
            CsvDialect(delimiter="||", enclosure='"', escape_char="\\"),
            CsvDialect(delimiter="||", enclosure="~~", escape_char="\\"),
            CsvDialect(delimiter=",", enclosure='"', escape_char='"'),
        ],
    )
    def test_round_trip(self, dialect):
        text = dump_csv_string(self.ROWS, dialect)
        assert parse_csv_rows(text, dialect) == self.ROWS

    def test_family_text_round_trip(self):
        rows = parse_csv_string(FAMILY_CSV, ParseMode.ARRAY)
        records = parse_csv_string(FAMILY_CSV, ParseMode.ASSOC)
        assert dump_csv_string(rows) == FAMILY_CSV
        assert dump_csv_string(records) == FAMILY_CSV
