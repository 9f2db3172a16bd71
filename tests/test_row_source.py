from pathlib import Path

import pytest

from qrgen.errors import InputFileError, MalformedRowError
from qrgen.row_source import RowSource, parse_row
from qrgen.schemas import MalformedRow, Record


def test_reads_label_payload_pairs_with_line_numbers(write_input) -> None:
    path = write_input("rows.csv", "site_url,https://example.com\nbad_row\nproductid,12345")

    rows = list(RowSource(path))

    assert rows[0] == Record(line_number=1, label="site_url", payload="https://example.com")
    assert isinstance(rows[1], MalformedRow)
    assert rows[1].line_number == 2
    assert rows[1].reason.startswith("line 2: malformed row")
    assert rows[2] == Record(line_number=3, label="productid", payload="12345")


def test_unparseable_header_line_is_the_only_line_skipped(write_input) -> None:
    path = write_input(
        "rows.csv", "hdr," + "x" * 200_000 + "\nsite_url,https://example.com\nproductid,12345\n"
    )

    rows = list(RowSource(path, skip_header=True))

    assert rows == [
        Record(line_number=2, label="site_url", payload="https://example.com"),
        Record(line_number=3, label="productid", payload="12345"),
    ]


def test_skip_header_drops_first_line_without_validating_it(write_input) -> None:
    path = write_input("rows.csv", "only-one-column\nname,payload\n")

    rows = list(RowSource(path, skip_header=True))

    assert rows == [Record(line_number=2, label="name", payload="payload")]


def test_fields_are_trimmed_and_quoted_delimiters_kept(write_input) -> None:
    path = write_input("rows.csv", '  file_name , qr_data \n"a,b","x, y"\n')

    rows = list(RowSource(path))

    assert rows[0] == Record(line_number=1, label="file_name", payload="qr_data")
    assert rows[1] == Record(line_number=2, label="a,b", payload="x, y")


def test_extra_fields_and_empty_label_are_malformed(write_input) -> None:
    path = write_input("rows.csv", "a,b,c\n,payload\n")

    rows = list(RowSource(path))

    assert [type(row) for row in rows] == [MalformedRow, MalformedRow]
    assert "got 3" in rows[0].reason
    assert "label is empty" in rows[1].reason


def test_blank_lines_are_skipped(write_input) -> None:
    path = write_input("rows.csv", "a,1\n\n\nb,2\n")

    rows = list(RowSource(path))

    assert [row.label for row in rows] == ["a", "b"]
    assert rows[1].line_number == 4


def test_custom_delimiter(write_input) -> None:
    path = write_input("rows.tsv", "a\thttps://example.com/?q=1,2\n")

    rows = list(RowSource(path, delimiter="\t"))

    assert rows == [Record(line_number=1, label="a", payload="https://example.com/?q=1,2")]


def test_empty_file_yields_nothing(write_input) -> None:
    assert list(RowSource(write_input("empty.csv", ""))) == []
    assert list(RowSource(write_input("header.csv", "label,payload\n"), skip_header=True)) == []


def test_source_can_be_iterated_again(write_input) -> None:
    source = RowSource(write_input("rows.csv", "a,1\nb,2\n"))

    assert list(source) == list(source)


def test_missing_file_raises_input_file_error(tmp_path: Path) -> None:
    with pytest.raises(InputFileError, match="cannot open input file"):
        list(RowSource(tmp_path / "missing.csv"))


def test_undecodable_file_raises_input_file_error(tmp_path: Path) -> None:
    path = tmp_path / "latin1.csv"
    path.write_bytes(b"caf\xe9,1\n")

    with pytest.raises(InputFileError, match="not valid UTF-8"):
        list(RowSource(path))


def test_parse_row_counts_fields() -> None:
    assert parse_row(7, ["x", "y"]) == Record(line_number=7, label="x", payload="y")
    with pytest.raises(MalformedRowError, match="line 7"):
        parse_row(7, ["x"])
