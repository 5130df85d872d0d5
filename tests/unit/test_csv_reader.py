from __future__ import annotations

import csv
from pathlib import Path

import pytest

from csv_bulk_loader.csv.reader import inspect_csv_file, read_csv_file
from csv_bulk_loader.models.record import Record


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_reads_records_in_file_order(tmp_path):
    path = _write(tmp_path / "in.csv", "Column1,Column2,Column3,Column4,Column5\na,b,c,d,e\nf,g,h,i,j\n")
    records = read_csv_file(path)
    assert records == [
        Record(row_number=1, values=("a", "b", "c", "d", "e")),
        Record(row_number=2, values=("f", "g", "h", "i", "j")),
    ]


def test_missing_file_raises_not_found(tmp_path):
    with pytest.raises(FileNotFoundError, match="CSV file not found"):
        read_csv_file(tmp_path / "missing.csv")


def test_header_only_file_is_empty(tmp_path):
    path = _write(tmp_path / "in.csv", "Column1,Column2,Column3,Column4,Column5\n")
    assert read_csv_file(path) == []


def test_zero_byte_file_is_empty(tmp_path):
    path = _write(tmp_path / "in.csv", "")
    assert read_csv_file(path) == []


def test_trims_whitespace_and_empty_cells_become_none(tmp_path):
    path = _write(tmp_path / "in.csv", "Column1,Column2,Column3,Column4,Column5\n  a , ,c,   ,e \n")
    [record] = read_csv_file(path)
    assert record.values == ("a", None, "c", None, "e")


def test_header_matching_is_case_insensitive_and_order_independent(tmp_path):
    path = _write(tmp_path / "in.csv", " column3 ,COLUMN1,Extra,column2\nthree,one,x,two\n")
    [record] = read_csv_file(path)
    assert record.values == ("one", "two", "three", None, None)


def test_unmatched_header_falls_back_to_position(tmp_path):
    path = _write(tmp_path / "in.csv", "id,name,qty\n1,widget,4\n")
    [record] = read_csv_file(path)
    assert record.values == ("1", "widget", "4", None, None)


def test_short_and_long_rows_are_tolerated(tmp_path):
    path = _write(
        tmp_path / "in.csv",
        "Column1,Column2,Column3,Column4,Column5\na,b\n1,2,3,4,5,6,7\n",
    )
    records = read_csv_file(path)
    assert [r.values for r in records] == [
        ("a", "b", None, None, None),
        ("1", "2", "3", "4", "5"),
    ]


def test_quoted_fields_and_utf8(tmp_path):
    path = _write(
        tmp_path / "in.csv",
        'Column1,Column2,Column3,Column4,Column5\n"Müller, Jörg","東京",c,"say ""hi""",e\n',
    )
    [record] = read_csv_file(path)
    assert record.values == ("Müller, Jörg", "東京", "c", 'say "hi"', "e")



def test_custom_arity(tmp_path):
    path = _write(tmp_path / "in.csv", "A,B\n1,2\n")
    [record] = read_csv_file(path, columns=("A", "B"))
    assert record.values == ("1", "2")


def test_directory_path_is_a_read_error(tmp_path):
    with pytest.raises(OSError):
        read_csv_file(tmp_path)


def test_inspect_csv_file_limits_rows(tmp_path):
    path = _write(tmp_path / "in.csv", "Column1,Column2\n1,2\n3,4\n5,6\n7,8\n")
    preview = inspect_csv_file(path, limit=2)
    assert preview.header == ["Column1", "Column2"]
    assert preview.rows == [["1", "2"], ["3", "4"]]


def test_empty_lines_are_skipped_but_delimiter_only_rows_are_records(tmp_path):
    path = _write(tmp_path / "in.csv", "Column1,Column2,Column3,Column4,Column5\na,b,c,d,e\n\n,,,,\nf,g,h,i,j\n")
    records = read_csv_file(path)
    assert [r.values for r in records] == [
        ("a", "b", "c", "d", "e"),
        (None, None, None, None, None),
        ("f", "g", "h", "i", "j"),
    ]
    assert [r.row_number for r in records] == [1, 2, 3]


def test_single_column_quoted_empty_cell_is_a_record(tmp_path):
    path = _write(tmp_path / "in.csv", 'Column1\nx\n""\n\ny\n')
    records = read_csv_file(path)
    assert [r.values[0] for r in records] == ["x", None, "y"]


def test_oversized_field_is_kept(tmp_path):
    big = "x" * 200_000
    path = _write(tmp_path / "in.csv", f"Column1,Column2,Column3,Column4,Column5\na,b,c,d,e\n{big},b,c,d,e\nf,g,h,i,j\n")
    limit_before = csv.field_size_limit()

    records = read_csv_file(path)

    assert [len(r.values[0]) for r in records] == [1, 200_000, 1]
    # the lifted limit does not leak out of the read
    assert csv.field_size_limit() == limit_before


def test_invalid_utf8_bytes_are_replaced(tmp_path):
    path = tmp_path / "in.csv"
    path.write_bytes(b"Column1,Column2\ncaf\xe9,ok\n")
    [record] = read_csv_file(path, columns=("Column1", "Column2"))
    assert record.values == ("caf\ufffd", "ok")


def test_inspect_skips_empty_lines(tmp_path):
    path = _write(tmp_path / "in.csv", "\nColumn1,Column2\n\n1,2\n")
    preview = inspect_csv_file(path, limit=3)
    assert preview.header == ["Column1", "Column2"]
    assert preview.rows == [["1", "2"]]
