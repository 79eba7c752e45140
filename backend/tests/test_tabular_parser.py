"""
Tests for tabular file parsing.

Covers:
  - Delimited text: quoting, blank lines, BOM, ragged rows
  - Spreadsheets: first sheet, numeric and date cells
  - Header cleanup: empty headers dropped, duplicates suffixed
  - ParseError reasons
"""

import io
from datetime import date

import openpyxl
import pytest

from stockroom.schemas.imports import SourceFormat
from stockroom.services.errors import ParseError, ParseErrorReason
from stockroom.services.tabular_parser import (
    detect_format,
    parse_delimited,
    parse_spreadsheet,
    parse_table,
)
from tests.fixtures.catalog_factory import HALAXY_HEADERS, make_excel, make_halaxy_csv, make_halaxy_excel


# ─── Delimited Text ───────────────────────────────────────────

def test_parse_halaxy_csv():
    table = parse_delimited(make_halaxy_csv(num_items=5))
    assert table.headers == HALAXY_HEADERS
    assert table.row_count == 5
    assert table.rows[0]["Name"] == "Item 001"
    assert table.rows[0]["Code"] == "SKU-0001"


def test_quoted_fields_and_escaped_quotes():
    data = b'Name,Notes\n"Gloves, nitrile","Size ""M"""\n'
    table = parse_delimited(data)
    assert table.rows == [{"Name": "Gloves, nitrile", "Notes": 'Size "M"'}]


def test_blank_lines_dropped_and_lines_trimmed():
    data = b"\n\n  Name,Qty  \n\n  Gauze,4\n   \nTape,2\n"
    table = parse_delimited(data)
    assert table.headers == ["Name", "Qty"]
    assert [r["Name"] for r in table.rows] == ["Gauze", "Tape"]


def test_bom_tolerated():
    table = parse_delimited("\ufeffName,Qty\nGauze,4\n".encode("utf-8"))
    assert table.headers == ["Name", "Qty"]


def test_missing_cells_become_empty_strings():
    table = parse_delimited(b"Name,SKU,Qty\nGauze\n")
    assert table.rows == [{"Name": "Gauze", "SKU": "", "Qty": ""}]


def test_every_row_has_exactly_the_header_keys():
    table = parse_delimited(b"Name,Qty\nGauze,4,extra\nTape\n")
    for row in table.rows:
        assert set(row) == set(table.headers)


def test_empty_headers_dropped_with_their_column():
    table = parse_delimited(b"Name,,Qty\nGauze,ignored,4\n")
    assert table.headers == ["Name", "Qty"]
    assert table.rows == [{"Name": "Gauze", "Qty": "4"}]


def test_duplicate_headers_suffixed():
    table = parse_delimited(b"Name,Price,Price\nGauze,1,2\n")
    assert table.headers == ["Name", "Price", "Price (2)"]
    assert table.rows[0]["Price (2)"] == "2"


def test_duplicate_suffix_never_collides_with_real_header():
    """A suffixed duplicate skips names already present in the header row."""
    table = parse_delimited(b"Name,Name,Name (2)\nGauze,a,b\n")
    assert table.headers == ["Name", "Name (2)", "Name (2) (2)"]
    assert table.rows == [{"Name": "Gauze", "Name (2)": "a", "Name (2) (2)": "b"}]


def test_duplicate_suffix_skips_taken_number():
    table = parse_delimited(b"Price (2),Price,Price\n1,2,3\n")
    assert table.headers == ["Price (2)", "Price", "Price (3)"]
    assert len(set(table.headers)) == 3
    assert table.rows[0]["Price (3)"] == "3"


def test_empty_file():
    with pytest.raises(ParseError) as exc:
        parse_delimited(b"  \n\n ")
    assert exc.value.reason == ParseErrorReason.EMPTY_FILE


def test_no_headers():
    with pytest.raises(ParseError) as exc:
        parse_delimited(b",,\nGauze,1,2\n")
    assert exc.value.reason == ParseErrorReason.NO_HEADERS


def test_no_data_rows():
    with pytest.raises(ParseError) as exc:
        parse_delimited(b"Name,Qty\n , \n")
    assert exc.value.reason == ParseErrorReason.NO_DATA_ROWS


def test_header_only():
    with pytest.raises(ParseError) as exc:
        parse_delimited(b"Name,Qty\n")
    assert exc.value.reason == ParseErrorReason.NO_DATA_ROWS


def test_invalid_utf8():
    with pytest.raises(ParseError) as exc:
        parse_delimited(b"Name\n\xff\xfe\xfa\n")
    assert exc.value.reason == ParseErrorReason.UNREADABLE


# ─── Spreadsheets ─────────────────────────────────────────────

def test_parse_halaxy_excel():
    table = parse_spreadsheet(make_halaxy_excel(num_items=7))
    assert table.headers == HALAXY_HEADERS
    assert table.row_count == 7


def test_numeric_cells_stringified():
    data = make_excel(["Name", "Qty", "Cost", "Received"], [
        ["Gauze", 4, 12.0, date(2025, 3, 1)],
        ["Tape", 2.5, 3.25, None],
    ])
    table = parse_spreadsheet(data)
    assert table.rows[0]["Qty"] == "4"
    assert table.rows[0]["Cost"] == "12"
    assert table.rows[0]["Received"].startswith("2025-03-01")
    assert table.rows[1]["Qty"] == "2.5"
    assert table.rows[1]["Received"] == ""


def test_only_first_sheet_read():
    wb = openpyxl.Workbook()
    first = wb.active
    first.append(["Name"])
    first.append(["Gauze"])
    second = wb.create_sheet("Other")
    second.append(["Ignored"])
    second.append(["x"])
    buf = io.BytesIO()
    wb.save(buf)

    table = parse_spreadsheet(buf.getvalue())
    assert table.headers == ["Name"]
    assert table.rows == [{"Name": "Gauze"}]


def test_not_a_workbook():
    with pytest.raises(ParseError) as exc:
        parse_spreadsheet(b"definitely not a zip file")
    assert exc.value.reason == ParseErrorReason.UNREADABLE


def test_empty_workbook_bytes():
    with pytest.raises(ParseError) as exc:
        parse_spreadsheet(b"")
    assert exc.value.reason == ParseErrorReason.EMPTY_FILE


def test_workbook_with_headers_only():
    with pytest.raises(ParseError) as exc:
        parse_spreadsheet(make_excel(["Name", "Qty"], []))
    assert exc.value.reason == ParseErrorReason.NO_DATA_ROWS


# ─── Format Detection ─────────────────────────────────────────

@pytest.mark.parametrize("filename,expected", [
    ("stock.csv", SourceFormat.DELIMITED),
    ("STOCK.CSV", SourceFormat.DELIMITED),
    ("export.txt", SourceFormat.DELIMITED),
    ("stock.xlsx", SourceFormat.SPREADSHEET),
])
def test_detect_format(filename, expected):
    assert detect_format(filename) == expected


def test_detect_format_unsupported():
    with pytest.raises(ParseError) as exc:
        detect_format("stock.pdf")
    assert exc.value.reason == ParseErrorReason.UNSUPPORTED_FORMAT


def test_parse_table_dispatches_on_format():
    csv_table = parse_table(make_halaxy_csv(3), SourceFormat.DELIMITED)
    xlsx_table = parse_table(make_halaxy_excel(3), SourceFormat.SPREADSHEET)
    assert csv_table.rows == xlsx_table.rows
