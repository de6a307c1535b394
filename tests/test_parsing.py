"""Tests for statement file parsing."""

from datetime import date, datetime

import pytest
from openpyxl import Workbook

from couple_split.exceptions import (
    FileParseError,
    MissingColumnsError,
    UnsupportedFileError,
)
from couple_split.parsing import parse_file
from couple_split.parsing.columns import (
    COLUMN_MAPPINGS,
    detect_extra_fields,
    find_column_index,
    find_data_start_row,
    normalize_column_name,
)
from couple_split.parsing.pdf_parser import (
    extract_location,
    parse_statement_text,
    parse_transaction_line,
)
from couple_split.parsing.tabular import rows_to_transactions
from couple_split.parsing.values import parse_amount, parse_date, parse_signed_amount

TODAY = date(2024, 6, 1)


class TestParseDate:
    """Date cells in the shapes banks actually export."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-01-15", "2024-01-15"),
            ("2024-1-5", "2024-01-05"),
            ("01/15/2024", "2024-01-15"),
            ("1/5/2024", "2024-01-05"),
            ("01-15-2024", "2024-01-15"),
            ("Jan 15, 2024", "2024-01-15"),
            (45306, "2024-01-15"),
            ("45306", "2024-01-15"),
            (datetime(2024, 3, 5, 10, 30), "2024-03-05"),
            (date(2024, 3, 5), "2024-03-05"),
        ],
    )
    def test_formats(self, value, expected):
        assert parse_date(value, today=TODAY) == expected

    def test_unparsable_falls_back_to_today(self):
        assert parse_date("not a date", today=TODAY) == "2024-06-01"
        assert parse_date("", today=TODAY) == "2024-06-01"
        assert parse_date(None, today=TODAY) == "2024-06-01"


class TestParseAmount:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("$1,234.56", 1234.56),
            ("-4.50", -4.5),
            ("(45.00)", -45.0),
            ("€ 12", 12.0),
            (19.99, 19.99),
            (-7, -7.0),
        ],
    )
    def test_signed(self, value, expected):
        assert parse_signed_amount(value) == expected

    @pytest.mark.parametrize("value", ["abc", "", None, True, float("nan"), float("inf")])
    def test_unparsable_is_zero(self, value):
        assert parse_signed_amount(value) == 0

    def test_parse_amount_is_absolute(self):
        assert parse_amount("-3.50") == 3.5
        assert parse_amount("(10)") == 10


class TestColumnDetection:
    def test_normalize_column_name(self):
        assert normalize_column_name(" Transaction Date ") == "transactiondate"
        assert normalize_column_name(None) == ""

    def test_synonyms(self):
        headers = ["Posting Date", "Payee", "Debit"]

        assert find_column_index(headers, COLUMN_MAPPINGS["date"]) == 0
        assert find_column_index(headers, COLUMN_MAPPINGS["description"]) == 1
        assert find_column_index(headers, COLUMN_MAPPINGS["amount"]) == 2

    def test_no_match(self):
        assert find_column_index(["Foo", "Bar"], COLUMN_MAPPINGS["date"]) == -1

    def test_empty_headers_never_match(self):
        assert find_column_index(["", "Date"], COLUMN_MAPPINGS["date"]) == 1

    def test_header_row_after_preamble(self):
        rows = [
            ["Account Summary"],
            ["Statement Period", "01/01/2024 - 01/31/2024"],
            ["Date", "Description", "Amount"],
            ["01/15/2024", "STARBUCKS", "-4.50"],
        ]

        index, headers = find_data_start_row(rows)

        assert index == 2
        assert headers == ["Date", "Description", "Amount"]

    def test_header_positions_stay_aligned(self):
        """Blank header cells keep their slot so data columns line up."""
        rows = [[None, "Date", None, "Description", "Amount"]]

        _, headers = find_data_start_row(rows)

        assert find_column_index(headers, COLUMN_MAPPINGS["description"]) == 3
        assert find_column_index(headers, COLUMN_MAPPINGS["amount"]) == 4

    def test_detect_extra_fields(self):
        headers = ["Transaction Date", "Merchant", "Amount", "MCC", "City"]

        assert detect_extra_fields(headers) == {"mcc_code": 3, "location": 4}


class TestRowsToTransactions:
    def test_maps_rows(self):
        rows = [
            ["Transaction Date", "Merchant", "Amount", "MCC", "City"],
            ["01/15/2024", "Whole Foods", "-82.10", "5411", "Austin"],
            ["01/16/2024", "", "12.00", "", ""],
        ]

        result = rows_to_transactions(rows, source="CSV")

        assert result.detected_fields == ["mcc_code", "location"]
        first, second = result.transactions
        assert first.date == "2024-01-15"
        assert first.amount == 82.1
        assert first.signed_amount == -82.1
        assert first.description == "Whole Foods"
        assert first.mcc_code == "5411"
        assert first.location == "Austin"
        assert second.description == "Unknown"
        assert second.mcc_code is None

    def test_drops_zero_and_blank_rows(self):
        rows = [
            ["Date", "Description", "Amount"],
            ["01/15/2024", "Fee reversal", "0.00"],
            ["", "", ""],
            ["01/16/2024", "Pharmacy", "abc"],
            ["01/17/2024", "Gas", "30"],
        ]

        result = rows_to_transactions(rows)

        assert [t.description for t in result.transactions] == ["Gas"]

    def test_missing_columns(self):
        with pytest.raises(MissingColumnsError) as exc_info:
            rows_to_transactions([["Foo", "Bar", "Baz"], ["1", "2", "3"]], source="CSV")

        assert exc_info.value.headers == ["Foo", "Bar", "Baz"]
        assert "Date, Amount, and Description" in str(exc_info.value)

    def test_empty_rows(self):
        with pytest.raises(FileParseError):
            rows_to_transactions([])


class TestCsvFiles:
    def test_parse_csv_with_preamble(self, tmp_path):
        path = tmp_path / "statement.csv"
        path.write_text(
            "Account Summary\n"
            "Statement Period,01/01/2024 - 01/31/2024\n"
            "\n"
            "Date,Description,Amount\n"
            "01/15/2024,STARBUCKS,-4.50\n"
            '01/16/2024,"AMAZON, INC","$1,020.00"\n',
            encoding="utf-8",
        )

        result = parse_file(path)

        assert [(t.date, t.description, t.amount) for t in result.transactions] == [
            ("2024-01-15", "STARBUCKS", 4.5),
            ("2024-01-16", "AMAZON, INC", 1020.0),
        ]
        assert result.detected_fields == []

    def test_bom_is_ignored(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_text("Date,Description,Amount\n2024-02-01,Netflix,15.49\n", encoding="utf-8-sig")

        result = parse_file(path)

        assert result.transactions[0].description == "Netflix"

    def test_empty_csv(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        with pytest.raises(FileParseError, match="empty"):
            parse_file(path)

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("Foo,Bar\n1,2\n", encoding="utf-8")

        with pytest.raises(MissingColumnsError):
            parse_file(path)


class TestExcelFiles:
    def test_parse_excel(self, tmp_path):
        path = tmp_path / "statement.xlsx"
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(["Card Statement"])
        sheet.append(["Date", "Description", "Amount"])
        sheet.append([datetime(2024, 1, 15), "Target", -54.25])
        sheet.append([datetime(2024, 1, 16), "Refund", 0])
        workbook.save(path)

        result = parse_file(path)

        assert len(result.transactions) == 1
        transaction = result.transactions[0]
        assert transaction.date == "2024-01-15"
        assert transaction.description == "Target"
        assert transaction.amount == 54.25

    def test_corrupt_workbook(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"not a zip file")

        with pytest.raises(FileParseError):
            parse_file(path)


class TestPdfText:
    """Line-level parsing of text extracted from PDF statements."""

    def test_us_date_amount_description(self):
        transaction = parse_transaction_line("01/15/2024 -45.67 Coffee Shop SEATTLE WA")

        assert transaction.date == "2024-01-15"
        assert transaction.amount == 45.67
        assert transaction.signed_amount == -45.67
        assert transaction.description == "Coffee Shop SEATTLE WA"
        assert transaction.location == "SEATTLE, WA"

    def test_iso_date_amount_description(self):
        transaction = parse_transaction_line("2024-01-16 12.00 Lunch")

        assert transaction.date == "2024-01-16"
        assert transaction.amount == 12.0
        assert transaction.description == "Lunch"

    def test_amount_last(self):
        transaction = parse_transaction_line("01/17/2024 Grocery Store 89.99")

        assert transaction.description == "Grocery Store"
        assert transaction.amount == 89.99

    def test_posting_date_is_not_the_amount(self):
        transaction = parse_transaction_line("01/15/2024 01/16/2024 AMAZON 25.00")

        assert transaction.date == "2024-01-15"
        assert transaction.amount == 25.0
        assert transaction.description == "AMAZON"

    def test_amount_first(self):
        transaction = parse_transaction_line("-12.50 01/15/2024 Target")

        assert transaction.date == "2024-01-15"
        assert transaction.signed_amount == -12.5
        assert transaction.description == "Target"

    def test_non_transaction_lines(self):
        assert parse_transaction_line("Page 1 of 3") is None
        assert parse_transaction_line("01/15/2024 0.00 Adjustment") is None

    def test_extract_location(self):
        assert extract_location("Uber Trip SAN FRANCISCO CA") == "SAN FRANCISCO, CA"
        assert extract_location("Netflix.com") is None

    def test_parse_statement_text(self):
        text = "\n".join(
            [
                "ACME BANK STATEMENT",
                "",
                "01/15/2024 -45.67 Coffee Shop",
                "Page 1 of 2",
                "2024-01-16 12.00 Lunch",
            ]
        )

        transactions = parse_statement_text(text)

        assert [t.description for t in transactions] == ["Coffee Shop", "Lunch"]

    def test_unreadable_pdf(self, tmp_path):
        path = tmp_path / "statement.pdf"
        path.write_bytes(b"this is not a pdf")

        with pytest.raises(FileParseError):
            parse_file(path)


class TestParseFile:
    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")

        with pytest.raises(UnsupportedFileError) as exc_info:
            parse_file(path)

        assert exc_info.value.filename == "notes.txt"
