"""Tests for transaction_converter.export and the CSV framing in tabular."""

from __future__ import annotations

import csv
import io
from pathlib import Path

import pytest

from transaction_converter.errors import SourceReadError, TransactionIOError
from transaction_converter.export import export_transactions, print_summary
from transaction_converter.models import SortOrder, StageResult, TransactionType
from transaction_converter.pipeline import import_transactions
from transaction_converter.tabular import (
    check_destination,
    open_destination,
    open_source,
    parse_rows,
    write_rows,
)


def _read(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


# ---------------------------------------------------------------------------
# CSV framing
# ---------------------------------------------------------------------------


class TestTabular:
    """Tests for parse_rows / write_rows and file opening."""

    def test_parse_rows_skips_space_after_delimiter(self):
        rows = parse_rows(io.StringIO("Date, Amount\n2018-06-01, -1.00\n"))
        assert rows == [{"Date": "2018-06-01", "Amount": "-1.00"}]

    def test_parse_rows_drops_missing_cells(self):
        rows = parse_rows(io.StringIO("A,B,C\n1,2\n"))
        assert rows == [{"A": "1", "B": "2"}]

    def test_parse_rows_drops_extra_cells(self):
        rows = parse_rows(io.StringIO("A,B\n1,2,3\n"))
        assert rows == [{"A": "1", "B": "2"}]

    def test_write_rows_with_header(self):
        out = io.StringIO()
        write_rows(out, ["A", "B"], [["1", "x,y"]])
        assert _read(out.getvalue()) == [["A", "B"], ["1", "x,y"]]

    def test_write_rows_without_header(self):
        out = io.StringIO()
        write_rows(out, None, [["1", "2"]])
        assert _read(out.getvalue()) == [["1", "2"]]

    def test_open_source_missing_file(self, tmp_path: Path):
        missing = tmp_path / "missing.csv"
        with pytest.raises(TransactionIOError, match="missing.csv") as excinfo:
            open_source(missing)
        assert excinfo.value.filename == str(missing)

    def test_open_destination_bad_directory(self, tmp_path: Path):
        with pytest.raises(TransactionIOError, match="An error occurred while trying to open"):
            open_destination(tmp_path / "no-such-dir" / "out.csv")

    def test_open_source_strips_bom(self, tmp_path: Path):
        path = tmp_path / "bom.csv"
        path.write_bytes("\ufeffDate\n2018-06-01\n".encode("utf-8"))
        with open_source(path) as f:
            assert parse_rows(f) == [{"Date": "2018-06-01"}]

    def test_parse_rows_rejects_non_utf8(self, tmp_path: Path):
        path = tmp_path / "latin1.csv"
        path.write_bytes("Payee\nCAF\u00c9\n".encode("latin-1"))
        with open_source(path) as f:
            with pytest.raises(SourceReadError, match="latin1.csv") as excinfo:
                parse_rows(f)
        assert isinstance(excinfo.value.cause, UnicodeDecodeError)

    def test_parse_rows_rejects_oversized_field(self):
        text = "Payee\n" + "x" * (csv.field_size_limit() + 1) + "\n"
        with pytest.raises(SourceReadError, match="<stream>") as excinfo:
            parse_rows(io.StringIO(text))
        assert isinstance(excinfo.value.cause, csv.Error)

    def test_check_destination_creates_nothing(self, tmp_path: Path):
        target = tmp_path / "out.csv"
        check_destination(target)
        assert not target.exists()

    def test_check_destination_leaves_existing_file(self, tmp_path: Path):
        target = tmp_path / "out.csv"
        target.write_text("keep\n", encoding="utf-8")
        check_destination(target)
        assert target.read_text(encoding="utf-8") == "keep\n"

    def test_check_destination_missing_directory(self, tmp_path: Path):
        with pytest.raises(TransactionIOError, match="out.csv"):
            check_destination(tmp_path / "no-such-dir" / "out.csv")

    def test_check_destination_is_directory(self, tmp_path: Path):
        with pytest.raises(TransactionIOError):
            check_destination(tmp_path)


# ---------------------------------------------------------------------------
# export_transactions
# ---------------------------------------------------------------------------


class TestExportTransactions:
    """Tests for sorting, mapping and writing the destination rows."""

    def _import(self, run, path: Path):
        with open(path, newline="", encoding="utf-8") as f:
            return import_transactions(run, f).transactions

    def test_ally_to_sheets(self, make_run, ally_sample_csv: Path):
        run = make_run(skip_prompts=True)
        out = io.StringIO()

        written = export_transactions(run, self._import(run, ally_sample_csv), out)

        assert written == 4
        assert _read(out.getvalue()) == [
            ["Date", "Payee", "Category", "Amount", "Status", "Memo", "Notes"],
            ["2018-06-01", "Ally Savings", "Transfer", "-4874.00", "Cleared", "", ""],
            ["2018-06-01", "Whole Foods", "Groceries", "-42.17", "Cleared", "", ""],
            ["2018-06-02", "Costco", "", "-120.50", "Cleared", "", ""],
            ["2018-06-03", "ACME CORP PAYROLL", "", "2500.00", "Cleared", "", ""],
        ]

    def test_descending_without_header(self, make_run, ally_sample_csv: Path):
        run = make_run(
            skip_prompts=True, sort_order=SortOrder.DESCENDING, include_header=False
        )
        out = io.StringIO()

        export_transactions(run, self._import(run, ally_sample_csv), out)

        dates = [row[0] for row in _read(out.getvalue())]
        assert dates == ["2018-06-03", "2018-06-02", "2018-06-01", "2018-06-01"]

    def test_citi_to_ally(self, make_run, citi_sample_csv: Path):
        run = make_run("citi-card", "ally")
        out = io.StringIO()

        export_transactions(run, self._import(run, citi_sample_csv), out)

        assert _read(out.getvalue()) == [
            ["Date", "Time", "Amount", "Type", "Description"],
            ["2018-06-04", "00:00:00", "-85.10", "Withdrawal", "Costco"],
            ["2018-06-05", "00:00:00", "-9.75", "Withdrawal", "Chipotle"],
            ["2018-06-06", "00:00:00", "250.00", "Deposit", "AUTOPAY PAYMENT THANK YOU"],
        ]

    def test_every_row_has_field_order_width(self, make_run, citi_sample_csv: Path):
        run = make_run("citi-card", "sheets")
        out = io.StringIO()
        export_transactions(run, self._import(run, citi_sample_csv), out)
        width = len(run.dst_format().field_order)
        assert all(len(row) == width for row in _read(out.getvalue()))


# ---------------------------------------------------------------------------
# print_summary
# ---------------------------------------------------------------------------


class TestPrintSummary:
    """Tests for the human-readable run summary."""

    def test_counts(self, make_run, ally_sample_csv: Path):
        run = make_run(skip_prompts=True)
        with open(ally_sample_csv, newline="", encoding="utf-8") as f:
            result = import_transactions(run, f)
        out = io.StringIO()

        print_summary(result, out)

        text = out.getvalue()
        assert "== Conversion Summary ==" in text
        assert "Rows read:    4" in text
        assert "Imported:     4 transactions (0 pending dropped)" in text
        assert "Payees:       3 normalized, 1 unmatched" in text
        assert "Categorized:  2 / 4 (50.0%)" in text
        assert "Debits:       5036.67" in text
        assert "Credits:      2500.00" in text
        assert "ACME CORP PAYROLL" in text
        assert "Warnings: 2" in text

    def test_empty_result(self):
        out = io.StringIO()
        print_summary(StageResult(), out)
        text = out.getvalue()
        assert "Categorized:  0 / 0 (0.0%)" in text
        assert "Warnings" not in text
        assert "Top unmatched" not in text

    def test_single_debit(self, make_transaction):
        txn = make_transaction(amount="3.5", transaction_type=TransactionType.DEBIT)
        out = io.StringIO()
        print_summary(StageResult(transactions=[txn], rows_read=1), out)
        assert "Debits:       3.50" in out.getvalue()
