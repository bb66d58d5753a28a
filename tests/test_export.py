"""
Tests for CSV export.
"""

import csv
import io

import pytest
from datetime import date, datetime

from pocket_ledger.export import export_filename, transactions_to_csv, write_csv
from pocket_ledger.models.ledger import Category, TransactionType


HEADER_LINE = '"Ngày","Loại giao dịch","Danh mục","Số tiền","Ghi chú"'


class TestTransactionsToCsv:
    """Tests for the CSV text."""

    def test_header_and_bom(self):
        """Test that an empty export still has the BOM and header."""
        assert transactions_to_csv([]) == "\ufeff" + HEADER_LINE + "\n"

    def test_rows(self, make_tx):
        txs = [
            make_tx(50000, TransactionType.EXPENSE, Category.FOOD, datetime(2024, 3, 14, 9), note="Phở"),
            make_tx(200000, TransactionType.INCOME, Category.SALARY, datetime(2024, 3, 15, 8)),
        ]
        lines = transactions_to_csv(txs).split("\n")
        assert lines[1] == '"2024-03-14","Chi tiêu","Ăn uống",50000,"Phở"'
        assert lines[2] == '"2024-03-15","Thu nhập","Lương",200000,""'
        assert lines[3] == ""

    def test_quotes_and_commas_escaped(self, make_tx):
        tx = make_tx(1, category="A, B", note='Mua "quà", gửi mẹ')
        line = transactions_to_csv([tx]).split("\n")[1]
        assert line.endswith('"A, B",1,"Mua ""quà"", gửi mẹ"')

    def test_reads_back_with_csv_reader(self, make_tx):
        """Test that a note with a newline still parses as one record."""
        tx = make_tx(1, category="A, B", note='dòng 1\ndòng "2"')
        text = transactions_to_csv([tx]).lstrip("\ufeff")
        records = list(csv.reader(io.StringIO(text)))
        assert len(records) == 2
        assert records[1][2] == "A, B"
        assert records[1][4] == 'dòng 1\ndòng "2"'

    def test_order_preserved(self, make_tx):
        txs = [make_tx(1, id="b", note="b"), make_tx(2, id="a", note="a")]
        lines = transactions_to_csv(txs).split("\n")
        assert lines[1].endswith('"b"')
        assert lines[2].endswith('"a"')


class TestFiles:
    """Tests for the file helpers."""

    def test_export_filename(self):
        assert export_filename(date(2024, 3, 15)) == "mymoney_filtered_export_2024-03-15.csv"

    def test_write_csv(self, tmp_path, make_tx):
        path = write_csv(tmp_path / "out.csv", [make_tx(1, note="ghi chú")])
        content = path.read_text(encoding="utf-8")
        assert content.startswith("\ufeff" + HEADER_LINE)
        assert content.endswith('"ghi chú"\n')


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
