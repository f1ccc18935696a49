import sys
import os
import io
import logging
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from csv_io import (
    TransactionParseError,
    format_amount,
    parse_row,
    read_transactions,
    write_accounts,
)
from models import AccountSnapshot, Transaction, TransactionType


def row(type_, client, tx, amount=""):
    return {"type": type_, "client": client, "tx": tx, "amount": amount}


class TestParseRow:
    def test_deposit(self):
        assert parse_row(row("deposit", "1", "2", "1.5")) == Transaction(
            TransactionType.DEPOSIT, client_id=1, transaction_id=2, amount=Decimal("1.5")
        )

    def test_whitespace_and_case(self):
        transaction = parse_row({" type": " Withdrawal ", " client": " 3", " tx": "4 ", " amount": " 0.25"})
        assert transaction.transaction_type == TransactionType.WITHDRAWAL
        assert transaction.client_id == 3
        assert transaction.transaction_id == 4
        assert transaction.amount == Decimal("0.25")

    def test_dispute_without_amount(self):
        transaction = parse_row(row("dispute", "1", "1"))
        assert transaction.amount is None

    def test_dispute_with_missing_amount_column(self):
        transaction = parse_row({"type": "resolve", "client": "1", "tx": "1", "amount": None})
        assert transaction.transaction_type == TransactionType.RESOLVE

    def test_id_bounds(self):
        assert parse_row(row("deposit", "65535", "4294967295", "1")).client_id == 65535
        with pytest.raises(TransactionParseError, match="client"):
            parse_row(row("deposit", "65536", "1", "1"))
        with pytest.raises(TransactionParseError, match="tx"):
            parse_row(row("deposit", "1", "4294967296", "1"))
        with pytest.raises(TransactionParseError, match="client"):
            parse_row(row("deposit", "-1", "1", "1"))

    @pytest.mark.parametrize(
        "bad_row, message",
        [
            (row("refund", "1", "1", "1"), "unknown transaction type"),
            (row("deposit", "x", "1", "1"), "invalid client"),
            (row("deposit", "1", "y", "1"), "invalid tx"),
            (row("deposit", "1", "1", "abc"), "invalid amount"),
            (row("deposit", "1", "1", "NaN"), "invalid amount"),
            (row("deposit", "1", "1", "-1.0"), "negative amount"),
            (row("deposit", "1", "1", "1.23456"), "decimal places"),
            (row("withdrawal", "1", "1"), "missing an amount"),
            (row("chargeback", "1", "1", "5"), "must not carry an amount"),
            ({"type": "deposit", "client": "1"}, "missing column"),
        ],
    )
    def test_malformed(self, bad_row, message):
        with pytest.raises(TransactionParseError, match=message):
            parse_row(bad_row)

    def test_amount_size_limit(self):
        largest = "999999999999999999999999.9999"
        assert parse_row(row("deposit", "1", "1", largest)).amount == Decimal(largest)
        with pytest.raises(TransactionParseError, match="significant digits"):
            parse_row(row("deposit", "1", "1", "1000000000000000000000000"))
        with pytest.raises(TransactionParseError, match="significant digits"):
            parse_row(row("withdrawal", "1", "1", "100000000000000000000000000"))
        with pytest.raises(TransactionParseError, match="significant digits"):
            parse_row(row("deposit", "1", "1", "1E+30"))

    def test_zero_with_large_exponent_accepted(self):
        assert parse_row(row("deposit", "1", "1", "0E+30")).amount == Decimal("0")

    def test_parse_error_is_value_error(self):
        assert issubclass(TransactionParseError, ValueError)


class TestReadTransactions:
    def test_reads_padded_csv(self, tmp_path):
        csv_file = tmp_path / "input.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 1, 1, 1.0",
            "dispute, 1, 1,",
            "resolve, 1, 1",
        ]))

        transactions = list(read_transactions(str(csv_file)))

        assert [t.transaction_type for t in transactions] == [
            TransactionType.DEPOSIT,
            TransactionType.DISPUTE,
            TransactionType.RESOLVE,
        ]
        assert transactions[0].amount == Decimal("1.0")

    def test_skips_malformed_rows_with_warning(self, tmp_path, caplog):
        csv_file = tmp_path / "input.csv"
        csv_file.write_text('\n'.join([
            "type,client,tx,amount",
            "deposit,1,1,1.0",
            "deposit,1,2,nope",
            "deposit,1,3,2.0",
        ]))

        with caplog.at_level(logging.WARNING):
            transactions = list(read_transactions(str(csv_file)))

        assert [t.transaction_id for t in transactions] == [1, 3]
        assert "Skipping line 3" in caplog.text

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            list(read_transactions(str(tmp_path / "missing.csv")))

    def test_non_utf8_file(self, tmp_path):
        csv_file = tmp_path / "input.csv"
        csv_file.write_bytes(b"type,client,tx,amount\n\xff\xfe,1,2,1\n")

        with pytest.raises(UnicodeDecodeError):
            list(read_transactions(str(csv_file)))


class TestWriteAccounts:
    def test_format_amount(self):
        assert format_amount(Decimal("1.5")) == "1.5000"
        assert format_amount(Decimal("0")) == "0.0000"
        assert format_amount(Decimal("-30")) == "-30.0000"
        assert format_amount(Decimal("1999999999999999999999999.9999")) == "1999999999999999999999999.9999"
        assert format_amount(Decimal("3000000000000000000000000")) == "3000000000000000000000000.0000"

    def test_write(self):
        out = io.StringIO()
        write_accounts(
            [
                AccountSnapshot(1, Decimal("1.5"), Decimal("0"), Decimal("1.5"), False),
                AccountSnapshot(2, Decimal("0"), Decimal("0"), Decimal("0"), True),
            ],
            out,
        )

        assert out.getvalue() == (
            "client,available,held,total,locked\n"
            "1,1.5000,0.0000,1.5000,false\n"
            "2,0.0000,0.0000,0.0000,true\n"
        )
