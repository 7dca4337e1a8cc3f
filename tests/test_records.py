import io
import pytest
from decimal import Decimal
from unittest.mock import patch

from errors import RecordParseError
from models import TransactionRecord, TransactionType
from records import read_transactions, write_accounts
from services import get_ledger


class RecordingLedger:
    """Stands in for the ledger and keeps whatever it is given."""

    def __init__(self):
        self.records = []

    def apply(self, record):
        self.records.append(record)


class TestReadTransactions:
    """CSV ingestion."""

    def test_read_transactions(self):
        transactions_csv = (
            "type,       client, tx, amount\n"
            "deposit,    1,      1,  1.0\n"
            "deposit,    2,      2,  2.0\n"
            "deposit,    1,      3,  2.0\n"
            "withdrawal, 1,      4,  1.5\n"
            "withdrawal, 2,      5,  3.0\n"
            "dispute,    1,      3,\n"
        )
        ledger = RecordingLedger()

        stats = read_transactions(io.StringIO(transactions_csv), ledger)

        assert ledger.records == [
            TransactionRecord(type=TransactionType.deposit, client=1, tx=1, amount=Decimal("1.0")),
            TransactionRecord(type=TransactionType.deposit, client=2, tx=2, amount=Decimal("2.0")),
            TransactionRecord(type=TransactionType.deposit, client=1, tx=3, amount=Decimal("2.0")),
            TransactionRecord(type=TransactionType.withdrawal, client=1, tx=4, amount=Decimal("1.5")),
            TransactionRecord(type=TransactionType.withdrawal, client=2, tx=5, amount=Decimal("3.0")),
            TransactionRecord(type=TransactionType.dispute, client=1, tx=3, amount=None),
        ]
        assert stats.applied == 6
        assert stats.rejected == 0

    def test_amounts_normalized_to_four_digits(self):
        ledger = RecordingLedger()

        read_transactions(io.StringIO("type,client,tx,amount\ndeposit,1,1,1.5\n"), ledger)

        assert str(ledger.records[0].amount) == "1.5000"

    def test_missing_amount_column(self):
        ledger = RecordingLedger()

        read_transactions(io.StringIO("type,client,tx,amount\nresolve,1,3\n"), ledger)

        assert ledger.records[0].amount is None

    def test_dispute_amount_passed_through(self):
        """Rejecting an amount on a dispute is the ledger's job, not the reader's."""
        ledger = RecordingLedger()

        read_transactions(io.StringIO("type,client,tx,amount\ndispute,1,3,4.2\n"), ledger)

        assert ledger.records[0].amount == Decimal("4.2")

    def test_blank_lines_skipped(self):
        ledger = RecordingLedger()

        read_transactions(io.StringIO("type,client,tx,amount\n\ndeposit,1,1,1\n\n"), ledger)

        assert len(ledger.records) == 1

    def test_empty_input(self):
        ledger = RecordingLedger()

        stats = read_transactions(io.StringIO(""), ledger)

        assert ledger.records == []
        assert stats.applied == 0


class TestRejections:
    """Rejected transactions are reported and skipped."""

    @patch('records.logger')
    def test_rejection_logged_and_run_continues(self, mock_logger):
        ledger = get_ledger()
        transactions_csv = (
            "type,client,tx,amount\n"
            "deposit,1,1,100\n"
            "withdrawal,1,2,200\n"
            "withdrawal,1,3,60\n"
        )

        stats = read_transactions(io.StringIO(transactions_csv), ledger)

        assert stats.applied == 2
        assert stats.rejected == 1
        mock_logger.warning.assert_called_once()
        kwargs = mock_logger.warning.call_args.kwargs
        assert kwargs["tx_id"] == 2
        assert kwargs["error_code"] == "InsufficientFunds"
        assert "asked 200.0000 while 100.0000 available" in kwargs["error"]
        assert ledger.snapshots()[0].available == Decimal("40")

    @patch('records.logger')
    def test_applied_transactions_logged_on_request(self, mock_logger):
        ledger = get_ledger()

        read_transactions(io.StringIO("type,client,tx,amount\ndeposit,1,1,1\n"), ledger, log_applied=True)

        mock_logger.info.assert_called_once()
        mock_logger.warning.assert_not_called()


class TestMalformedInput:
    """Rows that cannot be parsed stop ingestion."""

    @pytest.mark.parametrize("row", [
        "transfer,1,1,1.0",
        "deposit,one,1,1.0",
        "deposit,1,1,abc",
        "deposit,70000,1,1.0",
        "deposit,1,-1,1.0",
        "deposit,1,4294967296,1.0",
        "deposit,1,1,1.0,extra",
    ])
    def test_malformed_row(self, row):
        ledger = RecordingLedger()
        transactions_csv = "type,client,tx,amount\ndeposit,1,1,1.0\n" + row + "\ndeposit,1,9,1.0\n"

        with pytest.raises(RecordParseError) as excinfo:
            read_transactions(io.StringIO(transactions_csv), ledger)

        assert excinfo.value.line == 3
        assert len(ledger.records) == 1

    def test_missing_header_columns(self):
        with pytest.raises(RecordParseError):
            read_transactions(io.StringIO("kind,client\ndeposit,1\n"), RecordingLedger())


class TestWriteAccounts:
    """CSV serialization of final account state."""

    def test_write_accounts(self):
        ledger = get_ledger()
        read_transactions(io.StringIO(
            "type,client,tx,amount\n"
            "deposit,1,1,1.0\n"
            "deposit,2,2,2.0\n"
            "deposit,1,3,2.0\n"
            "withdrawal,1,4,1.5\n"
            "withdrawal,2,5,3.0\n"
            "dispute,1,3,\n"
        ), ledger)
        out = io.StringIO()

        write_accounts(out, ledger)

        # client 1 cannot dispute tx 3 once 1.5 was withdrawn, client 2 cannot withdraw 3.0
        assert out.getvalue() == (
            "client,available,held,total,locked\n"
            "1,1.5000,0.0000,1.5000,false\n"
            "2,2.0000,0.0000,2.0000,false\n"
        )

    def test_locked_account_written(self):
        ledger = get_ledger()
        read_transactions(io.StringIO(
            "type,client,tx,amount\n"
            "deposit,7,1,10\n"
            "dispute,7,1,\n"
            "chargeback,7,1,\n"
        ), ledger)
        out = io.StringIO()

        write_accounts(out, ledger)

        assert out.getvalue().splitlines()[1] == "7,0.0000,0.0000,0.0000,true"

    def test_large_balances_written_exactly(self):
        ledger = get_ledger()
        read_transactions(io.StringIO(
            "type,client,tx,amount\n"
            "deposit,1,1,999999999999999999999999\n"
            "deposit,1,2,999999999999999999999999\n"
        ), ledger)
        out = io.StringIO()

        write_accounts(out, ledger)

        assert out.getvalue().splitlines()[1] == (
            "1,1999999999999999999999998.0000,0.0000,1999999999999999999999998.0000,false"
        )

    def test_no_accounts(self):
        out = io.StringIO()

        write_accounts(out, get_ledger())

        assert out.getvalue() == "client,available,held,total,locked\n"
