"""CSV ingestion and serialization around the ledger.

Input rows look like ``type, client, tx, amount``; output rows look like
``client, available, held, total, locked``.
"""
import csv
from dataclasses import dataclass
from typing import IO

import structlog
from pydantic import ValidationError

from errors import LedgerError, RecordParseError
from models import TransactionRecord, normalize_amount
from services import Ledger

logger = structlog.get_logger()

INPUT_FIELDS = ("type", "client", "tx", "amount")
OUTPUT_FIELDS = ("client", "available", "held", "total", "locked")


@dataclass
class IngestStats:
    applied: int = 0
    rejected: int = 0


def parse_row(row: dict, line: int) -> TransactionRecord:
    if None in row:
        raise RecordParseError(line, ValueError(f"unexpected extra fields {row[None]!r}"))
    cleaned = {key: value for key, value in row.items() if value is not None}
    try:
        return TransactionRecord(**{name: cleaned[name] for name in INPUT_FIELDS if name in cleaned})
    except ValidationError as e:
        raise RecordParseError(line, e) from e


def read_transactions(stream: IO[str], ledger: Ledger, log_applied: bool = False) -> IngestStats:
    """Feed every record of a CSV stream to the ledger, in order.

    Rejected transactions are logged and skipped. A row that cannot be
    parsed raises RecordParseError and stops ingestion.
    """
    stats = IngestStats()
    reader = csv.DictReader(stream, skipinitialspace=True)
    if reader.fieldnames is not None:
        reader.fieldnames = [name.strip() for name in reader.fieldnames]
        missing = [name for name in INPUT_FIELDS[:3] if name not in reader.fieldnames]
        if missing:
            raise RecordParseError(1, ValueError(f"missing columns {missing}"))

    for row in reader:
        record = parse_row(row, reader.line_num)
        try:
            ledger.apply(record)
        except LedgerError as e:
            stats.rejected += 1
            logger.warning(
                "Transaction failed",
                tx_id=record.tx,
                client=record.client,
                type=record.type.value,
                error_code=e.code,
                error=str(e)
            )
            continue

        stats.applied += 1
        if log_applied:
            logger.info(
                "Transaction applied",
                tx_id=record.tx,
                client=record.client,
                type=record.type.value
            )

    return stats


def write_accounts(stream: IO[str], ledger: Ledger) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for snapshot in ledger.snapshots():
        writer.writerow([
            snapshot.client,
            normalize_amount(snapshot.available),
            normalize_amount(snapshot.held),
            normalize_amount(snapshot.total),
            "true" if snapshot.locked else "false",
        ])
    stream.flush()
