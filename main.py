import argparse
import logging
import sys
from typing import List, Optional

import structlog

from config import Settings, get_settings
from errors import RecordParseError
from records import read_transactions, write_accounts
from services import get_ledger


def configure_logging(settings: Settings) -> None:
    """Route structured logs to stderr; stdout is reserved for the account CSV."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(stream=sys.stderr, level=level, format="%(message)s", force=True)

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-ledger",
        description="Apply a CSV log of client transactions and print the resulting account balances as CSV.",
        epilog="example: payments-ledger transactions.csv > accounts.csv",
    )
    parser.add_argument("input", help="path to the transactions CSV file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {settings.app_version}")
    return parser


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    settings = settings or get_settings()
    args = build_parser(settings).parse_args(argv)
    configure_logging(settings)

    logger.info("Starting ledger run", app=settings.app_name, input=args.input)

    ledger = get_ledger()
    try:
        with open(args.input, newline="", encoding="utf-8") as stream:
            stats = read_transactions(stream, ledger, log_applied=settings.enable_detailed_logging)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Cannot read transactions file", input=args.input, error=str(e))
        return 1
    except RecordParseError as e:
        logger.error("Malformed transactions file", input=args.input, line=e.line, error=str(e.cause))
        return 1

    try:
        write_accounts(sys.stdout, ledger)
    except OSError as e:
        logger.error("Cannot write accounts", error=str(e), exc_info=settings.debug)
        return 1

    logger.info(
        "Ledger run completed",
        applied=stats.applied,
        rejected=stats.rejected,
        accounts=ledger.accounts_count(),
        transactions=ledger.transactions_count()
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
