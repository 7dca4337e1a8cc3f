from decimal import Decimal
from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for every reason the ledger can reject a transaction.

    Rejections are final for the transaction that caused them: the ledger
    state is left untouched and the caller moves on to the next record.
    """

    message = "Transaction rejected"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def details(self) -> Dict[str, Any]:
        return {}

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.details() == other.details()

    def __hash__(self):
        return hash((type(self), tuple(sorted(self.details().items()))))

    def __repr__(self):
        args = ", ".join(f"{k}={v!r}" for k, v in self.details().items())
        return f"{self.code}({args})"


class NegativeAmount(LedgerError):
    message = "Transaction amount must be positive"


class MissingAmount(LedgerError):
    message = "Transaction amount is missing for deposit/withdrawal"


class UnattendedForAmount(LedgerError):
    message = "Transaction amount shouldn't be there for dispute/resolve/chargeback"


class WrongDispute(LedgerError):
    message = "Only deposits can be disputed/resolved/charged back"


class DisputeMismatch(LedgerError):
    message = "Attempt to dispute/resolve/chargeback on a different client account"


class AccountLocked(LedgerError):
    message = "Account already locked"


class DuplicateTransaction(LedgerError):
    def __init__(self, tx_id: int):
        self.tx_id = tx_id
        super().__init__(f"Duplicate transaction #{tx_id}")

    def details(self) -> Dict[str, Any]:
        return {"tx_id": self.tx_id}


class TransactionNotFound(LedgerError):
    def __init__(self, tx_id: int):
        self.tx_id = tx_id
        super().__init__(f"Transaction #{tx_id} not found")

    def details(self) -> Dict[str, Any]:
        return {"tx_id": self.tx_id}


class InsufficientFunds(LedgerError):
    def __init__(self, asked: Decimal, available: Decimal):
        self.asked = asked
        self.available = available
        super().__init__(
            f"Insufficient funds for operation (asked {asked} while {available} available)"
        )

    def details(self) -> Dict[str, Any]:
        return {"asked": self.asked, "available": self.available}


class RecordParseError(Exception):
    """An input row could not be turned into a transaction record.

    Unlike LedgerError this stops ingestion altogether.
    """

    def __init__(self, line: int, cause: Exception):
        self.line = line
        self.cause = cause
        super().__init__(f"Malformed transaction record on line {line}: {cause}")
