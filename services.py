from decimal import Decimal, localcontext
from typing import Callable, Dict, List, Optional
import structlog

from errors import (
    AccountLocked,
    DisputeMismatch,
    DuplicateTransaction,
    InsufficientFunds,
    MissingAmount,
    NegativeAmount,
    TransactionNotFound,
    UnattendedForAmount,
    WrongDispute,
)
from models import Account, AccountSnapshot, TransactionRecord, TransactionType, ledger_context
from repositories import (
    AccountRepository,
    InMemoryAccountRepository,
    InMemoryTransactionHistoryRepository,
    TransactionHistoryRepository,
)

logger = structlog.get_logger()


class Ledger:
    """Applies transactions, one at a time and in order, to client accounts.

    Every check runs before any mutation, so a rejected transaction leaves
    balances and history as they were. The only lasting effect of a rejected
    transaction is the opening of an empty account for a client never seen
    before.
    """

    def __init__(self, account_repo: AccountRepository, history_repo: TransactionHistoryRepository):
        self.account_repo = account_repo
        self.history_repo = history_repo
        self._handlers: Dict[TransactionType, Callable[[Account, TransactionRecord], None]] = {
            TransactionType.deposit: self._process_deposit,
            TransactionType.withdrawal: self._process_withdrawal,
            TransactionType.dispute: self._process_dispute,
            TransactionType.resolve: self._process_resolve,
            TransactionType.chargeback: self._process_chargeback,
        }
        missing = set(TransactionType) - set(self._handlers)
        if missing:
            raise TypeError(f"No handler for transaction types: {sorted(t.value for t in missing)}")

    def apply(self, transaction: TransactionRecord) -> None:
        """Validate a transaction and, if valid, apply it.

        Raises a LedgerError subclass when the transaction is rejected.
        """
        if transaction.amount is not None and transaction.amount < 0:
            raise NegativeAmount()

        account = self.account_repo.get_or_create(transaction.client)

        # No operation unlocks an account: after a chargeback the client is frozen for good.
        if account.locked:
            raise AccountLocked()

        with localcontext(ledger_context()):
            self._handlers[transaction.type](account, transaction)

    def accounts(self) -> List[Account]:
        return self.account_repo.all()

    def snapshots(self) -> List[AccountSnapshot]:
        return [AccountSnapshot.from_account(account) for account in self.account_repo.all()]

    def accounts_count(self) -> int:
        return self.account_repo.get_accounts_count()

    def transactions_count(self) -> int:
        return self.history_repo.get_transactions_count()

    def _process_deposit(self, account: Account, transaction: TransactionRecord) -> None:
        amount = self._required_amount(transaction)
        self._ensure_new_transaction(transaction)

        self.history_repo.store(transaction)
        old_available = account.available
        account.available = old_available + amount

        logger.debug(
            "Deposit processed",
            client=account.client,
            tx_id=transaction.tx,
            amount=str(amount),
            old_available=str(old_available),
            new_available=str(account.available)
        )

    def _process_withdrawal(self, account: Account, transaction: TransactionRecord) -> None:
        amount = self._required_amount(transaction)
        self._ensure_new_transaction(transaction)

        if account.available < amount:
            raise InsufficientFunds(asked=amount, available=account.available)

        self.history_repo.store(transaction)
        old_available = account.available
        account.available = old_available - amount

        logger.debug(
            "Withdrawal processed",
            client=account.client,
            tx_id=transaction.tx,
            amount=str(amount),
            old_available=str(old_available),
            new_available=str(account.available)
        )

    def _process_dispute(self, account: Account, transaction: TransactionRecord) -> None:
        amount = self._disputed_amount(account, transaction)

        if account.available < amount:
            raise InsufficientFunds(asked=amount, available=account.available)

        account.available -= amount
        account.held += amount

        logger.debug(
            "Dispute opened",
            client=account.client,
            tx_id=transaction.tx,
            amount=str(amount),
            available=str(account.available),
            held=str(account.held)
        )

    def _process_resolve(self, account: Account, transaction: TransactionRecord) -> None:
        amount = self._disputed_amount(account, transaction)

        if account.held < amount:
            raise InsufficientFunds(asked=amount, available=account.held)

        account.held -= amount
        account.available += amount

        logger.debug(
            "Dispute resolved",
            client=account.client,
            tx_id=transaction.tx,
            amount=str(amount),
            available=str(account.available),
            held=str(account.held)
        )

    def _process_chargeback(self, account: Account, transaction: TransactionRecord) -> None:
        amount = self._disputed_amount(account, transaction)

        if account.held < amount:
            raise InsufficientFunds(asked=amount, available=account.held)

        # Held funds are written off, nothing goes back to available
        account.held -= amount
        account.locked = True

        logger.info(
            "Chargeback processed, account locked",
            client=account.client,
            tx_id=transaction.tx,
            amount=str(amount),
            held=str(account.held)
        )

    @staticmethod
    def _required_amount(transaction: TransactionRecord) -> Decimal:
        if transaction.amount is None:
            raise MissingAmount()
        return transaction.amount

    def _ensure_new_transaction(self, transaction: TransactionRecord) -> None:
        if self.history_repo.get(transaction.tx) is not None:
            raise DuplicateTransaction(transaction.tx)

    def _disputed_amount(self, account: Account, transaction: TransactionRecord) -> Decimal:
        """Look up the deposit a dispute, resolve or chargeback refers to.

        The amount always comes from the recorded deposit, never from the
        incoming record.
        """
        if transaction.amount is not None:
            raise UnattendedForAmount()

        original = self.history_repo.get(transaction.tx)
        if original is None:
            raise TransactionNotFound(transaction.tx)
        if original.type != TransactionType.deposit:
            raise WrongDispute()
        if original.client != account.client:
            raise DisputeMismatch()

        return self._required_amount(original)


# Factory function for dependency injection
def get_ledger(
    account_repo: Optional[AccountRepository] = None,
    history_repo: Optional[TransactionHistoryRepository] = None
) -> Ledger:
    return Ledger(
        account_repo if account_repo is not None else InMemoryAccountRepository(),
        history_repo if history_repo is not None else InMemoryTransactionHistoryRepository()
    )
