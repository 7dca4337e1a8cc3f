from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from models import Account, TransactionRecord


class AccountRepository(ABC):
    @abstractmethod
    def get(self, client: int) -> Optional[Account]:
        """Get account. Returns None if the client was never seen."""
        pass

    @abstractmethod
    def get_or_create(self, client: int) -> Account:
        """Get account, opening an empty unlocked one on first use."""
        pass

    @abstractmethod
    def all(self) -> List[Account]:
        """All accounts, in the order they were opened."""
        pass

    @abstractmethod
    def get_accounts_count(self) -> int:
        """Get total number of accounts."""
        pass


class TransactionHistoryRepository(ABC):
    @abstractmethod
    def get(self, tx_id: int) -> Optional[TransactionRecord]:
        """Get a recorded deposit or withdrawal by transaction id."""
        pass

    @abstractmethod
    def store(self, record: TransactionRecord) -> None:
        """Record a deposit or withdrawal. Entries are never overwritten."""
        pass

    @abstractmethod
    def get_transactions_count(self) -> int:
        """Get total number of recorded transactions."""
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def get(self, client: int) -> Optional[Account]:
        return self.accounts.get(client)

    def get_or_create(self, client: int) -> Account:
        account = self.accounts.get(client)
        if account is None:
            account = Account(client=client)
            self.accounts[client] = account
        return account

    def all(self) -> List[Account]:
        return list(self.accounts.values())

    def get_accounts_count(self) -> int:
        return len(self.accounts)


class InMemoryTransactionHistoryRepository(TransactionHistoryRepository):
    def __init__(self):
        self.records: Dict[int, TransactionRecord] = {}

    def get(self, tx_id: int) -> Optional[TransactionRecord]:
        return self.records.get(tx_id)

    def store(self, record: TransactionRecord) -> None:
        if record.tx in self.records:
            raise ValueError(f"Transaction {record.tx} is already recorded")
        self.records[record.tx] = record

    def get_transactions_count(self) -> int:
        return len(self.records)
