from typing import Dict, Iterator, Optional

from models import ClientAccount, DisputableTransaction


class StateManager:
    """
    Owns every piece of mutable ledger state.
    Stores client accounts and the deposits/withdrawals kept for dispute lookups.
    Nothing is ever deleted; state lives for a single run.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._transactions: Dict[int, DisputableTransaction] = {}

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def store_transaction(self, transaction_id: int, transaction: DisputableTransaction) -> None:
        """Store transaction for future dispute lookups."""
        self._transactions[transaction_id] = transaction

    def get_transaction(self, transaction_id: int) -> Optional[DisputableTransaction]:
        """Retrieve stored transaction by ID."""
        return self._transactions.get(transaction_id)

    def has_transaction(self, transaction_id: int) -> bool:
        return transaction_id in self._transactions

    def iter_accounts(self) -> Iterator[ClientAccount]:
        """Yield accounts ordered by client id."""
        for client_id in sorted(self._accounts):
            yield self._accounts[client_id]

    def account_count(self) -> int:
        return len(self._accounts)
