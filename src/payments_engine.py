import logging
from typing import Dict, Iterable, Iterator

from csv_io import read_transactions
from models import AccountSnapshot, ProcessingStats, Transaction
from state_manager import StateManager
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Single-pass, single-threaded ledger.
    Records are applied strictly in input order; each one completes before the next.
    """

    def __init__(self):
        self._state = StateManager()
        self._stats = ProcessingStats()
        self._processor = TransactionProcessor(self._state, self._stats)

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> None:
        """Apply one record. Never raises; rejected records are no-ops."""
        self._processor.apply(transaction)

    def process_transactions(self, transactions: Iterable[Transaction]) -> None:
        for transaction in transactions:
            self._processor.apply(transaction)

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account snapshots keyed by client id."""
        logger.info(f"Processing {filepath}")
        self.process_transactions(read_transactions(filepath))
        logger.info(f"{self._state.account_count()} accounts. {self._stats.summary()}")
        return self.get_all_snapshots()

    def snapshots(self) -> Iterator[AccountSnapshot]:
        """Yield one snapshot per referenced account, ordered by client id."""
        for account in self._state.iter_accounts():
            yield account.snapshot()

    def get_all_snapshots(self) -> Dict[int, AccountSnapshot]:
        return {snapshot.client_id: snapshot for snapshot in self.snapshots()}
