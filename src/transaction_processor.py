import logging
from typing import Optional

from models import (
    ClientAccount,
    DisputableTransaction,
    DisputeState,
    ProcessingStats,
    RejectionReason,
    Transaction,
    TransactionType,
)
from state_manager import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to ledger state, one at a time, in input order.

    ``apply`` is total: it never raises and never reports failure to the caller.
    A record that cannot be applied leaves state untouched; the reason is
    logged and counted in the processing stats.
    """

    def __init__(self, state: StateManager, stats: Optional[ProcessingStats] = None):
        self._state = state
        self._stats = stats if stats is not None else ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> None:
        """Apply a single transaction. Always succeeds, possibly as a no-op."""
        account = self._state.get_or_create_account(transaction.client_id)

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                rejection = self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                rejection = self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                rejection = self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                rejection = self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                rejection = self._handle_chargeback(account, transaction)

        if rejection is None:
            self._stats.record_applied()
        else:
            self._stats.record_rejected(rejection)

    def _check_monetary(self, account: ClientAccount, transaction: Transaction) -> Optional[RejectionReason]:
        kind = transaction.transaction_type.value.capitalize()

        if account.locked:
            logger.info(f"{kind} tx {transaction.transaction_id}: account {account.client_id} is locked, ignoring")
            return RejectionReason.ACCOUNT_LOCKED

        if self._state.has_transaction(transaction.transaction_id):
            logger.info(f"{kind} tx {transaction.transaction_id}: transaction id already used, ignoring")
            return RejectionReason.DUPLICATE_TRANSACTION

        return None

    def _record(self, transaction: Transaction) -> None:
        self._state.store_transaction(
            transaction.transaction_id,
            DisputableTransaction(
                transaction_type=transaction.transaction_type,
                client_id=transaction.client_id,
                amount=transaction.amount,
            ),
        )

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> Optional[RejectionReason]:
        rejection = self._check_monetary(account, transaction)
        if rejection is not None:
            return rejection

        account.credit(transaction.amount)
        self._record(transaction)
        return None

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> Optional[RejectionReason]:
        rejection = self._check_monetary(account, transaction)
        if rejection is not None:
            return rejection

        if account.available < transaction.amount:
            logger.info(
                f"Withdrawal tx {transaction.transaction_id}: insufficient funds, "
                f"want {transaction.amount}, have {account.available}"
            )
            return RejectionReason.INSUFFICIENT_FUNDS

        account.debit(transaction.amount)
        self._record(transaction)
        return None

    def _lookup(self, transaction: Transaction) -> tuple[Optional[DisputableTransaction], Optional[RejectionReason]]:
        """Find the referenced deposit/withdrawal, checking it belongs to the same client."""
        kind = transaction.transaction_type.value.capitalize()
        original = self._state.get_transaction(transaction.transaction_id)

        if original is None:
            logger.info(f"{kind} for tx {transaction.transaction_id}: transaction not found, ignoring")
            return None, RejectionReason.UNKNOWN_TRANSACTION

        if original.client_id != transaction.client_id:
            logger.warning(
                f"{kind} for tx {transaction.transaction_id}: client mismatch "
                f"(expected {original.client_id}, got {transaction.client_id})"
            )
            return None, RejectionReason.CLIENT_MISMATCH

        return original, None

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> Optional[RejectionReason]:
        original, rejection = self._lookup(transaction)
        if rejection is not None:
            return rejection

        if original.state is DisputeState.DISPUTED:
            logger.info(f"Dispute for tx {transaction.transaction_id}: transaction already disputed")
            return RejectionReason.ALREADY_DISPUTED

        if original.state is DisputeState.CHARGED_BACK:
            logger.info(f"Dispute for tx {transaction.transaction_id}: transaction already charged back")
            return RejectionReason.CHARGED_BACK

        # Available may go negative here when the disputed funds were already spent.
        account.hold(original.amount)
        original.state = DisputeState.DISPUTED
        return None

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> Optional[RejectionReason]:
        original, rejection = self._lookup(transaction)
        if rejection is not None:
            return rejection

        if not original.disputed:
            logger.info(f"Resolve for tx {transaction.transaction_id}: transaction is not disputed")
            return RejectionReason.NOT_DISPUTED

        account.release_hold(original.amount)
        original.state = DisputeState.ACTIVE
        return None

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> Optional[RejectionReason]:
        original, rejection = self._lookup(transaction)
        if rejection is not None:
            return rejection

        if not original.disputed:
            logger.info(f"Chargeback for tx {transaction.transaction_id}: transaction is not disputed")
            return RejectionReason.NOT_DISPUTED

        account.remove_held(original.amount)
        account.lock()
        original.state = DisputeState.CHARGED_BACK
        return None
