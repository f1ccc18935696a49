from collections import Counter
from dataclasses import dataclass, field
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation, Overflow
from enum import Enum
from typing import NamedTuple, Optional

# Balance arithmetic is exact or it raises. Input amounts are capped well below
# this precision, so no realistic run of records can reach it.
LEDGER_CONTEXT = Context(prec=50, traps=[InvalidOperation, DivisionByZero, Overflow, Inexact])


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def is_monetary(self) -> bool:
        """Deposits and withdrawals carry an amount and their own tx id."""
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeState(Enum):
    ACTIVE = "active"
    DISPUTED = "disputed"
    CHARGED_BACK = "charged_back"


class RejectionReason(Enum):
    """Why a record was dropped. Never raised, only logged and counted."""

    UNKNOWN_TRANSACTION = "unknown_transaction"
    CLIENT_MISMATCH = "client_mismatch"
    ALREADY_DISPUTED = "already_disputed"
    NOT_DISPUTED = "not_disputed"
    CHARGED_BACK = "charged_back"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    ACCOUNT_LOCKED = "account_locked"
    DUPLICATE_TRANSACTION = "duplicate_transaction"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None


@dataclass
class DisputableTransaction:
    """A deposit or withdrawal kept around so it can be disputed later."""

    transaction_type: TransactionType
    client_id: int
    amount: Decimal
    state: DisputeState = DisputeState.ACTIVE

    @property
    def disputed(self) -> bool:
        return self.state is DisputeState.DISPUTED


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return LEDGER_CONTEXT.add(self.available, self.held)

    def credit(self, amount: Decimal) -> None:
        self.available = LEDGER_CONTEXT.add(self.available, amount)

    def debit(self, amount: Decimal) -> None:
        self.available = LEDGER_CONTEXT.subtract(self.available, amount)

    def hold(self, amount: Decimal) -> None:
        self.available = LEDGER_CONTEXT.subtract(self.available, amount)
        self.held = LEDGER_CONTEXT.add(self.held, amount)

    def release_hold(self, amount: Decimal) -> None:
        self.held = LEDGER_CONTEXT.subtract(self.held, amount)
        self.available = LEDGER_CONTEXT.add(self.available, amount)

    def remove_held(self, amount: Decimal) -> None:
        self.held = LEDGER_CONTEXT.subtract(self.held, amount)

    def lock(self) -> None:
        self.locked = True

    def snapshot(self) -> "AccountSnapshot":
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


class AccountSnapshot(NamedTuple):
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ProcessingStats:
    """Counters for applied and rejected records."""

    applied: int = 0
    rejected: Counter = field(default_factory=Counter)

    def record_applied(self) -> None:
        self.applied += 1

    def record_rejected(self, reason: RejectionReason) -> None:
        self.rejected[reason] += 1

    @property
    def rejected_total(self) -> int:
        return sum(self.rejected.values())

    def summary(self) -> str:
        parts = [f"Applied: {self.applied}", f"Rejected: {self.rejected_total}"]
        for reason in RejectionReason:
            if self.rejected[reason]:
                parts.append(f"{reason.value}: {self.rejected[reason]}")
        return ", ".join(parts)
