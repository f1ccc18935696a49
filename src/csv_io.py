import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, Optional, TextIO

from models import LEDGER_CONTEXT, AccountSnapshot, Transaction, TransactionType

logger = logging.getLogger(__name__)

AMOUNT_PRECISION = 4
MAX_AMOUNT_DIGITS = 28
MAX_CLIENT_ID = 65535
MAX_TRANSACTION_ID = 4294967295

OUTPUT_FIELDS = ["client", "available", "held", "total", "locked"]

_QUANTUM = Decimal(1).scaleb(-AMOUNT_PRECISION)


class TransactionParseError(ValueError):
    """Raised when an input row cannot be turned into a Transaction."""


def _parse_id(value: str, name: str, upper: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise TransactionParseError(f"invalid {name} {value!r}") from None
    if not 0 <= parsed <= upper:
        raise TransactionParseError(f"{name} {parsed} out of range 0..{upper}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise TransactionParseError(f"invalid amount {value!r}") from None
    if not amount.is_finite():
        raise TransactionParseError(f"invalid amount {value!r}")
    if amount < 0:
        raise TransactionParseError(f"negative amount {value}")
    if amount.as_tuple().exponent < -AMOUNT_PRECISION:
        raise TransactionParseError(f"amount {value} has more than {AMOUNT_PRECISION} decimal places")
    if amount and amount.adjusted() >= MAX_AMOUNT_DIGITS - AMOUNT_PRECISION:
        raise TransactionParseError(f"amount {value} exceeds {MAX_AMOUNT_DIGITS} significant digits")
    return amount


def parse_row(row: Dict[Optional[str], Optional[str]]) -> Transaction:
    """Parse one CSV row (keyed by header) into a Transaction."""
    normalized = {
        (k or "").strip(): (v or "").strip()
        for k, v in row.items()
        if isinstance(v, str) or v is None
    }

    try:
        type_str = normalized["type"].lower()
        client_str = normalized["client"]
        tx_str = normalized["tx"]
    except KeyError as e:
        raise TransactionParseError(f"missing column {e}") from None

    try:
        transaction_type = TransactionType(type_str)
    except ValueError:
        raise TransactionParseError(f"unknown transaction type {type_str!r}") from None

    client_id = _parse_id(client_str, "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(tx_str, "tx", MAX_TRANSACTION_ID)

    amount_str = normalized.get("amount", "")
    amount = None
    if transaction_type.is_monetary:
        if not amount_str:
            raise TransactionParseError(f"{transaction_type.value} tx {transaction_id} is missing an amount")
        amount = _parse_amount(amount_str)
    elif amount_str:
        raise TransactionParseError(f"{transaction_type.value} tx {transaction_id} must not carry an amount")

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def parse_rows(rows: Iterable[Dict[Optional[str], Optional[str]]]) -> Iterator[Transaction]:
    """Lazily parse rows, logging and skipping the malformed ones."""
    for line_number, row in enumerate(rows, start=2):
        try:
            yield parse_row(row)
        except TransactionParseError as e:
            logger.warning(f"Skipping line {line_number}: {e}")


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """Read a ``type, client, tx, amount`` CSV file lazily."""
    with open(filepath, "r", newline="", encoding="utf-8") as f:
        yield from parse_rows(csv.DictReader(f, skipinitialspace=True))


def format_amount(value: Decimal) -> str:
    """Format an amount with exactly four decimal places."""
    return f"{value.quantize(_QUANTUM, context=LEDGER_CONTEXT):f}"


def write_accounts(snapshots: Iterable[AccountSnapshot], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for snapshot in snapshots:
        writer.writerow([
            snapshot.client_id,
            format_amount(snapshot.available),
            format_amount(snapshot.held),
            format_amount(snapshot.total),
            str(snapshot.locked).lower(),
        ])
