"""
Transaction Log Module

Append-only record of the signed monetary movements of a single account.
Deposits are stored as positive Money, withdrawals as negative Money, in
the order they happened. Entries are never reordered or removed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Tuple

from .currency import Money, Currency


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Transaction:
    """
    Immutable record of one deposit or withdrawal
    """
    amount: Money
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if self.amount.is_zero():
            raise ValueError("Transaction amount must be non-zero")

    @property
    def is_deposit(self) -> bool:
        return self.amount.is_positive()

    @property
    def is_withdrawal(self) -> bool:
        return self.amount.is_negative()

    @property
    def kind(self) -> str:
        return "deposit" if self.is_deposit else "withdrawal"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "amount": str(self.amount.amount),
            "currency": self.amount.currency.code,
            "timestamp": self.timestamp.isoformat(),
        }


class TransactionLog:
    """
    Ordered, append-only transaction history owned by one account
    """

    def __init__(self, currency: Currency = Currency.GBP):
        self.currency = currency
        self._transactions: List[Transaction] = []

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Append a transaction; it must use the log's currency"""
        if transaction.amount.currency != self.currency:
            raise ValueError(
                f"Cannot log {transaction.amount.currency.code} transaction "
                f"in a {self.currency.code} log"
            )
        self._transactions.append(transaction)
        return transaction

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        """Snapshot of all transactions, oldest first"""
        return tuple(self._transactions)

    @property
    def transaction_count(self) -> int:
        return len(self._transactions)

    @property
    def total_value(self) -> Money:
        """
        Net movement recorded in the log (deposits minus withdrawals).

        This is an audit figure: it need not match the account balance,
        because interest credits are not logged and a non-positive opening
        balance is not recorded as a transaction.
        """
        total = Money.zero(self.currency)
        for transaction in self._transactions:
            total = total + transaction.amount
        return total

    def statement_lines(self) -> List[Dict[str, Any]]:
        """Numbered rows with a running total, for callers rendering statements"""
        lines = []
        running = Money.zero(self.currency)
        for position, transaction in enumerate(self._transactions, start=1):
            running = running + transaction.amount
            row = transaction.to_dict()
            row["position"] = position
            row["running_total"] = str(running.amount)
            lines.append(row)
        return lines

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.transactions)
