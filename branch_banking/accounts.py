"""
Account Module

Current and savings accounts, their lifecycle states and withdrawal rules.

Shared state (number, balance, status, dates, transaction log) and the
shared checks live on the Account base; each variant only supplies its own
withdrawal limit and funds rules. Checks always run in the same order:
amount validity, suspended, closed, variant limit, funds.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING
import logging
import threading

from .config import get_config
from .currency import Money, Currency, MoneyLike, to_money
from .errors import (
    BankingError, InvalidAmount, AccountSuspended, AccountClosed,
    InsufficientFunds, WithdrawalLimitReached, CurrencyMismatch
)
from .ledger import Transaction, TransactionLog
from .logging_config import log_action

if TYPE_CHECKING:
    from .customers import Customer


logger = logging.getLogger("branch_banking.accounts")


class ProductType(Enum):
    """Account variants"""
    CURRENT = "current"
    SAVINGS = "savings"


class AccountStatus(Enum):
    """Account lifecycle states"""
    ACTIVE = "active"          # Normal operation
    SUSPENDED = "suspended"    # Frozen by a manager, reversible
    CLOSED = "closed"          # Permanently closed


class TransitionOutcome(Enum):
    """Result of an idempotent status change"""
    CHANGED = "changed"
    UNCHANGED = "unchanged"    # Already in the requested state


class AccountNumberSequence:
    """
    Monotonic account number generator.

    Every account number drawn from one sequence is strictly larger than
    all numbers drawn before it. Share one sequence per bank.
    """

    def __init__(self, start: Optional[int] = None):
        if start is None:
            start = get_config().first_account_number
        self._next = start
        self._lock = threading.Lock()

    def next_number(self) -> int:
        with self._lock:
            number = self._next
            self._next += 1
            return number

    def peek(self) -> int:
        """Number the next account will receive"""
        with self._lock:
            return self._next


_default_sequence: Optional[AccountNumberSequence] = None
_default_sequence_lock = threading.Lock()


def get_default_sequence() -> AccountNumberSequence:
    """Process-wide sequence used when no sequence is injected"""
    global _default_sequence
    with _default_sequence_lock:
        if _default_sequence is None:
            _default_sequence = AccountNumberSequence()
        return _default_sequence


def resolve_currency(currency: Optional[Currency]) -> Currency:
    if currency is not None:
        return currency
    return Currency[get_config().default_currency]


def require_ledger_currency(currency: Currency, **details: Any) -> Currency:
    """
    Refuse any currency other than the one branch and regional totals are kept in

    Raises:
        CurrencyMismatch: currency differs from the configured default
    """
    ledger_currency = resolve_currency(None)
    if currency != ledger_currency:
        raise CurrencyMismatch(
            f"{currency.code} balances cannot be held in a {ledger_currency.code} ledger",
            currency=currency.code, **details
        )
    return ledger_currency


def _coerce_amount(value: MoneyLike, currency: Currency, label: str) -> Money:
    try:
        return to_money(value, currency)
    except BankingError:
        raise
    except ValueError as e:
        raise InvalidAmount(f"{label} is not a valid amount: {e}", amount=value)


class Account(ABC):
    """
    Bank account base: balance, status and transaction log
    """

    product_type: ProductType
    account_type: str = "Account"

    def __init__(
        self,
        initial_balance: MoneyLike = 0,
        *,
        currency: Optional[Currency] = None,
        sequence: Optional[AccountNumberSequence] = None
    ):
        self.currency = resolve_currency(currency)
        opening = _coerce_amount(initial_balance, self.currency, "Initial balance")
        self._validate_opening_balance(opening)

        self.account_number = (sequence or get_default_sequence()).next_number()
        self.balance = opening
        self.status = AccountStatus.ACTIVE
        self.opened_at: date = datetime.now(timezone.utc).date()
        self.closed_at: Optional[date] = None
        self.transaction_log = TransactionLog(self.currency)
        self.owner: Optional['Customer'] = None
        self._lock = threading.RLock()

        if opening.is_positive():
            self.transaction_log.add_transaction(Transaction(opening))

        logger.info(
            f"Opened {self.account_type} {self.account_number} "
            f"with balance {opening.to_string()}"
        )

    # --- state ---

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @property
    def is_suspended(self) -> bool:
        return self.status == AccountStatus.SUSPENDED

    @property
    def is_closed(self) -> bool:
        return self.status == AccountStatus.CLOSED

    @property
    def unlogged_amount(self) -> Money:
        """Balance not explained by the transaction log (e.g. credited interest)"""
        return self.balance - self.transaction_log.total_value

    # --- money movement ---

    def deposit(self, amount: MoneyLike) -> Transaction:
        """
        Deposit money into the account

        Raises:
            InvalidAmount: amount is not positive
            AccountSuspended: account is suspended
            AccountClosed: account is closed
        """
        with self._lock:
            try:
                money = self._validate_amount(amount, "Deposit")
                self._ensure_open("deposit to")
            except BankingError as e:
                log_action(logger, "warning", f"Deposit refused on account {self.account_number}: {e.kind.value}",
                           action="deposit", account=self.account_number, error_kind=e.kind.value)
                raise

            self.balance = self.balance + money
            transaction = self.transaction_log.add_transaction(Transaction(money))

        logger.info(
            f"Deposited {money.to_string()} to account {self.account_number}, "
            f"new balance {self.balance.to_string()}"
        )
        return transaction

    def withdraw(self, amount: MoneyLike) -> Transaction:
        """
        Withdraw money, applying the variant's limit and funds rules

        Raises:
            InvalidAmount, AccountSuspended, AccountClosed,
            WithdrawalLimitReached, InsufficientFunds
        """
        with self._lock:
            try:
                money = self._validate_amount(amount, "Withdrawal")
                self._ensure_open("withdraw from")
                self._check_withdrawal(money)
            except BankingError as e:
                log_action(logger, "warning", f"Withdrawal refused on account {self.account_number}: {e.kind.value}",
                           action="withdraw", account=self.account_number, error_kind=e.kind.value)
                raise

            self.balance = self.balance - money
            transaction = self.transaction_log.add_transaction(Transaction(-money))
            self._after_withdrawal()

        logger.info(
            f"Withdrew {money.to_string()} from account {self.account_number}, "
            f"new balance {self.balance.to_string()}"
        )
        return transaction

    # --- lifecycle ---

    def suspend(self) -> TransitionOutcome:
        """Freeze the account; a manager-only action enforced by the caller"""
        with self._lock:
            if self.is_closed:
                raise AccountClosed(f"Account {self.account_number} is closed")
            if self.is_suspended:
                return TransitionOutcome.UNCHANGED
            self.status = AccountStatus.SUSPENDED
        logger.info(f"Account {self.account_number} suspended")
        return TransitionOutcome.CHANGED

    def unsuspend(self) -> TransitionOutcome:
        with self._lock:
            if self.is_closed:
                raise AccountClosed(f"Account {self.account_number} is closed")
            if not self.is_suspended:
                return TransitionOutcome.UNCHANGED
            self.status = AccountStatus.ACTIVE
        logger.info(f"Account {self.account_number} unsuspended")
        return TransitionOutcome.CHANGED

    def close(self) -> TransitionOutcome:
        """
        Close the account for good. A second close leaves closed_at alone.

        Raises:
            AccountSuspended: suspension must be lifted first
        """
        with self._lock:
            if self.is_closed:
                return TransitionOutcome.UNCHANGED
            if self.is_suspended:
                raise AccountSuspended(
                    f"Account {self.account_number} is suspended and cannot be closed"
                )
            self.status = AccountStatus.CLOSED
            self.closed_at = datetime.now(timezone.utc).date()
        logger.info(f"Account {self.account_number} closed")
        return TransitionOutcome.CHANGED

    def close_account(self) -> TransitionOutcome:
        return self.close()

    # --- helpers ---

    def _validate_amount(self, amount: MoneyLike, label: str) -> Money:
        money = _coerce_amount(amount, self.currency, label)
        if not money.is_positive():
            raise InvalidAmount(f"{label} amount must be positive", amount=money.amount)
        return money

    def _ensure_open(self, verb: str) -> None:
        if self.is_suspended:
            raise AccountSuspended(
                f"Cannot {verb} suspended account {self.account_number}"
            )
        if self.is_closed:
            raise AccountClosed(f"Cannot {verb} closed account {self.account_number}")

    def _validate_opening_balance(self, opening: Money) -> None:
        pass

    @abstractmethod
    def _check_withdrawal(self, amount: Money) -> None:
        """Raise if the variant's rules refuse this withdrawal"""

    def _after_withdrawal(self) -> None:
        pass

    def _variant_fields(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "account_number": self.account_number,
            "account_type": self.account_type,
            "product_type": self.product_type.value,
            "balance": str(self.balance.amount),
            "currency": self.currency.code,
            "status": self.status.value,
            "opened_at": self.opened_at.isoformat(),
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "transaction_count": self.transaction_log.transaction_count,
        }
        result.update(self._variant_fields())
        return result

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(number={self.account_number}, "
            f"balance={self.balance.to_string()}, status={self.status.value})"
        )


class CurrentAccount(Account):
    """
    Everyday account: may go overdrawn down to the overdraft limit,
    no cap on the number of withdrawals
    """

    product_type = ProductType.CURRENT
    account_type = "Current Account"

    def __init__(
        self,
        initial_balance: MoneyLike = 0,
        overdraft_limit: MoneyLike = 0,
        *,
        currency: Optional[Currency] = None,
        sequence: Optional[AccountNumberSequence] = None
    ):
        currency = resolve_currency(currency)
        limit = _coerce_amount(overdraft_limit, currency, "Overdraft limit")
        # A negative limit makes no sense; treat it as no overdraft
        self.overdraft_limit = limit if not limit.is_negative() else Money.zero(currency)
        super().__init__(initial_balance, currency=currency, sequence=sequence)

    @property
    def available_funds(self) -> Money:
        """Balance plus whatever overdraft is still unused"""
        return self.balance + self.overdraft_limit

    def is_overdrawn(self) -> bool:
        return self.balance.is_negative()

    def set_overdraft_limit(self, new_limit: MoneyLike) -> None:
        """Change the agreed overdraft limit (staff action after a credit review)"""
        limit = _coerce_amount(new_limit, self.currency, "Overdraft limit")
        if limit.is_negative():
            raise InvalidAmount("Overdraft limit cannot be negative", amount=limit.amount)
        with self._lock:
            self.overdraft_limit = limit
        logger.info(f"Overdraft limit of account {self.account_number} set to {limit.to_string()}")

    def _validate_opening_balance(self, opening: Money) -> None:
        if opening < -self.overdraft_limit:
            raise InvalidAmount(
                "Initial balance is beyond the overdraft limit", amount=opening.amount
            )

    def _check_withdrawal(self, amount: Money) -> None:
        available = self.available_funds
        if amount > available:
            raise InsufficientFunds(
                f"Insufficient funds: {available.to_string()} available "
                f"(including {self.overdraft_limit.to_string()} overdraft)",
                available=available.amount
            )

    def _variant_fields(self) -> Dict[str, Any]:
        return {
            "overdraft_limit": str(self.overdraft_limit.amount),
            "available_funds": str(self.available_funds.amount),
            "overdrawn": self.is_overdrawn(),
        }


class SavingsAccount(Account):
    """
    Interest-bearing account: no overdraft and a capped number of
    withdrawals per period. The count only resets when the branch runs
    its year-end reset.
    """

    product_type = ProductType.SAVINGS
    account_type = "Savings Account"

    def __init__(
        self,
        initial_balance: MoneyLike = 0,
        interest_rate: Any = Decimal('0'),
        *,
        currency: Optional[Currency] = None,
        sequence: Optional[AccountNumberSequence] = None
    ):
        try:
            rate = interest_rate if isinstance(interest_rate, Decimal) else Decimal(str(interest_rate))
        except InvalidOperation:
            raise ValueError(f"Invalid interest rate: {interest_rate!r}")
        if not rate.is_finite() or rate < Decimal('0'):
            raise ValueError("Interest rate must be a non-negative decimal fraction")

        self.interest_rate = rate
        # Interest earned but below the smallest unit of the currency
        self.accrued_interest = Decimal('0')
        self.max_withdrawals = get_config().savings_max_withdrawals
        self.withdrawals_this_period = 0
        super().__init__(initial_balance, currency=currency, sequence=sequence)

    @property
    def remaining_withdrawals(self) -> int:
        return self.max_withdrawals - self.withdrawals_this_period

    def calculate_daily_interest(self) -> Decimal:
        """One day of simple interest on the current balance, unrounded: balance * rate / days"""
        days = Decimal(get_config().interest_days_per_year)
        return self.balance.amount * self.interest_rate / days

    def apply_daily_interest(self) -> Money:
        """
        Accrue one day of interest when the balance is positive and credit
        whatever has built up in whole units of the currency.

        The fraction below one penny (or yen) stays in accrued_interest and
        carries into the next day, so small balances still earn. Interest is
        not written to the transaction log; see unlogged_amount.

        Returns:
            The amount credited today, zero when nothing reached the balance
        """
        with self._lock:
            if not self.balance.is_positive():
                return Money.zero(self.currency)
            self.accrued_interest += self.calculate_daily_interest()
            credit = self.accrued_interest.quantize(
                Decimal('0.1') ** self.currency.precision, rounding=ROUND_DOWN
            )
            self.accrued_interest -= credit
            interest = Money(credit, self.currency)
            self.balance = self.balance + interest
        logger.info(
            f"Applied daily interest {interest.to_string()} to account {self.account_number}, "
            f"{self.accrued_interest} carried"
        )
        return interest

    def reset_withdrawal_count(self) -> None:
        """Start a new withdrawal period; triggered by the branch year-end reset"""
        with self._lock:
            self.withdrawals_this_period = 0
        logger.debug(f"Withdrawal count reset for account {self.account_number}")

    def _validate_opening_balance(self, opening: Money) -> None:
        if opening.is_negative():
            raise InvalidAmount("Savings accounts cannot open overdrawn", amount=opening.amount)

    def _check_withdrawal(self, amount: Money) -> None:
        if self.withdrawals_this_period >= self.max_withdrawals:
            raise WithdrawalLimitReached(
                f"Withdrawal limit reached: {self.withdrawals_this_period} of "
                f"{self.max_withdrawals} withdrawals used this period"
            )
        if amount > self.balance:
            raise InsufficientFunds(
                f"Insufficient funds: balance is {self.balance.to_string()}",
                available=self.balance.amount
            )

    def _after_withdrawal(self) -> None:
        self.withdrawals_this_period += 1

    def _variant_fields(self) -> Dict[str, Any]:
        return {
            "interest_rate": str(self.interest_rate),
            "accrued_interest": str(self.accrued_interest),
            "withdrawals_this_period": self.withdrawals_this_period,
            "remaining_withdrawals": self.remaining_withdrawals,
        }
