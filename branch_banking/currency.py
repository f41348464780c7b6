"""
Currency and Money Module

Handles ISO 4217 currency codes and proper Decimal precision for every
monetary value in the ledger. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass
from enum import Enum
from typing import Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    GBP = ("GBP", 2)  # British Pound, 2 decimal places
    EUR = ("EUR", 2)  # Euro, 2 decimal places
    USD = ("USD", 2)  # US Dollar, 2 decimal places
    JPY = ("JPY", 0)  # Japanese Yen, 0 decimal places

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    Sign carries direction: ledger withdrawals are negative Money.
    """
    amount: Decimal
    currency: Currency = Currency.GBP

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        object.__setattr__(
            self, 'amount', validate_decimal_precision(self.amount, self.currency)
        )

    @classmethod
    def zero(cls, currency: Currency = Currency.GBP) -> 'Money':
        return cls(Decimal('0'), currency)

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot {verb} Money and {type(other).__name__}")
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.code} and {other.currency.code}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if not isinstance(multiplier, Decimal):
            multiplier = Decimal(str(multiplier))
        return Money(self.amount * multiplier, self.currency)

    def __truediv__(self, divisor: Decimal) -> 'Money':
        if not isinstance(divisor, Decimal):
            divisor = Decimal(str(divisor))
        return Money(self.amount / divisor, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount), self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"


MoneyLike = Union[Money, Decimal, int, str]


def to_money(value: MoneyLike, currency: Currency) -> Money:
    """
    Coerce a caller-supplied amount into Money of the given currency

    Raises:
        ValueError: If value is a float, not numeric, or Money in another currency
    """
    if isinstance(value, Money):
        if value.currency != currency:
            raise ValueError(
                f"Amount currency {value.currency.code} does not match {currency.code}"
            )
        return value
    if isinstance(value, float):
        raise ValueError("Monetary amounts must not be floats; use Decimal or str")
    if isinstance(value, bool):
        raise ValueError("Monetary amount must be numeric")
    if isinstance(value, str):
        return Money(decimal_from_string(value), currency)
    if isinstance(value, (int, Decimal)):
        if isinstance(value, Decimal) and not value.is_finite():
            raise ValueError("Monetary amount must be finite")
        return Money(Decimal(value), currency)
    raise ValueError(f"Cannot use {type(value).__name__} as a monetary amount")


# Optional sign, digits with optional comma thousands groups, optional fraction
_AMOUNT_PATTERN = re.compile(r'^[+-]?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?$')


def decimal_from_string(value: str) -> Decimal:
    """
    Convert an amount string to Decimal

    Accepts an optional sign, digits, an optional decimal point and comma
    thousands separators in groups of three. Surrounding whitespace is
    ignored. Currency symbols, letters and exponent notation are refused
    rather than stripped.

    Raises:
        ValueError: If the string is not a plain decimal amount
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    clean_value = value.strip()
    if not _AMOUNT_PATTERN.match(clean_value):
        raise ValueError(f"Cannot convert '{value}' to Decimal")

    try:
        return Decimal(clean_value.replace(',', ''))
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")


def validate_decimal_precision(value: Decimal, currency: Currency) -> Decimal:
    """
    Validate and round decimal to currency precision

    Args:
        value: Decimal to validate
        currency: Currency defining precision

    Returns:
        Properly rounded Decimal
    """
    return value.quantize(
        Decimal('0.1') ** currency.precision,
        rounding=ROUND_HALF_UP
    )
