"""
Customer Module

Personal details shared by customers and staff, and the Customer who owns
a set of accounts. An account belongs to exactly one customer for its
lifetime.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING
import logging
import uuid

from .accounts import Account, resolve_currency
from .currency import Money, Currency
from .errors import (
    AccountNotFound, CurrencyMismatch, DependentEntitiesExist, OwnershipConflict
)

if TYPE_CHECKING:
    from .branch import Branch


logger = logging.getLogger("branch_banking.customers")


@dataclass
class PersonalDetails:
    """Identity of a person known to the bank"""
    name: str
    address: str
    date_of_birth: Optional[date] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Name is required")
        if isinstance(self.date_of_birth, datetime):
            self.date_of_birth = self.date_of_birth.date()

    @property
    def age(self) -> Optional[int]:
        """Age in whole years today"""
        if not self.date_of_birth:
            return None

        today = datetime.now(timezone.utc).date()
        age = today.year - self.date_of_birth.year

        # Adjust if birthday hasn't occurred this year
        if (today.month, today.day) < (self.date_of_birth.month, self.date_of_birth.day):
            age -= 1

        return age


class Customer:
    """
    Account holder registered at one branch
    """

    def __init__(self, name: str, address: str, date_of_birth: Optional[date] = None):
        self.customer_id = str(uuid.uuid4())
        self.details = PersonalDetails(name, address, date_of_birth)
        self.joined_at: date = datetime.now(timezone.utc).date()
        self.branch: Optional['Branch'] = None
        self._accounts: List[Account] = []

    @property
    def name(self) -> str:
        return self.details.name

    @property
    def address(self) -> str:
        return self.details.address

    @property
    def date_of_birth(self) -> Optional[date]:
        return self.details.date_of_birth

    @property
    def accounts(self) -> Tuple[Account, ...]:
        """Snapshot of the customer's accounts in the order they were added"""
        return tuple(self._accounts)

    @property
    def number_of_accounts(self) -> int:
        return len(self._accounts)

    def add_account(self, account: Account) -> bool:
        """
        Attach an account to this customer

        Returns:
            False if the account is already this customer's

        Raises:
            OwnershipConflict: account belongs to another customer
        """
        if account.owner is self:
            return False
        if account.owner is not None:
            raise OwnershipConflict(
                f"Account {account.account_number} already belongs to {account.owner.name}",
                account_number=account.account_number
            )
        account.owner = self
        self._accounts.append(account)
        logger.info(f"Account {account.account_number} added to customer {self.customer_id}")
        return True

    def remove_account(self, account: Account) -> bool:
        """
        Detach a closed account from this customer

        Returns:
            False if the account is not held by this customer

        Raises:
            DependentEntitiesExist: account is still open
        """
        if account not in self._accounts:
            return False
        if not account.is_closed:
            raise DependentEntitiesExist(
                f"Account {account.account_number} must be closed before removal",
                account_number=account.account_number
            )
        self._accounts.remove(account)
        logger.info(f"Account {account.account_number} removed from customer {self.customer_id}")
        return True

    def get_account_by_number(self, account_number: int) -> Account:
        """
        Raises:
            AccountNotFound: no account with that number
        """
        for account in self._accounts:
            if account.account_number == account_number:
                return account
        raise AccountNotFound(
            f"Customer {self.customer_id} holds no account {account_number}",
            account_number=account_number
        )

    def has_open_accounts(self) -> bool:
        return any(not account.is_closed for account in self._accounts)

    def get_total_balance(self, currency: Optional[Currency] = None) -> Money:
        """Sum of all balances; overdrawn accounts reduce the total"""
        if currency is None:
            currency = self._accounts[0].currency if self._accounts else resolve_currency(None)
        total = Money.zero(currency)
        for account in self._accounts:
            if account.currency != currency:
                raise CurrencyMismatch(
                    f"Account {account.account_number} is held in {account.currency.code}, "
                    f"not {currency.code}",
                    account_number=account.account_number
                )
            total = total + account.balance
        return total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customer_id": self.customer_id,
            "name": self.name,
            "address": self.address,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "joined_at": self.joined_at.isoformat(),
            "branch": self.branch.sort_code if self.branch else None,
            "accounts": [account.account_number for account in self._accounts],
        }

    def __repr__(self) -> str:
        return f"Customer(id={self.customer_id}, name={self.name!r}, accounts={len(self._accounts)})"
