"""
Branch Module

A branch registers customers, employs staff (one of them its manager) and
runs branch-wide batch operations such as the year-end reset of savings
withdrawal counts.
"""

from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING
import logging

from .accounts import Account, SavingsAccount, resolve_currency
from .audit import AuditTrail, AuditEventType
from .config import get_config
from .currency import Money, Currency
from .customers import Customer
from .errors import (
    AccountNotFound, CustomerNotRegistered, DependentEntitiesExist,
    OwnershipConflict, StaffNotFound, CurrencyMismatch
)

if TYPE_CHECKING:
    from .staff import BankStaff, Manager


logger = logging.getLogger("branch_banking.branch")


class Branch:
    """
    Bank branch identified by its sort code
    """

    def __init__(
        self,
        name: str,
        sort_code: str,
        address: str,
        audit_trail: Optional[AuditTrail] = None
    ):
        if not sort_code:
            raise ValueError("Sort code is required")
        self.name = name
        self.sort_code = sort_code
        self.address = address
        self.manager: Optional['Manager'] = None
        self.audit_trail = audit_trail or AuditTrail(enabled=get_config().enable_audit_logging)
        self._customers: List[Customer] = []
        self._staff: List['BankStaff'] = []

    # --- customers ---

    @property
    def customers(self) -> Tuple[Customer, ...]:
        """Snapshot of registered customers in registration order"""
        return tuple(self._customers)

    def has_customer(self, customer: Customer) -> bool:
        return customer in self._customers

    def add_customer(self, customer: Customer) -> bool:
        """
        Register a customer at this branch

        Returns:
            False if the customer is already registered here

        Raises:
            OwnershipConflict: customer is registered at another branch
        """
        if customer in self._customers:
            return False
        if customer.branch is not None and customer.branch is not self:
            raise OwnershipConflict(
                f"Customer {customer.customer_id} is registered at {customer.branch.sort_code}",
                customer_id=customer.customer_id
            )
        customer.branch = self
        self._customers.append(customer)
        logger.info(f"Customer {customer.customer_id} registered at {self.sort_code}")
        return True

    def remove_customer(self, customer: Customer) -> bool:
        """
        Deregister a customer whose accounts are all closed

        Returns:
            False if the customer is not registered here

        Raises:
            DependentEntitiesExist: customer still holds an open account
        """
        if customer not in self._customers:
            return False
        if customer.has_open_accounts():
            raise DependentEntitiesExist(
                f"Customer {customer.customer_id} still holds open accounts",
                customer_id=customer.customer_id
            )
        self._customers.remove(customer)
        customer.branch = None
        self.audit_trail.log_event(
            AuditEventType.CUSTOMER_REMOVED, "customer", customer.customer_id,
            {"branch": self.sort_code}
        )
        logger.info(f"Customer {customer.customer_id} removed from {self.sort_code}")
        return True

    def find_customer(self, customer_id: str) -> Customer:
        for customer in self._customers:
            if customer.customer_id == customer_id:
                return customer
        raise CustomerNotRegistered(
            f"No customer {customer_id} at branch {self.sort_code}",
            customer_id=customer_id
        )

    def accounts(self) -> List[Account]:
        """Every account at the branch: customers in registration order, then account order"""
        return [account for customer in self._customers for account in customer.accounts]

    def find_account(self, account_number: int) -> Account:
        for account in self.accounts():
            if account.account_number == account_number:
                return account
        raise AccountNotFound(
            f"No account {account_number} at branch {self.sort_code}",
            account_number=account_number
        )

    # --- staff ---

    @property
    def staff(self) -> Tuple['BankStaff', ...]:
        return tuple(self._staff)

    def add_staff(self, member: 'BankStaff') -> bool:
        """
        Add a staff member; tellers are attached to this branch

        Raises:
            OwnershipConflict: login id already used here, or the member
                is attached to another branch
        """
        if member in self._staff:
            return False
        for existing in self._staff:
            if existing.login_id == member.login_id:
                raise OwnershipConflict(
                    f"Login id {member.login_id} is already in use at {self.sort_code}",
                    login_id=member.login_id
                )
        member._attach_to(self)
        self._staff.append(member)
        self.audit_trail.log_event(
            AuditEventType.STAFF_ADDED, "staff", member.login_id,
            {"branch": self.sort_code, "role": member.role}
        )
        logger.info(f"{member.name} added to {self.sort_code} staff")
        return True

    def remove_staff(self, member: 'BankStaff') -> bool:
        """
        Raises:
            DependentEntitiesExist: member is the branch manager; assign a
                new manager first
        """
        if member not in self._staff:
            return False
        if member is self.manager:
            raise DependentEntitiesExist(
                f"{member.name} manages {self.sort_code}; assign a new manager first",
                login_id=member.login_id
            )
        self._staff.remove(member)
        member._detach_from(self)
        self.audit_trail.log_event(
            AuditEventType.STAFF_REMOVED, "staff", member.login_id,
            {"branch": self.sort_code}
        )
        logger.info(f"{member.name} removed from {self.sort_code} staff")
        return True

    def set_manager(self, manager: 'Manager') -> None:
        """Make manager the head of this branch, adding them to staff if needed"""
        if manager.branch is not None and manager.branch is not self:
            raise OwnershipConflict(
                f"{manager.name} already manages {manager.branch.sort_code}",
                login_id=manager.login_id
            )
        if manager not in self._staff:
            self.add_staff(manager)

        previous = self.manager
        if previous is not None and previous is not manager:
            previous.branch = None
        self.manager = manager
        manager.branch = self

        self.audit_trail.log_event(
            AuditEventType.MANAGER_ASSIGNED, "branch", self.sort_code,
            {"manager": manager.login_id,
             "previous_manager": previous.login_id if previous else None}
        )
        logger.info(f"{manager.name} is now managing {self.sort_code}")

    def find_staff(self, login_id: str) -> 'BankStaff':
        for member in self._staff:
            if member.login_id == login_id:
                return member
        raise StaffNotFound(f"No staff member {login_id} at {self.sort_code}", login_id=login_id)

    # --- batch operations and aggregates ---

    def reset_savings_withdrawal_counts(self, actor: Optional[str] = None) -> int:
        """
        Year-end reset: every savings account at the branch gets a fresh
        withdrawal allowance. Current accounts are left untouched.

        Returns:
            Number of savings accounts reset
        """
        reset_count = 0
        for account in self.accounts():
            if isinstance(account, SavingsAccount):
                account.reset_withdrawal_count()
                reset_count += 1

        self.audit_trail.log_event(
            AuditEventType.WITHDRAWAL_COUNTS_RESET, "branch", self.sort_code,
            {"accounts_reset": reset_count}, actor=actor
        )
        logger.info(f"Year-end reset at {self.sort_code}: {reset_count} savings accounts processed")
        return reset_count

    @property
    def number_of_customers(self) -> int:
        return len(self._customers)

    @property
    def number_of_accounts(self) -> int:
        return sum(customer.number_of_accounts for customer in self._customers)

    def total_balance(self, currency: Optional[Currency] = None) -> Money:
        """
        Sum of every account balance; overdrawn balances reduce it

        Raises:
            CurrencyMismatch: an account is held in another currency
        """
        currency = resolve_currency(currency)
        total = Money.zero(currency)
        for account in self.accounts():
            if account.currency != currency:
                raise CurrencyMismatch(
                    f"Account {account.account_number} is held in {account.currency.code}, "
                    f"not {currency.code}",
                    account_number=account.account_number, branch=self.sort_code
                )
            total = total + account.balance
        return total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "sort_code": self.sort_code,
            "address": self.address,
            "manager": self.manager.name if self.manager else None,
            "customers": self.number_of_customers,
            "accounts": self.number_of_accounts,
            "staff": [member.login_id for member in self._staff],
        }

    def __repr__(self) -> str:
        return f"Branch(name={self.name!r}, sort_code={self.sort_code!r})"
