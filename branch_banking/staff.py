"""
Staff Module

Bank staff and their capabilities:

- Teller: front-line operations (register customers, open and close
  accounts, deposits and withdrawals)
- Manager: suspension authority over accounts and head-office reporting
  for the one branch they manage
- RegionalManager: read-only balance rollups across the branches they
  oversee

Authorization lives here, not on Account: an account has no notion of who
is calling it.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import date
from typing import List, Optional, Tuple, TYPE_CHECKING

from .accounts import Account, TransitionOutcome, require_ledger_currency, resolve_currency
from .audit import AuditEventType
from .currency import Money, MoneyLike
from .customers import Customer, PersonalDetails
from .errors import (
    AccountSuspended, BranchNotInOversight, CustomerNotRegistered,
    ManagerUnassigned, OwnershipConflict, TellerUnassigned
)
from .ledger import Transaction
from .logging_config import log_action
from .reporting import BranchSummary, HeadOfficeReport, RegionalReport

if TYPE_CHECKING:
    from .branch import Branch


logger = logging.getLogger("branch_banking.staff")

# Salt for the throwaway hash computed when a login id matches no one
UNKNOWN_LOGIN_SALT = secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    """Salted scrypt hash, hex encoded"""
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()


class BankStaff:
    """
    Employee with login credentials. Passwords are kept as salted scrypt hashes.
    """

    role = "staff"

    def __init__(
        self,
        name: str,
        address: str,
        date_of_birth: Optional[date],
        login_id: str,
        password: str
    ):
        if not login_id:
            raise ValueError("Login id is required")
        if not password:
            raise ValueError("Password is required")
        self.details = PersonalDetails(name, address, date_of_birth)
        self.login_id = login_id
        self._password_salt = self._generate_salt()
        self._password_hash = self._hash_password(password, self._password_salt)

    @property
    def name(self) -> str:
        return self.details.name

    def authenticate(self, login_id: str, password: str) -> bool:
        """Check a login id and password against this member's credentials"""
        login_matches = hmac.compare_digest(self.login_id.encode(), login_id.encode())
        attempted = self._hash_password(password, self._password_salt)
        password_matches = hmac.compare_digest(self._password_hash, attempted)
        return login_matches and password_matches

    def change_password(self, old_password: str, new_password: str) -> bool:
        """Replace the password; False if the old password is wrong"""
        if not new_password:
            raise ValueError("Password is required")
        if not self.authenticate(self.login_id, old_password):
            logger.warning(f"Password change refused for {self.login_id}")
            return False
        self._password_salt = self._generate_salt()
        self._password_hash = self._hash_password(new_password, self._password_salt)
        logger.info(f"Password updated for {self.login_id}")
        return True

    def _attach_to(self, branch: 'Branch') -> None:
        """Called by Branch.add_staff"""

    def _detach_from(self, branch: 'Branch') -> None:
        """Called by Branch.remove_staff"""

    def _audit(self, branch: Optional['Branch'], event_type: AuditEventType,
               entity_type: str, entity_id, metadata: Optional[dict] = None) -> None:
        if branch is not None:
            branch.audit_trail.log_event(
                event_type, entity_type, entity_id, metadata, actor=self.login_id
            )

    def _generate_salt(self) -> str:
        return secrets.token_hex(16)

    def _hash_password(self, password: str, salt: str) -> str:
        return hash_password(password, salt)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(login_id={self.login_id!r}, name={self.name!r})"


class Teller(BankStaff):
    """Front-line staff attached to exactly one branch"""

    role = "teller"

    def __init__(self, name: str, address: str, date_of_birth: Optional[date],
                 login_id: str, password: str):
        super().__init__(name, address, date_of_birth, login_id, password)
        self.branch: Optional['Branch'] = None

    def _attach_to(self, branch: 'Branch') -> None:
        if self.branch is not None and self.branch is not branch:
            raise OwnershipConflict(
                f"Teller {self.login_id} already works at {self.branch.sort_code}",
                login_id=self.login_id
            )
        self.branch = branch

    def _detach_from(self, branch: 'Branch') -> None:
        if self.branch is branch:
            self.branch = None

    def assigned_branch(self) -> 'Branch':
        """Branch the teller works at; TellerUnassigned if there is none"""
        if self.branch is None:
            raise TellerUnassigned(f"Teller {self.login_id} is not assigned to any branch")
        return self.branch

    def add_new_customer(self, customer: Customer) -> bool:
        """
        Register a customer at the teller's branch

        Raises:
            TellerUnassigned: teller has no branch
        """
        branch = self.assigned_branch()
        added = branch.add_customer(customer)
        if added:
            self._audit(branch, AuditEventType.CUSTOMER_REGISTERED, "customer",
                        customer.customer_id, {"branch": branch.sort_code})
            log_action(logger, "info", f"Teller {self.login_id} added customer {customer.customer_id}",
                       user_id=self.login_id, action="add_customer",
                       resource=f"customer:{customer.customer_id}",
                       branch=branch.sort_code)
        return added

    def add_new_account(self, account: Account, customer: Customer) -> bool:
        """
        Open an account for a customer registered at the teller's branch

        Raises:
            TellerUnassigned: teller has no branch
            CustomerNotRegistered: customer is not registered at that branch
            CurrencyMismatch: account is not held in the ledger currency
        """
        branch = self.assigned_branch()
        if not branch.has_customer(customer):
            raise CustomerNotRegistered(
                f"Customer {customer.customer_id} is not registered at {branch.sort_code}",
                customer_id=customer.customer_id
            )
        require_ledger_currency(account.currency, account_number=account.account_number)
        added = customer.add_account(account)
        if added:
            self._audit(branch, AuditEventType.ACCOUNT_OPENED, "account", account.account_number,
                        {"customer_id": customer.customer_id,
                         "product_type": account.product_type,
                         "opening_balance": account.balance.amount})
            log_action(logger, "info",
                       f"Teller {self.login_id} opened {account.account_type} {account.account_number}",
                       user_id=self.login_id, action="open_account",
                       resource=f"account:{account.account_number}",
                       branch=branch.sort_code)
        return added

    def close_account(self, account: Account) -> TransitionOutcome:
        """
        Raises:
            AccountSuspended: a manager has to lift the suspension first
        """
        if account.is_suspended:
            raise AccountSuspended(
                f"Cannot close suspended account {account.account_number}; contact a manager"
            )
        outcome = account.close_account()
        if outcome == TransitionOutcome.CHANGED:
            self._audit(self.branch, AuditEventType.ACCOUNT_CLOSED, "account",
                        account.account_number, {"closed_at": account.closed_at.isoformat()})
            log_action(logger, "info", f"Teller {self.login_id} closed account {account.account_number}",
                       user_id=self.login_id, action="close_account",
                       resource=f"account:{account.account_number}",
                       branch=self.branch.sort_code if self.branch else None)
        return outcome

    def deposit(self, amount: MoneyLike, account: Account) -> Transaction:
        transaction = account.deposit(amount)
        self._audit(self.branch, AuditEventType.DEPOSIT, "account", account.account_number,
                    {"amount": transaction.amount.amount})
        return transaction

    def withdraw(self, amount: MoneyLike, account: Account) -> Transaction:
        transaction = account.withdraw(amount)
        self._audit(self.branch, AuditEventType.WITHDRAWAL, "account", account.account_number,
                    {"amount": transaction.amount.amount})
        return transaction


class Manager(BankStaff):
    """Manager of a single branch"""

    role = "manager"

    def __init__(self, name: str, address: str, date_of_birth: Optional[date],
                 login_id: str, password: str):
        super().__init__(name, address, date_of_birth, login_id, password)
        self.branch: Optional['Branch'] = None

    def assigned_branch(self) -> 'Branch':
        if self.branch is None:
            raise ManagerUnassigned(f"Manager {self.login_id} is not assigned to any branch")
        return self.branch

    def suspend_account(self, account: Account) -> TransitionOutcome:
        """Freeze an account; UNCHANGED if it was already suspended"""
        outcome = account.suspend()
        if outcome == TransitionOutcome.CHANGED:
            self._audit(self.branch, AuditEventType.ACCOUNT_SUSPENDED, "account",
                        account.account_number)
            log_action(logger, "info", f"Manager {self.login_id} suspended account {account.account_number}",
                       user_id=self.login_id, action="suspend_account",
                       resource=f"account:{account.account_number}",
                       branch=self.branch.sort_code if self.branch else None)
        else:
            logger.info(f"Account {account.account_number} is already suspended")
        return outcome

    def unsuspend_account(self, account: Account) -> TransitionOutcome:
        """Lift a suspension; UNCHANGED if the account was not suspended"""
        outcome = account.unsuspend()
        if outcome == TransitionOutcome.CHANGED:
            self._audit(self.branch, AuditEventType.ACCOUNT_UNSUSPENDED, "account",
                        account.account_number)
            log_action(logger, "info", f"Manager {self.login_id} unsuspended account {account.account_number}",
                       user_id=self.login_id, action="unsuspend_account",
                       resource=f"account:{account.account_number}",
                       branch=self.branch.sort_code if self.branch else None)
        else:
            logger.info(f"Account {account.account_number} is not currently suspended")
        return outcome

    def generate_head_office_report(self) -> HeadOfficeReport:
        """
        Raises:
            ManagerUnassigned: manager has no branch
        """
        branch = self.assigned_branch()
        report = HeadOfficeReport(
            branch_name=branch.name,
            sort_code=branch.sort_code,
            manager_name=self.name,
            total_customers=branch.number_of_customers,
            total_accounts=branch.number_of_accounts,
        )
        self._audit(branch, AuditEventType.HEAD_OFFICE_REPORT, "branch", branch.sort_code,
                    {"customers": report.total_customers, "accounts": report.total_accounts})
        return report

    def reset_year_end_withdrawals(self) -> int:
        """Run the branch year-end reset of savings withdrawal counts"""
        branch = self.assigned_branch()
        return branch.reset_savings_withdrawal_counts(actor=self.login_id)


class RegionalManager(BankStaff):
    """Oversees a set of branches; read-only access to their totals"""

    role = "regional_manager"

    def __init__(self, name: str, address: str, date_of_birth: Optional[date],
                 login_id: str, password: str):
        super().__init__(name, address, date_of_birth, login_id, password)
        self._branches: List['Branch'] = []

    @property
    def branches(self) -> Tuple['Branch', ...]:
        return tuple(self._branches)

    @property
    def number_of_branches(self) -> int:
        return len(self._branches)

    def oversees(self, branch: 'Branch') -> bool:
        return branch in self._branches

    def add_branch(self, branch: 'Branch') -> bool:
        if branch in self._branches:
            return False
        self._branches.append(branch)
        logger.info(f"Branch {branch.sort_code} added to {self.login_id}'s oversight")
        return True

    def remove_branch(self, branch: 'Branch') -> bool:
        if branch not in self._branches:
            return False
        self._branches.remove(branch)
        logger.info(f"Branch {branch.sort_code} removed from {self.login_id}'s oversight")
        return True

    def get_total_branch_balance(self, branch: 'Branch') -> Money:
        """
        Total of every account balance at an overseen branch. Overdrawn
        current accounts reduce the total: that money is owed to the bank.

        Raises:
            BranchNotInOversight: branch is outside this manager's region
            CurrencyMismatch: the branch holds an account in another currency
        """
        if branch not in self._branches:
            logger.warning(f"{self.login_id} queried branch {branch.sort_code} outside their oversight")
            raise BranchNotInOversight(
                f"Branch {branch.sort_code} is not under {self.login_id}'s oversight",
                sort_code=branch.sort_code
            )
        return branch.total_balance()

    def generate_regional_report(self) -> RegionalReport:
        rows = []
        total = Money.zero(resolve_currency(None))
        for branch in self._branches:
            balance = self.get_total_branch_balance(branch)
            rows.append(BranchSummary(
                branch_name=branch.name,
                sort_code=branch.sort_code,
                customers=branch.number_of_customers,
                accounts=branch.number_of_accounts,
                total_balance=balance,
            ))
            total = total + balance

        log_action(logger, "info", f"Regional report generated for {len(rows)} branches",
                   user_id=self.login_id, action="regional_report")
        return RegionalReport(regional_manager=self.name, total_balance=total, branches=rows)
