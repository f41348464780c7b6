"""
Bank Module

Process-wide registry of branches and regional managers. Owns the account
number sequence, so every account opened through the bank gets a number
larger than all earlier ones, and resolves staff logins.
"""

from typing import Dict, List, Optional, Tuple
import logging

from .accounts import Account, AccountNumberSequence, CurrentAccount, SavingsAccount
from .audit import AuditEventType
from .branch import Branch
from .currency import Currency, MoneyLike
from .errors import (
    AccountNotFound, AuthenticationFailed, BranchNotFound, OwnershipConflict,
    StaffNotFound
)
from .staff import UNKNOWN_LOGIN_SALT, BankStaff, RegionalManager, hash_password


logger = logging.getLogger("branch_banking.bank")


class Bank:
    """
    Registry of branches, regional managers and the shared account sequence
    """

    def __init__(self, sequence: Optional[AccountNumberSequence] = None):
        self.sequence = sequence or AccountNumberSequence()
        self._branches: Dict[str, Branch] = {}
        self._regional_managers: Dict[str, RegionalManager] = {}

    # --- branches ---

    @property
    def branches(self) -> Tuple[Branch, ...]:
        return tuple(self._branches.values())

    def add_branch(self, branch: Branch) -> Branch:
        """
        Raises:
            OwnershipConflict: sort code already registered
        """
        if branch.sort_code in self._branches:
            raise OwnershipConflict(
                f"Sort code {branch.sort_code} is already registered",
                sort_code=branch.sort_code
            )
        self._branches[branch.sort_code] = branch
        logger.info(f"Branch {branch.sort_code} ({branch.name}) registered")
        return branch

    def get_branch(self, sort_code: str) -> Branch:
        branch = self._branches.get(sort_code)
        if branch is None:
            raise BranchNotFound(f"No branch with sort code {sort_code}", sort_code=sort_code)
        return branch

    # --- regional managers ---

    @property
    def regional_managers(self) -> Tuple[RegionalManager, ...]:
        return tuple(self._regional_managers.values())

    def add_regional_manager(self, manager: RegionalManager) -> RegionalManager:
        if self._login_in_use(manager.login_id):
            raise OwnershipConflict(
                f"Login id {manager.login_id} is already in use",
                login_id=manager.login_id
            )
        self._regional_managers[manager.login_id] = manager
        return manager

    def get_regional_manager(self, login_id: str) -> RegionalManager:
        manager = self._regional_managers.get(login_id)
        if manager is None:
            raise StaffNotFound(f"No regional manager {login_id}", login_id=login_id)
        return manager

    # --- accounts ---

    def open_current_account(self, initial_balance: MoneyLike = 0, overdraft_limit: MoneyLike = 0,
                             currency: Optional[Currency] = None) -> CurrentAccount:
        """Create a current account numbered from the bank's sequence"""
        return CurrentAccount(initial_balance, overdraft_limit,
                              currency=currency, sequence=self.sequence)

    def open_savings_account(self, initial_balance: MoneyLike = 0, interest_rate=0,
                             currency: Optional[Currency] = None) -> SavingsAccount:
        """Create a savings account numbered from the bank's sequence"""
        return SavingsAccount(initial_balance, interest_rate,
                              currency=currency, sequence=self.sequence)

    def find_account(self, account_number: int) -> Account:
        """
        Raises:
            AccountNotFound: no branch holds that account
        """
        for branch in self._branches.values():
            for account in branch.accounts():
                if account.account_number == account_number:
                    return account
        raise AccountNotFound(f"No account {account_number}", account_number=account_number)

    def find_branch_of(self, account: Account) -> Optional[Branch]:
        if account.owner is None:
            return None
        return account.owner.branch

    # --- staff ---

    def all_staff(self) -> List[BankStaff]:
        members: List[BankStaff] = []
        for branch in self._branches.values():
            members.extend(branch.staff)
        members.extend(self._regional_managers.values())
        return members

    def find_staff(self, login_id: str) -> BankStaff:
        for member in self.all_staff():
            if member.login_id == login_id:
                return member
        raise StaffNotFound(f"No staff member {login_id}", login_id=login_id)

    def _login_in_use(self, login_id: str) -> bool:
        return any(member.login_id == login_id for member in self.all_staff())

    def add_staff(self, branch: Branch, member: BankStaff) -> BankStaff:
        """Add staff to a registered branch, keeping login ids unique bank-wide"""
        if self._login_in_use(login_id=member.login_id):
            raise OwnershipConflict(
                f"Login id {member.login_id} is already in use",
                login_id=member.login_id
            )
        branch.add_staff(member)
        return member

    def login(self, login_id: str, password: str) -> BankStaff:
        """
        Single credential check for a staff member

        Raises:
            AuthenticationFailed: unknown login id or wrong password
        """
        member: Optional[BankStaff] = None
        try:
            member = self.find_staff(login_id)
        except StaffNotFound:
            # unknown ids cost the same scrypt work as a wrong password
            hash_password(password, UNKNOWN_LOGIN_SALT)
        home = self._home_branch(member) if member is not None else None

        if member is None or not member.authenticate(login_id, password):
            if home is not None:
                home.audit_trail.log_event(
                    AuditEventType.LOGIN_FAILED, "staff", login_id, actor=login_id
                )
            logger.warning(f"Login failed for {login_id}")
            raise AuthenticationFailed("Invalid credentials")

        if home is not None:
            home.audit_trail.log_event(
                AuditEventType.LOGIN_SUCCESS, "staff", login_id, actor=login_id
            )
        return member

    def _home_branch(self, member: BankStaff) -> Optional[Branch]:
        for branch in self._branches.values():
            if member in branch.staff:
                return branch
        return None
