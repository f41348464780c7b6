"""
Banking Error Module

Every refused operation raises a BankingError subclass to its immediate
caller. Errors are recoverable and never fatal; each carries an ErrorKind
so callers (the HTTP layer, tests, scripts) can tell them apart without
parsing messages.
"""

from enum import Enum
from typing import Any, Dict


class ErrorKind(Enum):
    """Reportable failure kinds"""
    INVALID_AMOUNT = "invalid_amount"
    ACCOUNT_SUSPENDED = "account_suspended"
    ACCOUNT_CLOSED = "account_closed"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    WITHDRAWAL_LIMIT_REACHED = "withdrawal_limit_reached"
    TELLER_UNASSIGNED = "teller_unassigned"
    MANAGER_UNASSIGNED = "manager_unassigned"
    CUSTOMER_NOT_REGISTERED = "customer_not_registered"
    BRANCH_NOT_IN_OVERSIGHT = "branch_not_in_oversight"
    ACCOUNT_NOT_FOUND = "account_not_found"
    DEPENDENT_ENTITIES_EXIST = "dependent_entities_exist"
    OWNERSHIP_CONFLICT = "ownership_conflict"
    AUTHENTICATION_FAILED = "authentication_failed"
    BRANCH_NOT_FOUND = "branch_not_found"
    STAFF_NOT_FOUND = "staff_not_found"
    CURRENCY_MISMATCH = "currency_mismatch"


class BankingError(ValueError):
    """Base class for all refused banking operations"""
    kind: ErrorKind

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        result = {"error": self.kind.value, "detail": self.message}
        if self.details:
            result["context"] = {k: str(v) for k, v in self.details.items()}
        return result


class InvalidAmount(BankingError):
    """Amount is zero, negative or otherwise unusable"""
    kind = ErrorKind.INVALID_AMOUNT


class AccountSuspended(BankingError):
    """Operation attempted on a suspended account"""
    kind = ErrorKind.ACCOUNT_SUSPENDED


class AccountClosed(BankingError):
    """Operation attempted on a closed account"""
    kind = ErrorKind.ACCOUNT_CLOSED


class InsufficientFunds(BankingError):
    """Withdrawal exceeds the funds available to the account"""
    kind = ErrorKind.INSUFFICIENT_FUNDS


class WithdrawalLimitReached(BankingError):
    """Savings account already used every withdrawal of the period"""
    kind = ErrorKind.WITHDRAWAL_LIMIT_REACHED


class TellerUnassigned(BankingError):
    kind = ErrorKind.TELLER_UNASSIGNED


class ManagerUnassigned(BankingError):
    kind = ErrorKind.MANAGER_UNASSIGNED


class CustomerNotRegistered(BankingError):
    """Customer is not registered at the branch in question"""
    kind = ErrorKind.CUSTOMER_NOT_REGISTERED


class BranchNotInOversight(BankingError):
    """Regional query on a branch outside the regional manager's set"""
    kind = ErrorKind.BRANCH_NOT_IN_OVERSIGHT


class AccountNotFound(BankingError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND


class DependentEntitiesExist(BankingError):
    """Removal refused while other entities still depend on the target"""
    kind = ErrorKind.DEPENDENT_ENTITIES_EXIST


class OwnershipConflict(BankingError):
    """Entity already belongs to another owner (customer, branch or login)"""
    kind = ErrorKind.OWNERSHIP_CONFLICT


class AuthenticationFailed(BankingError):
    kind = ErrorKind.AUTHENTICATION_FAILED


class BranchNotFound(BankingError):
    kind = ErrorKind.BRANCH_NOT_FOUND


class StaffNotFound(BankingError):
    kind = ErrorKind.STAFF_NOT_FOUND


class CurrencyMismatch(BankingError):
    """Account currency differs from the currency branch ledgers are kept in"""
    kind = ErrorKind.CURRENCY_MISMATCH
