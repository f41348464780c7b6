"""
Reporting Module

Read-only report snapshots produced by managers. Reports hold plain values
so callers can render or serialize them without touching live branch state.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from .currency import Money


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HeadOfficeReport:
    """Branch statistics a manager sends to head office"""
    branch_name: str
    sort_code: str
    manager_name: str
    total_customers: int
    total_accounts: int
    generated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'branch_name': self.branch_name,
            'sort_code': self.sort_code,
            'manager_name': self.manager_name,
            'total_customers': self.total_customers,
            'total_accounts': self.total_accounts,
            'generated_at': self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class BranchSummary:
    """One branch row of a regional report"""
    branch_name: str
    sort_code: str
    customers: int
    accounts: int
    total_balance: Money

    def to_dict(self) -> Dict[str, Any]:
        return {
            'branch_name': self.branch_name,
            'sort_code': self.sort_code,
            'customers': self.customers,
            'accounts': self.accounts,
            'total_balance': str(self.total_balance.amount),
            'currency': self.total_balance.currency.code,
        }


@dataclass
class RegionalReport:
    """Rollup of every branch in a regional manager's oversight set"""
    regional_manager: str
    total_balance: Money
    branches: List[BranchSummary] = field(default_factory=list)
    generated_at: datetime = field(default_factory=_utcnow)

    @property
    def number_of_branches(self) -> int:
        return len(self.branches)

    @property
    def total_customers(self) -> int:
        return sum(row.customers for row in self.branches)

    @property
    def total_accounts(self) -> int:
        return sum(row.accounts for row in self.branches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'regional_manager': self.regional_manager,
            'number_of_branches': self.number_of_branches,
            'branches': [row.to_dict() for row in self.branches],
            'totals': {
                'customers': self.total_customers,
                'accounts': self.total_accounts,
                'balance': str(self.total_balance.amount),
                'currency': self.total_balance.currency.code,
            },
            'generated_at': self.generated_at.isoformat(),
        }
