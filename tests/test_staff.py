"""
Test suite for staff module

Tests teller, manager and regional manager capabilities, role
preconditions and staff credentials.
"""

import pytest
from datetime import date
from decimal import Decimal

from branch_banking.accounts import CurrentAccount, SavingsAccount, TransitionOutcome
from branch_banking.audit import AuditEventType
from branch_banking.branch import Branch
from branch_banking.currency import Currency, Money
from branch_banking.customers import Customer
from branch_banking.errors import (
    AccountSuspended, BranchNotInOversight, CurrencyMismatch, CustomerNotRegistered,
    ErrorKind, ManagerUnassigned, TellerUnassigned, WithdrawalLimitReached
)
from branch_banking.staff import BankStaff, Manager, RegionalManager, Teller


class TestCredentials:
    """Test password hashing and authentication"""

    def test_authenticate(self, teller):
        assert teller.authenticate("tom", "counter-secret")
        assert not teller.authenticate("tom", "wrong")
        assert not teller.authenticate("tim", "counter-secret")

    def test_password_is_not_stored_in_clear(self, teller):
        assert "counter-secret" not in vars(teller).values()
        assert teller._password_hash != "counter-secret"

    def test_change_password(self, teller):
        assert not teller.change_password("wrong", "new-secret")
        assert teller.change_password("counter-secret", "new-secret")
        assert teller.authenticate("tom", "new-secret")
        assert not teller.authenticate("tom", "counter-secret")

    def test_login_and_password_required(self):
        with pytest.raises(ValueError):
            BankStaff("Nobody", "Nowhere", None, "", "secret")
        with pytest.raises(ValueError):
            BankStaff("Nobody", "Nowhere", None, "nobody", "")


class TestTeller:
    """Test front-line operations"""

    def test_unassigned_teller(self, sequence):
        teller = Teller("Una Assigned", "Nowhere", None, "una", "secret")
        customer = Customer("Alice Smith", "10 Church Road")

        with pytest.raises(TellerUnassigned) as exc:
            teller.add_new_customer(customer)
        assert exc.value.kind == ErrorKind.TELLER_UNASSIGNED
        with pytest.raises(TellerUnassigned):
            teller.add_new_account(CurrentAccount(sequence=sequence), customer)

    def test_add_new_customer(self, branch, teller):
        customer = Customer("Bob Jones", "12 Church Road")
        assert teller.add_new_customer(customer)
        assert not teller.add_new_customer(customer)
        assert branch.has_customer(customer)

        events = branch.audit_trail.get_events_for_entity("customer", customer.customer_id)
        assert [e.event_type for e in events] == [AuditEventType.CUSTOMER_REGISTERED]
        assert events[0].actor == "tom"

    def test_add_account_for_unregistered_customer(self, teller, sequence):
        stranger = Customer("Carl Stranger", "Far Away")
        account = CurrentAccount(sequence=sequence)
        with pytest.raises(CustomerNotRegistered):
            teller.add_new_account(account, stranger)
        assert account.owner is None

    def test_add_new_account(self, branch, teller, customer, sequence):
        account = SavingsAccount(500, "0.02", sequence=sequence)
        assert teller.add_new_account(account, customer)
        assert customer.accounts == (account,)
        assert branch.number_of_accounts == 1

        event = branch.audit_trail.get_events_by_type(AuditEventType.ACCOUNT_OPENED)[-1]
        assert event.entity_id == str(account.account_number)
        assert event.metadata["product_type"] == "savings"
        assert event.metadata["opening_balance"] == "500.00"

    def test_foreign_currency_account_refused(self, branch, teller, customer, sequence):
        account = CurrentAccount(100, currency=Currency.EUR, sequence=sequence)
        with pytest.raises(CurrencyMismatch) as exc:
            teller.add_new_account(account, customer)
        assert exc.value.kind == ErrorKind.CURRENCY_MISMATCH
        assert account.owner is None
        assert customer.accounts == ()
        assert branch.total_balance() == Money.zero()

    def test_deposit_and_withdraw(self, branch, teller, current_account):
        teller.deposit(50, current_account)
        teller.withdraw("25.50", current_account)

        assert current_account.balance == Money(Decimal('274.50'))
        events = branch.audit_trail.get_events_for_entity("account", current_account.account_number)
        assert [e.event_type for e in events][-2:] == [
            AuditEventType.DEPOSIT, AuditEventType.WITHDRAWAL
        ]

    def test_refused_withdrawal_is_not_audited(self, branch, teller, savings_account):
        for _ in range(4):
            teller.withdraw(1, savings_account)
        before = branch.audit_trail.count_events()

        with pytest.raises(WithdrawalLimitReached):
            teller.withdraw(1, savings_account)
        assert branch.audit_trail.count_events() == before

    def test_close_account(self, teller, current_account):
        assert teller.close_account(current_account) == TransitionOutcome.CHANGED
        assert current_account.is_closed
        assert teller.close_account(current_account) == TransitionOutcome.UNCHANGED

    def test_cannot_close_suspended_account(self, teller, manager, current_account):
        manager.suspend_account(current_account)
        with pytest.raises(AccountSuspended):
            teller.close_account(current_account)
        assert current_account.is_suspended


class TestManager:
    """Test suspension authority and reporting"""

    def test_suspend_and_unsuspend(self, branch, manager, current_account):
        assert manager.suspend_account(current_account) == TransitionOutcome.CHANGED
        assert manager.suspend_account(current_account) == TransitionOutcome.UNCHANGED
        assert manager.unsuspend_account(current_account) == TransitionOutcome.CHANGED
        assert manager.unsuspend_account(current_account) == TransitionOutcome.UNCHANGED

        suspended = branch.audit_trail.get_events_by_type(AuditEventType.ACCOUNT_SUSPENDED)
        assert len(suspended) == 1
        assert suspended[0].actor == "mary"

    def test_head_office_report(self, branch, manager, customer, current_account, savings_account):
        report = manager.generate_head_office_report()

        assert report.branch_name == "High Street"
        assert report.sort_code == "20-00-01"
        assert report.manager_name == "Mary Manager"
        assert report.total_customers == 1
        assert report.total_accounts == 2
        assert report.to_dict()["total_accounts"] == 2

    def test_unassigned_manager(self):
        manager = Manager("Nomad", "Nowhere", None, "nomad", "secret")
        with pytest.raises(ManagerUnassigned):
            manager.generate_head_office_report()
        with pytest.raises(ManagerUnassigned):
            manager.reset_year_end_withdrawals()

    def test_year_end_reset_scenario(self, manager, savings_account):
        """Four withdrawals exhaust the allowance; the reset restores it"""
        for amount in (1000, 500, 500, 250):
            savings_account.withdraw(amount)
        with pytest.raises(WithdrawalLimitReached):
            savings_account.withdraw(1)

        assert manager.reset_year_end_withdrawals() == 1

        savings_account.withdraw(100)
        assert savings_account.balance == Money(Decimal('7650'))
        assert savings_account.remaining_withdrawals == 3


class TestRegionalManager:
    """Test oversight and balance rollups"""

    def test_oversight_set(self, regional_manager, branch, other_branch):
        assert regional_manager.add_branch(branch)
        assert not regional_manager.add_branch(branch)
        assert regional_manager.number_of_branches == 1
        assert regional_manager.oversees(branch)
        assert not regional_manager.oversees(other_branch)

        assert regional_manager.remove_branch(branch)
        assert not regional_manager.remove_branch(branch)
        assert regional_manager.branches == ()

    def test_branch_outside_oversight(self, regional_manager, branch):
        with pytest.raises(BranchNotInOversight) as exc:
            regional_manager.get_total_branch_balance(branch)
        assert exc.value.kind == ErrorKind.BRANCH_NOT_IN_OVERSIGHT

    def test_total_branch_balance(self, regional_manager, branch, current_account, savings_account):
        regional_manager.add_branch(branch)
        current_account.withdraw(400)

        # the overdrawn -150 reduces the total directly
        assert regional_manager.get_total_branch_balance(branch) == Money(Decimal('9850'))

    def test_negative_total_is_a_real_total(self, regional_manager, branch, customer, teller, sequence):
        account = CurrentAccount(0, 100, sequence=sequence)
        teller.add_new_account(account, customer)
        account.withdraw(75)
        regional_manager.add_branch(branch)

        assert regional_manager.get_total_branch_balance(branch) == Money(Decimal('-75'))

    def test_foreign_balance_in_rollup_is_a_banking_error(self, regional_manager, branch,
                                                          customer, savings_account, sequence):
        """An account attached outside the teller path still yields a typed refusal"""
        customer.add_account(CurrentAccount(100, currency=Currency.EUR, sequence=sequence))
        regional_manager.add_branch(branch)

        with pytest.raises(CurrencyMismatch):
            regional_manager.get_total_branch_balance(branch)
        with pytest.raises(CurrencyMismatch):
            regional_manager.generate_regional_report()

    def test_regional_report(self, regional_manager, branch, other_branch, savings_account):
        regional_manager.add_branch(branch)
        regional_manager.add_branch(other_branch)

        report = regional_manager.generate_regional_report()
        assert report.number_of_branches == 2
        assert report.total_balance == Money(Decimal('10000'))
        assert report.total_accounts == 1

        data = report.to_dict()
        assert [row["sort_code"] for row in data["branches"]] == ["20-00-01", "20-00-02"]
        assert data["totals"]["balance"] == "10000.00"
        assert data["totals"]["currency"] == "GBP"
