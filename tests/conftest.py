"""
Shared fixtures: a branch with a teller, a manager and one registered
customer, plus an injected account number sequence so numbering is
predictable in every test.
"""

import pytest
from datetime import date

from branch_banking.accounts import AccountNumberSequence, CurrentAccount, SavingsAccount
from branch_banking.branch import Branch
from branch_banking.customers import Customer
from branch_banking.staff import Manager, RegionalManager, Teller


@pytest.fixture
def sequence():
    return AccountNumberSequence(start=10001)


@pytest.fixture
def branch():
    return Branch("High Street", "20-00-01", "1 High Street, Leeds")


@pytest.fixture
def other_branch():
    return Branch("Market Square", "20-00-02", "5 Market Square, York")


@pytest.fixture
def teller(branch):
    teller = Teller("Tom Teller", "2 Park Lane", date(1990, 5, 17), "tom", "counter-secret")
    branch.add_staff(teller)
    return teller


@pytest.fixture
def manager(branch):
    manager = Manager("Mary Manager", "3 Park Lane", date(1980, 1, 2), "mary", "office-secret")
    branch.set_manager(manager)
    return manager


@pytest.fixture
def regional_manager():
    return RegionalManager("Rita Regional", "4 Park Lane", date(1975, 9, 30), "rita", "region-secret")


@pytest.fixture
def customer(branch, teller):
    customer = Customer("Alice Smith", "10 Church Road", date(1985, 3, 14))
    teller.add_new_customer(customer)
    return customer


@pytest.fixture
def current_account(customer, teller, sequence):
    account = CurrentAccount(250, 200, sequence=sequence)
    teller.add_new_account(account, customer)
    return account


@pytest.fixture
def savings_account(customer, teller, sequence):
    account = SavingsAccount(10000, "0.04", sequence=sequence)
    teller.add_new_account(account, customer)
    return account
