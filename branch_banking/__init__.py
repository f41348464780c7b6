"""
Branch Banking Ledger

Account ledger for a small retail bank: current and savings accounts with
their own withdrawal rules, per-account transaction logs, and staff roles
(teller, branch manager, regional manager) that operate on them.
All monetary values use Decimal.
"""

__version__ = "1.0.0"
