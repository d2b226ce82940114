"""
ATM Teller Simulator

A single-user bank-teller simulator with persistent balances, pairwise debt
tracking, and settlement of debts on deposit. All amounts use Decimal.
"""

__version__ = "1.0.0"
