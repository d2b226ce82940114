"""
Ledger Store Module

Persistent accessors for the three record kinds the teller keeps: customer
balances, pairwise debts, and the singleton session pointer. Every method is a
point read or write against the storage backend; callers group them into
transactions with `storage.atomic()`.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import json

from .currency import ZERO, add_exact, to_decimal
from .storage import StorageInterface


CUSTOMERS_TABLE = "customers"
DEBTS_TABLE = "debts"
SESSION_TABLE = "session"
SESSION_ID = "1"


@dataclass
class Customer:
    """Named account holder"""
    name: str
    balance: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "balance": str(self.balance)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        return cls(name=data["name"], balance=to_decimal(data.get("balance")))


@dataclass
class Debt:
    """
    Obligation of `debtor` to pay `creditor`.
    At most one record exists per ordered pair and its amount is always > 0.
    """
    debtor: str
    creditor: str
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "debtor": self.debtor,
            "creditor": self.creditor,
            "amount": str(self.amount)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Debt':
        return cls(
            debtor=data["debtor"],
            creditor=data["creditor"],
            amount=to_decimal(data["amount"])
        )


def debt_key(debtor: str, creditor: str) -> str:
    """Record id for a directed debtor/creditor pair"""
    return json.dumps([debtor, creditor])


class LedgerStore:
    """
    Point accessors over customers, debts and the session pointer
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    def initialize(self) -> None:
        """Ensure exactly one session record exists"""
        with self.storage.atomic():
            if not self.storage.has(SESSION_TABLE, SESSION_ID):
                self.storage.put(SESSION_TABLE, SESSION_ID, {"current_customer": None})

    # Customers

    def customer_exists(self, name: str) -> bool:
        return self.storage.has(CUSTOMERS_TABLE, name)

    def ensure_customer(self, name: str) -> Customer:
        """Create the customer with a zero balance unless it already exists"""
        data = self.storage.get(CUSTOMERS_TABLE, name)
        if data is not None:
            return Customer.from_dict(data)
        customer = Customer(name=name)
        self.storage.put(CUSTOMERS_TABLE, name, customer.to_dict())
        return customer

    def get_customer(self, name: str) -> Optional[Customer]:
        data = self.storage.get(CUSTOMERS_TABLE, name)
        if data is None:
            return None
        return Customer.from_dict(data)

    def get_balance(self, name: str) -> Decimal:
        """Balance of `name`; unknown customers read as zero"""
        customer = self.get_customer(name)
        if customer is None:
            return ZERO
        return customer.balance

    def adjust_balance(self, name: str, delta: Decimal) -> Decimal:
        """
        Add `delta` (possibly negative) to the customer's balance.

        Unknown customers are left untouched and read back as zero.
        Raises InvalidAmount if the new balance would need more digits than
        the ledger keeps.

        Returns:
            The balance after the adjustment
        """
        customer = self.get_customer(name)
        if customer is None:
            return ZERO
        customer.balance = add_exact(customer.balance, delta)
        self.storage.put(CUSTOMERS_TABLE, name, customer.to_dict())
        return customer.balance

    # Debts

    def get_debt(self, debtor: str, creditor: str) -> Optional[Debt]:
        data = self.storage.get(DEBTS_TABLE, debt_key(debtor, creditor))
        if data is None:
            return None
        return Debt.from_dict(data)

    def get_debts_owed_by(self, name: str) -> List[Debt]:
        """Debts `name` owes, ascending by creditor"""
        debts = [Debt.from_dict(data) for data in self.storage.select(DEBTS_TABLE, "debtor", name)]
        return sorted(debts, key=lambda d: d.creditor)

    def get_debts_owed_to(self, name: str) -> List[Debt]:
        """Debts owed to `name`, ascending by debtor"""
        debts = [Debt.from_dict(data) for data in self.storage.select(DEBTS_TABLE, "creditor", name)]
        return sorted(debts, key=lambda d: d.debtor)

    def upsert_or_delete_debt(self, debtor: str, creditor: str, amount: Decimal) -> Optional[Debt]:
        """
        Set the debt for the pair to `amount`, or delete it when amount <= 0.

        Returns:
            The stored Debt, or None if the pair now has no debt
        """
        key = debt_key(debtor, creditor)
        if amount > ZERO:
            debt = Debt(debtor=debtor, creditor=creditor, amount=amount)
            self.storage.put(DEBTS_TABLE, key, debt.to_dict())
            return debt
        self.storage.remove(DEBTS_TABLE, key)
        return None

    # Session

    def get_current_customer(self) -> Optional[str]:
        data = self.storage.get(SESSION_TABLE, SESSION_ID)
        if data is None:
            return None
        return data.get("current_customer")

    def set_current_customer(self, name: Optional[str]) -> None:
        self.storage.put(SESSION_TABLE, SESSION_ID, {"current_customer": name})
