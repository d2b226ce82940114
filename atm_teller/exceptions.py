"""
Exception hierarchy for the teller simulator.

Every domain error derives from TellerError, which is a ValueError so callers
that only check for bad input keep working.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class TellerError(ValueError):
    """Base exception for all teller errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class InvalidAmount(TellerError):
    """Amount is not a finite number or is not positive"""

    def __init__(self, value: Any):
        super().__init__(
            "Please enter a valid positive amount!",
            details={"value": str(value)}
        )
        self.value = value


class InsufficientFunds(TellerError):
    """Withdrawal larger than the available balance"""

    def __init__(self, customer: str, balance: Decimal, requested: Decimal):
        super().__init__(
            "Insufficient funds!",
            details={
                "customer": customer,
                "balance": str(balance),
                "requested": str(requested)
            }
        )
        self.customer = customer
        self.balance = balance
        self.requested = requested


class AlreadyLoggedIn(TellerError):
    def __init__(self, current: str):
        super().__init__("Please logout first!", details={"current_customer": current})
        self.current = current


class NotLoggedIn(TellerError):
    def __init__(self, message: str = "Please login first!"):
        super().__init__(message)


class CustomerNotFound(TellerError):
    def __init__(self, name: str):
        super().__init__(f"Customer {name} not found!", details={"customer": name})
        self.name = name


class SelfTransfer(TellerError):
    def __init__(self, name: str):
        super().__init__("Cannot transfer to yourself!", details={"customer": name})
        self.name = name


class InvalidCustomerName(TellerError):
    def __init__(self, name: Any):
        super().__init__("Please enter a valid customer name!", details={"value": repr(name)})
        self.name = name
