"""
Session Management Module

Tracks the single logged-in customer. The session object is built once per
process and handed to the command dispatcher; its state lives in the ledger's
session record so it carries over between invocations.
"""

from enum import Enum
from typing import Optional

from .exceptions import AlreadyLoggedIn, NotLoggedIn, InvalidCustomerName
from .ledger import LedgerStore
from .logging_config import get_logger, log_action


class SessionState(Enum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


class SessionManager:
    """Login/logout state machine over the persisted session pointer"""

    def __init__(self, ledger: LedgerStore):
        self.ledger = ledger
        self.logger = get_logger("atm_teller.session")

    @property
    def current_customer(self) -> Optional[str]:
        return self.ledger.get_current_customer()

    @property
    def state(self) -> SessionState:
        if self.current_customer:
            return SessionState.LOGGED_IN
        return SessionState.LOGGED_OUT

    def login(self, name: str) -> str:
        """
        Log a customer in, creating their record on first login

        Args:
            name: Customer name; surrounding whitespace is ignored

        Returns:
            The normalized customer name

        Raises:
            AlreadyLoggedIn: If someone is already logged in
            InvalidCustomerName: If the name is empty
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidCustomerName(name)
        name = name.strip()

        with self.ledger.storage.atomic():
            current = self.current_customer
            if current:
                log_action(
                    self.logger, "warning", "Login rejected: session active",
                    customer=name, action="login", resource=f"customer:{current}"
                )
                raise AlreadyLoggedIn(current)

            self.ledger.ensure_customer(name)
            self.ledger.set_current_customer(name)

        log_action(
            self.logger, "info", "Customer logged in",
            customer=name, action="login", resource=f"customer:{name}"
        )
        return name

    def logout(self) -> str:
        """
        End the current session

        Returns:
            Name of the customer that was logged out
        """
        with self.ledger.storage.atomic():
            current = self.current_customer
            if not current:
                raise NotLoggedIn("No customer is logged in!")
            self.ledger.set_current_customer(None)

        log_action(
            self.logger, "info", "Customer logged out",
            customer=current, action="logout", resource=f"customer:{current}"
        )
        return current

    def require_customer(self) -> str:
        """Name of the logged-in customer, or NotLoggedIn"""
        current = self.current_customer
        if not current:
            raise NotLoggedIn()
        return current
