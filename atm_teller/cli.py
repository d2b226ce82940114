"""
Command-line entry point

    atm-teller login <name>
    atm-teller deposit <amount>
    atm-teller withdraw <amount>
    atm-teller transfer <target> <amount>
    atm-teller logout

Each invocation runs one command against the persistent ledger and prints the
customer's balance and debts afterwards.
"""

import argparse
import sys
from typing import List, Optional, TextIO

from . import __version__
from .accounts import AccountOperations
from .config import TellerConfig, get_config
from .currency import format_amount, parse_amount
from .exceptions import TellerError
from .ledger import LedgerStore
from .logging_config import get_logger, setup_logging
from .session import SessionManager
from .storage import open_storage


class CommandDispatcher:
    """Maps commands to session and account operations and renders results"""

    def __init__(self, session: SessionManager, operations: AccountOperations,
                 config: TellerConfig, out: Optional[TextIO] = None):
        self.session = session
        self.operations = operations
        self.config = config
        self.out = out or sys.stdout

    def dispatch(self, args: argparse.Namespace) -> int:
        handlers = {
            "login": lambda: self.login(args.name),
            "deposit": lambda: self.deposit(args.amount),
            "withdraw": lambda: self.withdraw(args.amount),
            "transfer": lambda: self.transfer(args.target, args.amount),
            "logout": self.logout,
        }
        try:
            handlers[args.command]()
        except TellerError as e:
            self._print(e.message)
            return 1
        return 0

    def login(self, name: str) -> None:
        name = self.session.login(name)
        self._print(f"Hello, {name}!")
        self.display_balance(name)

    def deposit(self, amount_text: str) -> None:
        customer = self.session.require_customer()
        amount = self._parse(amount_text)

        result = self.operations.deposit(customer, amount)
        for settlement in result.settlements:
            self._print(f"Transferred {self._fmt(settlement.amount)} to {settlement.creditor}")

        self.display_balance(customer)

    def withdraw(self, amount_text: str) -> None:
        customer = self.session.require_customer()
        amount = self._parse(amount_text)

        self.operations.withdraw(customer, amount)
        self.display_balance(customer)

    def transfer(self, target: str, amount_text: str) -> None:
        customer = self.session.require_customer()
        amount = self._parse(amount_text)

        result = self.operations.transfer(customer, target.strip(), amount)
        if result.transferred > 0:
            self._print(f"Transferred {self._fmt(result.transferred)} to {result.receiver}")

        self.display_balance(customer)

    def logout(self) -> None:
        name = self.session.logout()
        self._print(f"Goodbye, {name}!")

    def display_balance(self, customer: str) -> None:
        summary = self.operations.summary(customer)
        self._print(f"Your balance is {self._fmt(summary.balance)}")

        for debt in summary.owes:
            self._print(f"Owed {self._fmt(debt.amount)} to {debt.creditor}")

        for debt in summary.owed:
            self._print(f"Owed {self._fmt(debt.amount)} from {debt.debtor}")

    def _parse(self, amount_text: str):
        return parse_amount(amount_text, self.config.amount_precision)

    def _fmt(self, amount) -> str:
        return format_amount(amount, self.config.currency_symbol, self.config.amount_precision)

    def _print(self, line: str) -> None:
        print(line, file=self.out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="atm-teller", description="CLI ATM simulation")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", dest="db", default=None,
                        help="path to the ledger database (default: ATM_DATABASE_PATH or atm.db)")

    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True

    login = subparsers.add_parser("login", help="log in as a customer")
    login.add_argument("name", help="customer name")

    deposit = subparsers.add_parser("deposit", help="deposit to your account")
    deposit.add_argument("amount", help="amount to deposit")

    withdraw = subparsers.add_parser("withdraw", help="withdraw from your account")
    withdraw.add_argument("amount", help="amount to withdraw")

    transfer = subparsers.add_parser("transfer", help="transfer to another customer")
    transfer.add_argument("target", help="target customer")
    transfer.add_argument("amount", help="amount to transfer")

    subparsers.add_parser("logout", help="log out of the current session")

    return parser


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()
    setup_logging(level=config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger = get_logger("atm_teller.cli")

    storage = open_storage(args.db or config.database_path)
    try:
        ledger = LedgerStore(storage)
        ledger.initialize()
        dispatcher = CommandDispatcher(
            SessionManager(ledger), AccountOperations(ledger), config, out=out
        )
        logger.debug("Running command %s", args.command)
        return dispatcher.dispatch(args)
    finally:
        storage.close()


if __name__ == "__main__":
    sys.exit(main())
