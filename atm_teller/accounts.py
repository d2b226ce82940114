"""
Account Operations Module

Deposits, withdrawals and transfers between customers, with debt bookkeeping.
A transfer larger than the sender's balance moves what the sender has and
records the shortfall as a debt to the receiver. Deposits settle the
depositor's debts before anything is credited to their own balance.

Every operation runs as one storage transaction: it either applies fully or
leaves the ledger untouched.
"""

from decimal import Decimal
from dataclasses import dataclass, field
from typing import List, Optional

from .currency import ZERO, add_exact, to_decimal
from .exceptions import (
    InvalidAmount, InsufficientFunds, CustomerNotFound, SelfTransfer
)
from .ledger import LedgerStore, Debt
from .logging_config import get_logger, log_action


@dataclass
class Settlement:
    """Part of a deposit paid to a creditor"""
    creditor: str
    amount: Decimal
    remaining_debt: Decimal

    @property
    def cleared(self) -> bool:
        return self.remaining_debt <= ZERO


@dataclass
class DepositResult:
    customer: str
    amount: Decimal
    settlements: List[Settlement] = field(default_factory=list)
    credited: Decimal = ZERO
    balance: Decimal = ZERO

    @property
    def settled_total(self) -> Decimal:
        return sum((s.amount for s in self.settlements), ZERO)


@dataclass
class TransferResult:
    sender: str
    receiver: str
    amount: Decimal
    transferred: Decimal
    shortfall: Decimal
    debt: Optional[Debt]
    sender_balance: Decimal
    receiver_balance: Decimal

    @property
    def created_debt(self) -> bool:
        return self.shortfall > ZERO


@dataclass
class AccountSummary:
    """Balance plus both directions of debt for one customer"""
    name: str
    balance: Decimal
    owes: List[Debt]
    owed: List[Debt]


class AccountOperations:
    """
    Applies deposits, withdrawals and transfers while keeping debt invariants
    """

    def __init__(self, ledger: LedgerStore):
        self.ledger = ledger
        self.storage = ledger.storage
        self.logger = get_logger("atm_teller.accounts")

    def deposit(self, customer: str, amount: Decimal) -> DepositResult:
        """
        Deposit funds, settling the customer's debts first

        Debts are settled in ascending creditor order. Whatever is left after
        all debts are cleared goes to the customer's own balance.

        Args:
            customer: Depositing customer
            amount: Positive amount to deposit

        Returns:
            DepositResult with each settlement, the leftover credited, and the
            new balance
        """
        amount = self._require_positive(amount)
        result = DepositResult(customer=customer, amount=amount)

        with self.storage.atomic():
            self._require_customer(customer)
            remaining = amount
            for debt in self.ledger.get_debts_owed_by(customer):
                if remaining <= ZERO:
                    break

                settle = min(remaining, debt.amount)
                self.ledger.adjust_balance(debt.creditor, settle)
                left = debt.amount - settle
                self.record_debt(customer, debt.creditor, left)
                remaining -= settle

                result.settlements.append(
                    Settlement(creditor=debt.creditor, amount=settle, remaining_debt=left)
                )

            if remaining > ZERO:
                self.ledger.adjust_balance(customer, remaining)
            result.credited = remaining
            result.balance = self.ledger.get_balance(customer)

        log_action(
            self.logger, "info", "Deposit applied",
            customer=customer, action="deposit", resource=f"customer:{customer}",
            extra={
                "amount": str(amount),
                "settled": str(result.settled_total),
                "credited": str(result.credited),
                "balance": str(result.balance)
            }
        )
        return result

    def withdraw(self, customer: str, amount: Decimal) -> Decimal:
        """
        Withdraw funds from the customer's balance

        Returns:
            The new balance

        Raises:
            InsufficientFunds: If amount exceeds the balance; nothing changes
        """
        amount = self._require_positive(amount)

        with self.storage.atomic():
            balance = self.ledger.get_balance(customer)
            if amount > balance:
                log_action(
                    self.logger, "warning", "Withdrawal rejected: insufficient funds",
                    customer=customer, action="withdraw", resource=f"customer:{customer}",
                    extra={"amount": str(amount), "balance": str(balance)}
                )
                raise InsufficientFunds(customer, balance, amount)

            new_balance = self.ledger.adjust_balance(customer, -amount)

        log_action(
            self.logger, "info", "Withdrawal applied",
            customer=customer, action="withdraw", resource=f"customer:{customer}",
            extra={"amount": str(amount), "balance": str(new_balance)}
        )
        return new_balance

    def transfer(self, sender: str, receiver: str, amount: Decimal) -> TransferResult:
        """
        Transfer funds from sender to receiver

        If the sender cannot cover the amount, their whole (positive) balance
        is moved and the shortfall is added to the sender's debt to the
        receiver. A transfer never reduces a debt running the other way.

        Raises:
            SelfTransfer: If sender and receiver are the same customer
            CustomerNotFound: If either customer has no record
        """
        amount = self._require_positive(amount)
        if sender == receiver:
            raise SelfTransfer(sender)

        with self.storage.atomic():
            self._require_customer(sender)
            self._require_customer(receiver)

            balance = self.ledger.get_balance(sender)
            debt = self.ledger.get_debt(sender, receiver)

            if amount <= balance:
                transferred = amount
                shortfall = ZERO
            else:
                transferred = max(balance, ZERO)
                shortfall = amount - transferred

            if transferred > ZERO:
                self.ledger.adjust_balance(sender, -transferred)
                self.ledger.adjust_balance(receiver, transferred)

            if shortfall > ZERO:
                owed = debt.amount if debt else ZERO
                debt = self.record_debt(sender, receiver, add_exact(owed, shortfall))

            result = TransferResult(
                sender=sender,
                receiver=receiver,
                amount=amount,
                transferred=transferred,
                shortfall=shortfall,
                debt=debt,
                sender_balance=self.ledger.get_balance(sender),
                receiver_balance=self.ledger.get_balance(receiver)
            )

        log_action(
            self.logger, "info", "Transfer applied",
            customer=sender, action="transfer", resource=f"customer:{receiver}",
            extra={
                "amount": str(amount),
                "transferred": str(transferred),
                "shortfall": str(shortfall),
                "debt": str(debt.amount) if debt else None
            }
        )
        return result

    def record_debt(self, debtor: str, creditor: str, amount: Decimal) -> Optional[Debt]:
        """
        Set the debt from debtor to creditor to an absolute amount

        Amounts <= 0 delete the debt. This does not increment: callers compute
        the new total first.
        """
        debt = self.ledger.upsert_or_delete_debt(debtor, creditor, amount)
        log_action(
            self.logger, "info", "Debt recorded" if debt else "Debt cleared",
            customer=debtor, action="record_debt", resource=f"debt:{debtor}->{creditor}",
            extra={"amount": str(amount)}
        )
        return debt

    def summary(self, customer: str) -> AccountSummary:
        return AccountSummary(
            name=customer,
            balance=self.ledger.get_balance(customer),
            owes=self.ledger.get_debts_owed_by(customer),
            owed=self.ledger.get_debts_owed_to(customer)
        )

    def _require_customer(self, name: str) -> None:
        if not self.ledger.customer_exists(name):
            raise CustomerNotFound(name)

    def _require_positive(self, amount) -> Decimal:
        if isinstance(amount, int) and not isinstance(amount, bool):
            amount = to_decimal(amount)
        if not isinstance(amount, Decimal) or not amount.is_finite() or amount <= ZERO:
            raise InvalidAmount(amount)
        return amount
