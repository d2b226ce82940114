"""
Tests for the ledger store: customers, debts and the session pointer
"""

import pytest
from decimal import Decimal

from atm_teller.exceptions import InvalidAmount
from atm_teller.storage import InMemoryStorage, SQLiteStorage
from atm_teller.ledger import (
    LedgerStore, Customer, Debt, debt_key,
    CUSTOMERS_TABLE, DEBTS_TABLE, SESSION_TABLE, SESSION_ID
)


@pytest.fixture(params=["memory", "sqlite"])
def ledger(request):
    if request.param == "memory":
        storage = InMemoryStorage()
    else:
        storage = SQLiteStorage()
    store = LedgerStore(storage)
    store.initialize()
    yield store
    storage.close()


class TestCustomers:

    def test_create_customer_defaults_to_zero(self, ledger):
        """First access creates the customer with no money"""
        customer = ledger.ensure_customer("Alice")
        assert customer == Customer(name="Alice", balance=Decimal("0"))
        assert ledger.customer_exists("Alice")
        assert ledger.get_balance("Alice") == Decimal("0")

    def test_ensure_customer_is_idempotent(self, ledger):
        ledger.ensure_customer("Alice")
        ledger.adjust_balance("Alice", Decimal("50"))

        customer = ledger.ensure_customer("Alice")
        assert customer.balance == Decimal("50")

    def test_unknown_customer_reads_as_zero(self, ledger):
        assert ledger.get_balance("Ghost") == Decimal("0")
        assert ledger.get_customer("Ghost") is None

    def test_adjust_balance_credit_and_debit(self, ledger):
        """Balances move by the signed delta"""
        ledger.ensure_customer("John")
        assert ledger.adjust_balance("John", Decimal("1000")) == Decimal("1000")
        assert ledger.adjust_balance("John", Decimal("-500")) == Decimal("500")
        # The store itself does not guard against overdraft
        assert ledger.adjust_balance("John", Decimal("-700")) == Decimal("-200")

    def test_adjust_unknown_customer_is_noop(self, ledger):
        assert ledger.adjust_balance("Ghost", Decimal("10")) == Decimal("0")
        assert not ledger.customer_exists("Ghost")

    def test_balances_stored_as_decimal_strings(self, ledger):
        ledger.ensure_customer("Alice")
        ledger.adjust_balance("Alice", Decimal("0.10"))
        ledger.adjust_balance("Alice", Decimal("0.20"))

        raw = ledger.storage.get(CUSTOMERS_TABLE, "Alice")
        assert raw["balance"] == "0.30"
        assert ledger.get_balance("Alice") == Decimal("0.30")

    def test_adjust_balance_refuses_to_round(self, ledger):
        """A sum that would lose a cent is rejected and nothing is written"""
        ledger.ensure_customer("Rich")
        ledger.adjust_balance("Rich", Decimal("9E+25"))
        ledger.adjust_balance("Rich", Decimal("9E+25"))

        with pytest.raises(InvalidAmount):
            ledger.adjust_balance("Rich", Decimal("0.01"))

        assert ledger.get_balance("Rich") == Decimal("1.8E+26")


class TestDebts:

    def test_debt_between_customers(self, ledger):
        ledger.ensure_customer("David")
        ledger.ensure_customer("Eve")
        ledger.upsert_or_delete_debt("David", "Eve", Decimal("50"))

        owes = ledger.get_debts_owed_by("David")
        assert owes == [Debt(debtor="David", creditor="Eve", amount=Decimal("50"))]

        owed = ledger.get_debts_owed_to("Eve")
        assert owed[0].debtor == "David"
        assert owed[0].amount == Decimal("50")

        assert ledger.get_debts_owed_by("Eve") == []

    def test_upsert_is_absolute(self, ledger):
        """Setting a debt replaces its amount instead of adding to it"""
        ledger.upsert_or_delete_debt("A", "B", Decimal("50"))
        ledger.upsert_or_delete_debt("A", "B", Decimal("20"))

        assert ledger.get_debt("A", "B").amount == Decimal("20")
        assert len(ledger.storage.select(DEBTS_TABLE, "debtor", "A")) == 1

    def test_zero_or_negative_deletes(self, ledger):
        ledger.upsert_or_delete_debt("Frank", "Grace", Decimal("50"))
        assert ledger.upsert_or_delete_debt("Frank", "Grace", Decimal("0")) is None
        assert ledger.get_debts_owed_by("Frank") == []

        ledger.upsert_or_delete_debt("Frank", "Grace", Decimal("50"))
        ledger.upsert_or_delete_debt("Frank", "Grace", Decimal("-300"))
        assert ledger.get_debt("Frank", "Grace") is None

    def test_directed_pairs_are_independent(self, ledger):
        ledger.upsert_or_delete_debt("A", "B", Decimal("10"))
        ledger.upsert_or_delete_debt("B", "A", Decimal("30"))

        assert ledger.get_debt("A", "B").amount == Decimal("10")
        assert ledger.get_debt("B", "A").amount == Decimal("30")

    def test_debts_listed_by_name(self, ledger):
        """Debts come back sorted by counterparty regardless of insert order"""
        ledger.upsert_or_delete_debt("A", "Zed", Decimal("1"))
        ledger.upsert_or_delete_debt("A", "Bob", Decimal("2"))
        ledger.upsert_or_delete_debt("A", "Mia", Decimal("3"))
        ledger.upsert_or_delete_debt("Yan", "Bob", Decimal("4"))

        assert [d.creditor for d in ledger.get_debts_owed_by("A")] == ["Bob", "Mia", "Zed"]
        assert [d.debtor for d in ledger.get_debts_owed_to("Bob")] == ["A", "Yan"]

    def test_names_with_separators_do_not_collide(self, ledger):
        ledger.upsert_or_delete_debt("a->b", "c", Decimal("1"))
        ledger.upsert_or_delete_debt("a", "b->c", Decimal("2"))

        assert debt_key("a->b", "c") != debt_key("a", "b->c")
        assert ledger.get_debt("a->b", "c").amount == Decimal("1")
        assert ledger.get_debt("a", "b->c").amount == Decimal("2")


class TestSessionPointer:

    def test_initialize_creates_single_session_record(self, ledger):
        ledger.initialize()
        assert ledger.storage.has(SESSION_TABLE, SESSION_ID)
        assert ledger.get_current_customer() is None

    def test_set_and_clear_current_customer(self, ledger):
        ledger.ensure_customer("Bob")
        ledger.set_current_customer("Bob")
        assert ledger.get_current_customer() == "Bob"

        ledger.set_current_customer(None)
        assert ledger.get_current_customer() is None
        assert ledger.storage.has(SESSION_TABLE, SESSION_ID)

    def test_initialize_keeps_existing_session(self, ledger):
        ledger.set_current_customer("Bob")
        ledger.initialize()
        assert ledger.get_current_customer() == "Bob"
