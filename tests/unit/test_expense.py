"""
test_expense.py - Unit tests for Expense and its derived transactions
"""

import pytest
from datetime import date
from decimal import Decimal

from splitledger import (
    ExchangeRate, Expense, Money, ProgramState,
    UserAccountDoesNotExistOnTab, NoExpenseCategoryAccountOnTab,
    user_account_id, expense_category_account_id,
)


class TestExpenseValidation:

    def test_empty_shared_by_rejected(self, make_expense):
        with pytest.raises(ValueError, match="at least one"):
            make_expense(1, "Petrol", 1, (), "300.0")

    def test_duplicate_shared_by_rejected(self, make_expense):
        with pytest.raises(ValueError, match="more than once"):
            make_expense(1, "Petrol", 1, (2, 2), "300.0")

    def test_non_positive_amount_rejected(self, make_expense):
        with pytest.raises(ValueError, match="positive"):
            make_expense(1, "Refund", 1, (2,), "-5")

    def test_empty_category_rejected(self, make_expense):
        with pytest.raises(ValueError, match="category"):
            make_expense(1, "Petrol", 1, (2,), "5", category="")

    def test_non_string_category_rejected(self, make_expense):
        with pytest.raises(ValueError, match="category"):
            make_expense(1, "Petrol", 1, (2,), "5", category=5)

    def test_amount_must_be_money(self):
        with pytest.raises(ValueError, match="Money"):
            Expense(1, "Petrol", "Travel", date(2020, 2, 27), 1, (2,), Decimal("5"))

    def test_shared_by_frozen_to_tuple(self):
        expense = Expense(1, "Petrol", "Travel", date(2020, 2, 27), 1, [2, 3], Money.of("5", "AUD"))
        assert expense.shared_by == (2, 3)

    def test_share(self, make_expense, money):
        assert make_expense(1, "Buns", 2, (1, 2, 3), "100.0").share == money("33.333333333333")


class TestActualTransaction:

    def test_payer_pays_everything(self, petrol_tab):
        expense = petrol_tab.expenses[0]
        tx = expense.actual_transaction(petrol_tab)
        assert tx.description == "Petrol"
        assert tx.date == date(2020, 2, 27)
        assert len(tx.postings) == 2
        payer = tx.get_posting(user_account_id(1))
        assert payer.amount == Money.of("-300.0", "AUD")
        assert tx.balancing_posting.account_id == expense_category_account_id("Test")

    def test_executes_to_zero_sum(self, petrol_tab, money):
        expense = petrol_tab.expenses[0]
        state = ProgramState(petrol_tab.accounts())
        state.execute_action(expense.actual_transaction(petrol_tab))
        assert state.balance_of(user_account_id(1)) == money("-300")
        assert state.balance_of(expense_category_account_id("Test")) == money("300")
        assert state.verify_double_entry("AUD")['valid']

    def test_unknown_payer(self, make_tab, make_expense):
        tab = make_tab()
        expense = make_expense(1, "Petrol", 9, (1,), "10")
        tab.add_expense(expense)
        with pytest.raises(UserAccountDoesNotExistOnTab) as exc_info:
            expense.actual_transaction(tab)
        assert exc_info.value.user_id == 9

    def test_missing_category_account(self, make_tab, make_expense):
        tab = make_tab()
        expense = make_expense(1, "Petrol", 1, (1,), "10", category="Travel")
        with pytest.raises(NoExpenseCategoryAccountOnTab):
            expense.actual_transaction(tab)


class TestSharedTransaction:

    def test_each_participant_pays_a_share(self, petrol_tab):
        tx = petrol_tab.expenses[0].shared_transaction(petrol_tab)
        assert len(tx.postings) == 3
        assert tx.get_posting(user_account_id(2)).amount == Money.of("-150", "AUD")
        assert tx.get_posting(user_account_id(3)).amount == Money.of("-150", "AUD")
        assert tx.get_posting(user_account_id(1)) is None
        assert tx.balancing_posting.account_id == expense_category_account_id("Test")

    def test_uses_expense_date(self, make_tab, make_expense):
        expense = make_expense(1, "Buns", 2, (1, 2, 3), "100.0")
        tab = make_tab([expense])
        assert expense.shared_transaction(tab).date == expense.date

    def test_balancing_leg_absorbs_residue(self, make_tab, make_expense, money):
        expense = make_expense(1, "Buns", 2, (1, 2, 3), "100.0")
        tab = make_tab([expense])
        state = ProgramState(tab.accounts())
        state.execute_action(expense.shared_transaction(tab))
        assert state.balance_of(expense_category_account_id("Food")) == money("99.999999999999")
        assert state.total("AUD") == money("0")

    def test_unknown_participant(self, make_tab, make_expense):
        expense = make_expense(1, "Petrol", 1, (1, 7), "10")
        tab = make_tab([expense])
        with pytest.raises(UserAccountDoesNotExistOnTab) as exc_info:
            expense.shared_transaction(tab)
        assert exc_info.value.user_id == 7

    def test_foreign_currency_expense_converted(self, make_tab, make_expense, money):
        rate = ExchangeRate({"AUD": "1.5"}, base="USD")
        expense = make_expense(1, "Museum", 1, (1, 2), "20", exchange_rate=rate, currency="USD")
        tab = make_tab([expense])
        state = ProgramState(tab.accounts())
        state.execute_action(expense.shared_transaction(tab))
        assert state.balance_of(user_account_id(1)) == money("-15")
        assert state.balance_of(user_account_id(2)) == money("-15")
        assert state.balance_of(expense_category_account_id("Food")) == money("30")
