"""
conftest.py - Shared pytest fixtures for splitledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Users and a tab factory
- The two reference scenarios (simple petrol split, complex three-expense tab)
- Accounts and program states for engine-level tests
"""

import pytest
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from splitledger import (
    Account, AccountStatus, Money, ProgramState,
    Expense, Tab, User,
)


TAB_ID = UUID("936DA01F9ABD4d9d80C702AF85C822A8")
EXPENSE_DATE = date(2020, 2, 27)


# =============================================================================
# USERS AND TABS
# =============================================================================

@pytest.fixture
def users() -> List[User]:
    return [User(1, "User 1"), User(2, "User 2"), User(3, "User 3")]


@pytest.fixture
def make_expense():
    """Factory for AUD expenses dated EXPENSE_DATE."""
    def _make(
        expense_id: int,
        description: str,
        paid_by: int,
        shared_by,
        amount: str,
        category: str = "Food",
        exchange_rate=None,
        currency: str = "AUD",
    ) -> Expense:
        return Expense(
            id=expense_id,
            description=description,
            category=category,
            date=EXPENSE_DATE,
            paid_by=paid_by,
            shared_by=tuple(shared_by),
            amount=Money.of(amount, currency),
            exchange_rate=exchange_rate,
        )
    return _make


@pytest.fixture
def make_tab(users):
    """Factory for AUD tabs over the three standard users."""
    def _make(expenses=(), tab_users: Optional[List[User]] = None) -> Tab:
        return Tab(TAB_ID, "Test", "AUD", tab_users if tab_users is not None else users, expenses)
    return _make


@pytest.fixture
def petrol_tab(make_tab, make_expense) -> Tab:
    """User 1 pays 300.00 for petrol shared by users 2 and 3."""
    return make_tab([make_expense(1, "Petrol", 1, (2, 3), "300.0", category="Test")])


@pytest.fixture
def picnic_tab(make_tab, make_expense) -> Tab:
    """
    Three expenses:
        Cheese   300.00 paid by 1, shared by 1, 2, 3
        Pickles  500.00 paid by 1, shared by 2, 3
        Buns     100.00 paid by 2, shared by 1, 2, 3

    User 2 owes user 1 283.33..., user 3 owes user 1 383.33...
    """
    return make_tab([
        make_expense(1, "Cheese", 1, (1, 2, 3), "300.0"),
        make_expense(2, "Pickles", 1, (2, 3), "500.0"),
        make_expense(3, "Buns", 2, (1, 2, 3), "100.0"),
    ])


# =============================================================================
# ENGINE
# =============================================================================

@pytest.fixture
def accounts() -> Dict[str, Account]:
    return {
        name: Account(name, "AUD", name=name.title())
        for name in ("alice", "bob", "charlie", "expenses")
    }


@pytest.fixture
def program_state(accounts) -> ProgramState:
    return ProgramState(accounts.values(), AccountStatus.OPEN)


def aud(amount: str) -> Money:
    return Money.of(amount, "AUD")


@pytest.fixture
def money():
    """Shorthand AUD constructor: money("12.50")."""
    return aud
