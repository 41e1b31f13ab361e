"""
tab.py - Tabs: Users, Expenses and Their Settlement

A Tab groups users and the expenses they share. It owns the account index
(one ledger account per user, one per expense category) and exposes the
settlement algorithm as balance_transactions().

The account index is derived state. It is rebuilt from scratch whenever
users or expenses change and swapped in whole, so it is never partially
updated.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from .core import (
    Account, AccountStatus, Money, Program,
    LedgerError, ConservationViolation,
    sum_account_states, require_text,
)
from .expense import Expense, ExpenseCategory, ExpenseID, UserID
from .program import ProgramState
from .settlement import (
    Settlement,
    account_state_difference,
    net_differences,
    transfers_to_transactions,
    verify_settlement,
)


TabID = UUID

# Account categories used for the derived accounts.
USER_ACCOUNT_CATEGORY = "Users"
EXPENSE_ACCOUNT_CATEGORY = "Expense"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class TabOperationError(LedgerError):
    """Base exception for lookups and edits on a tab."""
    pass


class UserDoesNotExistOnTab(TabOperationError):
    def __init__(self, user_id: UserID, tab_id: TabID):
        self.user_id = user_id
        self.tab_id = tab_id
        super().__init__(f"User {user_id} does not exist on tab {tab_id}")


class NoUserWithAccountOnTab(UserDoesNotExistOnTab):
    """Raised when no user on the tab owns a ledger account."""

    def __init__(self, account_id: str, tab_id: TabID):
        self.account_id = account_id
        self.user_id = None
        self.tab_id = tab_id
        TabOperationError.__init__(self, f"No user on tab {tab_id} owns account {account_id}")


class UserAccountDoesNotExistOnTab(TabOperationError):
    def __init__(self, user_id: UserID, tab_id: TabID):
        self.user_id = user_id
        self.tab_id = tab_id
        super().__init__(f"Account for user {user_id} does not exist on tab {tab_id}")


class NoExpenseCategoryAccountOnTab(TabOperationError):
    def __init__(self, category: ExpenseCategory, tab_id: TabID):
        self.category = category
        self.tab_id = tab_id
        super().__init__(f"No account for expense category {category!r} on tab {tab_id}")


class UserAlreadyExistsOnTab(TabOperationError):
    def __init__(self, user_id: UserID, tab_id: TabID):
        self.user_id = user_id
        self.tab_id = tab_id
        super().__init__(f"User {user_id} already exists on tab {tab_id}")


class ExpenseDoesNotExistOnTab(TabOperationError):
    def __init__(self, expense_id: ExpenseID, tab_id: TabID):
        self.expense_id = expense_id
        self.tab_id = tab_id
        super().__init__(f"Expense {expense_id} does not exist on tab {tab_id}")


class ExpenseAlreadyExistsOnTab(TabOperationError):
    def __init__(self, expense_id: ExpenseID, tab_id: TabID):
        self.expense_id = expense_id
        self.tab_id = tab_id
        super().__init__(f"Expense {expense_id} already exists on tab {tab_id}")


# ============================================================================
# USERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class User:
    """A person taking part in a tab. Users compare equal by id."""
    id: UserID
    name: str = field(compare=False)
    email: Optional[str] = field(default=None, compare=False)


def user_account_id(user_id: UserID) -> str:
    return f"user:{user_id}"


def expense_category_account_id(category: ExpenseCategory) -> str:
    return f"expense:{category}"


# ============================================================================
# TAB
# ============================================================================

class Tab:
    """
    A collection of expenses and the users responsible for them.

    Example:
        alice, bob = User(1, "Alice"), User(2, "Bob")
        tab = Tab(uuid4(), "Road trip", "AUD", [alice, bob], [
            Expense(1, "Petrol", "Travel", date(2020, 2, 27), alice.id,
                    (alice.id, bob.id), Money.parse("300.00 AUD")),
        ])
        tab.balance_transactions()   # [Settlement(2→1: 150.00 AUD)]
    """

    def __init__(
        self,
        id: TabID,
        name: str,
        working_currency: str,
        users: Iterable[User] = (),
        expenses: Iterable[Expense] = (),
    ):
        """
        Construct a tab and derive its account index.

        Raises:
            UserAlreadyExistsOnTab: If two users share an id
            ExpenseAlreadyExistsOnTab: If two expenses share an id
        """
        require_text(working_currency, "working_currency")
        self.id = id
        self.name = name
        self.working_currency = working_currency

        self._users: List[User] = []
        for user in users:
            if any(u.id == user.id for u in self._users):
                raise UserAlreadyExistsOnTab(user.id, id)
            self._users.append(user)

        self._expenses: List[Expense] = []
        for expense in expenses:
            if any(e.id == expense.id for e in self._expenses):
                raise ExpenseAlreadyExistsOnTab(expense.id, id)
            self._expenses.append(expense)

        self._user_accounts: Dict[UserID, Account] = {}
        self._expense_category_accounts: Dict[ExpenseCategory, Account] = {}
        self._rebuild_accounts()

    # ========================================================================
    # ACCOUNT INDEX
    # ========================================================================

    def _new_account_for_user(self, user: User) -> Account:
        return Account(
            id=user_account_id(user.id),
            currency=self.working_currency,
            name=f"User-{user.id}-{user.name}",
            category=USER_ACCOUNT_CATEGORY,
        )

    def _new_account_for_expense_category(self, category: ExpenseCategory) -> Account:
        return Account(
            id=expense_category_account_id(category),
            currency=self.working_currency,
            name=category,
            category=EXPENSE_ACCOUNT_CATEGORY,
        )

    def _rebuild_accounts(self) -> None:
        user_accounts = {user.id: self._new_account_for_user(user) for user in self._users}
        category_accounts: Dict[ExpenseCategory, Account] = {}
        for expense in self._expenses:
            if expense.category not in category_accounts:
                category_accounts[expense.category] = self._new_account_for_expense_category(
                    expense.category
                )
        self._user_accounts = user_accounts
        self._expense_category_accounts = category_accounts

    @property
    def user_accounts(self) -> Dict[UserID, Account]:
        return dict(self._user_accounts)

    @property
    def expense_category_accounts(self) -> Dict[ExpenseCategory, Account]:
        return dict(self._expense_category_accounts)

    def accounts(self) -> List[Account]:
        """Every derived account: users in tab order, then categories in first-use order."""
        return list(self._user_accounts.values()) + list(self._expense_category_accounts.values())

    def get_user_account(self, user_id: UserID) -> Account:
        try:
            return self._user_accounts[user_id]
        except KeyError:
            raise UserAccountDoesNotExistOnTab(user_id, self.id) from None

    def get_expense_category_account(self, category: ExpenseCategory) -> Account:
        try:
            return self._expense_category_accounts[category]
        except KeyError:
            raise NoExpenseCategoryAccountOnTab(category, self.id) from None

    def get_user_with_account(self, account_id: str) -> User:
        """
        Return the user owning a ledger account.

        Raises:
            NoUserWithAccountOnTab: If no user on this tab owns the account
        """
        for user_id, account in self._user_accounts.items():
            if account.id == account_id:
                return self.user(user_id)
        raise NoUserWithAccountOnTab(account_id, self.id)

    # ========================================================================
    # USERS AND EXPENSES
    # ========================================================================

    @property
    def users(self) -> Tuple[User, ...]:
        return tuple(self._users)

    @property
    def expenses(self) -> Tuple[Expense, ...]:
        return tuple(self._expenses)

    def user(self, user_id: UserID) -> User:
        for user in self._users:
            if user.id == user_id:
                return user
        raise UserDoesNotExistOnTab(user_id, self.id)

    def add_user(self, user: User) -> None:
        """
        Add a user and their account.

        Raises:
            UserAlreadyExistsOnTab: If a user with the same id exists; the tab is unchanged
        """
        if any(u.id == user.id for u in self._users):
            raise UserAlreadyExistsOnTab(user.id, self.id)
        self._users.append(user)
        self._rebuild_accounts()

    def remove_user(self, user_id: UserID) -> None:
        """
        Remove a user and their account.

        Expenses that still reference the user are kept; settling them later
        raises UserAccountDoesNotExistOnTab.

        Raises:
            UserDoesNotExistOnTab: If no such user is on the tab
        """
        for index, user in enumerate(self._users):
            if user.id == user_id:
                del self._users[index]
                self._rebuild_accounts()
                return
        raise UserDoesNotExistOnTab(user_id, self.id)

    def add_expense(self, expense: Expense) -> None:
        """
        Record an expense, creating its category account if needed.

        Raises:
            ExpenseAlreadyExistsOnTab: If an expense with the same id exists
        """
        if any(e.id == expense.id for e in self._expenses):
            raise ExpenseAlreadyExistsOnTab(expense.id, self.id)
        self._expenses.append(expense)
        self._rebuild_accounts()

    def remove_expense(self, expense_id: ExpenseID) -> Expense:
        """
        Remove an expense. Its category account is dropped if no other expense uses it.

        Raises:
            ExpenseDoesNotExistOnTab: If no such expense is on the tab
        """
        for index, expense in enumerate(self._expenses):
            if expense.id == expense_id:
                del self._expenses[index]
                self._rebuild_accounts()
                return expense
        raise ExpenseDoesNotExistOnTab(expense_id, self.id)

    # ========================================================================
    # SETTLEMENT
    # ========================================================================

    def balance_transactions(self, settlement_date: Optional[date] = None) -> List[Settlement]:
        """
        Produce the payments that make every user's contribution fair.

        Applied on top of the actual transactions generated by this tab's
        expenses, the returned settlements leave each user having paid
        exactly their share of every expense they took part in. Users with
        larger debts are matched first, and against the smallest credit able
        to absorb them.

        Args:
            settlement_date: Date used for the verification transactions
                (default: today). Has no effect on the result.

        Returns:
            Settlements in the order they were matched

        Raises:
            UserAccountDoesNotExistOnTab: If an expense references a removed user
            InvalidAccountStatus, CurrencyMismatch: From executing the programs
            ConservationViolation: If an internal consistency check fails
        """
        settlement_date = settlement_date or date.today()
        currency = self.working_currency

        actual_program = Program([expense.actual_transaction(self) for expense in self._expenses])
        shared_program = Program([expense.shared_transaction(self) for expense in self._expenses])
        accounts = self.accounts()

        actual_state = ProgramState(accounts, AccountStatus.OPEN)
        actual_state.execute_program(actual_program)
        # The shared state is the target: every user has paid their fair share.
        shared_state = ProgramState(accounts, AccountStatus.OPEN)
        shared_state.execute_program(shared_program)

        actual_states = actual_state.snapshot()
        shared_states = shared_state.snapshot()
        for label, states in (("actual", actual_states), ("shared", shared_states)):
            total = sum_account_states(states, currency)
            if not total.is_zero():
                raise ConservationViolation(f"The {label} balances sum to {total}, not zero")

        # Only balances between people are settled; category accounts are bookkeeping.
        user_account_ids = {account.id for account in self._user_accounts.values()}
        differences = account_state_difference(
            {k: v for k, v in actual_states.items() if k in user_account_ids},
            {k: v for k, v in shared_states.items() if k in user_account_ids},
        )
        differences_total = sum_account_states(differences, currency)
        if not differences_total.is_zero():
            raise ConservationViolation(f"Account differences sum to {differences_total}, not zero")

        transfers = net_differences(differences, currency)
        verify_settlement(
            accounts,
            actual_program,
            transfers_to_transactions(transfers, settlement_date),
            shared_states,
            currency,
        )

        return [
            Settlement(
                sender=self.get_user_with_account(debtor_id).id,
                receiver=self.get_user_with_account(creditor_id).id,
                amount=amount,
            )
            for debtor_id, creditor_id, amount in transfers
        ]

    def __repr__(self) -> str:
        return (
            f"Tab({self.name!r}, {self.working_currency}, "
            f"{len(self._users)} users, {len(self._expenses)} expenses)"
        )
