"""
splitledger - Shared Expense Ledger and Debt Settlement

A double-entry ledger engine plus a greedy netting algorithm that turns a
group's shared expense history into the payments that make it fair.

Usage:
    from datetime import date
    from uuid import uuid4
    from splitledger import Tab, User, Expense, Money

    u1, u2, u3 = User(1, "User 1"), User(2, "User 2"), User(3, "User 3")
    petrol = Expense(
        id=1, description="Petrol", category="Travel", date=date(2020, 2, 27),
        paid_by=u1.id, shared_by=(u2.id, u3.id), amount=Money.parse("300.00 AUD"),
    )
    tab = Tab(uuid4(), "Road trip", "AUD", [u1, u2, u3], [petrol])

    for settlement in tab.balance_transactions():
        print(settlement)   # Settlement(2→1: 150.00 AUD), Settlement(3→1: 150.00 AUD)
"""

# Core types
from .core import (
    Money,
    ExchangeRate,
    Account,
    AccountStatus,
    AccountState,
    Posting,
    Transaction,
    EditAccountStatus,
    Program,
    Action,
    sum_account_states,
    account_currencies,
    LedgerError,
    CurrencyMismatch,
    InvalidAccountStatus,
    MissingAccountState,
    DuplicateAccount,
    InvalidTransaction,
    ConservationViolation,
    MONEY_EPSILON,
    DIVISION_DECIMAL_PLACES,
    DIVISION_ROUNDING,
)

# Program execution
from .program import ProgramState

# Expenses
from .expense import Expense, ExpenseCategory, ExpenseID, UserID

# Settlement
from .settlement import (
    Settlement,
    account_state_difference,
    net_differences,
    transfers_to_transactions,
    verify_settlement,
)

# Tabs
from .tab import (
    Tab,
    TabID,
    User,
    user_account_id,
    expense_category_account_id,
    TabOperationError,
    UserDoesNotExistOnTab,
    NoUserWithAccountOnTab,
    UserAccountDoesNotExistOnTab,
    NoExpenseCategoryAccountOnTab,
    UserAlreadyExistsOnTab,
    ExpenseDoesNotExistOnTab,
    ExpenseAlreadyExistsOnTab,
)

# Persistence
from .persistence import (
    KeyValueStore,
    InMemoryStore,
    PersistenceError,
    tab_to_dict,
    tab_from_dict,
    expense_to_dict,
    expense_from_dict,
    user_to_dict,
    user_from_dict,
    write_tab,
    read_tab,
    write_tabs,
    read_tabs,
)

__all__ = [
    # Core
    'Money', 'ExchangeRate', 'Account', 'AccountStatus', 'AccountState',
    'Posting', 'Transaction', 'EditAccountStatus', 'Program', 'Action',
    'sum_account_states', 'account_currencies',
    'LedgerError', 'CurrencyMismatch', 'InvalidAccountStatus', 'MissingAccountState',
    'DuplicateAccount', 'InvalidTransaction', 'ConservationViolation',
    'MONEY_EPSILON', 'DIVISION_DECIMAL_PLACES', 'DIVISION_ROUNDING',
    # Program
    'ProgramState',
    # Expenses
    'Expense', 'ExpenseCategory', 'ExpenseID', 'UserID',
    # Settlement
    'Settlement', 'account_state_difference', 'net_differences',
    'transfers_to_transactions', 'verify_settlement',
    # Tabs
    'Tab', 'TabID', 'User', 'user_account_id', 'expense_category_account_id',
    'TabOperationError', 'UserDoesNotExistOnTab', 'NoUserWithAccountOnTab',
    'UserAccountDoesNotExistOnTab',
    'NoExpenseCategoryAccountOnTab', 'UserAlreadyExistsOnTab',
    'ExpenseDoesNotExistOnTab', 'ExpenseAlreadyExistsOnTab',
    # Persistence
    'KeyValueStore', 'InMemoryStore', 'PersistenceError',
    'tab_to_dict', 'tab_from_dict', 'expense_to_dict', 'expense_from_dict',
    'user_to_dict', 'user_from_dict',
    'write_tab', 'read_tab', 'write_tabs', 'read_tabs',
]

__version__ = '0.1.0'
