#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Splitting a Tab Step by Step

This is a pedagogical demonstration of how shared expenses become
settlements. Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3: Ledger Engine - Accounts, balancing postings, closed accounts
  4-5: Expenses      - Actual vs shared transactions
  6-7: Settlement    - Netting differences, verifying the result

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID
import sys

from splitledger import (
    # Engine
    Account, AccountStatus, EditAccountStatus, Money, Posting, Program,
    ProgramState, Transaction, InvalidAccountStatus,
    # Tabs
    Expense, Tab, User,
    account_state_difference,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    currency: str = "AUD"
    expense_date: date = date(2020, 2, 27)
    tab_id: UUID = UUID("936DA01F9ABD4d9d80C702AF85C822A8")


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def money(amount: str) -> Money:
    return Money.of(amount, CONFIG.currency)


def print_balances(state: ProgramState):
    for account_id, account_state in state.account_states.items():
        print(f"  {account_id:<16} {account_state.amount}  [{account_state.status.value}]")


# ============================================================================
# PHASE 1: LEDGER ENGINE (Steps 1-3)
# ============================================================================

def step_01_accounts():
    step_header(1, "Accounts and Program State",
        "A program state holds one zeroed balance per account.")

    accounts = [Account(name, CONFIG.currency) for name in ("alice", "bob", "groceries")]
    print(">>> state = ProgramState(accounts, AccountStatus.OPEN, verbose=True)")
    state = ProgramState(accounts, AccountStatus.OPEN, verbose=True)

    section_header("Initial Balances")
    print_balances(state)
    return state


def step_02_balancing_posting(state: ProgramState):
    step_header(2, "The Balancing Posting",
        "One posting per transaction may omit its amount; it takes whatever nets to zero.")

    tx = Transaction("Weekly shop", CONFIG.expense_date, [
        Posting("alice", money("-60.00")),
        Posting("bob", money("-30.00")),
        Posting("groceries"),
    ])
    state.execute_action(tx)

    section_header("Balances")
    print_balances(state)
    print(f"\n  Double entry: {state.verify_double_entry(CONFIG.currency)}")
    return state


def step_03_closed_accounts(state: ProgramState):
    step_header(3, "Closed Accounts",
        "A closed account rejects the whole transaction, leaving every balance untouched.")

    state.execute_action(EditAccountStatus("bob", AccountStatus.CLOSED))
    try:
        state.execute_action(Transaction.simple("Refund", CONFIG.expense_date, "alice", "bob", money("5")))
    except InvalidAccountStatus as e:
        print(f"\n  Rejected as expected: {e}")

    section_header("Balances (unchanged)")
    print_balances(state)


# ============================================================================
# PHASE 2: EXPENSES (Steps 4-5)
# ============================================================================

def step_04_build_tab() -> Tab:
    step_header(4, "A Tab of Shared Expenses",
        "Users share expenses; the tab derives one account per user and per category.")

    users = [User(1, "User 1"), User(2, "User 2"), User(3, "User 3")]
    expenses = [
        Expense(1, "Cheese", "Food", CONFIG.expense_date, 1, (1, 2, 3), money("300.00")),
        Expense(2, "Pickles", "Food", CONFIG.expense_date, 1, (2, 3), money("500.00")),
        Expense(3, "Buns", "Food", CONFIG.expense_date, 2, (1, 2, 3), money("100.00")),
    ]
    tab = Tab(CONFIG.tab_id, "Picnic", CONFIG.currency, users, expenses)

    print(f"  {tab!r}")
    for account in tab.accounts():
        print(f"  {account.id:<14} {account.name}")
    return tab


def step_05_actual_vs_shared(tab: Tab):
    step_header(5, "Actual vs Shared",
        "Actual transactions record who paid; shared transactions record who should have.")

    actual = ProgramState(tab.accounts())
    actual.execute_program(Program([e.actual_transaction(tab) for e in tab.expenses]))
    shared = ProgramState(tab.accounts())
    shared.execute_program(Program([e.shared_transaction(tab) for e in tab.expenses]))

    section_header("Actual")
    print_balances(actual)
    section_header("Shared")
    print_balances(shared)

    section_header("Difference (shared - actual)")
    for account_id, difference in account_state_difference(actual.snapshot(), shared.snapshot()).items():
        print(f"  {account_id:<16} {difference.amount}")


# ============================================================================
# PHASE 3: SETTLEMENT (Steps 6-7)
# ============================================================================

def step_06_settle(tab: Tab):
    step_header(6, "Settlement",
        "Debts are matched largest first against the smallest credit that covers them.")

    settlements = tab.balance_transactions()
    for settlement in settlements:
        print(f"  User {settlement.sender} pays User {settlement.receiver}: {settlement.amount}")
    return settlements


def step_07_verify(tab: Tab, settlements):
    step_header(7, "Verification",
        "Actual transactions plus settlements reach every user's fair share.")

    state = ProgramState(tab.accounts())
    state.execute_program(Program.of(
        [e.actual_transaction(tab) for e in tab.expenses],
        [s.to_transaction(CONFIG.expense_date, tab) for s in settlements],
    ))
    print_balances(state)
    print(f"\n  Double entry: {state.verify_double_entry(CONFIG.currency)}")


def main():
    state = step_01_accounts()
    wait_for_enter()
    state = step_02_balancing_posting(state)
    wait_for_enter()
    step_03_closed_accounts(state)
    wait_for_enter()

    tab = step_04_build_tab()
    wait_for_enter()
    step_05_actual_vs_shared(tab)
    wait_for_enter()

    settlements = step_06_settle(tab)
    wait_for_enter()
    step_07_verify(tab, settlements)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See splitledger/settlement.py for the matching policy
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
