"""
program.py - Stateful Ledger Program Execution

ProgramState is the only object in the package that mutates balances.

Key responsibilities:
    - Holds one AccountState per account, created at zero with a caller-supplied status
    - Executes programs action by action, left to right
    - Validates each transaction completely before touching any balance
    - Records every applied action in an action log

A failing action aborts the program run. Actions applied before it stay
applied; callers needing all-or-nothing semantics execute against a fresh
state (or a clone()) and keep the result only if it succeeds.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Dict, Iterable, List, Any

from .core import (
    # Types
    Account, AccountState, AccountStatus, Money,
    Transaction, EditAccountStatus, Program, Action,
    # Constants
    MONEY_EPSILON,
    # Exceptions
    LedgerError, InvalidAccountStatus, MissingAccountState, DuplicateAccount,
    # Helpers
    sum_account_states,
)


class ProgramState:
    """
    Account states plus the machinery to execute programs against them.

    Thread Safety:
        Not thread-safe. Each concurrent computation should use its own
        ProgramState instance.

    Example:
        alice = Account("alice", "AUD")
        bob = Account("bob", "AUD")
        state = ProgramState([alice, bob], AccountStatus.OPEN)
        state.execute_program(Program([
            Transaction.simple("lunch", date(2020, 2, 27), "alice", "bob",
                               Money.parse("20.00 AUD")),
        ]))
        state.balance_of("bob")   # Money(20.00 AUD)
    """

    def __init__(
        self,
        accounts: Iterable[Account],
        initial_status: AccountStatus = AccountStatus.OPEN,
        verbose: bool = False,
    ):
        """
        Create a program state.

        Args:
            accounts: Accounts to track; ids must be unique
            initial_status: Status every account starts with
            verbose: Print each applied or rejected action (default: False)

        Raises:
            DuplicateAccount: If two accounts share an id
        """
        self.account_states: Dict[str, AccountState] = {}
        for account in accounts:
            if account.id in self.account_states:
                raise DuplicateAccount(account.id)
            self.account_states[account.id] = AccountState(
                account=account,
                amount=Money.zero(account.currency),
                status=initial_status,
            )
        self.action_log: List[Action] = []
        self.verbose = verbose

    # ========================================================================
    # READ-ONLY ACCESS
    # ========================================================================

    def get_account_state(self, account_id: str) -> AccountState:
        """
        Return the live state for an account.

        Raises:
            MissingAccountState: If the account is not tracked by this state
        """
        try:
            return self.account_states[account_id]
        except KeyError:
            raise MissingAccountState(account_id) from None

    def balance_of(self, account_id: str) -> Money:
        return self.get_account_state(account_id).amount

    def snapshot(self) -> Dict[str, AccountState]:
        """Independent copies of every account state, keyed by account id."""
        return {account_id: state.copy() for account_id, state in self.account_states.items()}

    def total(self, currency: str) -> Money:
        """Sum of all balances held in `currency`."""
        states = {
            account_id: state
            for account_id, state in self.account_states.items()
            if state.amount.currency == currency
        }
        return sum_account_states(states, currency)

    def verify_double_entry(
        self,
        currency: str,
        tolerance: Decimal = MONEY_EPSILON,
    ) -> Dict[str, Any]:
        """
        Verify that balances held in `currency` sum to zero.

        Returns:
            Dict with keys:
            - 'valid': bool - True if the sum is zero within tolerance
            - 'total': Money - The actual sum
        """
        total = self.total(currency)
        return {
            'valid': total.is_zero(tolerance),
            'total': total,
        }

    # ========================================================================
    # EXECUTION (Mutating)
    # ========================================================================

    def execute_program(self, program: Program | Iterable[Action]) -> None:
        """
        Execute every action of a program in order.

        Raises:
            LedgerError: The first failure; earlier actions remain applied
        """
        for action in program:
            self.execute_action(action)

    def execute_action(self, action: Action) -> None:
        """Execute a single transaction or account-status edit."""
        try:
            if isinstance(action, Transaction):
                self._execute_transaction(action)
            elif isinstance(action, EditAccountStatus):
                self._edit_account_status(action)
            else:
                raise LedgerError(f"Unsupported action type {type(action).__name__}")
        except LedgerError as e:
            if self.verbose:
                print(f"✗ REJECTED: {action!r}: {e}")
            raise
        self.action_log.append(action)
        if self.verbose:
            print(f"✓ APPLIED: {action!r}")

    def _execute_transaction(self, transaction: Transaction) -> None:
        """
        Apply a transaction's postings.

        Every posting is checked (account known, account open, currencies
        resolvable) before any balance changes, so a rejected transaction
        leaves all balances untouched.
        """
        currencies: Dict[str, str] = {}
        for posting in transaction.postings:
            state = self.get_account_state(posting.account_id)
            if state.status != AccountStatus.OPEN:
                raise InvalidAccountStatus(posting.account_id, state.status)
            currencies[posting.account_id] = state.account.currency

        resolved = transaction.resolve(currencies)

        for account_id, amount in resolved:
            state = self.account_states[account_id]
            state.amount = state.amount.add(amount)

    def _edit_account_status(self, edit: EditAccountStatus) -> None:
        state = self.get_account_state(edit.account_id)
        state.status = edit.new_status

    # ========================================================================
    # COPYING
    # ========================================================================

    def clone(self) -> ProgramState:
        """
        Create an independent copy of this program state.

        Modifications to the clone do not affect the original and vice versa.
        Accounts themselves are immutable and are shared.
        """
        cloned = ProgramState.__new__(ProgramState)
        cloned.account_states = self.snapshot()
        cloned.action_log = list(self.action_log)
        cloned.verbose = self.verbose
        return cloned
