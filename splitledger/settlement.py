"""
settlement.py - Netting Account Differences into Settlements

Given, per user account, the difference between the fair-share balance and
the actual balance, compute a list of point-to-point payments that brings
every account to its fair share.

Sign convention for a difference (shared - actual):
    negative  the user has paid less than their share and owes money
    positive  the user has paid more than their share and is owed money

Matching policy (deterministic greedy, not a global minimum):
    1. Debts are visited largest first; credits are kept smallest first.
       Both sorts are stable, so equal amounts keep their input order.
    2. A debt is paid in full to the first credit that can absorb it.
    3. Otherwise credits are consumed in order, each paid in full, until the
       remaining debt fits inside the next credit, which takes the rest.
    4. Exhausted credits are dropped before the next debt is visited.

All functions here are pure; Tab.balance_transactions() wires them to the
ledger engine.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping, Tuple, TYPE_CHECKING

from .core import (
    Account, AccountState, AccountStatus, Money, Program, Transaction,
    MONEY_EPSILON,
    ConservationViolation, MissingAccountState,
    sum_account_states,
)
from .program import ProgramState

if TYPE_CHECKING:
    from .tab import Tab


SETTLEMENT_DESCRIPTION = "Settlement"

# (debtor account id, creditor account id, amount)
Transfer = Tuple[str, str, Money]


@dataclass(frozen=True, slots=True)
class Settlement:
    """
    One recommended payment: `sender` owes `receiver` the given amount.

    Attributes:
        sender: Id of the user who has a debt and sends the money.
        receiver: Id of the user who is owed money.
        amount: Strictly positive amount to send.
    """
    sender: int
    receiver: int
    amount: Money

    def __post_init__(self):
        if self.sender == self.receiver:
            raise ValueError("Settlement sender and receiver must be different")
        if self.amount.amount <= Decimal("0"):
            raise ValueError(f"Settlement amount must be positive, got {self.amount}")

    def to_transaction(self, date: date, tab: Tab) -> Transaction:
        """The ledger transaction that carries out this settlement on `tab`."""
        return Transaction.simple(
            SETTLEMENT_DESCRIPTION,
            date,
            tab.get_user_account(self.sender).id,
            tab.get_user_account(self.receiver).id,
            self.amount,
        )

    def __repr__(self) -> str:
        return f"Settlement({self.sender}→{self.receiver}: {self.amount})"


def account_state_difference(
    states_from: Mapping[str, AccountState],
    states_to: Mapping[str, AccountState],
) -> Dict[str, AccountState]:
    """
    Per-account difference `to - from` between two snapshots.

    Both snapshots must cover exactly the same accounts. The result keeps the
    key order of `states_from`.

    Raises:
        MissingAccountState: If an account is present in only one snapshot
        CurrencyMismatch: If an account's two balances use different currencies
    """
    for account_id in states_to:
        if account_id not in states_from:
            raise MissingAccountState(account_id)

    differences: Dict[str, AccountState] = {}
    for account_id, from_state in states_from.items():
        to_state = states_to.get(account_id)
        if to_state is None:
            raise MissingAccountState(account_id)
        differences[account_id] = AccountState(
            account=to_state.account,
            amount=to_state.amount.sub(from_state.amount),
            status=AccountStatus.OPEN,
        )
    return differences


def net_differences(
    differences: Mapping[str, AccountState],
    currency: str,
    epsilon: Decimal = MONEY_EPSILON,
) -> List[Transfer]:
    """
    Match debts against credits with the greedy policy described above.

    Args:
        differences: Per-account differences (shared - actual), in iteration order
        currency: Currency every difference is held in
        epsilon: Differences and remainders within epsilon of zero are ignored

    Returns:
        Transfers (debtor account id, creditor account id, positive amount)

    Raises:
        ConservationViolation: If total debt and total credit differ, or a
            debt cannot be fully matched
    """
    zero = Money.zero(currency)
    debts: List[Tuple[str, Money]] = []
    credits: List[Tuple[str, Money]] = []
    for account_id, state in differences.items():
        if state.amount.is_negative(epsilon):
            debts.append((account_id, state.amount.neg()))
        elif state.amount.is_positive(epsilon):
            credits.append((account_id, state.amount))

    debts.sort(key=lambda entry: entry[1].amount, reverse=True)
    credits.sort(key=lambda entry: entry[1].amount)

    total_debt = sum((amount for _, amount in debts), zero)
    total_credit = sum((amount for _, amount in credits), zero)
    if not total_debt.eq_approx(total_credit, epsilon):
        raise ConservationViolation(
            f"Total debt {total_debt} does not equal total credit {total_credit}"
        )

    transfers: List[Transfer] = []
    for debtor_id, debt in debts:
        remaining = debt

        covering = None
        for index, (_, credit) in enumerate(credits):
            if credit.amount >= remaining.amount - epsilon:
                covering = index
                break

        if covering is not None:
            creditor_id, credit = credits[covering]
            transfers.append((debtor_id, creditor_id, remaining))
            credits[covering] = (creditor_id, credit.sub(remaining))
            remaining = zero
        else:
            for index, (creditor_id, credit) in enumerate(credits):
                if credit.amount <= remaining.amount + epsilon:
                    transfers.append((debtor_id, creditor_id, credit))
                    credits[index] = (creditor_id, zero)
                    remaining = remaining.sub(credit)
                else:
                    transfers.append((debtor_id, creditor_id, remaining))
                    credits[index] = (creditor_id, credit.sub(remaining))
                    remaining = zero
                if remaining.is_zero(epsilon):
                    break

        if not remaining.is_zero(epsilon):
            raise ConservationViolation(
                f"Debt of account {debtor_id} left unsettled: {remaining}"
            )

        credits = [(creditor_id, credit) for creditor_id, credit in credits
                   if not credit.is_zero(epsilon)]

    return transfers


def transfers_to_transactions(
    transfers: List[Transfer],
    date: date,
    description: str = SETTLEMENT_DESCRIPTION,
) -> List[Transaction]:
    """One simple transaction per transfer, debtor to creditor."""
    return [
        Transaction.simple(description, date, debtor_id, creditor_id, amount)
        for debtor_id, creditor_id, amount in transfers
    ]


def verify_settlement(
    accounts: List[Account],
    actual_program: Program,
    settlement_transactions: List[Transaction],
    target_states: Mapping[str, AccountState],
    currency: str,
    epsilon: Decimal = MONEY_EPSILON,
) -> Dict[str, AccountState]:
    """
    Check that the settlements reconcile the actual state to the target state.

    Executes the actual program followed by the settlement transactions from
    a fresh, all-open state and compares every account to `target_states`.

    Returns:
        The reconciled account states

    Raises:
        ConservationViolation: If the reconciled balances do not sum to zero
            or any account differs from its target by more than epsilon
    """
    balanced = ProgramState(accounts, AccountStatus.OPEN)
    balanced.execute_program(Program.of(actual_program, settlement_transactions))
    states = balanced.account_states

    total = sum_account_states(states, currency)
    if not total.is_zero(epsilon):
        raise ConservationViolation(f"Settled balances sum to {total}, not zero")

    if set(states) != set(target_states):
        raise ConservationViolation("Settled and target states cover different accounts")
    for account_id, target in target_states.items():
        if not states[account_id].eq_approx(target, epsilon):
            raise ConservationViolation(
                f"Account {account_id} settles to {states[account_id].amount}, "
                f"expected {target.amount}"
            )
    return states
