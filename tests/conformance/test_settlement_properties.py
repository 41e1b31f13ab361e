"""
Settlement Conformance Tests

INVARIANT: Applying the recommended settlements on top of what users
actually paid leaves every user having paid exactly their fair share.

    ∀ tab T, user u:
        actual(u) + Σ_{s ∈ settle(T)} effect(s, u) ≈ shared(u)

Each settlement moves a strictly positive amount between two distinct
users, and nobody both sends and receives.
"""

from hypothesis import given, settings
from datetime import date

from splitledger import Program, ProgramState

from .test_conservation import tabs


def user_balances(tab, transactions):
    state = ProgramState(tab.accounts())
    state.execute_program(Program(transactions))
    return {user.id: state.balance_of(tab.get_user_account(user.id).id) for user in tab.users}


class TestSettlementProperties:

    @given(tabs())
    @settings(max_examples=100, deadline=None)
    def test_settlements_reach_fair_shares(self, tab):
        """PROPERTY: actual + settlements ≈ shared, for every user."""
        settlements = tab.balance_transactions()
        settled = user_balances(tab, [
            *[e.actual_transaction(tab) for e in tab.expenses],
            *[s.to_transaction(date(2020, 3, 1), tab) for s in settlements],
        ])
        fair = user_balances(tab, [e.shared_transaction(tab) for e in tab.expenses])
        for user_id, amount in fair.items():
            assert settled[user_id].eq_approx(amount), user_id

    @given(tabs())
    @settings(max_examples=100, deadline=None)
    def test_settlements_positive_between_distinct_users(self, tab):
        """PROPERTY: Every settlement is a positive payment from one user to another."""
        user_ids = {user.id for user in tab.users}
        for settlement in tab.balance_transactions():
            assert settlement.amount.is_positive()
            assert settlement.sender != settlement.receiver
            assert settlement.sender in user_ids
            assert settlement.receiver in user_ids

    @given(tabs())
    @settings(max_examples=100, deadline=None)
    def test_no_user_both_sends_and_receives(self, tab):
        """PROPERTY: Debtors only send and creditors only receive."""
        settlements = tab.balance_transactions()
        senders = {s.sender for s in settlements}
        receivers = {s.receiver for s in settlements}
        assert not senders & receivers

    @given(tabs())
    @settings(max_examples=100, deadline=None)
    def test_settlement_count_bounded(self, tab):
        """PROPERTY: Greedy matching needs fewer payments than users, plus splits."""
        settlements = tab.balance_transactions()
        # Each settlement either closes a debt or exhausts a credit.
        assert len(settlements) <= max(len(tab.users) * 2 - 1, 0)
