"""
expense.py - Shared Expenses and Their Ledger Transactions

An Expense is a single cost paid by one user and shared by a list of users.
It derives two transactions, both dated and described like the expense:

    Actual transaction (who really paid):
        payer account        -amount
        category account     balancing leg

    Shared transaction (fair division, regardless of who paid):
        each participant     -(amount / number of participants)
        category account     balancing leg

Both net to zero by construction: the balancing leg takes the negated sum of
the other postings, including any residue left by the division.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple, TYPE_CHECKING

from .core import ExchangeRate, Money, Posting, Transaction, require_text

if TYPE_CHECKING:
    from .tab import Tab


UserID = int
ExpenseID = int
ExpenseCategory = str


@dataclass(frozen=True, slots=True)
class Expense:
    """
    An expense paid by `paid_by` on `date`, shared by `shared_by`.

    Attributes:
        id: Identifier of this expense, unique within a tab.
        description: What the expense was for.
        category: Category the cost is attributed to; one ledger account per category.
        date: Date the expense was incurred.
        paid_by: Id of the user who paid.
        shared_by: Ids of the users sharing the cost (non-empty, no duplicates).
        amount: Total amount paid (positive).
        exchange_rate: Converts `amount` into the tab's working currency, if they differ.
    """
    id: ExpenseID
    description: str
    category: ExpenseCategory
    date: date
    paid_by: UserID
    shared_by: Tuple[UserID, ...]
    amount: Money
    exchange_rate: Optional[ExchangeRate] = None

    def __post_init__(self):
        shared_by = tuple(self.shared_by)
        object.__setattr__(self, 'shared_by', shared_by)
        if not shared_by:
            raise ValueError(f"Expense {self.id} must be shared by at least one user")
        if len(set(shared_by)) != len(shared_by):
            raise ValueError(f"Expense {self.id} lists a sharing user more than once")
        require_text(self.category, f"Expense {self.id} category")
        if not isinstance(self.amount, Money):
            raise ValueError(f"Expense amount must be Money, got {type(self.amount)}")
        if self.amount.amount <= Decimal("0"):
            raise ValueError(f"Expense {self.id} amount must be positive, got {self.amount}")

    @property
    def share(self) -> Money:
        """Each participant's share of the amount, before conversion."""
        return self.amount.div_int(len(self.shared_by))

    def actual_transaction(self, tab: Tab) -> Transaction:
        """
        The transaction where `paid_by` paid the whole amount.

        Raises:
            UserAccountDoesNotExistOnTab: If the payer has no account on the tab
            NoExpenseCategoryAccountOnTab: If the category has no account on the tab
        """
        return Transaction(
            description=self.description,
            date=self.date,
            postings=(
                Posting(
                    tab.get_user_account(self.paid_by).id,
                    self.amount.neg(),
                    self.exchange_rate,
                ),
                Posting(
                    tab.get_expense_category_account(self.category).id,
                    None,
                    self.exchange_rate,
                ),
            ),
        )

    def shared_transaction(self, tab: Tab) -> Transaction:
        """
        The transaction where every user in `shared_by` pays an equal share.

        Raises:
            UserAccountDoesNotExistOnTab: If a sharing user has no account on the tab
            NoExpenseCategoryAccountOnTab: If the category has no account on the tab
        """
        divided = self.share.neg()
        postings: List[Posting] = [
            Posting(tab.get_user_account(user_id).id, divided, self.exchange_rate)
            for user_id in self.shared_by
        ]
        postings.append(Posting(
            tab.get_expense_category_account(self.category).id,
            None,
            self.exchange_rate,
        ))
        return Transaction(
            description=self.description,
            date=self.date,
            postings=tuple(postings),
        )
