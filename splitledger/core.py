"""
Core types and pure functions for the split ledger.

This module provides the foundational data structures for the ledger engine:
1. Monetary values: Money (Decimal amount tagged with a currency) and ExchangeRate
2. Accounts: Account, AccountStatus, AccountState
3. Actions: Posting, Transaction, EditAccountStatus, Program
4. Exceptions: LedgerError and domain-specific error types
5. Pure helpers: sum_account_states

Nothing in this module mutates program state. ProgramState (program.py) is
the only place balances change.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation, getcontext
from enum import Enum
from typing import (
    Dict, List, Optional, Iterable, Mapping, Tuple, Union
)


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# All money arithmetic is Decimal. The global context is configured once at
# import time so that every program execution rounds identically.
#
# PRECONDITION: No other code should modify the global Decimal context.
#
_LEDGER_DECIMAL_CONTEXT = getcontext()
_LEDGER_DECIMAL_CONTEXT.prec = 50
_LEDGER_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Amounts whose difference is below this threshold are treated as equal.
# Absorbs the residue left by repeated division among participants.
MONEY_EPSILON = Decimal("1e-6")

# Scale and rounding used by Money.div_int. Applied identically to every
# currency so that shares of the same expense are always computed the same way.
DIVISION_DECIMAL_PLACES = 12
DIVISION_ROUNDING = ROUND_HALF_EVEN


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class CurrencyMismatch(LedgerError):
    """Raised when arithmetic is attempted between two different currencies."""

    def __init__(self, left: str, right: str, operation: str = "combine"):
        self.left = left
        self.right = right
        super().__init__(f"Cannot {operation} {left} with {right}")


class InvalidAccountStatus(LedgerError):
    """Raised when a transaction posts to an account that is not open."""

    def __init__(self, account_id: str, status: 'AccountStatus'):
        self.account_id = account_id
        self.status = status
        super().__init__(f"Account {account_id} has invalid status {status.value}")


class MissingAccountState(LedgerError):
    """Raised when an action references an account that has no state."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"No account state for account {account_id}")


class DuplicateAccount(LedgerError):
    """Raised when two accounts with the same id are given to one program state."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Duplicate account id {account_id}")


class InvalidTransaction(LedgerError):
    """Raised when a transaction is malformed or does not balance."""
    pass


class ConservationViolation(LedgerError):
    """Raised when balances fail to sum to zero, or settlements fail to reconcile."""
    pass


# ============================================================================
# MONETARY VALUES
# ============================================================================

def _to_decimal(value: Union[Decimal, int, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise ValueError(f"Money amounts must not be float, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid money amount {value!r}") from None


def require_text(value: object, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string, got {value!r}")


@dataclass(frozen=True, slots=True)
class Money:
    """
    An immutable Decimal amount tagged with a currency code.

    Arithmetic between two Money values requires identical currencies and
    raises CurrencyMismatch otherwise. Money never silently converts.

    Attributes:
        amount: The Decimal amount (must be finite).
        currency: Currency code, e.g. "AUD".
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            raise ValueError(f"Money amount must be Decimal, got {type(self.amount)}")
        if self.amount.is_infinite() or self.amount.is_nan():
            raise ValueError(f"Money amount must be finite, got {self.amount}")
        require_text(self.currency, "Money currency")

    @classmethod
    def of(cls, amount: Union[Decimal, int, str], currency: str) -> Money:
        """Build Money from a Decimal, int or numeric string."""
        return cls(_to_decimal(amount), currency)

    @classmethod
    def parse(cls, text: str) -> Money:
        """
        Parse "<amount> <currency>", e.g. "300.0 AUD".

        Raises:
            ValueError: If the text is not in that form
        """
        parts = text.split()
        if len(parts) != 2:
            raise ValueError(f"Expected '<amount> <currency>', got {text!r}")
        return cls.of(parts[0], parts[1])

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(Decimal("0"), currency)

    def _check_currency(self, other: Money, operation: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot {operation} Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatch(self.currency, other.currency, operation)

    def add(self, other: Money) -> Money:
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def sub(self, other: Money) -> Money:
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def neg(self) -> Money:
        return Money(-self.amount, self.currency)

    def abs(self) -> Money:
        return Money(abs(self.amount), self.currency)

    def div_int(self, divisor: int) -> Money:
        """
        Divide by a positive integer.

        The quotient is quantized to DIVISION_DECIMAL_PLACES using
        DIVISION_ROUNDING. Any remainder is not redistributed here; the
        balancing posting of the enclosing transaction absorbs it.
        """
        if not isinstance(divisor, int) or isinstance(divisor, bool):
            raise TypeError(f"divisor must be int, got {type(divisor).__name__}")
        if divisor <= 0:
            raise ValueError(f"divisor must be positive, got {divisor}")
        quantizer = Decimal(10) ** -DIVISION_DECIMAL_PLACES
        quotient = (self.amount / Decimal(divisor)).quantize(quantizer, rounding=DIVISION_ROUNDING)
        return Money(quotient, self.currency)

    def eq_approx(self, other: Money, epsilon: Decimal = MONEY_EPSILON) -> bool:
        """True if both values share a currency and differ by at most epsilon."""
        self._check_currency(other, "compare")
        return abs(self.amount - other.amount) <= epsilon

    def is_zero(self, epsilon: Decimal = MONEY_EPSILON) -> bool:
        return abs(self.amount) <= epsilon

    def is_positive(self, epsilon: Decimal = MONEY_EPSILON) -> bool:
        return self.amount > epsilon

    def is_negative(self, epsilon: Decimal = MONEY_EPSILON) -> bool:
        return self.amount < -epsilon

    def __add__(self, other: Money) -> Money:
        return self.add(other)

    def __sub__(self, other: Money) -> Money:
        return self.sub(other)

    def __neg__(self) -> Money:
        return self.neg()

    def __lt__(self, other: Money) -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    def __repr__(self) -> str:
        return f"Money({self.amount} {self.currency})"


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """
    Rates for converting Money between currencies.

    Each rate is the number of units of that currency per one unit of
    `base`. With no base, conversion crosses between two listed currencies.

    Attributes:
        rates: Tuple of (currency, rate) pairs. A mapping is accepted and frozen.
        base: Currency the rates are quoted against, if any.
        date: Date the rates were observed.
    """
    rates: Tuple[Tuple[str, Decimal], ...]
    base: Optional[str] = None
    date: Optional[date] = None

    def __post_init__(self):
        pairs = self.rates.items() if isinstance(self.rates, Mapping) else self.rates
        frozen = tuple(sorted((currency, _to_decimal(rate)) for currency, rate in pairs))
        for currency, rate in frozen:
            if rate <= 0 or rate.is_nan() or rate.is_infinite():
                raise ValueError(f"Exchange rate for {currency} must be positive, got {rate}")
        object.__setattr__(self, 'rates', frozen)

    def rate_for(self, currency: str) -> Decimal:
        for code, rate in self.rates:
            if code == currency:
                return rate
        raise CurrencyMismatch(currency, self.base or "?", "find a rate for")

    def convert(self, money: Money, target: str) -> Money:
        """
        Convert money into the target currency.

        Raises:
            CurrencyMismatch: If no rate links the two currencies
        """
        if money.currency == target:
            return money
        if self.base is not None and money.currency == self.base:
            return Money(money.amount * self.rate_for(target), target)
        if self.base is not None and target == self.base:
            return Money(money.amount / self.rate_for(money.currency), target)
        try:
            source_rate = self.rate_for(money.currency)
            target_rate = self.rate_for(target)
        except CurrencyMismatch:
            raise CurrencyMismatch(money.currency, target, "convert") from None
        return Money(money.amount / source_rate * target_rate, target)


# ============================================================================
# ACCOUNTS
# ============================================================================

class AccountStatus(Enum):
    """Whether an account may currently receive postings."""
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class Account:
    """
    An addressable, balance-holding entity.

    Attributes:
        id: Unique identifier, never reused within a program state.
        currency: Currency the account's balance is held in.
        name: Optional display name.
        category: Optional grouping tag (e.g. "Users", "Expense").
    """
    id: str
    currency: str
    name: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self):
        require_text(self.id, "Account id")
        require_text(self.currency, "Account currency")


@dataclass(slots=True)
class AccountState:
    """
    Mutable runtime record of one account inside a program state.

    Attributes:
        account: The account this state belongs to (shared, read-only).
        amount: Current balance in the account's currency.
        status: OPEN or CLOSED. Closed balances never change.
    """
    account: Account
    amount: Money
    status: AccountStatus = AccountStatus.OPEN

    def eq_approx(self, other: AccountState, epsilon: Decimal = MONEY_EPSILON) -> bool:
        return (
            self.account.id == other.account.id
            and self.status == other.status
            and self.amount.eq_approx(other.amount, epsilon)
        )

    def copy(self) -> AccountState:
        return AccountState(self.account, self.amount, self.status)


def sum_account_states(
    states: Mapping[str, AccountState],
    currency: str,
    status: Optional[AccountStatus] = None,
    exchange_rate: Optional[ExchangeRate] = None,
) -> Money:
    """
    Sum the balances of the given account states.

    States are visited in sorted id order so accumulation is deterministic.

    Args:
        states: Mapping of account id to state
        currency: Currency of the result
        status: If given, only states with this status are summed
        exchange_rate: Converts balances held in other currencies into `currency`

    Raises:
        CurrencyMismatch: If a state is held in another currency and no
            exchange rate (or no rate for that currency) is given
    """
    total = Money.zero(currency)
    for account_id in sorted(states):
        state = states[account_id]
        if status is not None and state.status != status:
            continue
        amount = state.amount
        if amount.currency != currency and exchange_rate is not None:
            amount = exchange_rate.convert(amount, currency)
        total = total.add(amount)
    return total


# ============================================================================
# ACTIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Posting:
    """
    One leg of a transaction.

    Attributes:
        account_id: The account this leg posts to.
        amount: Fixed amount, or None for the balancing leg.
        exchange_rate: Converts `amount` into the account's currency when they differ.
    """
    account_id: str
    amount: Optional[Money] = None
    exchange_rate: Optional[ExchangeRate] = None

    def __post_init__(self):
        require_text(self.account_id, "Posting account_id")

    @property
    def is_balancing(self) -> bool:
        return self.amount is None

    def amount_in(self, currency: str) -> Money:
        """
        Return this posting's fixed amount expressed in `currency`.

        Raises:
            CurrencyMismatch: If conversion is needed and no exchange rate is present
        """
        if self.amount is None:
            raise InvalidTransaction(f"Posting to {self.account_id} has no fixed amount")
        if self.amount.currency == currency:
            return self.amount
        if self.exchange_rate is None:
            raise CurrencyMismatch(self.amount.currency, currency, "post")
        return self.exchange_rate.convert(self.amount, currency)


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An atomic, dated group of postings.

    At most one posting may omit its amount. That balancing posting receives
    the negated sum of all the others, so every transaction nets to zero.

    Attributes:
        description: Optional human-readable description.
        date: Date of the transaction.
        postings: Ordered postings. A list is accepted and frozen to a tuple.
    """
    description: Optional[str]
    date: date
    postings: Tuple[Posting, ...]

    def __post_init__(self):
        postings = tuple(self.postings)
        object.__setattr__(self, 'postings', postings)
        if len(postings) < 2:
            raise InvalidTransaction(
                f"Transaction {self.description!r} must have at least two postings, got {len(postings)}"
            )
        balancing = [p for p in postings if p.is_balancing]
        if len(balancing) > 1:
            raise InvalidTransaction(
                f"Transaction {self.description!r} has {len(balancing)} postings "
                f"without an amount; at most one is allowed"
            )
        account_ids = [p.account_id for p in postings]
        if len(set(account_ids)) != len(account_ids):
            raise InvalidTransaction(
                f"Transaction {self.description!r} posts to the same account twice"
            )

    @classmethod
    def simple(
        cls,
        description: Optional[str],
        date: date,
        from_account: str,
        to_account: str,
        amount: Money,
        exchange_rate: Optional[ExchangeRate] = None,
    ) -> Transaction:
        """Transfer `amount` from one account to another."""
        return cls(
            description=description,
            date=date,
            postings=(
                Posting(from_account, amount.neg(), exchange_rate),
                Posting(to_account, None, exchange_rate),
            ),
        )

    @property
    def balancing_posting(self) -> Optional[Posting]:
        for posting in self.postings:
            if posting.is_balancing:
                return posting
        return None

    def get_posting(self, account_id: str) -> Optional[Posting]:
        for posting in self.postings:
            if posting.account_id == account_id:
                return posting
        return None

    def resolve(self, currencies: Mapping[str, str]) -> Tuple[Tuple[str, Money], ...]:
        """
        Compute the amount each posting adds to its account.

        Args:
            currencies: Mapping of account id to that account's currency

        Returns:
            (account_id, amount) pairs in posting order, amounts in each
            account's currency. The balancing posting's amount is inferred.

        Raises:
            MissingAccountState: If a posting's account is not in `currencies`
            CurrencyMismatch: If a conversion is needed but impossible
            InvalidTransaction: If there is no balancing posting and the
                fixed amounts do not sum to zero
        """
        for posting in self.postings:
            if posting.account_id not in currencies:
                raise MissingAccountState(posting.account_id)

        balancing = self.balancing_posting
        resolved: List[Tuple[str, Money]] = []
        for posting in self.postings:
            if posting.is_balancing:
                balance_currency = currencies[posting.account_id]
                total = Money.zero(balance_currency)
                for other in self.postings:
                    if other is not posting:
                        total = total.add(other.amount_in(balance_currency))
                resolved.append((posting.account_id, total.neg()))
            else:
                resolved.append((posting.account_id, posting.amount_in(currencies[posting.account_id])))

        if balancing is None:
            total = Money.zero(resolved[0][1].currency)
            for _, amount in resolved:
                total = total.add(amount)
            if not total.is_zero():
                raise InvalidTransaction(
                    f"Transaction {self.description!r} does not balance: sum is {total}"
                )
        return tuple(resolved)

    def __repr__(self) -> str:
        return f"Transaction({self.description!r} {self.date.isoformat()}, {len(self.postings)} postings)"


@dataclass(frozen=True, slots=True)
class EditAccountStatus:
    """Overwrite an account's status. Balances are untouched."""
    account_id: str
    new_status: AccountStatus
    date: Optional[date] = None

    def __repr__(self) -> str:
        return f"EditAccountStatus({self.account_id} -> {self.new_status.value})"


Action = Union[Transaction, EditAccountStatus]


@dataclass(frozen=True, slots=True)
class Program:
    """An ordered list of actions, executed left to right."""
    actions: Tuple[Action, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'actions', tuple(self.actions))

    @classmethod
    def of(cls, *groups: Iterable[Action]) -> Program:
        """Concatenate several action sequences into one program."""
        actions: List[Action] = []
        for group in groups:
            actions.extend(group)
        return cls(tuple(actions))

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self):
        return iter(self.actions)


def account_currencies(accounts: Iterable[Account]) -> Dict[str, str]:
    """Map each account id to its currency."""
    return {account.id: account.currency for account in accounts}
