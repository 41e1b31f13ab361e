"""
persistence.py - Transport Representation and Key-Value Storage

Tabs, users and expenses are converted to plain JSON-safe dictionaries
(Decimals as strings, dates as ISO-8601) and stored through any object that
satisfies the KeyValueStore protocol. Derived state (a tab's account index)
is never written; the Tab constructor rebuilds it on load.

Key scheme:
    <path>/<tab id>      one tab document
    <collection key>     list of tab ids; each tab stored under <collection key>/<id>
"""

from __future__ import annotations
from datetime import date
from decimal import InvalidOperation
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable
from uuid import UUID
import json

from .core import ExchangeRate, LedgerError, Money
from .expense import Expense
from .tab import Tab, TabID, User


DEFAULT_TAB_PATH = "tabs"


class PersistenceError(LedgerError):
    """Raised when a stored document cannot be decoded into domain values."""
    pass


# ============================================================================
# STORE PROTOCOL
# ============================================================================

@runtime_checkable
class KeyValueStore(Protocol):
    """
    Read/write access to string values by string key.

    The concrete database lives outside this package; anything offering
    these two methods can back it.
    """

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent."""
        ...

    def put(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...


class InMemoryStore:
    """Dictionary-backed KeyValueStore for tests and embedding."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> List[str]:
        return sorted(self._data)


# ============================================================================
# TRANSPORT REPRESENTATION
# ============================================================================

def money_to_dict(money: Money) -> Dict[str, str]:
    return {'amount': str(money.amount), 'currency': money.currency}


def money_from_dict(data: Dict[str, Any]) -> Money:
    return Money.of(data['amount'], data['currency'])


def exchange_rate_to_dict(rate: ExchangeRate) -> Dict[str, Any]:
    return {
        'base': rate.base,
        'date': rate.date.isoformat() if rate.date else None,
        'rates': {currency: str(value) for currency, value in rate.rates},
    }


def exchange_rate_from_dict(data: Dict[str, Any]) -> ExchangeRate:
    return ExchangeRate(
        rates=data['rates'],
        base=data.get('base'),
        date=date.fromisoformat(data['date']) if data.get('date') else None,
    )


def user_to_dict(user: User) -> Dict[str, Any]:
    return {'id': user.id, 'name': user.name, 'email': user.email}


def user_from_dict(data: Dict[str, Any]) -> User:
    return User(id=int(data['id']), name=data['name'], email=data.get('email'))


def expense_to_dict(expense: Expense) -> Dict[str, Any]:
    return {
        'id': expense.id,
        'description': expense.description,
        'category': expense.category,
        'date': expense.date.isoformat(),
        'paid_by': expense.paid_by,
        'shared_by': list(expense.shared_by),
        'amount': money_to_dict(expense.amount),
        'exchange_rate': (
            exchange_rate_to_dict(expense.exchange_rate) if expense.exchange_rate else None
        ),
    }


def expense_from_dict(data: Dict[str, Any]) -> Expense:
    rate = data.get('exchange_rate')
    return Expense(
        id=int(data['id']),
        description=data['description'],
        category=data['category'],
        date=date.fromisoformat(data['date']),
        paid_by=int(data['paid_by']),
        shared_by=tuple(int(user_id) for user_id in data['shared_by']),
        amount=money_from_dict(data['amount']),
        exchange_rate=exchange_rate_from_dict(rate) if rate else None,
    )


def tab_to_dict(tab: Tab) -> Dict[str, Any]:
    """Transport form of a tab. The account index is omitted."""
    return {
        'id': str(tab.id),
        'name': tab.name,
        'working_currency': tab.working_currency,
        'users': [user_to_dict(user) for user in tab.users],
        'expenses': [expense_to_dict(expense) for expense in tab.expenses],
    }


def tab_from_dict(data: Dict[str, Any]) -> Tab:
    """
    Rebuild a tab (and its account index) from its transport form.

    Raises:
        PersistenceError: If the document is missing fields or holds invalid values
    """
    try:
        return Tab(
            id=UUID(data['id']),
            name=data['name'],
            working_currency=data['working_currency'],
            users=[user_from_dict(user) for user in data['users']],
            expenses=[expense_from_dict(expense) for expense in data['expenses']],
        )
    except (KeyError, TypeError, ValueError, InvalidOperation, LedgerError) as e:
        raise PersistenceError(f"Invalid tab document: {e!r}") from e


# ============================================================================
# STORAGE
# ============================================================================

def _item_key(path: Optional[str], item_id: Any) -> str:
    return f"{path}/{item_id}" if path else str(item_id)


def write_tab(store: KeyValueStore, tab: Tab, path: Optional[str] = DEFAULT_TAB_PATH) -> str:
    """Store a tab and return the key it was written under."""
    key = _item_key(path, tab.id)
    store.put(key, json.dumps(tab_to_dict(tab), sort_keys=True))
    return key


def read_tab(
    store: KeyValueStore,
    tab_id: TabID,
    path: Optional[str] = DEFAULT_TAB_PATH,
) -> Optional[Tab]:
    """
    Load a tab, or None if nothing is stored for it.

    Raises:
        PersistenceError: If the stored value is not a valid tab document
    """
    raw = store.get(_item_key(path, tab_id))
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Tab {tab_id} is not valid JSON: {e}") from e
    return tab_from_dict(data)


def write_tabs(store: KeyValueStore, tabs: List[Tab], key: str = DEFAULT_TAB_PATH) -> None:
    """Store the list of tab ids under key, and each tab under key/<id>."""
    store.put(key, json.dumps([str(tab.id) for tab in tabs]))
    for tab in tabs:
        write_tab(store, tab, path=key)


def read_tabs(store: KeyValueStore, key: str = DEFAULT_TAB_PATH) -> Optional[List[Tab]]:
    """
    Load every tab listed under key, in stored order.

    Returns:
        The tabs, or None if no list is stored under key

    Raises:
        PersistenceError: If the list or a listed tab is missing or invalid
    """
    raw = store.get(key)
    if raw is None:
        return None
    try:
        tab_ids = [UUID(tab_id) for tab_id in json.loads(raw)]
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        raise PersistenceError(f"Tab list at {key!r} is invalid: {e}") from e

    tabs: List[Tab] = []
    for tab_id in tab_ids:
        tab = read_tab(store, tab_id, path=key)
        if tab is None:
            raise PersistenceError(f"Tab {tab_id} is listed under {key!r} but not stored")
        tabs.append(tab)
    return tabs
