"""In-memory snapshot of the vault, replaced wholesale on every (re)list."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from vaultpop.agent.models import Item

logger = logging.getLogger(__name__)


class ItemStore:
    """Ordered, read-only collection of vault items.

    There are no partial updates: after any mutation the caller re-lists from
    the agent and calls `load()` again. Listeners are told about every load so
    derived state (the search index) can rebuild.
    """

    def __init__(self, items: Iterable[Item] = ()) -> None:
        self._items: tuple[Item, ...] = tuple(items)
        self._by_id: dict[str, Item] = {item.id: item for item in self._items}
        self._listeners: list[Callable[[tuple[Item, ...]], None]] = []

    def load(self, items: Iterable[Item]) -> None:
        self._items = tuple(items)
        self._by_id = {item.id: item for item in self._items}
        logger.debug("Item store loaded with %d items", len(self._items))
        for listener in self._listeners:
            listener(self._items)

    def get(self) -> tuple[Item, ...]:
        return self._items

    def find_by_id(self, item_id: str) -> Item | None:
        return self._by_id.get(item_id)

    def subscribe(self, listener: Callable[[tuple[Item, ...]], None]) -> None:
        self._listeners.append(listener)

    def __len__(self) -> int:
        return len(self._items)
