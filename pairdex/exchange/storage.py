"""
Exchange storage context.

Every piece of persisted exchange state lives in a named keyed table of an
``ExchangeStorage``.  Engine objects receive the storage handle explicitly,
so tests can build a fresh in-memory instance per case.

Writes made inside ``transaction()`` go to an overlay layer.  The layer is
merged into its parent when the body returns and thrown away when it
raises; events emitted inside the layer share its fate.

    with storage.transaction():
        storage.set("k_last", pair, 0)
        raise InvalidPath()        # the write above is discarded
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple

logger = logging.getLogger(__name__)

TABLES = (
    "liquidity_meta",     # pair -> PairMeta(account, total_supply)
    "liquidity_ledger",   # (pair, account) -> liquidity balance
    "liquidity_pairs",    # index -> pair (append-only)
    "k_last",             # pair -> reserve product after the last liquidity mutation
    "fee_meta",           # "admin" | "receiver" | "fee_point" -> value
    "foreign_ledger",     # (asset, account) -> balance
    "foreign_meta",       # asset -> total issuance
    "foreign_list",       # index -> asset (append-only)
    "native_ledger",      # account -> balance
    "native_issuance",    # "total" -> issuance
)

_DELETED = object()


class _Layer:
    """Uncommitted writes and events of one open transaction."""

    __slots__ = ("writes", "events")

    def __init__(self) -> None:
        self.writes: Dict[str, Dict[Any, Any]] = {}
        self.events: List[Any] = []


class ExchangeStorage:
    """In-memory keyed tables with nested change-set transactions."""

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[Any, Any]] = {name: {} for name in TABLES}
        self._layers: List[_Layer] = []
        self._events: List[Any] = []

    # ------------------------------------------------------------------
    # Table access
    # ------------------------------------------------------------------

    def _check(self, table: str) -> None:
        if table not in self._tables:
            raise KeyError(f"Unknown table: {table}")

    def get(self, table: str, key: Any, default: Any = None) -> Any:
        self._check(table)
        for layer in reversed(self._layers):
            writes = layer.writes.get(table)
            if writes is not None and key in writes:
                value = writes[key]
                return default if value is _DELETED else value
        return self._tables[table].get(key, default)

    def contains(self, table: str, key: Any) -> bool:
        return self.get(table, key, _DELETED) is not _DELETED

    def set(self, table: str, key: Any, value: Any) -> None:
        self._check(table)
        if self._layers:
            self._layers[-1].writes.setdefault(table, {})[key] = value
        else:
            self._tables[table][key] = value

    def delete(self, table: str, key: Any) -> None:
        self._check(table)
        if self._layers:
            self._layers[-1].writes.setdefault(table, {})[key] = _DELETED
        else:
            self._tables[table].pop(key, None)

    def items(self, table: str) -> Dict[Any, Any]:
        """Merged view of a table, including uncommitted writes."""
        self._check(table)
        merged = dict(self._tables[table])
        for layer in self._layers:
            for key, value in layer.writes.get(table, {}).items():
                if value is _DELETED:
                    merged.pop(key, None)
                else:
                    merged[key] = value
        return merged

    def count(self, table: str) -> int:
        return len(self.items(table))

    def append(self, table: str, value: Any) -> int:
        """Append to an index-keyed list table and return the new index."""
        index = self.count(table)
        self.set(table, index, value)
        return index

    def values_in_order(self, table: str) -> List[Any]:
        """Values of an index-keyed list table, by index."""
        merged = self.items(table)
        return [merged[i] for i in sorted(merged)]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def deposit_event(self, event: Any) -> None:
        if self._layers:
            self._layers[-1].events.append(event)
        else:
            self._events.append(event)

    @property
    def events(self) -> List[Any]:
        """Committed events (oldest first)."""
        return list(self._events)

    def take_events(self) -> List[Any]:
        """Return and clear committed events."""
        events, self._events = self._events, []
        return events

    # ------------------------------------------------------------------
    # Change-set transactions
    # ------------------------------------------------------------------

    @property
    def depth(self) -> int:
        return len(self._layers)

    @contextmanager
    def transaction(self) -> Iterator[ExchangeStorage]:
        """
        Run the body against an overlay layer.

        Commits into the parent layer (or the tables) on normal exit,
        discards everything on any exception and re-raises it.
        """
        layer = _Layer()
        self._layers.append(layer)
        try:
            yield self
        except BaseException:
            self._pop_layer(layer)
            logger.debug(
                "Discarded change-set: %d table(s), %d event(s)",
                len(layer.writes), len(layer.events),
            )
            raise
        self._pop_layer(layer)
        self._merge(layer)

    def _pop_layer(self, layer: _Layer) -> None:
        if not self._layers or self._layers[-1] is not layer:
            raise RuntimeError("Change-set layers closed out of order")
        self._layers.pop()

    def _merge(self, layer: _Layer) -> None:
        if self._layers:
            parent = self._layers[-1]
            for table, writes in layer.writes.items():
                parent.writes.setdefault(table, {}).update(writes)
            parent.events.extend(layer.events)
            return
        for table, writes in layer.writes.items():
            target = self._tables[table]
            for key, value in writes.items():
                if value is _DELETED:
                    target.pop(key, None)
                else:
                    target[key] = value
        self._events.extend(layer.events)

    # ------------------------------------------------------------------
    # Snapshot / restore (block revert)
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Dict[Any, Any]]:
        """Copy of the committed tables."""
        if self._layers:
            raise RuntimeError("Cannot snapshot with an open transaction")
        return {name: copy.copy(table) for name, table in self._tables.items()}

    def restore(self, snapshot: Dict[str, Dict[Any, Any]]) -> None:
        if self._layers:
            raise RuntimeError("Cannot restore with an open transaction")
        self._tables = {name: copy.copy(snapshot.get(name, {})) for name in TABLES}

    def committed_items(self) -> Iterator[Tuple[str, List[Tuple[Any, Any]]]]:
        """Committed tables in deterministic order, for state hashing."""
        for name in sorted(self._tables):
            table = self._tables[name]
            yield name, sorted(table.items(), key=lambda kv: repr(kv[0]))
