"""
Client-side state: the ordered collection of confirmed investments.

One :class:`InvestmentState` exists per client session.  It only ever holds
records the backend has confirmed; the controller decides when to mutate it.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from invtracker.schemas.investment import InvestmentResponse

logger = logging.getLogger(__name__)

Snapshot = Tuple[InvestmentResponse, ...]
Listener = Callable[[Snapshot], None]


class InvestmentState:
    """
    Ordered, id-unique collection of investments.

    Every mutation is synchronous and total: none of them raise for an
    unknown or duplicate id.  Listeners registered with :meth:`subscribe`
    receive the new snapshot after each mutation.
    """

    def __init__(self) -> None:
        self._records: List[InvestmentResponse] = []
        self._listeners: List[Listener] = []

    # ── Read access ──

    @property
    def investments(self) -> Snapshot:
        return tuple(self._records)

    def get(self, investment_id: str) -> Optional[InvestmentResponse]:
        index = self._index_of(investment_id)
        return None if index is None else self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[InvestmentResponse]:
        return iter(self.investments)

    def __contains__(self, investment_id: object) -> bool:
        return isinstance(investment_id, str) and self._index_of(investment_id) is not None

    # ── Mutations ──

    def replace_all(self, records: Iterable[InvestmentResponse]) -> None:
        """
        Rebuild the collection from ``records``.

        A repeated id keeps the position of its first occurrence and the
        value of its last.
        """
        ordered: List[InvestmentResponse] = []
        positions: dict[str, int] = {}
        for record in records:
            if record.id in positions:
                ordered[positions[record.id]] = record
            else:
                positions[record.id] = len(ordered)
                ordered.append(record)
        self._records = ordered
        self._notify()

    def append(self, record: InvestmentResponse) -> None:
        """Add ``record`` at the end, or replace it in place if its id is present."""
        index = self._index_of(record.id)
        if index is None:
            self._records.append(record)
        else:
            self._records[index] = record
        self._notify()

    def remove_by_id(self, investment_id: str) -> None:
        index = self._index_of(investment_id)
        if index is None:
            return
        del self._records[index]
        self._notify()

    def replace_by_id(self, record: InvestmentResponse) -> None:
        """Swap in ``record`` where its id sits; unknown ids are ignored."""
        index = self._index_of(record.id)
        if index is None:
            logger.debug("replace_by_id ignored for absent investment %s", record.id)
            return
        self._records[index] = record
        self._notify()

    # ── Change notification ──

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.investments
        for listener in list(self._listeners):
            listener(snapshot)

    def _index_of(self, investment_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == investment_id:
                return index
        return None
