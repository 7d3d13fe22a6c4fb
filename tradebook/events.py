"""
events.py
---------

In-process change feed. Stores publish a ``TradeChange`` after every
successful write; the web layer (or anything else) subscribes and re-reads
the data it shows. The analytics functions know nothing about this.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True)
class TradeChange:
    action: str                 # INSERT / UPDATE / DELETE
    table: str
    owner_id: str
    record_id: Optional[str]


Callback = Callable[[TradeChange], None]


class ChangeFeed:
    """Thread-safe list of subscribers, optionally filtered by owner."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._subscribers: List[Tuple[Callback, Optional[str]]] = []

    def subscribe(self, callback: Callback, owner_id: Optional[str] = None) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        entry = (callback, owner_id)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, change: TradeChange) -> None:
        with self._lock:
            targets = list(self._subscribers)
        for callback, owner_id in targets:
            if owner_id is not None and owner_id != change.owner_id:
                continue
            try:
                callback(change)
            except Exception:
                # subscriber errors are logged, never raised to the writer
                logger.exception("change feed subscriber failed for %s %s", change.action, change.table)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
