"""Live squad snapshots from a Firestore listener."""

from __future__ import annotations

import logging
import queue
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from shopsquad.core.constants import PARTIES_COLLECTION

from .models import Party

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

HEARTBEAT = object()
_CLOSED = object()


class PartySubscription:
    """Turns ``on_snapshot`` pushes into an iterator of full squad documents.

    Iterating opens the listener; ``close()`` detaches it and ends the
    iteration. A closed subscription can be iterated again, which re-attaches.

        with PartySubscription(db, party_id) as sub:
            for party in sub.snapshots(heartbeat=15):
                ...
    """

    def __init__(self, db: Client, party_id: str) -> None:
        self.party_id = party_id
        self._ref = db.collection(PARTIES_COLLECTION).document(party_id)
        self._queue: queue.Queue[Any] = queue.Queue()
        self._watch: Any = None

    @property
    def is_open(self) -> bool:
        """Return True while the listener is attached."""
        return self._watch is not None

    def _on_snapshot(self, doc_snapshots: list[Any], changes: Any, read_time: Any) -> None:
        # Runs on the listener's background thread.
        for doc in doc_snapshots:
            if doc.exists:
                party = doc.to_dict() or {}
                party["id"] = doc.id
            else:
                party = {"id": self.party_id, "deleted": True}
            self._queue.put(party)

    def open(self) -> PartySubscription:
        """Attach the listener if it is not attached yet."""
        if self._watch is None:
            # Drop anything left over from a previous run.
            self._queue = queue.Queue()
            self._watch = self._ref.on_snapshot(self._on_snapshot)
            logger.debug(f"Subscribed to squad {self.party_id}")
        return self

    def close(self) -> None:
        """Detach the listener and wake any waiting iterator."""
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None
            logger.debug(f"Unsubscribed from squad {self.party_id}")
        self._queue.put(_CLOSED)

    def wake(self) -> None:
        """Make a waiting iterator yield ``HEARTBEAT`` right away."""
        if self._watch is not None:
            self._queue.put(HEARTBEAT)

    def snapshots(self, heartbeat: float | None = None) -> Iterator[Party | Any]:
        """Yield each squad snapshot as it arrives.

        With ``heartbeat`` set, ``HEARTBEAT`` is yielded whenever that many
        seconds pass without a snapshot.
        """
        self.open()
        while True:
            try:
                item = self._queue.get(timeout=heartbeat)
            except queue.Empty:
                yield HEARTBEAT
                continue
            if item is _CLOSED:
                return
            yield item

    def __iter__(self) -> Iterator[Party | Any]:
        return self.snapshots()

    def __enter__(self) -> PartySubscription:
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
