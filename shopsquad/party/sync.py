"""Authoritative remote squad state plus locally pending mutations.

Snapshots replace the remote state; pending mutations stay queued until a
snapshot shows them applied, or until their write fails and they are
discarded.

Open squad streams share one ``PartyState`` per squad through ``watch``.
Writes made by this process register themselves with ``pending_write`` so
those streams show them before the listener delivers the confirming snapshot.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .models import Message, Party, Product

logger = logging.getLogger(__name__)


@dataclass
class PendingMutation:
    """A local change not yet confirmed by a snapshot."""

    apply: Callable[[Party], Party]
    is_confirmed: Callable[[Party], bool]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class PartyState:
    """Two-layer view of one squad."""

    def __init__(self, remote: Party | None = None) -> None:
        self.remote: Party = remote or {}
        self.pending: list[PendingMutation] = []
        # Bumped on every change so streams know when to resend.
        self.version = 0
        self._lock = threading.Lock()
        self._listeners: list[Callable[[], None]] = []

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Call ``listener`` whenever a pending mutation is queued or dropped."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            self._listeners = [fn for fn in self._listeners if fn is not listener]

    def _changed(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener()

    def push(self, mutation: PendingMutation) -> PendingMutation:
        """Queue a local mutation; it shows in ``view()`` immediately."""
        with self._lock:
            self.pending.append(mutation)
            self.version += 1
        self._changed()
        return mutation

    def discard(self, mutation_id: str) -> None:
        """Drop a mutation whose write failed."""
        with self._lock:
            self.pending = [m for m in self.pending if m.id != mutation_id]
            self.version += 1
        self._changed()

    def apply_snapshot(self, snapshot: Party) -> Party:
        """Replace the remote state and drop mutations it confirms."""
        with self._lock:
            self.remote = snapshot
            self.pending = [m for m in self.pending if not m.is_confirmed(snapshot)]
            self.version += 1
            return self._view()

    def view(self) -> Party:
        """The remote state with pending mutations applied on top."""
        with self._lock:
            return self._view()

    def _view(self) -> Party:
        state = copy.deepcopy(self.remote)
        for mutation in self.pending:
            state = mutation.apply(state)
        return state


_registry_lock = threading.Lock()
_states: dict[str, PartyState] = {}
_watchers: dict[str, int] = {}


def state_for(party_id: str) -> PartyState | None:
    """The shared state of a squad, if any stream is watching it."""
    with _registry_lock:
        return _states.get(party_id)


@contextmanager
def watch(party_id: str) -> Iterator[PartyState]:
    """Share one ``PartyState`` between every open stream of a squad.

    The state is dropped when the last stream closes.
    """
    with _registry_lock:
        state = _states.setdefault(party_id, PartyState())
        _watchers[party_id] = _watchers.get(party_id, 0) + 1
    try:
        yield state
    finally:
        with _registry_lock:
            _watchers[party_id] -= 1
            if not _watchers[party_id]:
                del _watchers[party_id]
                del _states[party_id]


@contextmanager
def pending_write(party_id: str, mutation: PendingMutation) -> Iterator[PendingMutation]:
    """Show ``mutation`` on open streams while its write is in flight.

    Nothing is tracked when no stream watches the squad. If the write
    raises, the mutation is discarded and the error propagates.
    """
    state = state_for(party_id)
    if state is not None:
        state.push(mutation)
    try:
        yield mutation
    except Exception:
        if state is not None:
            logger.debug(f"Discarding pending change {mutation.id} for squad {party_id}")
            state.discard(mutation.id)
        raise


def _has_item(items: list | None, item_id: str | None) -> bool:
    return any(i.get("id") == item_id for i in items or [])


def add_product_mutation(product: Product) -> PendingMutation:
    """Optimistically show a product that was just added."""

    def apply(state: Party) -> Party:
        if not _has_item(state.get("products"), product.get("id")):
            state["products"] = [*(state.get("products") or []), product]
        return state

    return PendingMutation(
        apply=apply,
        is_confirmed=lambda s: _has_item(s.get("products"), product.get("id")),
    )


def remove_product_mutation(product_id: str) -> PendingMutation:
    """Optimistically hide a product that is being removed."""

    def apply(state: Party) -> Party:
        state["products"] = [
            p for p in state.get("products") or [] if p.get("id") != product_id
        ]
        return state

    return PendingMutation(
        apply=apply,
        is_confirmed=lambda s: not _has_item(s.get("products"), product_id),
    )


def message_mutation(message: Message) -> PendingMutation:
    """Optimistically append a chat message."""

    def apply(state: Party) -> Party:
        if not _has_item(state.get("messages"), message.get("id")):
            state["messages"] = [*(state.get("messages") or []), message]
        return state

    return PendingMutation(
        apply=apply,
        is_confirmed=lambda s: _has_item(s.get("messages"), message.get("id")),
    )


def status_mutation(status: str) -> PendingMutation:
    """Optimistically show a status change."""

    def apply(state: Party) -> Party:
        state["status"] = status
        return state

    return PendingMutation(
        apply=apply, is_confirmed=lambda s: s.get("status") == status
    )
