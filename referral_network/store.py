"""
Referral Network — State Store
================================

Single logical owner of identity, graph, and score state.

Writers run inside ``transaction()``: one lock, a private copy of the
state, and a single reference swap on success. An exception discards
the copy. Readers call ``snapshot()`` without locking and always see a
fully published state.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator

from scoring.models import (
    CreditEvent,
    Identity,
    Invitation,
    ReferralEdge,
    ReferralReward,
    ScoreRecord,
    Wallet,
)

logger = logging.getLogger("referral_network.store")


@dataclass
class NetworkState:
    identities: dict[str, Identity] = field(default_factory=dict)
    email_index: dict[str, str] = field(default_factory=dict)            # email -> identity_id
    wallets: dict[str, Wallet] = field(default_factory=dict)             # address -> wallet
    scores: dict[str, ScoreRecord] = field(default_factory=dict)
    invitations: dict[str, Invitation] = field(default_factory=dict)     # token -> invitation
    pending_by_email: dict[str, str] = field(default_factory=dict)       # invitee email -> token
    awaiting_registration: dict[str, str] = field(default_factory=dict)  # accepted, invitee unregistered
    edges: dict[str, ReferralEdge] = field(default_factory=dict)         # referee -> edge
    children: dict[str, tuple[str, ...]] = field(default_factory=dict)   # referrer -> referees
    credit_events: list[CreditEvent] = field(default_factory=list)
    rewards: list[ReferralReward] = field(default_factory=list)
    next_sequence: int = 1
    next_event_id: int = 1

    def copy(self) -> "NetworkState":
        """Shallow copy of every index and log.

        Records are frozen and shared, but each write still pays
        O(identities + wallets + history) to copy the containers. Fine at
        the single-process volumes this store serves; a larger deployment
        needs persistent maps and an append-only log here instead.
        """
        return NetworkState(
            identities=dict(self.identities),
            email_index=dict(self.email_index),
            wallets=dict(self.wallets),
            scores=dict(self.scores),
            invitations=dict(self.invitations),
            pending_by_email=dict(self.pending_by_email),
            awaiting_registration=dict(self.awaiting_registration),
            edges=dict(self.edges),
            children=dict(self.children),
            credit_events=list(self.credit_events),
            rewards=list(self.rewards),
            next_sequence=self.next_sequence,
            next_event_id=self.next_event_id,
        )


class NetworkStore:
    """Explicit, injectable owner of the network state.

    Usage:
        store = NetworkStore()
        with store.transaction() as state:
            state.identities[identity.identity_id] = identity
        snapshot = store.snapshot()
        store.close()
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._state = NetworkState()
        self._closed = False

    def now(self) -> int:
        return int(self._clock())

    def snapshot(self) -> NetworkState:
        return self._state

    @contextmanager
    def transaction(self) -> Iterator[NetworkState]:
        with self._lock:
            if self._closed:
                raise RuntimeError("NetworkStore is closed")
            draft = self._state.copy()
            yield draft
            self._state = draft

    def reset(self) -> None:
        """Drop all state. Only reachable from demo wiring."""
        with self._lock:
            self._state = NetworkState()
        logger.warning("Network state reset — all identities, invitations and events cleared")

    def close(self) -> None:
        with self._lock:
            self._closed = True
        logger.info("NetworkStore closed")
