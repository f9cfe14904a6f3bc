"""
Referral Network — Referral Forest
====================================

Parent-pointer forest over identities: ``edges`` maps each referee to
its single inbound edge, ``children`` lists each referrer's direct
referrals in acceptance order. Walks are iterative and bounded by the
number of identities.
"""

from __future__ import annotations

import logging
from typing import Optional

from referral_network.errors import AlreadyReferred, ConflictError, SelfReferral
from referral_network.store import NetworkState
from scoring.models import ReferralEdge

logger = logging.getLogger("referral_network.graph")


def referrer_of(state: NetworkState, identity_id: str) -> Optional[str]:
    edge = state.edges.get(identity_id)
    return edge.referrer_id if edge else None


def direct_referrals(state: NetworkState, identity_id: str) -> tuple[str, ...]:
    return state.children.get(identity_id, ())


def ancestors(state: NetworkState, identity_id: str) -> list[str]:
    """Ancestors nearest-first: [direct referrer, its referrer, ..., root]."""
    chain: list[str] = []
    limit = len(state.identities)
    current = referrer_of(state, identity_id)
    while current is not None:
        chain.append(current)
        if len(chain) > limit:
            raise RuntimeError(f"Referral chain of {identity_id} does not terminate")
        current = referrer_of(state, current)
    return chain


def referral_path(state: NetworkState, identity_id: str) -> list[str]:
    """Root-first path ending with ``identity_id``; depth is len - 1."""
    path = ancestors(state, identity_id)
    path.reverse()
    path.append(identity_id)
    return path


def attach_edge(
    state: NetworkState,
    referrer_id: str,
    referee_id: str,
    now: int,
    token: Optional[str] = None,
) -> ReferralEdge:
    """Insert referrer → referee, keeping one inbound edge and no cycles."""
    if referrer_id == referee_id:
        raise SelfReferral("An identity cannot refer itself")
    if referee_id in state.edges:
        raise AlreadyReferred(f"{referee_id} already has a referrer")
    if referee_id in ancestors(state, referrer_id):
        raise ConflictError(f"Edge {referrer_id} → {referee_id} would create a cycle")

    edge = ReferralEdge(
        referrer_id=referrer_id,
        referee_id=referee_id,
        created_at=now,
        token=token,
    )
    state.edges[referee_id] = edge
    state.children[referrer_id] = state.children.get(referrer_id, ()) + (referee_id,)

    logger.info("Referral edge %s → %s", referrer_id[:12] + "…", referee_id[:12] + "…")
    return edge
