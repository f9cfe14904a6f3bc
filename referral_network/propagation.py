"""
Referral Network — Credit Events & Reward Propagation
=======================================================

A credit event adjusts one score component of its subject and cascades
a decayed share of the change to every ancestor in the referral forest:

    depth 1   → score_change × primary_rate   (direct referrer)
    depth ≥ 2 → score_change × deep_rate      (symbolic trickle)

Negative changes propagate as penalties with the same decay. The event,
the adjustments, every reward, and every recomputed composite are
published in one store transaction.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel

from referral_network.errors import ValidationError
from referral_network.graph import ancestors
from referral_network.registry import require_active, require_identity
from referral_network.store import NetworkStore
from scoring.composite import recompute
from scoring.models import (
    CreditEvent,
    CreditEventType,
    EngineConfig,
    EventPolicy,
    ReferralReward,
    ScoreCategory,
    ScoreRecord,
)

logger = logging.getLogger("referral_network.propagation")


class PropagationResult(BaseModel):
    event: CreditEvent
    rewards: list[ReferralReward] = []
    scores: list[ScoreRecord] = []     # subject first, then ancestors near-to-far


def parse_event_type(event_type: Union[CreditEventType, str]) -> CreditEventType:
    if isinstance(event_type, CreditEventType):
        return event_type
    try:
        return CreditEventType(str(event_type).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown credit event type: {event_type!r}") from None


def resolve_change(policy: EventPolicy, event_type: CreditEventType, score_change: Optional[int]) -> int:
    """Apply the event type's magnitude policy to a requested change."""
    if score_change is None:
        return policy.default_change
    if isinstance(score_change, bool) or not isinstance(score_change, int):
        raise ValidationError("score_change must be an integer")
    if score_change == 0:
        raise ValidationError("score_change must be non-zero")
    if (score_change > 0) != policy.is_positive:
        sign = "positive" if policy.is_positive else "negative"
        raise ValidationError(f"{event_type.value} requires a {sign} score change")
    if abs(score_change) > policy.max_magnitude:
        raise ValidationError(
            f"{event_type.value} score change is capped at ±{policy.max_magnitude}"
        )
    return score_change


class CreditEventProcessor:
    """Records credit events and propagates referral rewards."""

    def __init__(self, store: NetworkStore, config: EngineConfig) -> None:
        self.store = store
        self.config = config

    def apply_credit_event(
        self,
        identity_id: str,
        event_type: Union[CreditEventType, str],
        score_change: Optional[int] = None,
        description: str = "",
    ) -> PropagationResult:
        event_type = parse_event_type(event_type)
        policy = self.config.policy_for(event_type)
        change = resolve_change(policy, event_type, score_change)
        weights = self.config.weights

        with self.store.transaction() as state:
            require_active(state, identity_id)
            now = self.store.now()

            event = CreditEvent(
                event_id=state.next_event_id,
                identity_id=identity_id,
                event_type=event_type,
                category=policy.category,
                score_change=change,
                description=description or event_type.value,
                timestamp=now,
            )
            state.next_event_id += 1
            state.credit_events.append(event)

            # 1. subject; recompute saturates the adjustment at the component bounds
            record = state.scores[identity_id]
            if policy.category == ScoreCategory.ON_CHAIN:
                update = {"onchain_adjustment": record.onchain_adjustment + change}
            else:
                update = {"offchain_adjustment": record.offchain_adjustment + change}
            record = recompute(record.model_copy(update=update), weights, now)
            state.scores[identity_id] = record
            touched = [record]

            # 2. ancestors, nearest first
            rewards: list[ReferralReward] = []
            for depth, ancestor_id in enumerate(ancestors(state, identity_id), start=1):
                rate = self.config.decay_rate(depth)
                amount = Decimal(change) * rate
                reward = ReferralReward(
                    event_id=event.event_id,
                    origin_id=identity_id,
                    referrer_id=ancestor_id,
                    depth=depth,
                    rate=rate,
                    amount=amount,
                    timestamp=now,
                )
                rewards.append(reward)

                ancestor = state.scores[ancestor_id]
                ancestor = ancestor.model_copy(
                    update={"referral_score": ancestor.referral_score + amount}
                )
                ancestor = recompute(ancestor, weights, now)
                state.scores[ancestor_id] = ancestor
                touched.append(ancestor)

            state.rewards.extend(rewards)

        logger.info(
            "Credit event #%d %s (%+d) on %s — propagated to %d ancestor(s)",
            event.event_id, event_type.value, change, identity_id[:12] + "…", len(rewards),
        )
        return PropagationResult(event=event, rewards=rewards, scores=touched)

    def list_credit_events(self, identity_id: str) -> list[CreditEvent]:
        state = self.store.snapshot()
        require_identity(state, identity_id)
        return [e for e in state.credit_events if e.identity_id == identity_id]

    def list_rewards(self, identity_id: str) -> list[ReferralReward]:
        """Rewards and penalties received by ``identity_id`` as a referrer."""
        state = self.store.snapshot()
        require_identity(state, identity_id)
        return [r for r in state.rewards if r.referrer_id == identity_id]
