"""
Referral Network — Statistics & Leaderboard
=============================================

Read-only aggregation over one published snapshot. Rankings break ties
by registration order so repeated calls return identical orderings.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Union

from referral_network.errors import ValidationError
from referral_network.graph import direct_referrals
from referral_network.invitations import invitation_stats
from referral_network.store import NetworkStore
from scoring.models import LeaderboardEntry, LeaderboardType, NetworkStats

logger = logging.getLogger("referral_network.stats")


class NetworkStatistics:
    def __init__(self, store: NetworkStore) -> None:
        self.store = store

    def network_stats(self) -> NetworkStats:
        state = self.store.snapshot()
        total = len(state.identities)
        referral_sum = sum((s.referral_score for s in state.scores.values()), Decimal(0))
        average = referral_sum / total if total else Decimal(0)

        return NetworkStats(
            total_identities=total,
            active_identities=sum(1 for i in state.identities.values() if i.active),
            total_wallets=len(state.wallets),
            total_referral_edges=len(state.edges),
            total_credit_events=len(state.credit_events),
            total_rewards_distributed=len(state.rewards),
            average_referral_score=average,
            invitations=invitation_stats(state, self.store.now()),
        )

    def leaderboard(
        self,
        board: Union[LeaderboardType, str] = LeaderboardType.SCORE,
        limit: Optional[int] = None,
    ) -> list[LeaderboardEntry]:
        try:
            board = LeaderboardType(board)
        except ValueError:
            raise ValidationError(f"Unknown leaderboard type: {board!r}") from None
        if limit is not None and limit < 1:
            raise ValidationError("limit must be positive")

        state = self.store.snapshot()
        rows = []
        for identity in state.identities.values():
            if not identity.active:
                continue
            score = state.scores[identity.identity_id]
            referrals = len(direct_referrals(state, identity.identity_id))
            metric = score.composite_score if board == LeaderboardType.SCORE else referrals
            rows.append((metric, identity, score, referrals))

        rows.sort(key=lambda r: (-r[0], r[1].created_at, r[1].sequence))
        if limit is not None:
            rows = rows[:limit]

        return [
            LeaderboardEntry(
                rank=rank,
                identity_id=identity.identity_id,
                email=identity.email,
                display_name=identity.display_name,
                composite_score=score.composite_score,
                onchain_score=score.onchain_score,
                referral_score=score.referral_score,
                direct_referrals=referrals,
                created_at=identity.created_at,
            )
            for rank, (_, identity, score, referrals) in enumerate(rows, start=1)
        ]
