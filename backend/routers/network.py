"""
Backend Router — Network Statistics
======================================

GET /network/stats             — Totals and averages over the network
GET /network/leaderboard       — Ranking by composite score or referrals
GET /network/invitation-stats  — Invitation counts by status
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.config import get_engine, http_error
from referral_network.engine import CreditNetworkEngine
from scoring.models import InvitationStats, LeaderboardEntry, LeaderboardType, NetworkStats

logger = logging.getLogger("backend.network")
router = APIRouter(prefix="/network", tags=["Network"])


@router.get("/stats", response_model=NetworkStats)
def get_network_stats(engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.get_network_stats()
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
def get_leaderboard(
    type: LeaderboardType = Query(default=LeaderboardType.SCORE),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    engine: CreditNetworkEngine = Depends(get_engine),
):
    try:
        return engine.get_leaderboard(type, limit)
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/invitation-stats", response_model=InvitationStats)
def get_invitation_stats(engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.get_invitation_stats()
    except Exception as exc:
        raise http_error(exc) from exc
