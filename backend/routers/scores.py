"""
Backend Router — Scores
=========================

GET  /scores/{identity_id}          — Composite score with components
POST /scores/{identity_id}/offchain — Store an attested off-chain score
GET  /scores/wallet/{address}       — Score a single wallet (no linking)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.config import get_engine, http_error
from referral_network.engine import CreditNetworkEngine
from referral_network.registry import normalize_address
from scoring.models import ScoreRecord
from scoring.rules import credit_band

logger = logging.getLogger("backend.scores")
router = APIRouter(prefix="/scores", tags=["Scores"])


# ─────────────────────────────────────────────────────────────────────────────
# Request / Response Models
# ─────────────────────────────────────────────────────────────────────────────
class OffChainScoreRequest(BaseModel):
    score: int = Field(..., description="Attested bureau score (300–850)")
    proof_id: str = Field(..., description="Opaque attestation / proof reference")
    attested_at: Optional[int] = Field(default=None, description="Unix time of attestation")


class CompositeScoreResponse(BaseModel):
    identity_id: str
    composite_score: int
    credit_band: str
    onchain_score: int
    offchain_score: int
    referral_score: Decimal
    on_chain_weight: Decimal
    off_chain_weight: Decimal
    offchain_proof_id: Optional[str] = None
    last_updated: int


class WalletScoreResponse(BaseModel):
    address: str
    score: int


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────
@router.get("/wallet/{address}", response_model=WalletScoreResponse)
def score_wallet(address: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        address = normalize_address(address)
        return WalletScoreResponse(address=address, score=engine.score_wallet(address))
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/{identity_id}", response_model=CompositeScoreResponse)
def get_composite_score(identity_id: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        record = engine.get_composite_score(identity_id)
        weights = engine.config.weights
        return CompositeScoreResponse(
            identity_id=record.identity_id,
            composite_score=record.composite_score,
            credit_band=credit_band(record.composite_score),
            onchain_score=record.onchain_score,
            offchain_score=record.offchain_score,
            referral_score=record.referral_score,
            on_chain_weight=weights.on_chain_weight,
            off_chain_weight=weights.off_chain_weight,
            offchain_proof_id=record.offchain_proof_id,
            last_updated=record.last_updated,
        )
    except Exception as exc:
        raise http_error(exc) from exc


@router.post("/{identity_id}/offchain", response_model=ScoreRecord)
def update_offchain_score(
    identity_id: str,
    req: OffChainScoreRequest,
    engine: CreditNetworkEngine = Depends(get_engine),
):
    """Store an attestation delivered by the off-chain attestation service."""
    try:
        return engine.update_offchain_score(identity_id, req.score, req.proof_id, req.attested_at)
    except Exception as exc:
        raise http_error(exc) from exc
