"""
Backend Router — Identities & Wallets
========================================

POST /identities                       — Register an identity
GET  /identities/{identity_id}         — Portfolio (identity, wallets, scores)
POST /identities/{identity_id}/deactivate — Administrative deactivation
POST /wallets/link                     — Link a wallet to the caller
POST /wallets/unlink                   — Unlink a wallet from the caller
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.config import current_identity, get_engine, http_error
from referral_network.engine import CreditNetworkEngine
from scoring.models import Identity, PortfolioView, Wallet

logger = logging.getLogger("backend.identity")
router = APIRouter(tags=["Identity"])


# ─────────────────────────────────────────────────────────────────────────────
# Request / Response Models
# ─────────────────────────────────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    email: str = Field(..., description="Unique email, compared case-insensitively")
    first_name: str = ""
    last_name: str = ""


class LinkWalletRequest(BaseModel):
    address: str = Field(..., description="0x-prefixed wallet address")
    signature_verified: bool = Field(..., description="Ownership proof result from the signature verifier")


class UnlinkWalletRequest(BaseModel):
    address: str


class UnlinkWalletResponse(BaseModel):
    success: bool
    address: str
    onchain_score: int


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────
@router.post("/identities", response_model=Identity, status_code=201)
def register_identity(req: RegisterRequest, engine: CreditNetworkEngine = Depends(get_engine)):
    """Register a new identity (attaches a waiting referral if any)."""
    try:
        return engine.register_identity(req.email, req.first_name, req.last_name)
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/identities/{identity_id}", response_model=PortfolioView)
def get_portfolio(identity_id: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.get_portfolio(identity_id)
    except Exception as exc:
        raise http_error(exc) from exc


@router.post("/identities/{identity_id}/deactivate", response_model=Identity)
def deactivate_identity(identity_id: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.deactivate_identity(identity_id)
    except Exception as exc:
        raise http_error(exc) from exc


@router.post("/wallets/link", response_model=Wallet)
def link_wallet(
    req: LinkWalletRequest,
    identity_id: str = Depends(current_identity),
    engine: CreditNetworkEngine = Depends(get_engine),
):
    """Link a wallet to the authenticated identity."""
    try:
        return engine.link_wallet(identity_id, req.address, req.signature_verified)
    except Exception as exc:
        raise http_error(exc) from exc


@router.post("/wallets/unlink", response_model=UnlinkWalletResponse)
def unlink_wallet(
    req: UnlinkWalletRequest,
    identity_id: str = Depends(current_identity),
    engine: CreditNetworkEngine = Depends(get_engine),
):
    try:
        engine.unlink_wallet(identity_id, req.address)
        scores = engine.get_composite_score(identity_id)
        return UnlinkWalletResponse(
            success=True,
            address=req.address.strip().lower(),
            onchain_score=scores.onchain_score,
        )
    except Exception as exc:
        raise http_error(exc) from exc
