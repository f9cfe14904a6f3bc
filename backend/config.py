"""
Backend — Shared Configuration
================================

Environment settings, engine construction, and shared HTTP helpers.

Environment (.env supported):
    ON_CHAIN_WEIGHT           composite weight of the on-chain score (default 0.4)
    PRIMARY_REFERRAL_RATE     share credited to the direct referrer (default 0.2)
    DEEP_REFERRAL_RATE        share credited to deeper ancestors (default 0.001)
    INVITATION_TTL_DAYS       invitation lifetime (default 7)
    MAX_WALLETS_PER_IDENTITY  wallet cap per identity (default 10)
    IDENTITY_SALT             salt for deterministic identity ids
    CHAIN_RPC_URL             JSON-RPC endpoint; unset → static chain reader
    DEMO_MODE                 "1"/"true" mounts the demo reset endpoint
"""

from __future__ import annotations

import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Header, HTTPException, Request
from pydantic import BaseModel

from referral_network.engine import CreditNetworkEngine
from referral_network.errors import CreditNetworkError, Expired
from scoring import rules
from scoring.chain_reader import ChainReader, ChainReaderError, RpcChainReader, StaticChainReader
from scoring.models import EngineConfig, ScoreWeights

logger = logging.getLogger("backend.config")

# ─────────────────────────────────────────────────────────────────────────────
# Load .env
# ─────────────────────────────────────────────────────────────────────────────
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

_TRUE = {"1", "true", "yes", "on"}


# ─────────────────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────────────────
class Settings(BaseModel):
    on_chain_weight: Decimal = rules.DEFAULT_ON_CHAIN_WEIGHT
    primary_referral_rate: Decimal = rules.PRIMARY_REFERRAL_RATE
    deep_referral_rate: Decimal = rules.DEEP_REFERRAL_RATE
    invitation_ttl_days: int = rules.INVITATION_TTL_SECONDS // 86400
    max_wallets_per_identity: int = rules.MAX_WALLETS_PER_IDENTITY
    identity_salt: str = rules.DEFAULT_IDENTITY_SALT
    chain_rpc_url: Optional[str] = None
    demo_mode: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        return cls(
            on_chain_weight=Decimal(env.get("ON_CHAIN_WEIGHT", str(rules.DEFAULT_ON_CHAIN_WEIGHT))),
            primary_referral_rate=Decimal(env.get("PRIMARY_REFERRAL_RATE", str(rules.PRIMARY_REFERRAL_RATE))),
            deep_referral_rate=Decimal(env.get("DEEP_REFERRAL_RATE", str(rules.DEEP_REFERRAL_RATE))),
            invitation_ttl_days=int(env.get("INVITATION_TTL_DAYS", rules.INVITATION_TTL_SECONDS // 86400)),
            max_wallets_per_identity=int(env.get("MAX_WALLETS_PER_IDENTITY", rules.MAX_WALLETS_PER_IDENTITY)),
            identity_salt=env.get("IDENTITY_SALT", rules.DEFAULT_IDENTITY_SALT),
            chain_rpc_url=env.get("CHAIN_RPC_URL") or None,
            demo_mode=env.get("DEMO_MODE", "").strip().lower() in _TRUE,
        )

    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            weights=ScoreWeights(on_chain_weight=self.on_chain_weight),
            primary_referral_rate=self.primary_referral_rate,
            deep_referral_rate=self.deep_referral_rate,
            invitation_ttl_seconds=self.invitation_ttl_days * 86400,
            max_wallets_per_identity=self.max_wallets_per_identity,
            identity_salt=self.identity_salt,
        )


def build_engine(settings: Settings, chain_reader: Optional[ChainReader] = None) -> CreditNetworkEngine:
    if chain_reader is None:
        if settings.chain_rpc_url:
            chain_reader = RpcChainReader(settings.chain_rpc_url)
            logger.info("Using JSON-RPC chain reader at %s", settings.chain_rpc_url)
        else:
            chain_reader = StaticChainReader()
            logger.info("No CHAIN_RPC_URL set — using static chain reader")
    return CreditNetworkEngine(config=settings.engine_config(), chain_reader=chain_reader)


# ─────────────────────────────────────────────────────────────────────────────
# Dependencies
# ─────────────────────────────────────────────────────────────────────────────
def get_engine(request: Request) -> CreditNetworkEngine:
    return request.app.state.engine


def current_identity(x_identity_id: str = Header(..., description="Authenticated identity id")) -> str:
    """Identity id presented by the credential/session layer; trusted as-is."""
    return x_identity_id


# ─────────────────────────────────────────────────────────────────────────────
# Error mapping
# ─────────────────────────────────────────────────────────────────────────────
STATUS_BY_KIND = {
    "ValidationError": 400,
    "NotFoundError": 404,
    "ConflictError": 409,
    "StateError": 409,
    "LimitError": 422,
}


def http_error(exc: Exception) -> HTTPException:
    """Translate an engine or collaborator failure into an HTTPException."""
    if isinstance(exc, CreditNetworkError):
        status = 410 if isinstance(exc, Expired) else STATUS_BY_KIND.get(exc.kind, 400)
        logger.warning("%s (%s): %s", exc.kind, exc.code, exc.message)
        return HTTPException(status_code=status, detail=exc.to_dict())
    if isinstance(exc, ChainReaderError):
        logger.error("Chain reader failed: %s", exc)
        return HTTPException(status_code=502, detail={"error": "UpstreamError", "code": "ChainReader", "message": str(exc)})
    logger.error("Unexpected failure: %s", exc, exc_info=True)
    return HTTPException(status_code=500, detail={"error": "InternalError", "code": "Internal", "message": str(exc)})
