"""
Backend Router — Demo
=======================

POST /demo/reset — Clear all in-memory state

Mounted only when DEMO_MODE is enabled.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.config import get_engine
from referral_network.engine import CreditNetworkEngine

logger = logging.getLogger("backend.demo")
router = APIRouter(prefix="/demo", tags=["Demo"])


class ResetResponse(BaseModel):
    success: bool
    message: str
    timestamp: int


@router.post("/reset", response_model=ResetResponse)
def reset_all_state(engine: CreditNetworkEngine = Depends(get_engine)):
    engine.store.reset()
    return ResetResponse(
        success=True,
        message="All identities, invitations and credit events have been reset",
        timestamp=int(time.time()),
    )
