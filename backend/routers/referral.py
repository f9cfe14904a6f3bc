"""
Backend Router — Referrals & Credit Events
=============================================

POST /referral/invite                    — Invite an email (caller is the inviter)
POST /referral/accept                    — Accept by token
POST /referral/reject                    — Reject by token
GET  /referral/invitation/{token}        — Invitation details
GET  /referral/invitations?email=        — Sent / received invitations
GET  /referral/can-be-referred/{email}   — Referral eligibility
GET  /referral/path/{identity_id}        — Root-first referral path
GET  /referral/profile/{identity_id}     — Referrer, direct referrals, depth
POST /referral/credit-event              — Apply a credit event + propagate
GET  /referral/events/{identity_id}      — Credit event history
GET  /referral/rewards/{identity_id}     — Rewards received as a referrer
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from backend.config import current_identity, get_engine, http_error
from referral_network.engine import CreditNetworkEngine
from referral_network.propagation import PropagationResult
from scoring.models import CreditEvent, Identity, Invitation, ReferralProfile, ReferralReward

logger = logging.getLogger("backend.referral")
router = APIRouter(prefix="/referral", tags=["Referral"])


# ─────────────────────────────────────────────────────────────────────────────
# Request / Response Models
# ─────────────────────────────────────────────────────────────────────────────
class InviteRequest(BaseModel):
    invitee_email: str
    message: str = ""


class AcceptRequest(BaseModel):
    token: str
    email: Optional[str] = Field(default=None, description="Invitee email for verification")


class AcceptResponse(BaseModel):
    invitation: Invitation
    inviter: Identity


class RejectRequest(BaseModel):
    token: str


class InvitationListResponse(BaseModel):
    email: str
    sent: list[Invitation] = []
    received: list[Invitation] = []


class EligibilityResponse(BaseModel):
    email: str
    can_be_referred: bool


class ReferralPathResponse(BaseModel):
    identity_id: str
    path: list[Identity]
    depth: int


class CreditEventRequest(BaseModel):
    identity_id: str
    event_type: str = Field(..., description="e.g. LOAN_PAID_EARLY, PAYMENT_MISSED")
    score_change: Optional[int] = Field(default=None, description="Omit to use the event's default")
    description: str = ""


# ─────────────────────────────────────────────────────────────────────────────
# Invitations
# ─────────────────────────────────────────────────────────────────────────────
@router.post("/invite", response_model=Invitation, status_code=201)
def create_invitation(
    req: InviteRequest,
    inviter_id: str = Depends(current_identity),
    engine: CreditNetworkEngine = Depends(get_engine),
):
    try:
        return engine.create_invitation(inviter_id, req.invitee_email, req.message)
    except Exception as exc:
        raise http_error(exc) from exc


@router.post("/accept", response_model=AcceptResponse)
def accept_invitation(req: AcceptRequest, engine: CreditNetworkEngine = Depends(get_engine)):
    """Accept an invitation; the token is the only credential required."""
    try:
        inviter = engine.accept_invitation(req.token, req.email)
        return AcceptResponse(invitation=engine.get_invitation(req.token), inviter=inviter)
    except Exception as exc:
        raise http_error(exc) from exc


@router.post("/reject", response_model=Invitation)
def reject_invitation(req: RejectRequest, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.reject_invitation(req.token)
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/invitation/{token}", response_model=Invitation)
def get_invitation(token: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.get_invitation(token)
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/invitations", response_model=InvitationListResponse)
def list_invitations(
    email: str = Query(..., description="Email to list invitations for"),
    engine: CreditNetworkEngine = Depends(get_engine),
):
    try:
        listing = engine.list_invitations(email)
        return InvitationListResponse(
            email=email.strip().lower(),
            sent=listing["sent"],
            received=listing["received"],
        )
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/can-be-referred/{email}", response_model=EligibilityResponse)
def can_be_referred(email: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return EligibilityResponse(email=email.strip().lower(), can_be_referred=engine.can_be_referred(email))
    except Exception as exc:
        raise http_error(exc) from exc


# ─────────────────────────────────────────────────────────────────────────────
# Graph
# ─────────────────────────────────────────────────────────────────────────────
@router.get("/path/{identity_id}", response_model=ReferralPathResponse)
def get_referral_path(identity_id: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        path = engine.get_referral_path(identity_id)
        return ReferralPathResponse(identity_id=identity_id, path=path, depth=len(path) - 1)
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/profile/{identity_id}", response_model=ReferralProfile)
def get_referral_profile(identity_id: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.get_referral_profile(identity_id)
    except Exception as exc:
        raise http_error(exc) from exc


# ─────────────────────────────────────────────────────────────────────────────
# Credit events
# ─────────────────────────────────────────────────────────────────────────────
@router.post("/credit-event", response_model=PropagationResult)
def apply_credit_event(req: CreditEventRequest, engine: CreditNetworkEngine = Depends(get_engine)):
    """Record a credit event and cascade rewards up the referral chain."""
    try:
        return engine.apply_credit_event(
            req.identity_id, req.event_type, req.score_change, req.description
        )
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/events/{identity_id}", response_model=list[CreditEvent])
def list_credit_events(identity_id: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.list_credit_events(identity_id)
    except Exception as exc:
        raise http_error(exc) from exc


@router.get("/rewards/{identity_id}", response_model=list[ReferralReward])
def list_rewards(identity_id: str, engine: CreditNetworkEngine = Depends(get_engine)):
    try:
        return engine.list_rewards(identity_id)
    except Exception as exc:
        raise http_error(exc) from exc
