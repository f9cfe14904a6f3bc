"""
Referral Network — Invitation State Machine
=============================================

    pending ──accept──▶ accepted   (edge inviter → invitee)
       │   ──reject──▶ rejected   (no graph change)
       └── TTL ──────▶ expired    (evaluated lazily, no scheduler)

At most one pending invitation exists per invitee email, system-wide.
The token is the only credential needed to accept or reject.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from referral_network.errors import (
    AlreadyReferred,
    AlreadyRegistered,
    AlreadyResolved,
    DuplicatePending,
    EmailMismatch,
    Expired,
    NotFoundError,
    SelfReferral,
    ValidationError,
)
from referral_network.graph import attach_edge, direct_referrals, referral_path, referrer_of
from referral_network.registry import normalize_email, require_active, require_identity
from referral_network.store import NetworkState, NetworkStore
from scoring.models import (
    EngineConfig,
    Identity,
    Invitation,
    InvitationStats,
    InvitationStatus,
    ReferralProfile,
)
from scoring.rules import INVITATION_TOKEN_BYTES, MAX_INVITATION_MESSAGE

logger = logging.getLogger("referral_network.invitations")


def _expire_lapsed(state: NetworkState, invitee_email: str, now: int) -> None:
    """Materialize a lapsed pending invitation so it stops blocking the email."""
    token = state.pending_by_email.get(invitee_email)
    if token is None:
        return
    invitation = state.invitations[token]
    if invitation.is_past_ttl(now):
        state.invitations[token] = invitation.model_copy(update={
            "status": InvitationStatus.EXPIRED,
            "resolved_at": invitation.expires_at,
        })
        del state.pending_by_email[invitee_email]
        logger.info("Invitation %s… expired", token[:8])


def _view(invitation: Invitation, now: int) -> Invitation:
    status = invitation.effective_status(now)
    if status == invitation.status:
        return invitation
    return invitation.model_copy(update={"status": status, "resolved_at": invitation.expires_at})


class InvitationManager:
    """Creates, resolves, and reports on referral invitations."""

    def __init__(self, store: NetworkStore, config: EngineConfig) -> None:
        self.store = store
        self.config = config

    # ========================================================================
    # TRANSITIONS
    # ========================================================================

    def create_invitation(self, inviter_id: str, invitee_email: str, message: str = "") -> Invitation:
        message = (message or "").strip()
        if len(message) > MAX_INVITATION_MESSAGE:
            raise ValidationError(f"Message exceeds {MAX_INVITATION_MESSAGE} characters")

        with self.store.transaction() as state:
            inviter = require_active(state, inviter_id)
            invitee_email = normalize_email(invitee_email)
            now = self.store.now()

            if invitee_email == inviter.email:
                raise SelfReferral("Cannot refer yourself")

            # deactivated identities keep their email and can never be re-registered
            if invitee_email in state.email_index:
                raise AlreadyRegistered(f"{invitee_email} is already registered")

            if invitee_email in state.awaiting_registration:
                raise AlreadyReferred(f"{invitee_email} already accepted an invitation")

            _expire_lapsed(state, invitee_email, now)
            if invitee_email in state.pending_by_email:
                raise DuplicatePending(f"An invitation to {invitee_email} is already pending")

            token = secrets.token_urlsafe(INVITATION_TOKEN_BYTES)
            while token in state.invitations:
                token = secrets.token_urlsafe(INVITATION_TOKEN_BYTES)

            invitation = Invitation(
                token=token,
                inviter_id=inviter.identity_id,
                inviter_email=inviter.email,
                inviter_name=inviter.display_name,
                invitee_email=invitee_email,
                message=message,
                created_at=now,
                expires_at=now + self.config.invitation_ttl_seconds,
            )
            state.invitations[token] = invitation
            state.pending_by_email[invitee_email] = token

        logger.info("Invitation %s… created: %s → %s", token[:8], inviter.email, invitee_email)
        return invitation

    def accept_invitation(self, token: str, email: Optional[str] = None) -> Identity:
        """Accept an invitation and return the inviter for onboarding.

        The edge is attached now when the invitee is already registered,
        otherwise when the invitee registers with the invited email.
        """
        with self.store.transaction() as state:
            now = self.store.now()
            invitation = self._resolvable(state, token, now)

            if email and email.strip().lower() != invitation.invitee_email:
                raise EmailMismatch("Email does not match the invitation")

            inviter = require_identity(state, invitation.inviter_id)
            referee_id = state.email_index.get(invitation.invitee_email)
            if referee_id is not None:
                attach_edge(state, inviter.identity_id, referee_id, now, token)
            else:
                state.awaiting_registration[invitation.invitee_email] = token

            state.invitations[token] = invitation.model_copy(update={
                "status": InvitationStatus.ACCEPTED,
                "resolved_at": now,
                "referee_id": referee_id,
            })
            del state.pending_by_email[invitation.invitee_email]

        logger.info("Invitation %s… accepted by %s", token[:8], invitation.invitee_email)
        return inviter

    def reject_invitation(self, token: str) -> Invitation:
        with self.store.transaction() as state:
            now = self.store.now()
            invitation = self._resolvable(state, token, now)
            invitation = invitation.model_copy(update={
                "status": InvitationStatus.REJECTED,
                "resolved_at": now,
            })
            state.invitations[token] = invitation
            del state.pending_by_email[invitation.invitee_email]

        logger.info("Invitation %s… rejected by %s", token[:8], invitation.invitee_email)
        return invitation

    @staticmethod
    def _resolvable(state: NetworkState, token: str, now: int) -> Invitation:
        invitation = state.invitations.get(token)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        # expiry is checked before the terminal-state check
        if invitation.status == InvitationStatus.EXPIRED or invitation.is_past_ttl(now):
            raise Expired("Invitation has expired")
        if invitation.status != InvitationStatus.PENDING:
            raise AlreadyResolved(f"Invitation already {invitation.status.value}")
        return invitation

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_invitation(self, token: str) -> Invitation:
        invitation = self.store.snapshot().invitations.get(token)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        return _view(invitation, self.store.now())

    def list_invitations(self, email: str) -> dict[str, list[Invitation]]:
        email = normalize_email(email)
        now = self.store.now()
        sent: list[Invitation] = []
        received: list[Invitation] = []
        for invitation in self.store.snapshot().invitations.values():
            if invitation.inviter_email == email:
                sent.append(_view(invitation, now))
            if invitation.invitee_email == email:
                received.append(_view(invitation, now))
        sent.sort(key=lambda i: i.created_at)
        received.sort(key=lambda i: i.created_at)
        return {"sent": sent, "received": received}

    def can_be_referred(self, email: str) -> bool:
        email = normalize_email(email)
        state = self.store.snapshot()
        if email in state.email_index or email in state.awaiting_registration:
            return False
        token = state.pending_by_email.get(email)
        return token is None or state.invitations[token].is_past_ttl(self.store.now())

    def invitation_stats(self) -> InvitationStats:
        return invitation_stats(self.store.snapshot(), self.store.now())

    # ========================================================================
    # GRAPH READS
    # ========================================================================

    def get_referral_path(self, identity_id: str) -> list[Identity]:
        state = self.store.snapshot()
        require_identity(state, identity_id)
        return [state.identities[i] for i in referral_path(state, identity_id)]

    def get_referral_profile(self, identity_id: str) -> ReferralProfile:
        state = self.store.snapshot()
        require_identity(state, identity_id)
        path = referral_path(state, identity_id)
        return ReferralProfile(
            identity_id=identity_id,
            referred_by=referrer_of(state, identity_id),
            direct_referrals=list(direct_referrals(state, identity_id)),
            referral_path=path,
            network_depth=len(path) - 1,
        )


def invitation_stats(state: NetworkState, now: int) -> InvitationStats:
    counts = {status: 0 for status in InvitationStatus}
    for invitation in state.invitations.values():
        counts[invitation.effective_status(now)] += 1
    return InvitationStats(
        total_invitations=len(state.invitations),
        pending_invitations=counts[InvitationStatus.PENDING],
        accepted_invitations=counts[InvitationStatus.ACCEPTED],
        rejected_invitations=counts[InvitationStatus.REJECTED],
        expired_invitations=counts[InvitationStatus.EXPIRED],
    )
