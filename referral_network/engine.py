"""
Referral Network — Engine
===========================

Operation surface of the referral credit network. Wires the registry,
scoring, invitation, propagation, and statistics components around one
explicitly owned NetworkStore.

Usage:
    engine = CreditNetworkEngine()
    alice = engine.register_identity("alice@example.com", "Alice", "Smith")
    invitation = engine.create_invitation(alice.identity_id, "bob@example.com", "join")
    engine.accept_invitation(invitation.token, "bob@example.com")
    bob = engine.register_identity("bob@example.com", "Bob")
    engine.apply_credit_event(bob.identity_id, "LOAN_PAID_EARLY")
    engine.close()
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from referral_network.invitations import InvitationManager
from referral_network.offchain import OffChainScoreAdapter
from referral_network.propagation import CreditEventProcessor, PropagationResult
from referral_network.registry import IdentityRegistry, require_identity, wallets_of
from referral_network.stats import NetworkStatistics
from referral_network.store import NetworkStore
from scoring.chain_reader import ChainReader
from scoring.models import (
    CreditEvent,
    CreditEventType,
    EngineConfig,
    Identity,
    Invitation,
    InvitationStats,
    LeaderboardEntry,
    LeaderboardType,
    NetworkStats,
    PortfolioView,
    ReferralProfile,
    ReferralReward,
    ScoreRecord,
    Wallet,
)
from scoring.onchain import OnChainScoreCalculator

logger = logging.getLogger("referral_network.engine")


class CreditNetworkEngine:
    """Referral credit network over an injected store."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[NetworkStore] = None,
        chain_reader: Optional[ChainReader] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or EngineConfig()
        if store is None:
            store = NetworkStore(clock=clock) if clock else NetworkStore()
        self.store = store
        self.calculator = OnChainScoreCalculator(chain_reader)

        self.registry = IdentityRegistry(self.store, self.config, self.calculator)
        self.offchain = OffChainScoreAdapter(self.store, self.config)
        self.invitations = InvitationManager(self.store, self.config)
        self.events = CreditEventProcessor(self.store, self.config)
        self.stats = NetworkStatistics(self.store)

        logger.info(
            "CreditNetworkEngine ready — weights %s/%s, rates %s/%s, TTL %ds",
            self.config.weights.on_chain_weight,
            self.config.weights.off_chain_weight,
            self.config.primary_referral_rate,
            self.config.deep_referral_rate,
            self.config.invitation_ttl_seconds,
        )

    def close(self) -> None:
        self.store.close()
        close_reader = getattr(self.calculator.reader, "close", None)
        if close_reader is not None:
            close_reader()

    # ── Identity & wallets ───────────────────────────────────────────
    def register_identity(self, email: str, first_name: str = "", last_name: str = "") -> Identity:
        return self.registry.register_identity(email, first_name, last_name)

    def deactivate_identity(self, identity_id: str) -> Identity:
        return self.registry.deactivate_identity(identity_id)

    def get_identity(self, identity_id: str) -> Identity:
        return self.registry.get_identity(identity_id)

    def get_identity_by_email(self, email: str) -> Identity:
        return self.registry.get_identity_by_email(email)

    def link_wallet(self, identity_id: str, address: str, verified: bool = True) -> Wallet:
        return self.registry.link_wallet(identity_id, address, verified)

    def unlink_wallet(self, identity_id: str, address: str) -> None:
        self.registry.unlink_wallet(identity_id, address)

    def get_portfolio(self, identity_id: str) -> PortfolioView:
        return self.registry.get_portfolio(identity_id)

    # ── Scores ───────────────────────────────────────────────────────
    def score_wallet(self, address: str) -> int:
        return self.calculator.score_wallet(address)

    def aggregate_portfolio(self, identity_id: str) -> int:
        state = self.store.snapshot()
        require_identity(state, identity_id)
        return self.calculator.aggregate_portfolio(
            w.onchain_score for w in wallets_of(state, identity_id)
        )

    def update_offchain_score(
        self,
        identity_id: str,
        score: int,
        proof_id: str,
        attested_at: Optional[int] = None,
    ) -> ScoreRecord:
        return self.offchain.update_offchain_score(identity_id, score, proof_id, attested_at)

    def get_composite_score(self, identity_id: str) -> ScoreRecord:
        state = self.store.snapshot()
        require_identity(state, identity_id)
        return state.scores[identity_id]

    # ── Invitations & graph ──────────────────────────────────────────
    def create_invitation(self, inviter_id: str, invitee_email: str, message: str = "") -> Invitation:
        return self.invitations.create_invitation(inviter_id, invitee_email, message)

    def accept_invitation(self, token: str, email: Optional[str] = None) -> Identity:
        return self.invitations.accept_invitation(token, email)

    def reject_invitation(self, token: str) -> Invitation:
        return self.invitations.reject_invitation(token)

    def get_invitation(self, token: str) -> Invitation:
        return self.invitations.get_invitation(token)

    def list_invitations(self, email: str) -> dict[str, list[Invitation]]:
        return self.invitations.list_invitations(email)

    def can_be_referred(self, email: str) -> bool:
        return self.invitations.can_be_referred(email)

    def get_invitation_stats(self) -> InvitationStats:
        return self.invitations.invitation_stats()

    def get_referral_path(self, identity_id: str) -> list[Identity]:
        return self.invitations.get_referral_path(identity_id)

    def get_referral_profile(self, identity_id: str) -> ReferralProfile:
        return self.invitations.get_referral_profile(identity_id)

    # ── Credit events ────────────────────────────────────────────────
    def apply_credit_event(
        self,
        identity_id: str,
        event_type: Union[CreditEventType, str],
        score_change: Optional[int] = None,
        description: str = "",
    ) -> PropagationResult:
        return self.events.apply_credit_event(identity_id, event_type, score_change, description)

    def list_credit_events(self, identity_id: str) -> list[CreditEvent]:
        return self.events.list_credit_events(identity_id)

    def list_rewards(self, identity_id: str) -> list[ReferralReward]:
        return self.events.list_rewards(identity_id)

    # ── Statistics ───────────────────────────────────────────────────
    def get_network_stats(self) -> NetworkStats:
        return self.stats.network_stats()

    def get_leaderboard(
        self,
        board: Union[LeaderboardType, str] = LeaderboardType.SCORE,
        limit: Optional[int] = None,
    ) -> list[LeaderboardEntry]:
        return self.stats.leaderboard(board, limit)
