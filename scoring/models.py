"""
Credit Scoring — Data Models
==============================

Shared Pydantic models for identities, wallets, scores, invitations,
and credit events. These models define the data layer shared by the
scoring rules, the referral network, and the HTTP backend.

Stored records are frozen: the network store replaces them with
``model_copy(update=...)`` instead of mutating them in place.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scoring import rules


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────
class ScoreCategory(str, Enum):
    ON_CHAIN = "on_chain"
    OFF_CHAIN = "off_chain"


class CreditEventType(str, Enum):
    LOAN_PAID_EARLY = "LOAN_PAID_EARLY"
    LOAN_REPAID_ON_TIME = "LOAN_REPAID_ON_TIME"
    LOAN_PAID_LATE = "LOAN_PAID_LATE"
    LOAN_DEFAULTED = "LOAN_DEFAULTED"
    COLLATERAL_LIQUIDATED = "COLLATERAL_LIQUIDATED"
    BILL_PAID_ON_TIME = "BILL_PAID_ON_TIME"
    CREDIT_LIMIT_INCREASED = "CREDIT_LIMIT_INCREASED"
    PAYMENT_MISSED = "PAYMENT_MISSED"
    ACCOUNT_IN_COLLECTIONS = "ACCOUNT_IN_COLLECTIONS"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class LeaderboardType(str, Enum):
    SCORE = "score"
    REFERRALS = "referrals"


# ─────────────────────────────────────────────────────────────────────────────
# Configuration Models
# ─────────────────────────────────────────────────────────────────────────────
class ScoreWeights(BaseModel):
    """Composite weights. The off-chain weight is always the complement."""
    model_config = ConfigDict(frozen=True)

    on_chain_weight: Decimal = Field(default=rules.DEFAULT_ON_CHAIN_WEIGHT, ge=0, le=1)

    @field_validator("on_chain_weight", mode="before")
    @classmethod
    def _exact_decimal(cls, value):
        # floats go through str() so 0.4 stays 0.4 instead of its binary expansion
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @property
    def off_chain_weight(self) -> Decimal:
        return Decimal(1) - self.on_chain_weight


class EventPolicy(BaseModel):
    """Category and magnitude policy for one credit event type."""
    model_config = ConfigDict(frozen=True)

    category: ScoreCategory
    default_change: int
    max_magnitude: int = Field(gt=0)

    @property
    def is_positive(self) -> bool:
        return self.default_change > 0


class EngineConfig(BaseModel):
    """Tunable parameters of the credit network engine."""
    model_config = ConfigDict(frozen=True)

    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    primary_referral_rate: Decimal = Field(default=rules.PRIMARY_REFERRAL_RATE, ge=0, le=1)
    deep_referral_rate: Decimal = Field(default=rules.DEEP_REFERRAL_RATE, ge=0, le=1)
    invitation_ttl_seconds: int = Field(default=rules.INVITATION_TTL_SECONDS, gt=0)
    max_wallets_per_identity: int = Field(default=rules.MAX_WALLETS_PER_IDENTITY, gt=0)
    identity_salt: str = rules.DEFAULT_IDENTITY_SALT
    event_policies: dict[CreditEventType, EventPolicy] = Field(default_factory=dict)

    @field_validator("primary_referral_rate", "deep_referral_rate", mode="before")
    @classmethod
    def _exact_rate(cls, value):
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    def policy_for(self, event_type: CreditEventType) -> EventPolicy:
        if event_type in self.event_policies:
            return self.event_policies[event_type]
        category, default_change, max_magnitude = rules.CREDIT_EVENT_POLICIES[event_type.value]
        return EventPolicy(
            category=ScoreCategory(category),
            default_change=default_change,
            max_magnitude=max_magnitude,
        )

    def decay_rate(self, depth: int) -> Decimal:
        """Fraction of a score change credited to the ancestor at ``depth``."""
        if depth == 1:
            return self.primary_referral_rate
        return self.deep_referral_rate


# ─────────────────────────────────────────────────────────────────────────────
# Chain Signals
# ─────────────────────────────────────────────────────────────────────────────
class WalletSignals(BaseModel):
    """Raw wallet activity supplied by a chain reader."""
    balance_eth: float = Field(default=0.0, ge=0.0)
    wallet_age_days: int = Field(default=0, ge=0)
    transaction_count: int = Field(default=0, ge=0)
    protocol_interactions: int = Field(default=0, ge=0)
    unique_counterparties: int = Field(default=0, ge=0)
    recent_transactions_30d: int = Field(default=0, ge=0)


class OffChainAttestation(BaseModel):
    """Attested bureau score. The proof is stored, never verified here."""
    score: int
    proof_id: str
    attested_at: int


# ─────────────────────────────────────────────────────────────────────────────
# Registry Records
# ─────────────────────────────────────────────────────────────────────────────
class Identity(BaseModel):
    """A registered participant, independent of any wallet."""
    model_config = ConfigDict(frozen=True)

    identity_id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    created_at: int
    sequence: int
    active: bool = True

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email


class Wallet(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    identity_id: str
    linked_at: int
    onchain_score: int = Field(ge=rules.SCORE_MIN, le=rules.SCORE_MAX)


class ScoreRecord(BaseModel):
    """Per-identity score components.

    ``onchain_score`` and ``offchain_score`` are the adjusted components
    (base signal plus credit event adjustments). ``composite_score`` is
    derived from them and never set on its own.
    """
    model_config = ConfigDict(frozen=True)

    identity_id: str
    onchain_portfolio: int = 0
    onchain_adjustment: int = 0
    offchain_attested: int = 0
    offchain_adjustment: int = 0
    onchain_score: int = 0
    offchain_score: int = 0
    referral_score: Decimal = Decimal(0)
    composite_score: int = 0
    offchain_proof_id: Optional[str] = None
    offchain_attested_at: Optional[int] = None
    last_updated: int = 0


# ─────────────────────────────────────────────────────────────────────────────
# Referral Records
# ─────────────────────────────────────────────────────────────────────────────
class Invitation(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    inviter_id: str
    inviter_email: str
    inviter_name: str = ""
    invitee_email: str
    message: str = ""
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: int
    expires_at: int
    resolved_at: Optional[int] = None
    referee_id: Optional[str] = None

    def is_past_ttl(self, now: int) -> bool:
        return self.status == InvitationStatus.PENDING and now >= self.expires_at

    def effective_status(self, now: int) -> InvitationStatus:
        """Status as seen at ``now``; pending invitations lapse lazily."""
        if self.is_past_ttl(now):
            return InvitationStatus.EXPIRED
        return self.status


class ReferralEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    referrer_id: str
    referee_id: str
    created_at: int
    token: Optional[str] = None


class CreditEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: int
    identity_id: str
    event_type: CreditEventType
    category: ScoreCategory
    score_change: int
    description: str = ""
    timestamp: int


class ReferralReward(BaseModel):
    """One propagation step of a credit event to an ancestor."""
    model_config = ConfigDict(frozen=True)

    event_id: int
    origin_id: str
    referrer_id: str
    depth: int = Field(ge=1)
    rate: Decimal
    amount: Decimal
    timestamp: int

    @property
    def is_penalty(self) -> bool:
        return self.amount < 0


# ─────────────────────────────────────────────────────────────────────────────
# Read Models
# ─────────────────────────────────────────────────────────────────────────────
class PortfolioView(BaseModel):
    identity: Identity
    wallets: list[Wallet] = []
    scores: ScoreRecord


class ReferralProfile(BaseModel):
    identity_id: str
    referred_by: Optional[str] = None
    direct_referrals: list[str] = []
    referral_path: list[str] = []
    network_depth: int = 0


class InvitationStats(BaseModel):
    total_invitations: int = 0
    pending_invitations: int = 0
    accepted_invitations: int = 0
    rejected_invitations: int = 0
    expired_invitations: int = 0


class NetworkStats(BaseModel):
    total_identities: int = 0
    active_identities: int = 0
    total_wallets: int = 0
    total_referral_edges: int = 0
    total_credit_events: int = 0
    total_rewards_distributed: int = 0
    average_referral_score: Decimal = Decimal(0)
    invitations: InvitationStats = Field(default_factory=InvitationStats)


class LeaderboardEntry(BaseModel):
    rank: int
    identity_id: str
    email: str
    display_name: str
    composite_score: int
    onchain_score: int
    referral_score: Decimal
    direct_referrals: int
    created_at: int
