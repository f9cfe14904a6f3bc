"""
Referral Network — Identity & Wallet Registry
===============================================

Maps stable identities to linked wallets and enforces one owner per
wallet address.

Capabilities:
    • Deterministic identity ids (re-derivable from the email)
    • Wallet link / unlink with a per-identity cap
    • Portfolio recomputation on every wallet change
    • Administrative deactivation (identities are never deleted)
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Optional

from referral_network.errors import (
    DuplicateEmail,
    IdentityInactive,
    NotFoundError,
    NotOwner,
    ValidationError,
    WalletAlreadyLinked,
    WalletLimitExceeded,
)
from referral_network.graph import attach_edge
from referral_network.store import NetworkState, NetworkStore
from scoring.composite import recompute
from scoring.models import EngineConfig, Identity, PortfolioView, ScoreRecord, Wallet
from scoring.onchain import OnChainScoreCalculator, aggregate_scores

logger = logging.getLogger("referral_network.registry")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")
ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


# ─────────────────────────────────────────────────────────────────────────────
# Normalization helpers
# ─────────────────────────────────────────────────────────────────────────────
def normalize_email(email: str) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise ValidationError(f"Invalid email: {email!r}")
    return email.strip().lower()


def normalize_address(address: str) -> str:
    if not isinstance(address, str) or not ADDRESS_RE.match(address.strip()):
        raise ValidationError(f"Invalid wallet address: {address!r}")
    return address.strip().lower()


def derive_identity_id(email: str, salt: str) -> str:
    """``0x`` + first 40 hex chars of sha256(salt:email)."""
    digest = hashlib.sha256(f"{salt}:{normalize_email(email)}".encode("utf-8")).hexdigest()
    return "0x" + digest[:40]


def require_identity(state: NetworkState, identity_id: str) -> Identity:
    identity = state.identities.get(identity_id)
    if identity is None:
        raise NotFoundError(f"Identity not found: {identity_id}")
    return identity


def require_active(state: NetworkState, identity_id: str) -> Identity:
    identity = require_identity(state, identity_id)
    if not identity.active:
        raise IdentityInactive(f"Identity {identity_id} is deactivated")
    return identity


def wallets_of(state: NetworkState, identity_id: str) -> list[Wallet]:
    wallets = [w for w in state.wallets.values() if w.identity_id == identity_id]
    wallets.sort(key=lambda w: (w.linked_at, w.address))
    return wallets


def refresh_portfolio(state: NetworkState, identity_id: str, config: EngineConfig, now: int) -> ScoreRecord:
    portfolio = aggregate_scores(w.onchain_score for w in wallets_of(state, identity_id))
    record = state.scores[identity_id].model_copy(update={"onchain_portfolio": portfolio})
    record = recompute(record, config.weights, now)
    state.scores[identity_id] = record
    return record


# ─────────────────────────────────────────────────────────────────────────────
# Registry
# ─────────────────────────────────────────────────────────────────────────────
class IdentityRegistry:
    """Identity and wallet operations over a NetworkStore."""

    def __init__(
        self,
        store: NetworkStore,
        config: EngineConfig,
        calculator: OnChainScoreCalculator,
    ) -> None:
        self.store = store
        self.config = config
        self.calculator = calculator

    def register_identity(
        self,
        email: str,
        first_name: str = "",
        last_name: str = "",
    ) -> Identity:
        """Register a new identity.

        If an accepted invitation is waiting for this email, the referral
        edge is attached in the same transaction.
        """
        normalized = normalize_email(email)
        identity_id = derive_identity_id(normalized, self.config.identity_salt)

        with self.store.transaction() as state:
            if normalized in state.email_index or identity_id in state.identities:
                raise DuplicateEmail(f"Email already registered: {normalized}")

            now = self.store.now()
            identity = Identity(
                identity_id=identity_id,
                email=normalized,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                created_at=now,
                sequence=state.next_sequence,
            )
            state.next_sequence += 1
            state.identities[identity_id] = identity
            state.email_index[normalized] = identity_id
            state.scores[identity_id] = ScoreRecord(identity_id=identity_id, last_updated=now)

            token = state.awaiting_registration.pop(normalized, None)
            if token is not None:
                invitation = state.invitations[token]
                attach_edge(state, invitation.inviter_id, identity_id, now, token)
                state.invitations[token] = invitation.model_copy(update={"referee_id": identity_id})

        logger.info("Registered identity %s (%s)", identity_id, normalized)
        return identity

    def deactivate_identity(self, identity_id: str) -> Identity:
        with self.store.transaction() as state:
            identity = require_identity(state, identity_id)
            identity = identity.model_copy(update={"active": False})
            state.identities[identity_id] = identity
        logger.info("Deactivated identity %s", identity_id)
        return identity

    def get_identity(self, identity_id: str) -> Identity:
        return require_identity(self.store.snapshot(), identity_id)

    def get_identity_by_email(self, email: str) -> Identity:
        state = self.store.snapshot()
        identity_id = state.email_index.get(normalize_email(email))
        if identity_id is None:
            raise NotFoundError(f"No identity for email: {email}")
        return state.identities[identity_id]

    def link_wallet(self, identity_id: str, address: str, verified: bool = True) -> Wallet:
        """Link a wallet whose ownership proof was checked upstream."""
        address = normalize_address(address)
        if not verified:
            raise ValidationError(f"Ownership proof for {address} was not verified")

        existing = self._check_link(self.store.snapshot(), identity_id, address)
        if existing is not None:
            return existing

        # chain I/O stays outside the write lock
        wallet_score = self.calculator.score_wallet(address)

        with self.store.transaction() as state:
            existing = self._check_link(state, identity_id, address)
            if existing is not None:
                return existing

            now = self.store.now()
            released = state.wallets.get(address)
            wallet = Wallet(
                address=address,
                identity_id=identity_id,
                linked_at=now,
                onchain_score=wallet_score,
            )
            state.wallets[address] = wallet
            record = refresh_portfolio(state, identity_id, self.config, now)
            # wallet released by a deactivated identity
            if released is not None:
                refresh_portfolio(state, released.identity_id, self.config, now)

        logger.info(
            "Linked wallet %s to %s — wallet score %d, portfolio %d",
            address[:12] + "…", identity_id[:12] + "…", wallet_score, record.onchain_portfolio,
        )
        return wallet

    def unlink_wallet(self, identity_id: str, address: str) -> None:
        address = normalize_address(address)
        with self.store.transaction() as state:
            require_identity(state, identity_id)
            wallet = state.wallets.get(address)
            if wallet is None:
                return
            if wallet.identity_id != identity_id:
                raise NotOwner(f"Wallet {address} belongs to another identity")

            del state.wallets[address]
            refresh_portfolio(state, identity_id, self.config, self.store.now())

        logger.info("Unlinked wallet %s from %s", address[:12] + "…", identity_id[:12] + "…")

    def get_portfolio(self, identity_id: str) -> PortfolioView:
        state = self.store.snapshot()
        return PortfolioView(
            identity=require_identity(state, identity_id),
            wallets=wallets_of(state, identity_id),
            scores=state.scores[identity_id],
        )

    def _check_link(self, state: NetworkState, identity_id: str, address: str) -> Optional[Wallet]:
        """Validate a link; returns the wallet when it is already ours."""
        require_active(state, identity_id)

        wallet = state.wallets.get(address)
        if wallet is not None:
            if wallet.identity_id == identity_id:
                return wallet
            owner = state.identities[wallet.identity_id]
            if owner.active:
                raise WalletAlreadyLinked(f"Wallet {address} is linked to another identity")

        if len(wallets_of(state, identity_id)) >= self.config.max_wallets_per_identity:
            raise WalletLimitExceeded(
                f"Identity {identity_id} already has {self.config.max_wallets_per_identity} wallets"
            )
        return None
