"""
Referral Network — Off-Chain Score Adapter
============================================

Stores an externally attested bureau score and its opaque proof id.
The proof is never verified here, and updates do not propagate
referral rewards (only explicit credit events do).
"""

from __future__ import annotations

import logging
from typing import Optional

from referral_network.errors import StaleAttestation, ValidationError
from referral_network.registry import require_active
from referral_network.store import NetworkStore
from scoring.composite import recompute
from scoring.models import EngineConfig, OffChainAttestation, ScoreRecord
from scoring.rules import SCORE_MAX, SCORE_MIN

logger = logging.getLogger("referral_network.offchain")


class OffChainScoreAdapter:
    def __init__(self, store: NetworkStore, config: EngineConfig) -> None:
        self.store = store
        self.config = config

    def update_offchain_score(
        self,
        identity_id: str,
        score: int,
        proof_id: str,
        attested_at: Optional[int] = None,
    ) -> ScoreRecord:
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError("Attested score must be an integer")
        if not SCORE_MIN <= score <= SCORE_MAX:
            raise ValidationError(f"Attested score {score} outside {SCORE_MIN}–{SCORE_MAX}")
        if not proof_id or not proof_id.strip():
            raise ValidationError("proof_id is required")

        with self.store.transaction() as state:
            require_active(state, identity_id)
            now = self.store.now()
            attestation = OffChainAttestation(
                score=score,
                proof_id=proof_id.strip(),
                attested_at=now if attested_at is None else attested_at,
            )

            record = state.scores[identity_id]
            if (
                record.offchain_attested_at is not None
                and attestation.attested_at < record.offchain_attested_at
            ):
                raise StaleAttestation(
                    f"Attestation from {attestation.attested_at} is older than "
                    f"the stored one from {record.offchain_attested_at}"
                )

            record = record.model_copy(update={
                "offchain_attested": attestation.score,
                "offchain_proof_id": attestation.proof_id,
                "offchain_attested_at": attestation.attested_at,
            })
            record = recompute(record, self.config.weights, now)
            state.scores[identity_id] = record

        logger.info(
            "Off-chain score %d attested for %s (proof %s) — composite %d",
            score, identity_id[:12] + "…", attestation.proof_id, record.composite_score,
        )
        return record
