"""
Referral Credit Network — Demo Scenario
=========================================

Runs the referral walkthrough against an in-process engine and prints
the resulting network as JSON:

    1. Alice, with two demo wallets and an attested bureau score, registers
    2. Alice invites Bob; Bob accepts and registers
    3. Bob invites Charlie; Charlie accepts and registers
    4. Charlie pays a loan early → Bob +2, Alice +0.01
    5. Dave rejects an invitation from Alice

Usage:
    python demo.py
    python demo.py --pretty
    python demo.py --output network.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from referral_network.engine import CreditNetworkEngine
from referral_network.errors import CreditNetworkError
from scoring.chain_reader import StaticChainReader
from scoring.models import WalletSignals

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("demo")

# ─────────────────────────────────────────────────────────────────────────────
# Demo wallets (excellent / good / fair activity profiles)
# ─────────────────────────────────────────────────────────────────────────────
DEMO_WALLETS = {
    "0x70997970c51812dc3a010c7d01b50e0d17dc79c8": WalletSignals(
        balance_eth=150.0, wallet_age_days=900, transaction_count=1200,
        protocol_interactions=60, unique_counterparties=15, recent_transactions_30d=12,
    ),
    "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc": WalletSignals(
        balance_eth=5.0, wallet_age_days=400, transaction_count=120,
        protocol_interactions=8, unique_counterparties=6, recent_transactions_30d=4,
    ),
    "0x90f79bf6eb2c4f870365e785982e1f101e93b906": WalletSignals(
        balance_eth=0.05, wallet_age_days=45, transaction_count=12,
        protocol_interactions=1, unique_counterparties=2, recent_transactions_30d=1,
    ),
}


def run_demo() -> dict:
    engine = CreditNetworkEngine(chain_reader=StaticChainReader(DEMO_WALLETS))
    wallets = list(DEMO_WALLETS)

    try:
        alice = engine.register_identity("alice@test.com", "Alice", "Smith")
        engine.link_wallet(alice.identity_id, wallets[0])
        engine.link_wallet(alice.identity_id, wallets[1])
        engine.update_offchain_score(alice.identity_id, 720, "attestation-alice-001")

        invite = engine.create_invitation(
            alice.identity_id, "bob@test.com", "Join me on the credit network!"
        )
        engine.accept_invitation(invite.token, "bob@test.com")
        bob = engine.register_identity("bob@test.com", "Bob", "Jones")
        engine.link_wallet(bob.identity_id, wallets[2])

        invite = engine.create_invitation(
            bob.identity_id, "charlie@test.com", "Alice referred me, now I'm referring you!"
        )
        engine.accept_invitation(invite.token, "charlie@test.com")
        charlie = engine.register_identity("charlie@test.com", "Charlie", "Brown")

        engine.apply_credit_event(charlie.identity_id, "LOAN_PAID_EARLY")

        invite = engine.create_invitation(alice.identity_id, "dave@test.com", "Join us Dave!")
        engine.reject_invitation(invite.token)

        return {
            "identities": {
                identity.email: {
                    "identity_id": identity.identity_id,
                    "scores": engine.get_composite_score(identity.identity_id).model_dump(mode="json"),
                    "referral_path": [i.email for i in engine.get_referral_path(identity.identity_id)],
                }
                for identity in (alice, bob, charlie)
            },
            "leaderboard": [e.model_dump(mode="json") for e in engine.get_leaderboard("score")],
            "network_stats": engine.get_network_stats().model_dump(mode="json"),
        }
    finally:
        engine.close()


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────
def main() -> None:
    parser = argparse.ArgumentParser(
        prog="demo",
        description="Run the referral credit network walkthrough",
    )
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    parser.add_argument("--output", "-o", type=str, help="Write JSON to a file")
    args = parser.parse_args()

    try:
        result = run_demo()
    except CreditNetworkError as e:
        logger.error("Demo failed: %s (%s)", e.message, e.code)
        sys.exit(1)

    output = json.dumps(result, indent=2 if args.pretty else None)
    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        logger.info("Wrote network summary to %s", args.output)
    else:
        print(output)


if __name__ == "__main__":
    main()
