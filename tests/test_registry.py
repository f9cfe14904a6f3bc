"""
tests/test_registry.py

Identity registration and wallet portfolio management.
"""

import pytest

from derive_identity import main as derive_main
from referral_network.errors import (
    DuplicateEmail,
    IdentityInactive,
    NotFoundError,
    NotOwner,
    ValidationError,
    WalletAlreadyLinked,
    WalletLimitExceeded,
)
from referral_network.engine import CreditNetworkEngine
from referral_network.registry import derive_identity_id
from scoring.models import EngineConfig
from tests.conftest import WALLET_A, WALLET_B, WALLET_C


# ============================================================================
# Identities
# ============================================================================

class TestRegistration:
    def test_register_creates_zeroed_scores(self, engine, alice, clock):
        assert alice.email == "alice@test.com"
        assert alice.display_name == "Alice Smith"
        assert alice.created_at == clock.now
        assert alice.sequence == 1
        record = engine.get_composite_score(alice.identity_id)
        assert record.composite_score == 0
        assert record.onchain_score == 0

    def test_duplicate_email_is_case_insensitive(self, engine, alice):
        with pytest.raises(DuplicateEmail):
            engine.register_identity("  ALICE@Test.com ")

    def test_identity_id_is_deterministic(self, engine, alice):
        expected = derive_identity_id("Alice@TEST.com", engine.config.identity_salt)
        assert alice.identity_id == expected
        assert alice.identity_id.startswith("0x")
        assert len(alice.identity_id) == 42

    def test_salt_changes_identity_id(self):
        assert derive_identity_id("a@x", "one") != derive_identity_id("a@x", "two")

    def test_invalid_email_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.register_identity("not-an-email")

    def test_lookup_by_email(self, engine, alice):
        assert engine.get_identity_by_email("ALICE@test.com") == alice
        with pytest.raises(NotFoundError):
            engine.get_identity_by_email("nobody@test.com")

    def test_unknown_identity(self, engine):
        with pytest.raises(NotFoundError):
            engine.get_identity("0x" + "0" * 40)

    def test_deactivate_keeps_record(self, engine, alice):
        engine.deactivate_identity(alice.identity_id)
        identity = engine.get_identity(alice.identity_id)
        assert identity.active is False
        with pytest.raises(DuplicateEmail):
            engine.register_identity("alice@test.com")

    def test_derive_identity_cli(self, capsys):
        derive_main(["alice@test.com", "--salt", "s"])
        assert capsys.readouterr().out.strip() == derive_identity_id("alice@test.com", "s")


# ============================================================================
# Wallets
# ============================================================================

class TestWallets:
    def test_link_updates_portfolio(self, engine, alice):
        engine.link_wallet(alice.identity_id, WALLET_A)
        assert engine.aggregate_portfolio(alice.identity_id) == 805

        engine.link_wallet(alice.identity_id, WALLET_B)
        record = engine.get_composite_score(alice.identity_id)
        assert record.onchain_portfolio == 700
        assert record.onchain_score == 700
        # 700 * 0.4
        assert record.composite_score == 280

    def test_address_is_normalized(self, engine, alice):
        wallet = engine.link_wallet(alice.identity_id, WALLET_A.upper().replace("0X", "0x"))
        assert wallet.address == WALLET_A

    def test_relink_by_owner_is_idempotent(self, engine, alice):
        first = engine.link_wallet(alice.identity_id, WALLET_A)
        again = engine.link_wallet(alice.identity_id, WALLET_A)
        assert again == first
        assert len(engine.get_portfolio(alice.identity_id).wallets) == 1

    def test_wallet_has_single_owner(self, engine, alice):
        bob = engine.register_identity("bob@test.com")
        engine.link_wallet(alice.identity_id, WALLET_A)
        with pytest.raises(WalletAlreadyLinked):
            engine.link_wallet(bob.identity_id, WALLET_A)

    def test_unlink_then_relink_elsewhere(self, engine, alice):
        bob = engine.register_identity("bob@test.com")
        engine.link_wallet(alice.identity_id, WALLET_A)
        engine.link_wallet(alice.identity_id, WALLET_B)

        engine.unlink_wallet(alice.identity_id, WALLET_A)
        assert engine.get_composite_score(alice.identity_id).onchain_portfolio == 595

        engine.link_wallet(bob.identity_id, WALLET_A)
        assert engine.get_composite_score(bob.identity_id).onchain_portfolio == 805

    def test_unlink_last_wallet_returns_to_no_signal(self, engine, alice):
        engine.link_wallet(alice.identity_id, WALLET_A)
        engine.unlink_wallet(alice.identity_id, WALLET_A)
        record = engine.get_composite_score(alice.identity_id)
        assert record.onchain_portfolio == 0
        assert record.composite_score == 0

    def test_unlink_by_non_owner(self, engine, alice):
        bob = engine.register_identity("bob@test.com")
        engine.link_wallet(alice.identity_id, WALLET_A)
        with pytest.raises(NotOwner):
            engine.unlink_wallet(bob.identity_id, WALLET_A)

    def test_unlink_unknown_wallet_is_noop(self, engine, alice):
        engine.unlink_wallet(alice.identity_id, WALLET_C)
        assert engine.get_portfolio(alice.identity_id).wallets == []

    def test_wallet_limit(self, clock, reader):
        engine = CreditNetworkEngine(
            config=EngineConfig(max_wallets_per_identity=2), chain_reader=reader, clock=clock
        )
        alice = engine.register_identity("alice@test.com")
        engine.link_wallet(alice.identity_id, WALLET_A)
        engine.link_wallet(alice.identity_id, WALLET_B)
        with pytest.raises(WalletLimitExceeded):
            engine.link_wallet(alice.identity_id, WALLET_C)
        engine.close()

    def test_unverified_proof_rejected(self, engine, alice):
        with pytest.raises(ValidationError):
            engine.link_wallet(alice.identity_id, WALLET_A, verified=False)
        assert engine.get_portfolio(alice.identity_id).wallets == []

    def test_malformed_address_rejected(self, engine, alice):
        with pytest.raises(ValidationError):
            engine.link_wallet(alice.identity_id, "0x1234")

    def test_inactive_identity_cannot_link(self, engine, alice):
        engine.deactivate_identity(alice.identity_id)
        with pytest.raises(IdentityInactive):
            engine.link_wallet(alice.identity_id, WALLET_A)

    def test_deactivated_owner_releases_wallet(self, engine, alice):
        bob = engine.register_identity("bob@test.com")
        engine.link_wallet(alice.identity_id, WALLET_A)
        engine.link_wallet(alice.identity_id, WALLET_B)
        engine.deactivate_identity(alice.identity_id)

        engine.link_wallet(bob.identity_id, WALLET_A)
        assert engine.get_composite_score(alice.identity_id).onchain_portfolio == 595
        assert engine.get_composite_score(bob.identity_id).onchain_portfolio == 805

    def test_portfolio_lists_wallets_in_link_order(self, engine, alice, clock):
        engine.link_wallet(alice.identity_id, WALLET_B)
        clock.advance(5)
        engine.link_wallet(alice.identity_id, WALLET_A)
        portfolio = engine.get_portfolio(alice.identity_id)
        assert [w.address for w in portfolio.wallets] == [WALLET_B, WALLET_A]
        assert portfolio.identity == alice
