"""
tests/test_api.py

End-to-end tests of the FastAPI backend through TestClient.
"""

from decimal import Decimal

from fastapi.testclient import TestClient

from backend.config import Settings
from backend.main import create_app
from tests.conftest import WALLET_A, WALLET_B


def _register(client, email, first="", last=""):
    response = client.post("/identities", json={"email": email, "first_name": first, "last_name": last})
    assert response.status_code == 201
    return response.json()["identity_id"]


def _refer(client, inviter_id, email):
    invite = client.post(
        "/referral/invite",
        json={"invitee_email": email, "message": "join"},
        headers={"X-Identity-Id": inviter_id},
    )
    assert invite.status_code == 201
    accept = client.post("/referral/accept", json={"token": invite.json()["token"], "email": email})
    assert accept.status_code == 200
    return _register(client, email)


class TestIdentityEndpoints:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["demo_mode"] is True

    def test_register_and_portfolio(self, client):
        alice = _register(client, "alice@test.com", "Alice", "Smith")
        headers = {"X-Identity-Id": alice}
        for address in (WALLET_A, WALLET_B):
            response = client.post(
                "/wallets/link", json={"address": address, "signature_verified": True}, headers=headers,
            )
            assert response.status_code == 200

        portfolio = client.get(f"/identities/{alice}").json()
        assert len(portfolio["wallets"]) == 2
        assert portfolio["scores"]["onchain_portfolio"] == 700

        response = client.post("/wallets/unlink", json={"address": WALLET_A}, headers=headers)
        assert response.json() == {"success": True, "address": WALLET_A, "onchain_score": 595}

    def test_duplicate_email_conflict(self, client):
        _register(client, "alice@test.com")
        response = client.post("/identities", json={"email": "ALICE@test.com"})
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "DuplicateEmail"

    def test_link_requires_identity_header(self, client):
        response = client.post("/wallets/link", json={"address": WALLET_A, "signature_verified": True})
        assert response.status_code == 422

    def test_unverified_link_rejected(self, client):
        alice = _register(client, "alice@test.com")
        response = client.post(
            "/wallets/link",
            json={"address": WALLET_A, "signature_verified": False},
            headers={"X-Identity-Id": alice},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "ValidationError"

    def test_unknown_identity(self, client):
        response = client.get("/identities/0x" + "0" * 40)
        assert response.status_code == 404


class TestReferralEndpoints:
    def test_referral_flow_and_credit_event(self, client):
        alice = _register(client, "alice@test.com", "Alice")
        bob = _refer(client, alice, "bob@test.com")

        path = client.get(f"/referral/path/{bob}").json()
        assert path["depth"] == 1
        assert [i["email"] for i in path["path"]] == ["alice@test.com", "bob@test.com"]

        response = client.post(
            "/referral/credit-event",
            json={"identity_id": bob, "event_type": "LOAN_PAID_EARLY", "score_change": 10},
        )
        assert response.status_code == 200
        rewards = response.json()["rewards"]
        assert Decimal(str(rewards[0]["amount"])) == Decimal("2")

        score = client.get(f"/scores/{alice}").json()
        assert Decimal(str(score["referral_score"])) == Decimal("2")
        assert score["composite_score"] == 2
        assert score["credit_band"] == "Poor"

        assert len(client.get(f"/referral/events/{bob}").json()) == 1
        assert len(client.get(f"/referral/rewards/{alice}").json()) == 1

    def test_accept_response_includes_inviter(self, client):
        alice = _register(client, "alice@test.com", "Alice", "Smith")
        invite = client.post(
            "/referral/invite", json={"invitee_email": "bob@test.com"}, headers={"X-Identity-Id": alice},
        ).json()
        body = client.post("/referral/accept", json={"token": invite["token"]}).json()
        assert body["inviter"]["identity_id"] == alice
        assert body["invitation"]["status"] == "accepted"

        again = client.post("/referral/accept", json={"token": invite["token"]})
        assert again.status_code == 409
        assert again.json()["detail"]["code"] == "AlreadyResolved"

    def test_reject_and_listings(self, client):
        alice = _register(client, "alice@test.com")
        invite = client.post(
            "/referral/invite", json={"invitee_email": "dave@test.com"}, headers={"X-Identity-Id": alice},
        ).json()
        assert client.get("/referral/can-be-referred/dave@test.com").json()["can_be_referred"] is False

        rejected = client.post("/referral/reject", json={"token": invite["token"]}).json()
        assert rejected["status"] == "rejected"
        assert client.get("/referral/can-be-referred/dave@test.com").json()["can_be_referred"] is True

        listing = client.get("/referral/invitations", params={"email": "alice@test.com"}).json()
        assert [i["token"] for i in listing["sent"]] == [invite["token"]]

    def test_self_referral_conflict(self, client):
        alice = _register(client, "alice@test.com")
        response = client.post(
            "/referral/invite", json={"invitee_email": "alice@test.com"}, headers={"X-Identity-Id": alice},
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "SelfReferral"

    def test_invalid_credit_event(self, client):
        alice = _register(client, "alice@test.com")
        response = client.post(
            "/referral/credit-event",
            json={"identity_id": alice, "event_type": "LOAN_PAID_EARLY", "score_change": -5},
        )
        assert response.status_code == 400

    def test_unknown_invitation(self, client):
        assert client.get("/referral/invitation/missing").status_code == 404


class TestScoreAndNetworkEndpoints:
    def test_wallet_score(self, client):
        body = client.get(f"/scores/wallet/{WALLET_A}").json()
        assert body == {"address": WALLET_A, "score": 805}
        assert client.get("/scores/wallet/0xnope").status_code == 400

    def test_offchain_attestation(self, client):
        alice = _register(client, "alice@test.com")
        response = client.post(f"/scores/{alice}/offchain", json={"score": 720, "proof_id": "p-1"})
        assert response.status_code == 200
        assert response.json()["composite_score"] == 432

        stale = client.post(
            f"/scores/{alice}/offchain", json={"score": 700, "proof_id": "p-0", "attested_at": 1},
        )
        assert stale.status_code == 409
        assert stale.json()["detail"]["code"] == "StaleAttestation"

    def test_stats_and_leaderboard(self, client):
        alice = _register(client, "alice@test.com")
        _refer(client, alice, "bob@test.com")

        stats = client.get("/network/stats").json()
        assert stats["total_identities"] == 2
        assert stats["total_referral_edges"] == 1

        board = client.get("/network/leaderboard", params={"type": "referrals", "limit": 1}).json()
        assert [e["email"] for e in board] == ["alice@test.com"]
        assert client.get("/network/leaderboard", params={"type": "wealth"}).status_code == 422

        invitations = client.get("/network/invitation-stats").json()
        assert invitations["accepted_invitations"] == 1

    def test_demo_reset(self, client):
        _register(client, "alice@test.com")
        response = client.post("/demo/reset")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.get("/network/stats").json()["total_identities"] == 0


def test_demo_router_not_mounted_by_default(reader):
    app = create_app(Settings(), chain_reader=reader)
    with TestClient(app) as client:
        assert client.post("/demo/reset").status_code == 404
        assert client.get("/").json()["demo_mode"] is False
