"""
HTTP tests: the app with its gateway and store replaced through dependency_overrides.
"""
import pytest
from fastapi.testclient import TestClient

from paygate.api.deps import get_gateway, get_store
from paygate.main import app
from tests.conftest import usdc_receipt

LOCK = "X402-LOCK-001"
WALLET = "0x" + "ab" * 20
TX = "0x" + "5a" * 32


@pytest.fixture
def client(gateway, store):
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def issue_credential(client, minutes=15, tx=TX):
    challenge = client.post("/api/payments/challenge", json={"deviceId": LOCK, "walletAddress": WALLET})
    assert challenge.status_code == 200
    return client.post(
        "/api/payments/verify",
        json={
            "deviceId": LOCK,
            "walletAddress": WALLET,
            "challengeId": challenge.json()["challengeId"],
            "proof": tx,
            "minutes": minutes,
        },
    )


class TestPayments:
    def test_challenge(self, client, clock):
        response = client.post("/api/payments/challenge", json={"deviceId": LOCK, "walletAddress": WALLET})
        assert response.status_code == 200
        data = response.json()
        assert data["challengeId"]
        assert len(data["nonce"]) == 64
        assert data["expiresAt"] == int((clock.now + 300) * 1000)

    def test_challenge_missing_fields(self, client):
        response = client.post("/api/payments/challenge", json={"deviceId": LOCK})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert "walletAddress" in response.json()["fields"]

    def test_challenge_unknown_device(self, client):
        response = client.post("/api/payments/challenge", json={"deviceId": "NOPE", "walletAddress": WALLET})
        assert response.status_code == 404
        assert response.json()["error"] == "device_not_found"

    def test_unlock_request_is_402(self, client):
        response = client.post("/api/unlock-request", json={"deviceId": LOCK, "minutes": 15})
        assert response.status_code == 402
        data = response.json()
        assert data["requiredAmount"] == "0.10"
        assert data["requiredAmountMinor"] == "100000"
        assert data["currency"] == "USDC"
        assert data["metadata"] == {"deviceId": LOCK, "minutes": 15}

    def test_verify_issues_credential(self, client, chain_rpc, clock):
        chain_rpc.call.return_value = usdc_receipt(100_000)
        response = issue_credential(client)
        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is True
        assert data["sessionCredential"].count(".") == 2
        assert data["expiresAt"] == (int(clock.now) + 1800) * 1000
        assert data["paymentMethod"] == "usdc-base"

    def test_verify_underpaid_is_402(self, client, chain_rpc):
        chain_rpc.call.return_value = usdc_receipt(50_000)
        response = issue_credential(client)
        assert response.status_code == 402
        assert response.json()["reason"] == "insufficient_amount"
        assert response.json()["requiredAmountMinor"] == "100000"

    def test_verify_reused_transaction_is_409(self, client, chain_rpc):
        chain_rpc.call.return_value = usdc_receipt(100_000)
        assert issue_credential(client).status_code == 200
        response = issue_credential(client)
        assert response.status_code == 409
        assert response.json()["error"] == "proof_reused"

    def test_verify_expired_challenge_is_410(self, client, clock):
        challenge = client.post("/api/payments/challenge", json={"deviceId": LOCK, "walletAddress": WALLET}).json()
        clock.advance(301)
        response = client.post(
            "/api/payments/verify",
            json={"deviceId": LOCK, "walletAddress": WALLET, "challengeId": challenge["challengeId"], "proof": TX},
        )
        assert response.status_code == 410

    def test_chain_down_is_402(self, client, chain_rpc):
        from paygate.services.payments.base import ChainUnavailable

        chain_rpc.call.side_effect = ChainUnavailable("down")
        response = issue_credential(client)
        assert response.status_code == 402
        assert response.json()["reason"] == "chain_unreachable"


class TestDevices:
    @pytest.fixture
    def auth(self, client, chain_rpc):
        chain_rpc.call.return_value = usdc_receipt(100_000)
        token = issue_credential(client).json()["sessionCredential"]
        return {"Authorization": f"Bearer {token}"}

    def test_get_device(self, client):
        response = client.get(f"/api/devices/{LOCK}")
        assert response.status_code == 200
        assert response.json()["capabilities"] == ["lock", "unlock"]

    def test_state_defaults_to_locked(self, client):
        data = client.get(f"/api/devices/{LOCK}/state").json()
        assert data["lockState"] == "locked"
        assert data["remainingMs"] == 0
        assert "session" not in data

    def test_unlock_then_relock(self, client, auth, clock):
        response = client.post(f"/api/devices/{LOCK}/unlock", json={"minutes": 5}, headers=auth)
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["lockState"] == "unlocked"

        state = client.get(f"/api/devices/{LOCK}/state", headers=auth).json()
        assert state["remainingMs"] == 300_000
        assert state["session"]["walletAddress"] == WALLET

        clock.advance(300)
        state = client.get(f"/api/devices/{LOCK}/state").json()
        assert state["lockState"] == "locked"

    def test_unlock_without_body(self, client, auth):
        response = client.post(f"/api/devices/{LOCK}/unlock", headers=auth)
        assert response.status_code == 200

    def test_missing_bearer_is_401(self, client):
        response = client.post(f"/api/devices/{LOCK}/unlock")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_device_is_403(self, client, auth):
        response = client.post("/api/devices/X402-BIKE-001/unlock", headers=auth)
        assert response.status_code == 403
        assert response.json()["error"] == "wrong_device"

    def test_non_positive_minutes_is_400(self, client, auth):
        response = client.post(f"/api/devices/{LOCK}/unlock", json={"minutes": 0}, headers=auth)
        assert response.status_code == 400

    def test_unlock_after_purchased_window_is_403(self, client, auth, clock):
        assert client.post(f"/api/devices/{LOCK}/unlock", headers=auth).status_code == 200
        clock.advance(900)
        response = client.post(f"/api/devices/{LOCK}/unlock", headers=auth)
        assert response.status_code == 403
        assert response.json()["error"] == "session_exhausted"


class TestOps:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready(self, client):
        assert client.get("/ready").status_code == 200

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "payment_verifications_total" in response.text

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-Id": "abc123"})
        assert response.headers["X-Request-Id"] == "abc123"
