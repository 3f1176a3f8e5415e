"""Tests for the ZipShip API: health and credit endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from zipship.api.main import app
from zipship.services.credits import create_purchase
from zipship.services.users import get_or_create_user

ALICE = {"X-Username": "alice"}


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the API."""
    return TestClient(app)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAuthentication:
    def test_missing_username_header_is_rejected(self, client: TestClient) -> None:
        response = client.get("/api/user/stats")

        assert response.status_code == 401
        assert "X-Username" in response.json()["detail"]

    def test_blank_username_header_is_rejected(self, client: TestClient) -> None:
        response = client.get("/api/user/stats", headers={"X-Username": "   "})

        assert response.status_code == 401


class TestUserStats:
    def test_new_user_has_no_credit(self, client: TestClient) -> None:
        response = client.get("/api/user/stats", headers=ALICE)

        assert response.status_code == 200
        assert response.json() == {
            "total_deploys": 0,
            "remaining_deploys": 0,
            "has_unlimited": False,
        }

    def test_stats_reflect_purchases(self, client: TestClient) -> None:
        user_id = get_or_create_user("alice")
        create_purchase(user_id, plan_type="pro", deploys_included=7)

        response = client.get("/api/user/stats", headers=ALICE)

        assert response.json()["remaining_deploys"] == 7


class TestGrantCredits:
    def test_non_privileged_user_is_forbidden(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ZIPSHIP_PRIVILEGED_USERS", "admin")

        response = client.post("/api/test/grant-credits", headers=ALICE, json={"amount": 5})

        assert response.status_code == 403
        stats = client.get("/api/user/stats", headers=ALICE).json()
        assert stats["remaining_deploys"] == 0

    def test_privileged_user_gets_credits(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ZIPSHIP_PRIVILEGED_USERS", "alice,admin")

        response = client.post("/api/test/grant-credits", headers=ALICE, json={"amount": 3})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "granted": 3,
            "message": "Granted 3 test credits",
        }
        stats = client.get("/api/user/stats", headers=ALICE).json()
        assert stats["remaining_deploys"] == 3

    def test_default_amount(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ZIPSHIP_PRIVILEGED_USERS", "alice")

        response = client.post("/api/test/grant-credits", headers=ALICE)

        assert response.status_code == 200
        assert response.json()["granted"] == 5

    def test_amount_above_cap_is_rejected(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ZIPSHIP_PRIVILEGED_USERS", "alice")

        response = client.post("/api/test/grant-credits", headers=ALICE, json={"amount": 11})

        assert response.status_code == 422
