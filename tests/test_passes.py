"""Tests for pass definitions and purchases."""
from datetime import datetime, timedelta

import pytest

from app.core.errors import NotFoundError
from app.services import passes


PASS_BODY = {
    "name": "Drop-in Week",
    "description": "Three classes in a week",
    "duration": {"value": 1, "unit": "weeks"},
    "sessions": 3,
    "price": 45,
}


class TestPassDefinitions:
    """Test manager pass catalogue routes."""

    def test_create_pass(self, test_client, manager, auth_headers):
        """Test creation by a manager."""
        response = test_client.post("/api/passes", json=PASS_BODY, headers=auth_headers(manager))

        assert response.status_code == 201
        created = response.json()["pass"]
        assert created["passId"] == "P00001"
        assert created["formattedDuration"] == "1 week"

    def test_client_cannot_create_pass(self, test_client, client_account, auth_headers):
        """Test manage_passes permission."""
        response = test_client.post("/api/passes", json=PASS_BODY, headers=auth_headers(client_account))

        assert response.status_code == 403

    def test_list_is_public_and_sorted_by_price(self, test_client, manager, auth_headers):
        """Test public catalogue ordering."""
        headers = auth_headers(manager)
        test_client.post("/api/passes", json={**PASS_BODY, "name": "Pricey", "price": 200}, headers=headers)
        test_client.post("/api/passes", json={**PASS_BODY, "name": "Cheap", "price": 20}, headers=headers)

        response = test_client.get("/api/passes")

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Cheap", "Pricey"]

    def test_update_pass(self, test_client, manager, monthly_pass, auth_headers):
        """Test partial update."""
        response = test_client.put(
            f"/api/passes/{monthly_pass['passId']}", json={"price": 90}, headers=auth_headers(manager)
        )

        assert response.status_code == 200
        assert response.json()["pass"]["price"] == 90
        assert response.json()["pass"]["sessions"] == 10

    def test_delete_unsold_pass_removes_it(self, test_client, store, manager, monthly_pass, auth_headers):
        """Test hard delete of a pass nobody bought."""
        response = test_client.delete(f"/api/passes/{monthly_pass['passId']}", headers=auth_headers(manager))

        assert response.status_code == 200
        assert response.json()["deleted"] is True
        assert store.passes.get(monthly_pass["passId"]) is None

    def test_delete_sold_pass_deactivates_it(self, test_client, store, manager, client_account, monthly_pass, auth_headers):
        """Test soft delete keeps purchased passes resolvable."""
        passes.purchase(store, client_account, monthly_pass["passId"])

        response = test_client.delete(f"/api/passes/{monthly_pass['passId']}", headers=auth_headers(manager))

        assert response.json()["deleted"] is False
        assert store.passes.get(monthly_pass["passId"]).is_active is False
        assert test_client.get("/api/passes").json() == []
        assert test_client.get(f"/api/passes/{monthly_pass['passId']}").status_code == 404


class TestPurchase:
    """Test buying passes."""

    def test_purchase_sets_sessions_and_expiry(self, store, client_account, monthly_pass):
        """Test that a one-month pass expires exactly 30 days after purchase."""
        day = datetime(2024, 2, 1, 10, 0)
        result = passes.purchase(store, client_account, monthly_pass["passId"], now=day)

        owned = store.owned_passes.get(result["ownedPass"]["ownedPassId"])
        assert owned.owned_pass_id == "UP00001"
        assert owned.sessions_remaining == owned.total_sessions == 10
        assert owned.expiration_date == day + timedelta(days=30)
        assert owned.start_date == day

    def test_each_purchase_creates_new_pass(self, store, client_account, monthly_pass):
        """Test that repeat purchases are not merged."""
        first = passes.purchase(store, client_account, monthly_pass["passId"])
        second = passes.purchase(store, client_account, monthly_pass["passId"])

        assert first["ownedPass"]["ownedPassId"] != second["ownedPass"]["ownedPassId"]
        assert len(store.owned_passes.for_account(client_account.account_id)) == 2

    def test_purchase_unknown_pass(self, store, client_account):
        """Test purchasing a pass that does not exist."""
        with pytest.raises(NotFoundError):
            passes.purchase(store, client_account, "P99999")

    def test_purchase_route(self, test_client, client_account, monthly_pass, auth_headers):
        """Test the purchase endpoint response."""
        response = test_client.post(
            f"/api/passes/{monthly_pass['passId']}/purchase",
            json={"paymentMethod": "credit_card"},
            headers=auth_headers(client_account),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["ownedPass"]["paymentMethod"] == "credit_card"
        assert data["ownedPass"]["paymentStatus"] == "completed"
        assert data["account"]["name"] == "Cora Person"

    def test_purchase_requires_token(self, test_client, monthly_pass):
        """Test anonymous purchase."""
        response = test_client.post(f"/api/passes/{monthly_pass['passId']}/purchase")

        assert response.status_code == 401


class TestOwnedPasses:
    """Test the caller's pass queries."""

    def test_no_passes(self, test_client, client_account, auth_headers):
        """Test the empty owned list."""
        response = test_client.get("/api/passes/owned", headers=auth_headers(client_account))

        assert response.status_code == 200
        assert response.json() == {"message": "No passes found", "ownedPasses": []}

    def test_owned_passes_include_definition(self, test_client, store, client_account, monthly_pass, auth_headers):
        """Test owned passes are returned with their definition."""
        passes.purchase(store, client_account, monthly_pass["passId"])

        response = test_client.get("/api/passes/owned", headers=auth_headers(client_account))

        owned = response.json()["ownedPasses"]
        assert len(owned) == 1
        assert owned[0]["pass"]["name"] == "Monthly 10"
        assert owned[0]["isUsable"] is True

    def test_check_valid_ignores_exhausted_and_expired(self, test_client, store, client_account, monthly_pass, auth_headers):
        """Test validity check."""
        exhausted = passes.purchase(store, client_account, monthly_pass["passId"])["ownedPass"]
        store.owned_passes.update(exhausted["ownedPassId"], {"sessionsRemaining": 0})
        passes.purchase(store, client_account, monthly_pass["passId"], now=datetime.utcnow() - timedelta(days=60))

        response = test_client.get("/api/passes/owned/check-valid", headers=auth_headers(client_account))
        assert response.json() == {"hasValidPass": False, "activePasses": []}

        passes.purchase(store, client_account, monthly_pass["passId"])
        response = test_client.get("/api/passes/owned/active", headers=auth_headers(client_account))
        assert len(response.json()) == 1
