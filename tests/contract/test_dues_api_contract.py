"""Contract tests for dues API endpoints."""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from dues.api.app import app
from dues.services import get_db


@pytest.fixture
def client(db):
    """Create test client with database dependency override."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def member(make_member):
    return make_member("Anna Berg", join_date=date(2024, 1, 1))


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestScheduleAndStatusEndpoints:
    """Test read-only member projections."""

    def test_schedule(self, client, member):
        response = client.get(f"/api/dues/members/{member.id}/schedule", params={"as_of": "2024-03-02"})

        assert response.status_code == 200
        data = response.json()
        assert [p["period_key"] for p in data] == ["2024-01", "2024-02", "2024-03"]
        assert data[0]["interval"] == "MONTHLY"
        assert data[0]["window_start"] == "2024-01-01"
        assert data[0]["window_end"] == "2024-01-31"
        assert Decimal(data[0]["amount"]) == Decimal("10")

    def test_status(self, client, member):
        response = client.get(f"/api/dues/members/{member.id}/status", params={"as_of": "2024-02-15"})

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "OVERDUE"
        assert data["overdue_count"] == 2
        assert data["first_overdue_period"] == "2024-01"
        assert data["initial_due_date"] == "2024-01-01"

    def test_timeline(self, client, member):
        response = client.get(
            f"/api/dues/members/{member.id}/timeline",
            params={"as_of": "2024-02-15", "past": 3, "future": 1},
        )

        assert response.status_code == 200
        assert response.json() == [
            {"period_key": "2024-01", "label": "overdue"},
            {"period_key": "2024-02", "label": "overdue"},
            {"period_key": "2024-03", "label": "upcoming"},
        ]

    def test_timeline_rejects_negative_window(self, client, member):
        response = client.get(f"/api/dues/members/{member.id}/timeline", params={"past": -1})
        assert response.status_code == 422

    def test_unknown_member(self, client):
        response = client.get("/api/dues/members/999/status")

        assert response.status_code == 404
        assert response.json()["detail"]["error"]["code"] == "member_not_found"


class TestPaymentEndpoints:
    """Test mark paid, unmark and history."""

    def test_mark_paid(self, client, member):
        response = client.post(
            f"/api/dues/members/{member.id}/payments",
            json={"period_key": "2024-01", "interval": "MONTHLY", "amount": "10.00", "actor_id": 3},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["warnings"] == []
        assert data["payment"]["period_key"] == "2024-01"
        assert data["payment"]["member_id"] == member.id
        assert data["payment"]["verified"] is False

    def test_mark_paid_returns_mismatch_warning(self, client, member):
        response = client.post(
            f"/api/dues/members/{member.id}/payments",
            json={"period_key": "2024-01", "interval": "MONTHLY", "amount": "7.50"},
        )

        assert response.status_code == 200
        assert response.json()["warnings"] == ["Paid amount 7.50 differs from scheduled amount 10.00"]

    def test_mark_paid_invalid_period(self, client, member):
        response = client.post(
            f"/api/dues/members/{member.id}/payments",
            json={"period_key": "2024-13", "interval": "MONTHLY", "amount": "10.00"},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["code"] == "invalid_period"

    def test_mark_paid_rejects_negative_amount(self, client, member):
        response = client.post(
            f"/api/dues/members/{member.id}/payments",
            json={"period_key": "2024-01", "interval": "MONTHLY", "amount": "-1"},
        )
        assert response.status_code == 422

    def test_unmark_is_idempotent(self, client, member):
        client.post(
            f"/api/dues/members/{member.id}/payments",
            json={"period_key": "2024-01", "interval": "MONTHLY", "amount": "10.00"},
        )

        first = client.delete(f"/api/dues/members/{member.id}/payments/2024-01")
        second = client.delete(f"/api/dues/members/{member.id}/payments/2024-01")

        assert first.status_code == 204
        assert second.status_code == 204

    def test_history(self, client, member):
        for key in ("2024-01", "2024-02", "2024-03"):
            client.post(
                f"/api/dues/members/{member.id}/payments",
                json={"period_key": key, "interval": "MONTHLY", "amount": "10.00"},
            )

        response = client.get(f"/api/dues/members/{member.id}/payments", params={"limit": 2})

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_audit_trail(self, client, member):
        client.post(
            f"/api/dues/members/{member.id}/payments",
            json={"period_key": "2024-01", "interval": "MONTHLY", "amount": "10.00", "actor_id": 3},
        )
        client.delete(f"/api/dues/members/{member.id}/payments/2024-01", params={"actor_id": 4})

        response = client.get(f"/api/dues/members/{member.id}/audit")

        assert response.status_code == 200
        assert [(e["action"], e["actor_id"]) for e in response.json()] == [("delete", 4), ("create", 3)]

    def test_history_limit_bounds(self, client, member):
        response = client.get(f"/api/dues/members/{member.id}/payments", params={"limit": 500})
        assert response.status_code == 422


class TestMatchingEndpoints:
    """Test suggestions and voucher search."""

    def test_suggestions(self, client, member, make_voucher):
        voucher = make_voucher(date(2024, 2, 2), "10.00", "Beitrag Februar", "Anna Berg")

        response = client.get(
            f"/api/dues/members/{member.id}/suggestions", params={"period_key": "2024-02"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data[0]["id"] == voucher.id
        assert data[0]["amount_match"] == "exact"
        assert data[0]["in_window"] is True
        assert data[0]["name_score"] == 1.0

    @pytest.mark.parametrize("period_key", ["0000-01", "9999-12"])
    def test_suggestions_out_of_range_year(self, client, member, period_key):
        response = client.get(
            f"/api/dues/members/{member.id}/suggestions", params={"period_key": period_key}
        )

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["code"] == "invalid_period"

    def test_suggestions_without_billing(self, client, make_member):
        member = make_member(amount=None)
        response = client.get(
            f"/api/dues/members/{member.id}/suggestions", params={"period_key": "2024-02"}
        )

        assert response.status_code == 409
        assert response.json()["detail"]["error"]["code"] == "no_billing_configured"

    def test_transaction_search(self, client, make_voucher):
        make_voucher(date(2024, 2, 2), "10.00", "Beitrag", "Anna Berg")
        response = client.get(
            "/api/dues/transactions",
            params={"date_from": "2024-02-01", "date_to": "2024-02-29", "q": "anna"},
        )

        assert response.status_code == 200
        assert [t["counterparty"] for t in response.json()] == ["Anna Berg"]

    def test_transaction_search_inverted_range(self, client):
        response = client.get(
            "/api/dues/transactions",
            params={"date_from": "2024-03-01", "date_to": "2024-02-01"},
        )
        assert response.status_code == 422


class TestDueListEndpoint:
    """Test batch due list."""

    def test_due_list(self, client, member, make_member):
        make_member("Umut Tanis", join_date=date(2024, 1, 1))

        response = client.get("/api/dues/due", params={"interval": "MONTHLY", "period_key": "2024-02"})

        assert response.status_code == 200
        assert [(r["name"], r["period_key"], r["paid"]) for r in response.json()] == [
            ("Anna Berg", "2024-02", False),
            ("Umut Tanis", "2024-02", False),
        ]

    def test_due_list_invalid_interval(self, client):
        response = client.get("/api/dues/due", params={"interval": "WEEKLY"})
        assert response.status_code == 422

    def test_due_list_invalid_period(self, client):
        response = client.get("/api/dues/due", params={"interval": "MONTHLY", "period_key": "2024-Q1"})

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["code"] == "invalid_period"

    def test_due_list_out_of_range_year(self, client):
        response = client.get("/api/dues/due", params={"interval": "MONTHLY", "period_key": "0000-01"})

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["code"] == "invalid_period"

    @pytest.mark.parametrize("bound", ["date_from", "date_to"])
    def test_due_list_half_open_range(self, client, bound):
        response = client.get("/api/dues/due", params={"interval": "MONTHLY", bound: "2024-02-01"})
        assert response.status_code == 422
