"""HTTP tests for token pools, payment quotes and service redemptions."""

from decimal import Decimal


class TestTokenPools:
    def test_current_pool_opens_on_demand(self, client, club):
        response = client.get(f"/api/v1/clubs/{club.id}/token-pools/current")

        assert response.status_code == 200
        body = response.json()
        assert body["month_year"] == "2030-06"
        assert body["allocated"] == 50_000
        assert body["available"] == 50_000
        assert body["usage_breakdown"] is None

    def test_include_usage(self, client, club):
        response = client.get(
            f"/api/v1/clubs/{club.id}/token-pools/current", params={"include_usage": True}
        )

        assert response.json()["usage_breakdown"] == {
            "court_bookings": 0,
            "coaching_sessions": 0,
            "service_redemptions": 0,
            "other": 0,
        }

    def test_month_lookup(self, client, club):
        client.get(f"/api/v1/clubs/{club.id}/token-pools/current")

        assert client.get(f"/api/v1/clubs/{club.id}/token-pools/2030-06").status_code == 200

        missing = client.get(f"/api/v1/clubs/{club.id}/token-pools/2030-01")
        assert missing.status_code == 404
        assert missing.json()["code"] == "TOKEN_POOL_NOT_FOUND"

        invalid = client.get(f"/api/v1/clubs/{club.id}/token-pools/June")
        assert invalid.status_code == 400
        assert invalid.json()["code"] == "INVALID_MONTH"

    def test_unknown_club(self, client):
        response = client.get("/api/v1/clubs/missing/token-pools/current")

        assert response.status_code == 404
        assert response.json()["code"] == "CLUB_NOT_FOUND"

    def test_purchase_adds_tokens_once_per_reference(self, client, club):
        path = f"/api/v1/clubs/{club.id}/token-pools/purchase"

        first = client.post(path, json={"tokens": 2_500, "reference": "inv-42"})
        second = client.post(path, json={"tokens": 2_500, "reference": "inv-42"})

        assert first.status_code == second.status_code == 200
        assert second.json()["purchased"] == 2_500
        assert second.json()["available"] == 52_500

    def test_purchase_requires_positive_tokens(self, client, club):
        response = client.post(
            f"/api/v1/clubs/{club.id}/token-pools/purchase", json={"tokens": 0}
        )

        assert response.status_code == 422


class TestPaymentQuote:
    def test_hybrid_quote(self, client):
        response = client.post(
            "/api/v1/payments/quote",
            json={"item_cost_tokens": 1000, "available_tokens": 400, "token_usd_rate": "0.01"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["cash_price"] == "10.00"
        methods = {option["method"]: option for option in body["options"]}
        assert methods["hybrid"]["tokens"] == 400
        assert methods["hybrid"]["cash"] == "6.00"
        assert methods["tokens"]["can_afford"] is False
        assert body["best_option"]["method"] == "hybrid"

    def test_negative_cost_fails_validation(self, client):
        response = client.post(
            "/api/v1/payments/quote", json={"item_cost_tokens": -1, "available_tokens": 0}
        )

        assert response.status_code == 422


class TestRedemptions:
    def test_policies(self, client):
        response = client.get("/api/v1/redemptions/policies")

        assert response.status_code == 200
        by_category = {p["category"]: p for p in response.json()}
        assert by_category["coaching_lesson"]["max_redemption_percentage"] == 25
        assert by_category["court_booking"]["allowed_weekdays"] == [0, 1, 2, 3, 4]

    def test_calculate(self, client):
        response = client.post(
            "/api/v1/redemptions/calculate",
            json={"category": "coaching_lesson", "total_value": "100.00"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["tokens_to_use"] == 3571
        assert body["token_value"] == "25.00"
        assert body["cash_amount"] == "75.00"

    def test_calculate_unknown_category(self, client):
        response = client.post(
            "/api/v1/redemptions/calculate",
            json={"category": "spa_day", "total_value": "10.00"},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_execute(self, client, club, token_ledger):
        response = client.post(
            f"/api/v1/clubs/{club.id}/redemptions",
            json={
                "player_id": "player-7",
                "category": "coaching_lesson",
                "total_value": "100.00",
                "tokens": 1_000,
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["tokens_used"] == 1_000
        assert body["cash_paid"] == "93.00"
        assert token_ledger.get_token_pool(club.id).used == 1_000

    def test_execute_over_limit(self, client, club):
        response = client.post(
            f"/api/v1/clubs/{club.id}/redemptions",
            json={
                "player_id": "player-7",
                "category": "club_merchandise",
                "total_value": str(Decimal("10.00")),
                "tokens": 1_000,
            },
        )

        assert response.status_code == 422
        assert response.json()["code"] == "REDEMPTION_LIMIT_EXCEEDED"
