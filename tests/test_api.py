from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from smart_budget.main import app


def _sample_payload(category: str = "hotel") -> dict:
    return {
        "userParams": {
            "totalBudget": 1000,
            "groupSize": 2,
            "days": 2,
            "dates": {"start": "2025-10-10", "end": "2025-10-12"},
            "preferences": ["spa"],
            "anchorCoords": {"lat": 45.0, "lng": 25.0},
        },
        "category": category,
    }


def _candidates() -> list:
    return [
        {"id": 1, "name": "Far Inn", "type": "hotel", "latitude": 46.0, "longitude": 25.0, "price_level": 2},
        {"id": 2, "name": "Spa Lodge", "type": "hotel", "latitude": 45.0, "longitude": 25.0, "price_level": 2, "tags": ["Spa"], "rating": 4.5},
        {"id": 3, "name": "Ghost", "type": "hotel", "latitude": None, "longitude": 25.0},
    ]


def test_recommendations_endpoint_returns_ranked_envelope(monkeypatch, fake_store):
    store = fake_store(candidates=_candidates())
    monkeypatch.setattr("smart_budget.main.build_store", lambda: store)
    client = TestClient(app)

    response = client.post("/api/recommendations", json=_sample_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [item["candidate"]["id"] for item in body["data"]] == [2, 1]
    top = body["data"][0]
    assert top["candidate"]["name"] == "Spa Lodge"
    assert top["priceScore"] == 100
    assert top["distanceKm"] == 0
    assert top["estimatedPrice"] == 200
    assert store.categories == ["hotel"]


def test_recommendations_endpoint_passes_current_spend(monkeypatch):
    recommend = AsyncMock(return_value=[])
    monkeypatch.setattr("smart_budget.main.recommend", recommend)
    monkeypatch.setattr("smart_budget.main.build_store", lambda: object())
    client = TestClient(app)

    payload = {**_sample_payload("restaurant"), "currentSpend": 250}
    response = client.post("/api/recommendations", json=payload)

    assert response.status_code == 200
    recommend.assert_awaited_once()
    _, params, category, spend = recommend.await_args.args
    assert category == "restaurant"
    assert spend == 250
    assert params.total_budget == 1000


def test_recommendations_endpoint_rejects_bad_payload():
    client = TestClient(app)
    payload = _sample_payload()
    payload["category"] = "nightclub"

    response = client.post("/api/recommendations", json=payload)

    assert response.status_code == 422


def test_recommendations_endpoint_degrades_to_empty_list(monkeypatch, fake_store):
    monkeypatch.setattr("smart_budget.main.build_store", lambda: fake_store(fail_candidates=True))
    client = TestClient(app)

    response = client.post("/api/recommendations", json=_sample_payload("activity"))

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["data"] == []


def test_recommendations_endpoint_reports_unexpected_errors(monkeypatch):
    monkeypatch.setattr("smart_budget.main.recommend", AsyncMock(side_effect=RuntimeError("boom")))
    monkeypatch.setattr("smart_budget.main.build_store", lambda: object())
    client = TestClient(app)

    response = client.post("/api/recommendations", json=_sample_payload())

    assert response.status_code == 200
    assert response.json() == {"success": False, "data": [], "error": "boom"}


def test_trip_recommendations_derive_spend_from_items(monkeypatch, fake_store):
    store = fake_store(
        candidates=[{"id": 9, "type": "restaurant", "latitude": 45.0, "longitude": 25.0, "price_level": 1}]
    )
    monkeypatch.setattr("smart_budget.main.build_store", lambda: store)
    client = TestClient(app)

    trip = {
        "startDate": "2025-10-10",
        "endDate": "2025-10-12",
        "guests": 2,
        "budget": {"total": 1000},
        "metadata": {"preferences": []},
        "items": [{"business_category": "hotel", "estimated_cost": 1000}],
        "city": {"center_lat": 45.0, "center_lng": 25.0},
    }
    response = client.post("/api/trips/recommendations", json={"trip": trip, "category": "restaurant"})

    assert response.status_code == 200
    [item] = response.json()["data"]
    # the whole budget is already spent, so nothing is affordable
    assert item["priceScore"] == 0
    assert item["distanceScore"] == 100


def test_get_algorithm_reports_default_source(monkeypatch, fake_store):
    monkeypatch.setattr("smart_budget.main.build_store", lambda: fake_store())
    client = TestClient(app)

    response = client.get("/api/admin/algorithm")

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "default"
    assert body["settings"]["split_ratio_hotel"] == 0.4
    assert body["settings"]["penalty_per_km"] == 10.0


def test_put_algorithm_persists_valid_settings(monkeypatch, fake_store):
    store = fake_store()
    monkeypatch.setattr("smart_budget.main.build_store", lambda: store)
    client = TestClient(app)

    settings = {
        "split_ratio_hotel": 0.5,
        "split_ratio_food": 0.25,
        "split_ratio_activity": 0.25,
        "weight_price_fit": 0.25,
        "weight_distance": 0.25,
        "weight_affinity": 0.25,
        "weight_rating": 0.25,
        "penalty_per_km": 4,
    }
    response = client.put("/api/admin/algorithm", json=settings)

    assert response.status_code == 200
    assert response.json()["source"] == "store"
    assert len(store.upserts) == 1

    follow_up = client.get("/api/admin/algorithm")
    assert follow_up.json()["source"] == "store"
    assert follow_up.json()["settings"]["penalty_per_km"] == 4


def test_put_algorithm_rejects_invariant_violation(monkeypatch, fake_store):
    store = fake_store()
    monkeypatch.setattr("smart_budget.main.build_store", lambda: store)
    client = TestClient(app)

    settings = {
        "split_ratio_hotel": 0.5,
        "split_ratio_food": 0.5,
        "split_ratio_activity": 0.5,
        "weight_price_fit": 0.25,
        "weight_distance": 0.25,
        "weight_affinity": 0.25,
        "weight_rating": 0.25,
        "penalty_per_km": 4,
    }
    response = client.put("/api/admin/algorithm", json=settings)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["invariant"] == "check_split_ratios_sum"
    assert detail["total"] == 1.5
    assert store.upserts == []


def _full_settings() -> dict:
    return {
        "split_ratio_hotel": 0.5,
        "split_ratio_food": 0.25,
        "split_ratio_activity": 0.25,
        "weight_price_fit": 0.25,
        "weight_distance": 0.25,
        "weight_affinity": 0.25,
        "weight_rating": 0.25,
        "penalty_per_km": 4,
    }


def test_put_algorithm_requires_every_field(monkeypatch, fake_store):
    store = fake_store()
    monkeypatch.setattr("smart_budget.main.build_store", lambda: store)
    client = TestClient(app)

    partial = {"split_ratio_hotel": 0.5, "split_ratio_food": 0.25, "split_ratio_activity": 0.25}
    response = client.put("/api/admin/algorithm", json=partial)

    assert response.status_code == 422
    missing = {err["loc"][-1] for err in response.json()["detail"] if err["type"] == "missing"}
    assert missing == {"weight_price_fit", "weight_distance", "weight_affinity", "weight_rating", "penalty_per_km"}

    assert client.put("/api/admin/algorithm", json={}).status_code == 422
    assert store.upserts == []


def test_put_algorithm_rejects_unknown_keys(monkeypatch, fake_store):
    store = fake_store()
    monkeypatch.setattr("smart_budget.main.build_store", lambda: store)
    client = TestClient(app)

    settings = _full_settings()
    settings["weight_ratting"] = settings.pop("weight_rating")
    response = client.put("/api/admin/algorithm", json=settings)

    assert response.status_code == 422
    assert store.upserts == []


def test_put_algorithm_surfaces_store_failure(monkeypatch, fake_store):
    monkeypatch.setattr("smart_budget.main.build_store", lambda: fake_store(fail_upsert=True))
    client = TestClient(app)

    response = client.put(
        "/api/admin/algorithm",
        json={
            "split_ratio_hotel": 0.4,
            "split_ratio_food": 0.3,
            "split_ratio_activity": 0.3,
            "weight_price_fit": 0.3,
            "weight_distance": 0.2,
            "weight_affinity": 0.3,
            "weight_rating": 0.2,
            "penalty_per_km": 10,
        },
    )

    assert response.status_code == 502


def test_rebalance_endpoint_redistributes_split():
    client = TestClient(app)

    response = client.post(
        "/api/admin/algorithm/rebalance",
        json={"settings": {}, "field": "split_ratio_hotel", "value": 0.6},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["split_ratio_hotel"] == 0.6
    assert abs(body["split_ratio_food"] - 0.2) < 1e-9
    assert abs(body["split_ratio_activity"] - 0.2) < 1e-9


def test_trip_recommendations_tolerate_malformed_metadata(monkeypatch, fake_store):
    store = fake_store(candidates=[{"id": 4, "type": "hotel", "latitude": 0.0, "longitude": 0.0}])
    monkeypatch.setattr("smart_budget.main.build_store", lambda: store)
    client = TestClient(app)

    partial_coords = {"metadata": {"hotelCoords": {"lat": 1.0}}, "items": [{"business_category": "hotel"}]}
    listed_metadata = {"metadata": ["beach"]}

    for trip in (partial_coords, listed_metadata):
        response = client.post("/api/trips/recommendations", json={"trip": trip, "category": "hotel"})
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert [item["candidate"]["id"] for item in response.json()["data"]] == [4]
