"""Tests for the HTTP endpoints."""

import pytest

from searchsuggest.config import settings


def test_record_search_and_suggest(client, database, monkeypatch):
    monkeypatch.setattr(settings, "automatic_approval", True)
    page_id = database.add_page()

    for _ in range(3):
        response = client.post(
            f"/api/v1/pages/{page_id}/searches",
            json={"term": "Recycling", "results": 8, "elapsed_time": 0.12, "engine": "database"},
        )
        assert response.status_code == 201
        assert response.json()["status"] == "recorded"
    client.post(
        f"/api/v1/pages/{page_id}/searches",
        json={"term": "recipes", "results": 2, "elapsed_time": 0.1},
    )

    response = client.get("/api/v1/suggestions", params={"term": "REC", "page": page_id})
    assert response.status_code == 200
    assert response.json() == {
        "term": "REC",
        "page_id": page_id,
        "suggestions": ["recycling", "recipes"],
    }

    response = client.get(f"/api/v1/pages/{page_id}/suggestions")
    assert response.json()["suggestions"] == ["recycling", "recipes"]


def test_record_search_validation(client, database):
    page_id = database.add_page()

    response = client.post(f"/api/v1/pages/{page_id}/searches", json={"results": 1})
    assert response.status_code == 400

    response = client.post(
        f"/api/v1/pages/{page_id}/searches", json={"term": "bins", "results": -1}
    )
    assert response.status_code == 400

    response = client.post(
        f"/api/v1/pages/{page_id}/searches", json={"term": "bins", "results": "many"}
    )
    assert response.status_code == 400

    response = client.post("/api/v1/pages/999/searches", json={"term": "bins", "results": 1})
    assert response.status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        {"term": "bins", "results": 3.7},
        {"term": "bins", "results": 2**31},
        {"term": "bins", "results": 1e12},
        {"term": "bins", "results": True},
        {"term": "bins", "results": 1, "engine": "e" * 51},
    ],
)
def test_record_search_rejects_unstorable_values(client, database, body):
    page_id = database.add_page()

    response = client.post(f"/api/v1/pages/{page_id}/searches", json=body)
    assert response.status_code == 400
    assert database.search_count() == 0


def test_record_search_accepts_whole_float_results(client, database):
    page_id = database.add_page()

    response = client.post(
        f"/api/v1/pages/{page_id}/searches",
        json={"term": "bins", "results": 3.0, "engine": "e" * 50},
    )
    assert response.status_code == 201
    assert response.json()["status"] == "recorded"
    assert database.search_count() == 1


def test_overlong_term_is_logged_without_suggestion(client, database):
    page_id = database.add_page()

    response = client.post(
        f"/api/v1/pages/{page_id}/searches", json={"term": "x" * 300, "results": 2}
    )
    assert response.status_code == 201
    assert response.json()["status"] == "recorded"
    assert database.search_count() == 1
    assert database.suggestions() == []


def test_overlong_suggestion_term_returns_empty_list(client, database):
    page_id = database.add_page()
    database.add_suggestion("x" * 255, page_id, frequency=1)

    response = client.get("/api/v1/suggestions", params={"term": "x" * 300, "page": page_id})
    assert response.status_code == 200
    assert response.json()["suggestions"] == []

    response = client.get("/api/v1/suggestions", params={"term": "x" * 255, "page": page_id})
    assert response.json()["suggestions"] == ["x" * 255]


def test_record_search_with_analytics_disabled(client, database, monkeypatch):
    monkeypatch.setattr(settings, "enable_analytics", False)
    page_id = database.add_page()

    response = client.post(
        f"/api/v1/pages/{page_id}/searches", json={"term": "council tax", "results": 5}
    )
    assert response.status_code == 201
    assert response.json()["status"] == "skipped"
    assert database.search_count() == 0


def test_private_page_needs_api_key(client, database, admin_headers):
    page_id = database.add_page(is_public=False)
    database.add_suggestion("planning", page_id, frequency=2)

    anonymous = client.get("/api/v1/suggestions", params={"term": "plan", "page": page_id})
    assert anonymous.json()["suggestions"] == []

    keyed = client.get(
        "/api/v1/suggestions", params={"term": "plan", "page": page_id}, headers=admin_headers
    )
    assert keyed.json()["suggestions"] == ["planning"]


def test_disabled_suggestions_and_unknown_page(client, database):
    page_id = database.add_page(suggestions_enabled=False)
    database.add_suggestion("waste", page_id, frequency=2)

    response = client.get("/api/v1/suggestions", params={"term": "was", "page": page_id})
    assert response.json()["suggestions"] == []

    response = client.get("/api/v1/pages/4242/suggestions")
    assert response.status_code == 200
    assert response.json()["suggestions"] == []


def test_unapproved_suggestions_are_hidden(client, database):
    page_id = database.add_page()
    database.add_suggestion("rates", page_id, frequency=2, approved=False)

    response = client.get("/api/v1/suggestions", params={"term": "rat", "page": page_id})
    assert response.json()["suggestions"] == []


def test_moderation_flow(client, database, admin_headers):
    page_id = database.add_page()
    suggestion_id = database.add_suggestion("street lights", page_id, frequency=3, approved=False)

    assert client.get(f"/api/v1/admin/pages/{page_id}/suggestions").status_code == 401

    queue = client.get(
        f"/api/v1/admin/pages/{page_id}/suggestions", params={"approved": False}, headers=admin_headers
    )
    assert queue.json()["suggestions"] == [
        {"id": suggestion_id, "term": "street lights", "frequency": 3, "approved": False}
    ]

    response = client.post(f"/api/v1/admin/suggestions/{suggestion_id}/toggle", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": 'Approved "street lights"!'}

    response = client.get("/api/v1/suggestions", params={"term": "street", "page": page_id})
    assert response.json()["suggestions"] == ["street lights"]

    response = client.post("/api/v1/admin/suggestions/9999/toggle", headers=admin_headers)
    assert response.status_code == 404


def test_admin_pages(client, admin_headers):
    assert client.post("/api/v1/admin/pages", json={"title": "News"}).status_code == 401
    assert client.post("/api/v1/admin/pages", json={}, headers=admin_headers).status_code == 400

    created = client.post(
        "/api/v1/admin/pages", json={"title": "News", "is_public": False}, headers=admin_headers
    )
    assert created.status_code == 201
    page = created.json()
    assert page["title"] == "News"
    assert page["is_public"] is False

    listing = client.get("/api/v1/admin/pages", headers=admin_headers).json()["pages"]
    assert listing == [
        {
            "id": page["id"],
            "title": "News",
            "is_public": False,
            "suggestions_enabled": True,
            "suggestion_count": 0,
        }
    ]


def test_page_analytics(client, database, admin_headers):
    page_id = database.add_page()
    database.add_searches("bin day", page_id, count=2, results=3)

    assert client.get(f"/api/v1/analytics/pages/{page_id}").status_code == 401
    assert client.get(f"/api/v1/analytics/pages/{page_id}", params={"period": "week"}, headers=admin_headers).status_code == 422
    assert client.get("/api/v1/analytics/pages/777", headers=admin_headers).status_code == 404

    stats = client.get(f"/api/v1/analytics/pages/{page_id}", headers=admin_headers).json()
    assert stats["total_searches"] == 2
    assert stats["top_terms"][0]["term"] == "bin day"


def test_response_carries_request_id(client, database):
    page_id = database.add_page()
    response = client.get(
        "/api/v1/suggestions",
        params={"term": "abc", "page": page_id},
        headers={"X-Request-ID": "req-123"},
    )
    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Response-Time-Ms" in response.headers
