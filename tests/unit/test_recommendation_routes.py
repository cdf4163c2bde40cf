"""
Tests for the recommendation API routes.
"""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from eventrec.db.helpers import DatabaseError
from eventrec.main import app
from eventrec.models.api.recommendation_response import EventRecommendationResponse
from eventrec.models.domain.recommendation_domain import RecommendationRecord
from eventrec.routes.recommendations import get_history_repository, get_recommendation_service

client = TestClient(app)


def _response(event_id: str) -> EventRecommendationResponse:
    return EventRecommendationResponse(event_id=event_id, title="Show", score=0.8, rank=1)


@pytest.fixture
def service():
    mock = MagicMock()
    mock.get_personalized = AsyncMock(return_value=[_response("e1")])
    mock.get_trending = AsyncMock(return_value=[_response("t1")])
    mock.get_similar = AsyncMock(return_value=[])
    mock.get_by_category = AsyncMock(return_value=[_response("c1")])
    mock.invalidate_user = AsyncMock(return_value=2)
    mock.invalidate_event = AsyncMock(return_value=None)

    app.dependency_overrides[get_recommendation_service] = lambda: mock
    yield mock
    app.dependency_overrides.clear()


@pytest.fixture
def repository():
    mock = MagicMock()
    mock.mark_feedback = AsyncMock(return_value=1)
    app.dependency_overrides[get_history_repository] = lambda: mock
    yield mock
    app.dependency_overrides.pop(get_history_repository, None)


def test_personalized_requires_user_header(service):
    response = client.get("/api/recommendations/events")

    assert response.status_code == 401
    service.get_personalized.assert_not_awaited()


def test_personalized_passes_query_and_token(service):
    response = client.get(
        "/api/recommendations/events",
        params={
            "page": 1,
            "size": 5,
            "categoryFilter": "music",
            "maxDistanceKm": 12.5,
            "maxPrice": "30",
            "freeOnly": "true",
            "refresh": "true",
        },
        headers={"X-User-Id": "u1", "Authorization": "Bearer tok"},
    )

    assert response.status_code == 200
    assert response.json()[0]["event_id"] == "e1"

    user_id, options, token = service.get_personalized.await_args.args
    assert user_id == "u1"
    assert token == "tok"
    assert options.page == 1
    assert options.size == 5
    assert options.category_filter == "music"
    assert options.max_distance_km == 12.5
    assert options.max_price == Decimal("30")
    assert options.free_only is True
    assert options.verified_only is None
    assert options.refresh is True


@pytest.mark.parametrize(
    "params",
    [{"page": -1}, {"size": 0}, {"size": 101}, {"maxDistanceKm": 0}, {"maxPrice": -1}],
)
def test_personalized_rejects_invalid_query(service, params):
    response = client.get("/api/recommendations/events", params=params, headers={"X-User-Id": "u1"})
    assert response.status_code == 422


def test_trending_defaults_and_limits(service):
    assert client.get("/api/recommendations/trending").status_code == 200
    service.get_trending.assert_awaited_with(20)

    assert client.get("/api/recommendations/trending", params={"limit": 51}).status_code == 422
    assert client.get("/api/recommendations/trending", params={"limit": 0}).status_code == 422


def test_similar_returns_empty_list_not_error(service):
    response = client.get("/api/recommendations/similar/unknown")

    assert response.status_code == 200
    assert response.json() == []
    service.get_similar.assert_awaited_with("unknown", 10)
    assert client.get("/api/recommendations/similar/x", params={"limit": 21}).status_code == 422


def test_category_is_user_scoped(service):
    assert client.get("/api/recommendations/category/music").status_code == 401

    response = client.get(
        "/api/recommendations/category/music", params={"limit": 5}, headers={"X-User-Id": "u1"}
    )

    assert response.status_code == 200
    service.get_by_category.assert_awaited_with("u1", "music", 5, None)


def test_invalidate_user_cache(service):
    response = client.post("/api/recommendations/cache/invalidate", headers={"X-User-Id": "u1"})

    assert response.status_code == 200
    assert response.json()["scope"] == "user"
    service.invalidate_user.assert_awaited_once_with("u1")


def test_invalidate_event_cache(service):
    response = client.post("/api/recommendations/cache/invalidate/event/e1")

    assert response.status_code == 200
    service.invalidate_event.assert_awaited_once_with("e1")


def test_feedback_marks_latest_recommendation(repository):
    response = client.post(
        "/api/recommendations/feedback",
        json={"event_id": "e1", "kind": "saved"},
        headers={"X-User-Id": "u1"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "updated": 1, "message": "Marked as saved"}
    repository.mark_feedback.assert_awaited_once_with("u1", "e1", "saved")


def test_feedback_for_unknown_recommendation(repository):
    repository.mark_feedback.return_value = 0

    response = client.post(
        "/api/recommendations/feedback",
        json={"event_id": "e1", "kind": "clicked"},
        headers={"X-User-Id": "u1"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_feedback_rejects_unknown_kind(repository):
    response = client.post(
        "/api/recommendations/feedback",
        json={"event_id": "e1", "kind": "liked"},
        headers={"X-User-Id": "u1"},
    )
    assert response.status_code == 422


def test_feedback_database_error_is_503(repository):
    repository.mark_feedback.side_effect = DatabaseError("down", operation="execute")

    response = client.post(
        "/api/recommendations/feedback",
        json={"event_id": "e1", "kind": "converted"},
        headers={"X-User-Id": "u1"},
    )

    assert response.status_code == 503


def test_feedback_without_history_is_503():
    app.dependency_overrides[get_history_repository] = lambda: None
    try:
        response = client.post(
            "/api/recommendations/feedback",
            json={"event_id": "e1", "kind": "clicked"},
            headers={"X-User-Id": "u1"},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503


def test_service_not_ready_is_503():
    response = client.get("/api/recommendations/trending")
    assert response.status_code == 503


def test_recommendations_health():
    response = client.get("/api/recommendations/health")

    assert response.status_code == 200
    assert response.json()["status"] == "UP"


def test_history_lists_recent_recommendations(repository):
    served_at = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
    repository.fetch_recent = AsyncMock(
        return_value=[
            RecommendationRecord(
                user_id="u1",
                event_id="e1",
                score=0.82,
                rank_position=1,
                recommended_at=served_at,
                algorithm_version="v1.0",
                reasons=["Free event"],
                saved=True,
                saved_at=served_at,
            )
        ]
    )

    response = client.get(
        "/api/recommendations/history", params={"limit": 5}, headers={"X-User-Id": "u1"}
    )

    assert response.status_code == 200
    (entry,) = response.json()
    assert entry["event_id"] == "e1"
    assert entry["rank_position"] == 1
    assert entry["reasons"] == ["Free event"]
    assert entry["saved"] is True
    assert entry["clicked"] is False
    repository.fetch_recent.assert_awaited_once_with("u1", 5)


def test_history_requires_user_and_bounded_limit(repository):
    repository.fetch_recent = AsyncMock(return_value=[])

    assert client.get("/api/recommendations/history").status_code == 401
    response = client.get(
        "/api/recommendations/history", params={"limit": 101}, headers={"X-User-Id": "u1"}
    )
    assert response.status_code == 422
    repository.fetch_recent.assert_not_awaited()


def test_history_database_error_is_503(repository):
    repository.fetch_recent = AsyncMock(side_effect=DatabaseError("down", operation="fetch"))

    response = client.get("/api/recommendations/history", headers={"X-User-Id": "u1"})

    assert response.status_code == 503
