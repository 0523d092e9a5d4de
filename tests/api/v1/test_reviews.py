"""
Tests for the /reviews endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError
from app.models.review import Review, ReviewStats
from app.services import review as review_service
from app.services.review import ReviewService

REVIEWS_URL = "/api/v1/reviews"


async def _raise_storage_error(*args, **kwargs):
    raise StorageError("database unavailable")


async def _count(db: AsyncSession, model: type, item_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(model).where(model.item_id == item_id)
    )
    return result.scalar_one()


@pytest.mark.api
class TestGetReviews:
    async def test_requires_item_id(self, client: AsyncClient) -> None:
        response = await client.get(REVIEWS_URL)

        assert response.status_code == 400
        assert response.json()["detail"] == "itemId is required"

    async def test_unreviewed_item_returns_empty_page(self, client: AsyncClient) -> None:
        response = await client.get(REVIEWS_URL, params={"itemId": "filesystem"})

        assert response.status_code == 200
        data = response.json()
        assert data["reviews"] == []
        assert data["stats"]["review_count"] == 0
        assert data["stats"]["average_rating"] == 0.0
        assert data["pagination"] == {"page": 1, "limit": 10, "total": 0, "totalPages": 0}

    async def test_bad_pagination_falls_back_to_defaults(self, client: AsyncClient) -> None:
        response = await client.get(
            REVIEWS_URL, params={"itemId": "filesystem", "page": "abc", "limit": "-3"}
        )

        assert response.status_code == 200
        assert response.json()["pagination"]["page"] == 1
        assert response.json()["pagination"]["limit"] == 10

    async def test_lists_reviews_with_author_snapshot(
        self, client: AsyncClient, login_as, alice
    ) -> None:
        login_as(alice)
        await client.post(
            REVIEWS_URL,
            json={"itemId": "filesystem", "rating": 4, "title": "Solid", "content": "Does the job"},
        )

        login_as(None)
        response = await client.get(REVIEWS_URL, params={"itemId": "filesystem"})

        assert response.status_code == 200
        data = response.json()
        assert len(data["reviews"]) == 1
        review = data["reviews"][0]
        assert review["user_id"] == alice.id
        assert review["user_name"] == "Ada Lovelace"
        assert review["user_image_url"] == "https://avatars.example.com/ada.png"
        assert review["title"] == "Solid"
        assert review["helpful_count"] == 0
        assert data["pagination"]["total"] == 1
        assert data["pagination"]["totalPages"] == 1


@pytest.mark.api
class TestSubmitReview:
    async def test_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 5})

        assert response.status_code == 401

    async def test_create_then_update(self, client: AsyncClient, login_as, alice, bob) -> None:
        login_as(alice)
        response = await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 5})
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["message"] == "Review submitted"
        assert response.json()["stats"]["review_count"] == 1

        login_as(bob)
        response = await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 3})
        assert response.json()["stats"]["average_rating"] == 4.0

        login_as(alice)
        response = await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 1})
        data = response.json()
        assert response.status_code == 200
        assert data["message"] == "Review updated"
        assert data["stats"]["review_count"] == 2
        assert data["stats"]["average_rating"] == 2.0
        assert data["stats"]["rating_1_count"] == 1
        assert data["stats"]["rating_3_count"] == 1
        assert data["stats"]["rating_5_count"] == 0

    async def test_display_name_falls_back_to_email(self, client: AsyncClient, login_as, bob) -> None:
        login_as(bob)
        await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 3})

        response = await client.get(f"{REVIEWS_URL}/self", params={"itemId": "filesystem"})

        assert response.json()["review"]["user_name"] == "bob"
        assert response.json()["review"]["user_image_url"] is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"rating": 5},
            {"itemId": "filesystem"},
            {"itemId": "filesystem", "rating": 0},
            {"itemId": "filesystem", "rating": 6},
            {"itemId": "filesystem", "rating": 4.5},
            {"itemId": "filesystem", "rating": "5"},
            {"itemId": "filesystem", "rating": 5, "title": "x" * 101},
            {"itemId": "filesystem", "rating": 5, "content": "x" * 1001},
        ],
    )
    async def test_invalid_input_is_rejected(
        self, client: AsyncClient, login_as, alice, payload
    ) -> None:
        login_as(alice)
        response = await client.post(REVIEWS_URL, json=payload)

        assert response.status_code == 400
        stats = (await client.get(REVIEWS_URL, params={"itemId": "filesystem"})).json()["stats"]
        assert stats["review_count"] == 0

    async def test_malformed_json_is_rejected(self, client: AsyncClient, login_as, alice) -> None:
        login_as(alice)
        response = await client.post(
            REVIEWS_URL, content="{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400


@pytest.mark.api
class TestDeleteReview:
    async def test_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.delete(REVIEWS_URL, params={"itemId": "filesystem"})

        assert response.status_code == 401

    async def test_requires_item_id(self, client: AsyncClient, login_as, alice) -> None:
        login_as(alice)
        response = await client.delete(REVIEWS_URL)

        assert response.status_code == 400

    async def test_missing_review_is_404(self, client: AsyncClient, login_as, alice) -> None:
        login_as(alice)
        response = await client.delete(REVIEWS_URL, params={"itemId": "filesystem"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Review not found"

    async def test_delete_own_review(self, client: AsyncClient, login_as, alice, bob) -> None:
        login_as(alice)
        await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 5})
        login_as(bob)
        await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 2})

        response = await client.delete(REVIEWS_URL, params={"itemId": "filesystem"})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Review deleted"
        assert data["stats"]["review_count"] == 1
        assert data["stats"]["average_rating"] == 5.0
        own = await client.get(f"{REVIEWS_URL}/self", params={"itemId": "filesystem"})
        assert own.json()["review"] is None


@pytest.mark.api
class TestOwnReview:
    async def test_anonymous_gets_null(self, client: AsyncClient) -> None:
        response = await client.get(f"{REVIEWS_URL}/self", params={"itemId": "filesystem"})

        assert response.status_code == 200
        assert response.json() == {"review": None}

    async def test_not_reviewed_gets_null(self, client: AsyncClient, login_as, alice) -> None:
        login_as(alice)
        response = await client.get(f"{REVIEWS_URL}/self", params={"itemId": "filesystem"})

        assert response.json() == {"review": None}

    async def test_returns_own_review(self, client: AsyncClient, login_as, alice) -> None:
        login_as(alice)
        await client.post(
            REVIEWS_URL, json={"itemId": "filesystem", "rating": 4, "content": "Nice"}
        )

        response = await client.get(f"{REVIEWS_URL}/self", params={"itemId": "filesystem"})

        review = response.json()["review"]
        assert review["rating"] == 4
        assert review["content"] == "Nice"
        assert review["title"] is None


@pytest.mark.api
class TestStorageFailures:
    async def test_listing_degrades_to_empty_page(
        self, client: AsyncClient, monkeypatch
    ) -> None:
        monkeypatch.setattr(ReviewService, "list_reviews", staticmethod(_raise_storage_error))

        response = await client.get(
            REVIEWS_URL, params={"itemId": "filesystem", "page": "2", "limit": "5"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["reviews"] == []
        assert data["stats"]["item_id"] == "filesystem"
        assert data["stats"]["review_count"] == 0
        assert data["stats"]["average_rating"] == 0.0
        assert [data["stats"][f"rating_{i}_count"] for i in range(1, 6)] == [0, 0, 0, 0, 0]
        assert data["pagination"] == {"page": 2, "limit": 5, "total": 0, "totalPages": 0}

    async def test_own_review_degrades_to_null(
        self, client: AsyncClient, login_as, alice, monkeypatch
    ) -> None:
        login_as(alice)
        await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 4})
        monkeypatch.setattr(ReviewService, "get_user_review", staticmethod(_raise_storage_error))

        response = await client.get(f"{REVIEWS_URL}/self", params={"itemId": "filesystem"})

        assert response.status_code == 200
        assert response.json() == {"review": None}

    async def test_failed_summary_write_rolls_back_new_review(
        self, client: AsyncClient, db_session: AsyncSession, login_as, alice, monkeypatch
    ) -> None:
        login_as(alice)
        monkeypatch.setattr(review_service, "compare_and_swap", _raise_storage_error)

        response = await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 5})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to submit review"
        assert await _count(db_session, Review, "filesystem") == 0
        assert await _count(db_session, ReviewStats, "filesystem") == 0

    async def test_failed_summary_write_keeps_previous_review(
        self, client: AsyncClient, db_session: AsyncSession, login_as, alice, monkeypatch
    ) -> None:
        login_as(alice)
        await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 2})
        monkeypatch.setattr(review_service, "compare_and_swap", _raise_storage_error)

        update = await client.post(REVIEWS_URL, json={"itemId": "filesystem", "rating": 5})
        delete = await client.delete(REVIEWS_URL, params={"itemId": "filesystem"})

        assert update.status_code == 500
        assert delete.status_code == 500
        assert delete.json()["detail"] == "Failed to delete review"
        monkeypatch.undo()
        own = await client.get(f"{REVIEWS_URL}/self", params={"itemId": "filesystem"})
        assert own.json()["review"]["rating"] == 2
        stats = (await client.get(REVIEWS_URL, params={"itemId": "filesystem"})).json()["stats"]
        assert stats["review_count"] == 1
        assert stats["rating_2_count"] == 1
