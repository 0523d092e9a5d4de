"""
Tests for the /votes endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError
from app.models.vote import Vote, VoteCounts
from app.services import vote as vote_service
from app.services.vote import VoteService

VOTES_URL = "/api/v1/votes"


async def _raise_storage_error(*args, **kwargs):
    raise StorageError("database unavailable")


async def _count(db: AsyncSession, model: type, item_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(model).where(model.item_id == item_id)
    )
    return result.scalar_one()


@pytest.mark.api
class TestGetVotes:
    async def test_requires_item_id(self, client: AsyncClient) -> None:
        response = await client.get(VOTES_URL)

        assert response.status_code == 400

    async def test_unvoted_item_is_zero(self, client: AsyncClient) -> None:
        response = await client.get(VOTES_URL, params={"itemId": "fetch"})

        assert response.status_code == 200
        assert response.json() == {"upvotes": 0, "downvotes": 0, "score": 0}


@pytest.mark.api
class TestCastVote:
    async def test_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "up"})

        assert response.status_code == 401

    async def test_vote_sequence(self, client: AsyncClient, login_as, alice, bob) -> None:
        login_as(alice)
        response = await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "up"})
        assert response.status_code == 200
        assert response.json() == {"upvotes": 1, "downvotes": 0, "score": 1, "userVote": "up"}

        login_as(bob)
        response = await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "up"})
        assert response.json()["score"] == 2

        login_as(alice)
        response = await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "down"})
        assert response.json() == {"upvotes": 1, "downvotes": 1, "score": 0, "userVote": "down"}

        login_as(None)
        response = await client.get(VOTES_URL, params={"itemId": "fetch"})
        assert response.json() == {"upvotes": 1, "downvotes": 1, "score": 0}

    async def test_toggle_and_remove(self, client: AsyncClient, login_as, alice) -> None:
        login_as(alice)
        await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "up"})
        response = await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "up"})
        assert response.json() == {"upvotes": 0, "downvotes": 0, "score": 0, "userVote": None}

        await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "down"})
        response = await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "remove"})
        assert response.json()["userVote"] is None
        assert response.json()["score"] == 0

    @pytest.mark.parametrize(
        "payload,detail",
        [
            ({"voteType": "up"}, "itemId and voteType are required"),
            ({"itemId": "fetch"}, "itemId and voteType are required"),
            ({"itemId": "fetch", "voteType": "meh"}, "voteType must be 'up', 'down', or 'remove'"),
        ],
    )
    async def test_invalid_input_is_rejected(
        self, client: AsyncClient, login_as, alice, payload, detail
    ) -> None:
        login_as(alice)
        response = await client.post(VOTES_URL, json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == detail


@pytest.mark.api
class TestOwnVote:
    async def test_anonymous_gets_null(self, client: AsyncClient) -> None:
        response = await client.get(f"{VOTES_URL}/self", params={"itemId": "fetch"})

        assert response.status_code == 200
        assert response.json() == {"userVote": None}

    async def test_returns_own_vote(self, client: AsyncClient, login_as, alice, bob) -> None:
        login_as(alice)
        await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "down"})

        response = await client.get(f"{VOTES_URL}/self", params={"itemId": "fetch"})
        assert response.json() == {"userVote": "down"}

        login_as(bob)
        response = await client.get(f"{VOTES_URL}/self", params={"itemId": "fetch"})
        assert response.json() == {"userVote": None}


@pytest.mark.api
class TestStorageFailures:
    async def test_counts_degrade_to_zero(self, client: AsyncClient, monkeypatch) -> None:
        monkeypatch.setattr(VoteService, "get_counts", staticmethod(_raise_storage_error))

        response = await client.get(VOTES_URL, params={"itemId": "fetch"})

        assert response.status_code == 200
        assert response.json() == {"upvotes": 0, "downvotes": 0, "score": 0}

    async def test_own_vote_degrades_to_null(
        self, client: AsyncClient, login_as, alice, monkeypatch
    ) -> None:
        login_as(alice)
        await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "up"})
        monkeypatch.setattr(VoteService, "get_user_vote", staticmethod(_raise_storage_error))

        response = await client.get(f"{VOTES_URL}/self", params={"itemId": "fetch"})

        assert response.status_code == 200
        assert response.json() == {"userVote": None}

    async def test_failed_tally_write_rolls_back_new_vote(
        self, client: AsyncClient, db_session: AsyncSession, login_as, alice, monkeypatch
    ) -> None:
        login_as(alice)
        monkeypatch.setattr(vote_service, "compare_and_swap", _raise_storage_error)

        response = await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "up"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to submit vote"
        assert await _count(db_session, Vote, "fetch") == 0
        assert await _count(db_session, VoteCounts, "fetch") == 0

    async def test_failed_tally_write_keeps_previous_vote(
        self, client: AsyncClient, login_as, alice, monkeypatch
    ) -> None:
        login_as(alice)
        await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "up"})
        monkeypatch.setattr(vote_service, "compare_and_swap", _raise_storage_error)

        response = await client.post(VOTES_URL, json={"itemId": "fetch", "voteType": "down"})

        assert response.status_code == 500
        monkeypatch.undo()
        own = await client.get(f"{VOTES_URL}/self", params={"itemId": "fetch"})
        assert own.json() == {"userVote": "up"}
        counts = await client.get(VOTES_URL, params={"itemId": "fetch"})
        assert counts.json() == {"upvotes": 1, "downvotes": 0, "score": 1}
