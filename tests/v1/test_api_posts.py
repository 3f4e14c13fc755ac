"""Tests for the post and feed endpoints."""

from __future__ import annotations

import json

from fastapi.testclient import TestClient

from tests.ledger_fakes import ALICE, FakeLedger, TEST_ADDRESSES
from tribe_ledger.core.contracts import ZERO_ADDRESS
from tribe_ledger.schemas.post import InteractionType

TRIBE = TEST_ADDRESSES["tribe_controller_address"]
POSTS = TEST_ADDRESSES["post_minter_address"]

POSTS_BY_COMMUNITY = {0: [1, 2], 1: [3]}
CREATED_AT = {1: "2024-01-01T00:00:00Z", 2: "2024-03-01T00:00:00Z", 3: "2024-02-01T00:00:00Z"}


def post_row(post_id: int) -> tuple:
    if post_id not in CREATED_AT:
        return ("", "0", "", False, ZERO_ADDRESS, "0", False, ZERO_ADDRESS)
    community_id = next(c for c, ids in POSTS_BY_COMMUNITY.items() if post_id in ids)
    blob = json.dumps({"title": f"post {post_id}", "content": "", "createdAt": CREATED_AT[post_id]})
    return (ALICE, str(community_id), blob, False, ZERO_ADDRESS, "0", False, ZERO_ADDRESS)


def seed(ledger: FakeLedger) -> None:
    ledger.on(TRIBE, "nextTribeId", "2")
    ledger.on(
        TRIBE,
        "getTribeDetails",
        lambda community_id: (f"c{community_id}", "{}", ALICE, "0", "0", "1", False, True),
    )
    ledger.on(
        POSTS,
        "getPostsByTribe",
        lambda community_id, offset, limit: {
            "postIds": POSTS_BY_COMMUNITY[community_id][offset : offset + limit],
            "total": len(POSTS_BY_COMMUNITY[community_id]),
        },
    )
    ledger.on(POSTS, "getPost", post_row)


def test_feed_is_newest_first(client: TestClient, ledger: FakeLedger) -> None:
    seed(ledger)

    response = client.get("/api/v1/posts/feed")

    assert response.status_code == 200
    assert [post["id"] for post in response.json()] == [2, 3, 1]
    assert response.json()[0]["metadata"]["title"] == "post 2"


def test_get_post_and_missing(client: TestClient, ledger: FakeLedger) -> None:
    seed(ledger)

    body = client.get("/api/v1/posts/3").json()
    assert body["community_id"] == 1
    assert body["creator"] == ALICE
    assert client.get("/api/v1/posts/99").status_code == 404


def test_interaction_counts(client: TestClient, ledger: FakeLedger) -> None:
    counts = {InteractionType.LIKE: "7", InteractionType.SHARE: "2"}
    ledger.on(
        POSTS,
        "getInteractionCount",
        lambda post_id, interaction: counts.get(interaction, "0"),
    )

    response = client.get("/api/v1/posts/3/interactions")

    assert response.json() == {"like": 7, "dislike": 0, "share": 2, "report": 0}
