"""
Integration tests for the full Trello → Clubhouse migration flow

Runs the reader, normalizer, story builder, driver and tagger together
against mocked Trello and Clubhouse HTTP APIs. Uses the `responses`
library to avoid real API calls.
"""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import responses

# Add parent directory to path to import trello2clubhouse module
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from trello2clubhouse import (
    CardNormalizer,
    CardState,
    ClubhouseClient,
    ClubhouseOptions,
    DuplicateMode,
    DuplicatePolicy,
    MigrationDriver,
    SourceTagger,
    StoryBuilder,
    TrelloReader,
    UserMap,
)

TRELLO = "https://api.trello.com/1"
CLUBHOUSE = "https://api.app.shortcut.com/api/v3"


@pytest.fixture(autouse=True)
def no_waiting():
    """Disable rate limiting and retry/tagging sleeps"""
    with (
        patch("trello2clubhouse.rate_limiter.RateLimiter.acquire", return_value=True),
        patch("time.sleep"),
    ):
        yield


@pytest.fixture
def trello_api(board_fixture):
    """Register the board's Trello endpoints"""
    responses.add(responses.GET, f"{TRELLO}/boards/board123/cards", json=board_fixture["cards"])
    for card_id, actions in board_fixture["actions"].items():
        responses.add(responses.GET, f"{TRELLO}/cards/{card_id}/actions", json=actions)
    responses.add(responses.GET, f"{TRELLO}/boards/board123/labels", json=board_fixture["labels"])
    responses.add(responses.POST, f"{TRELLO}/cards/card1/idLabels", json=["lbl-bug", "lbl-exported"])
    return board_fixture


def created_payloads():
    return [
        json.loads(call.request.body)
        for call in responses.calls
        if call.request.method == "POST" and call.request.url == f"{CLUBHOUSE}/stories"
    ]


def run_migration(options, user_map, mode=DuplicateMode.ALLOW_DUPLICATES, label="exported"):
    trello = TrelloReader("key", "token", board_id="board123")
    clubhouse = ClubhouseClient("ch-token")

    records = trello.get_cards()
    cards = CardNormalizer(trello).normalize_all(records)
    driver = MigrationDriver(
        clubhouse,
        StoryBuilder(clubhouse, options, user_map),
        DuplicatePolicy(clubhouse, options.project_id, mode),
    )
    results = driver.run(cards)
    tagged = SourceTagger.from_board(trello, label).tag(records)
    return results, tagged


class TestMigrationFlow:
    @responses.activate
    def test_full_board_migration(self, trello_api, clubhouse_options):
        """Both cards become stories, identities resolve, the untagged card is labelled"""
        responses.add(responses.POST, f"{CLUBHOUSE}/stories", json={"id": 501})
        responses.add(responses.POST, f"{CLUBHOUSE}/stories", json={"id": 502})
        user_map = UserMap(trello_api["user_map"], "ch-fallback-uuid")

        results, tagged = run_migration(clubhouse_options, user_map)

        assert [r.state for r in results] == [CardState.CREATED, CardState.CREATED]
        assert [r.story_id for r in results] == [501, 502]

        first, second = created_payloads()
        assert first["name"] == "Fix login bug"
        assert first["project_id"] == 12
        assert first["workflow_state_id"] == 500001
        assert first["story_type"] == "feature"
        assert first["requested_by_id"] == "ch-alice-uuid"
        assert first["owner_ids"] == ["ch-alice-uuid", "ch-fallback-uuid"]
        assert first["labels"] == [{"name": "bug"}]
        assert first["tasks"] == [{"complete": True, "description": "Release - Deploy fix"}]
        assert first["comments"] == [
            {
                "author_id": "ch-alice-uuid",
                "text": "Reproduced on staging",
                "created_at": "2019-03-02T09:30:00Z",
            }
        ]
        assert first["deadline"] == "2019-04-01T12:00:00Z"
        assert first["created_at"] == "2019-03-01T08:00:00Z"
        assert first["external_id"] == "https://trello.com/c/AbC123"
        assert first["linked_file_ids"] == []

        # unparseable creation date is dropped, the creator still resolves
        assert second["requested_by_id"] == "ch-bob-uuid"
        assert "created_at" not in second
        assert "deadline" not in second

        # card2 already carries the exported label
        assert tagged == 1
        label_calls = [c for c in responses.calls if "/idLabels" in c.request.url]
        assert len(label_calls) == 1
        assert "cards/card1/idLabels" in label_calls[0].request.url
        assert "value=lbl-exported" in label_calls[0].request.url

    @responses.activate
    def test_skip_existing_and_link_comment(self, trello_api):
        """Skip mode leaves the existing story alone; created stories get the link comment"""
        responses.add(
            responses.GET,
            f"{CLUBHOUSE}/projects/12/stories",
            json=[{"id": 77, "name": "Write changelog"}],
        )
        responses.add(responses.POST, f"{CLUBHOUSE}/stories", json={"id": 501})
        options = ClubhouseOptions(
            project_id=12,
            workflow_state_id=500001,
            story_type="chore",
            fallback_member_id="ch-fallback-uuid",
            add_comment_with_trello_link=True,
        )

        results, _ = run_migration(
            options, UserMap({}, "ch-fallback-uuid"), mode=DuplicateMode.SKIP_EXISTING
        )

        assert [r.state for r in results] == [CardState.CREATED, CardState.SKIPPED]
        (payload,) = created_payloads()
        assert payload["requested_by_id"] == "ch-fallback-uuid"
        assert payload["comments"][-1]["text"] == (
            "Card imported from Trello: https://trello.com/c/AbC123"
        )
        assert "author_id" not in payload["comments"][-1]

    @responses.activate
    def test_rejected_story_does_not_stop_batch(self, trello_api, clubhouse_options, user_map):
        """A 400 on the first card fails only that card"""
        responses.add(
            responses.POST, f"{CLUBHOUSE}/stories", status=400, json={"message": "bad deadline"}
        )
        responses.add(responses.POST, f"{CLUBHOUSE}/stories", json={"id": 502})

        results, _ = run_migration(clubhouse_options, user_map, label=None)

        assert results[0].state is CardState.FAILED
        assert "400" in results[0].detail
        assert results[1].state is CardState.CREATED
        assert not any("/idLabels" in c.request.url for c in responses.calls)

    @responses.activate
    def test_no_storage_calls_without_relocation(self, trello_api, clubhouse_options, user_map):
        """With relocation disabled nothing but Trello and Clubhouse is contacted"""
        responses.add(responses.POST, f"{CLUBHOUSE}/stories", json={"id": 501})
        responses.add(responses.POST, f"{CLUBHOUSE}/stories", json={"id": 502})

        run_migration(clubhouse_options, user_map)

        hosts = {call.request.url.split("/")[2] for call in responses.calls}
        assert hosts == {"api.trello.com", "api.app.shortcut.com"}
        assert not any("linked-files" in c.request.url for c in responses.calls)
