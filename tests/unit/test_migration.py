"""
Unit tests for the duplicate policy and the migration driver

Tests cover:
- RECREATE_CARDS parsing into a DuplicateMode
- Skip / delete / allow behavior against existing stories
- Per-card state transitions and failure isolation
- One status line per card, in input order
"""

import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add parent directory to path to import trello2clubhouse module
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from trello2clubhouse import (
    Card,
    CardState,
    ClubhouseAPIError,
    DuplicateMode,
    DuplicatePolicy,
    MigrationDriver,
    StoryBuilder,
    parse_duplicate_mode,
)


def make_card(title="Fix login bug", short_url="https://trello.com/c/AbC123"):
    return Card(title=title, short_url=short_url)


class TestParseDuplicateMode:
    @pytest.mark.parametrize("value", ["1", "true", "YES", " True "])
    def test_truthy_values_delete(self, value):
        assert parse_duplicate_mode(value) is DuplicateMode.DELETE_EXISTING

    def test_skip(self):
        assert parse_duplicate_mode("Skip") is DuplicateMode.SKIP_EXISTING

    @pytest.mark.parametrize("value", [None, "", "0", "no", "anything"])
    def test_everything_else_allows_duplicates(self, value):
        assert parse_duplicate_mode(value) is DuplicateMode.ALLOW_DUPLICATES


class TestDuplicatePolicy:
    def test_allow_never_queries(self, mock_clubhouse):
        policy = DuplicatePolicy(mock_clubhouse, 12, DuplicateMode.ALLOW_DUPLICATES)

        assert policy.apply(make_card()) is True
        mock_clubhouse.list_stories.assert_not_called()

    def test_find_duplicates_uses_exact_name(self, mock_clubhouse):
        mock_clubhouse.list_stories.return_value = [
            {"id": 1, "name": "Fix login bug"},
            {"id": 2, "name": "fix login bug"},
            {"id": 3, "name": "Fix login bug "},
            {"id": 4, "name": "Fix login bug"},
        ]
        policy = DuplicatePolicy(mock_clubhouse, 12, DuplicateMode.SKIP_EXISTING)

        assert policy.find_duplicates(make_card()) == [1, 4]
        mock_clubhouse.list_stories.assert_called_once_with(12)

    def test_skip_when_match_exists(self, mock_clubhouse):
        mock_clubhouse.list_stories.return_value = [{"id": 1, "name": "Fix login bug"}]
        policy = DuplicatePolicy(mock_clubhouse, 12, DuplicateMode.SKIP_EXISTING)

        assert policy.apply(make_card()) is False
        mock_clubhouse.delete_story.assert_not_called()

    def test_skip_mode_proceeds_without_match(self, mock_clubhouse):
        mock_clubhouse.list_stories.return_value = [{"id": 1, "name": "Other"}]
        policy = DuplicatePolicy(mock_clubhouse, 12, DuplicateMode.SKIP_EXISTING)

        assert policy.apply(make_card()) is True

    def test_delete_removes_every_match(self, mock_clubhouse):
        mock_clubhouse.list_stories.return_value = [
            {"id": 1, "name": "Fix login bug"},
            {"id": 2, "name": "Fix login bug"},
        ]
        policy = DuplicatePolicy(mock_clubhouse, 12, DuplicateMode.DELETE_EXISTING)

        assert policy.apply(make_card()) is True
        assert [c.args[0] for c in mock_clubhouse.delete_story.call_args_list] == [1, 2]

    def test_delete_failure_does_not_block(self, mock_clubhouse):
        mock_clubhouse.list_stories.return_value = [
            {"id": 1, "name": "Fix login bug"},
            {"id": 2, "name": "Fix login bug"},
        ]
        mock_clubhouse.delete_story.side_effect = [ClubhouseAPIError("HTTP 404"), None]
        policy = DuplicatePolicy(mock_clubhouse, 12, DuplicateMode.DELETE_EXISTING)

        assert policy.apply(make_card()) is True
        assert mock_clubhouse.delete_story.call_count == 2

    def test_lookup_failure_counts_as_no_duplicates(self, mock_clubhouse):
        mock_clubhouse.list_stories.side_effect = ClubhouseAPIError("HTTP 500", status_code=500)
        policy = DuplicatePolicy(mock_clubhouse, 12, DuplicateMode.SKIP_EXISTING)

        assert policy.apply(make_card()) is True


class TestMigrationDriver:
    @pytest.fixture
    def builder(self, mock_clubhouse, clubhouse_options, user_map):
        return StoryBuilder(mock_clubhouse, clubhouse_options, user_map)

    def driver(self, client, builder, mode):
        return MigrationDriver(client, builder, DuplicatePolicy(client, 12, mode))

    def test_creates_story_and_records_id(self, mock_clubhouse, builder):
        result = self.driver(mock_clubhouse, builder, DuplicateMode.ALLOW_DUPLICATES).migrate_card(
            make_card()
        )

        assert result.state is CardState.CREATED
        assert result.story_id == 1001
        assert result.detail == "Story ID: 1001"
        assert result.reference == "https://trello.com/c/AbC123"

    def test_skip_existing_issues_no_create(self, mock_clubhouse, builder):
        mock_clubhouse.list_stories.return_value = [{"id": 9, "name": "Fix login bug"}]

        result = self.driver(mock_clubhouse, builder, DuplicateMode.SKIP_EXISTING).migrate_card(
            make_card()
        )

        assert result.state is CardState.SKIPPED
        mock_clubhouse.create_story.assert_not_called()
        mock_clubhouse.create_linked_file.assert_not_called()

    def test_delete_existing_then_create_even_if_a_delete_fails(self, mock_clubhouse, builder):
        mock_clubhouse.list_stories.return_value = [
            {"id": 1, "name": "Fix login bug"},
            {"id": 2, "name": "Fix login bug"},
        ]
        mock_clubhouse.delete_story.side_effect = [None, ClubhouseAPIError("HTTP 500")]

        result = self.driver(mock_clubhouse, builder, DuplicateMode.DELETE_EXISTING).migrate_card(
            make_card()
        )

        assert mock_clubhouse.delete_story.call_count == 2
        assert mock_clubhouse.create_story.call_count == 1
        assert result.state is CardState.CREATED

    def test_create_failure_is_recorded(self, mock_clubhouse, builder):
        mock_clubhouse.create_story.side_effect = ClubhouseAPIError(
            "HTTP 400 error for POST stories: bad workflow state", status_code=400
        )

        result = self.driver(mock_clubhouse, builder, DuplicateMode.ALLOW_DUPLICATES).migrate_card(
            make_card()
        )

        assert result.state is CardState.FAILED
        assert "bad workflow state" in result.detail
        assert result.story_id is None

    def test_build_failure_is_recorded(self, mock_clubhouse):
        builder = MagicMock(spec=StoryBuilder)
        builder.build.side_effect = KeyError("id")

        result = self.driver(mock_clubhouse, builder, DuplicateMode.ALLOW_DUPLICATES).migrate_card(
            make_card()
        )

        assert result.state is CardState.FAILED
        mock_clubhouse.create_story.assert_not_called()

    def test_failure_does_not_abort_batch(self, mock_clubhouse, builder):
        outcomes = [ClubhouseAPIError("HTTP 500"), {"id": 77}]
        mock_clubhouse.create_story.side_effect = outcomes
        cards = [make_card("A", "https://trello.com/c/a"), make_card("B", "https://trello.com/c/b")]

        results = self.driver(mock_clubhouse, builder, DuplicateMode.ALLOW_DUPLICATES).run(cards)

        assert [r.state for r in results] == [CardState.FAILED, CardState.CREATED]
        assert results[1].story_id == 77

    def test_processes_in_input_order(self, mock_clubhouse, builder):
        cards = [make_card(t, f"https://trello.com/c/{t}") for t in ("one", "two", "three")]

        results = self.driver(mock_clubhouse, builder, DuplicateMode.ALLOW_DUPLICATES).run(cards)

        assert [p["name"] for p in mock_clubhouse.created_stories] == ["one", "two", "three"]
        assert [r.reference for r in results] == [c.short_url for c in cards]

    def test_one_status_line_per_card(self, mock_clubhouse, builder, caplog, monkeypatch):
        mock_clubhouse.list_stories.return_value = [{"id": 9, "name": "dup"}]
        cards = [make_card("dup", "https://trello.com/c/dup"), make_card("new", "https://trello.com/c/new")]
        monkeypatch.setattr(logging.getLogger("trello2clubhouse"), "propagate", True)

        with caplog.at_level(logging.INFO, logger="trello2clubhouse.status"):
            self.driver(mock_clubhouse, builder, DuplicateMode.SKIP_EXISTING).run(cards)

        lines = [r.getMessage() for r in caplog.records if r.name == "trello2clubhouse.status"]
        assert lines[0].startswith("Trello Card Link")
        assert lines[1].startswith("https://trello.com/c/dup")
        assert "Skipped" in lines[1]
        assert lines[2].startswith("https://trello.com/c/new")
        assert "Success" in lines[2]
        assert len(lines) == 3
