"""
Shared pytest fixtures for trello2clubhouse tests
"""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add parent directory to path to import trello2clubhouse module
sys.path.insert(0, str(Path(__file__).parent.parent))

from trello2clubhouse import ClubhouseClient, ClubhouseOptions, TrelloReader, UserMap


@pytest.fixture
def fixtures_dir():
    """Return path to test fixtures directory"""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def board_fixture(fixtures_dir):
    """Load the two-card board fixture"""
    with open(fixtures_dir / "board.json") as f:
        return json.load(f)


@pytest.fixture
def clubhouse_options():
    """Run options as if picked interactively"""
    return ClubhouseOptions(
        project_id=12,
        workflow_state_id=500001,
        story_type="feature",
        fallback_member_id="ch-fallback-uuid",
        add_comment_with_trello_link=False,
    )


@pytest.fixture
def user_map(board_fixture):
    """User map built from the fixture's mapping with a fallback member"""
    return UserMap(board_fixture["user_map"], "ch-fallback-uuid")


@pytest.fixture
def mock_clubhouse():
    """ClubhouseClient double that records created stories"""
    client = MagicMock(spec=ClubhouseClient)
    client.list_stories.return_value = []
    created = []

    def create_story(payload):
        created.append(payload)
        return {"id": 1000 + len(created), "name": payload["name"]}

    client.create_story.side_effect = create_story
    client.created_stories = created
    return client


@pytest.fixture
def mock_trello():
    """TrelloReader double with no data"""
    reader = MagicMock(spec=TrelloReader)
    reader.get_card_actions.return_value = []
    reader.get_card_checklists.return_value = []
    reader.get_card_attachments.return_value = []
    return reader
