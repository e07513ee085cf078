"""Migrate canonical cards into Clubhouse stories, one card at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from trello2clubhouse.clubhouse_client import ClubhouseClient
from trello2clubhouse.exceptions import ClubhouseAPIError
from trello2clubhouse.models import Card
from trello2clubhouse.story_builder import StoryBuilder

logger = logging.getLogger(__name__)
# Per-card status table; stays visible under --quiet
status_logger = logging.getLogger("trello2clubhouse.status")

STATUS_FORMAT = "%-40s %-17s %s"


class DuplicateMode(Enum):
    """What to do when a story with the card's name already exists"""

    DELETE_EXISTING = "delete"
    SKIP_EXISTING = "skip"
    ALLOW_DUPLICATES = "allow"


def parse_duplicate_mode(value: str | None) -> DuplicateMode:
    """Map the ``RECREATE_CARDS`` setting to a mode

    ``1``/``true``/``yes`` delete existing stories, ``skip`` skips the card,
    anything else (including unset) allows duplicates.
    """
    normalized = (value or "").strip().lower()
    if normalized in ("1", "true", "yes"):
        return DuplicateMode.DELETE_EXISTING
    if normalized == "skip":
        return DuplicateMode.SKIP_EXISTING
    return DuplicateMode.ALLOW_DUPLICATES


class CardState(Enum):
    PENDING = "Pending"
    POLICY_CHECKED = "Policy Checked"
    SKIPPED = "Skipped"
    BUILT = "Built"
    CREATED = "Success"
    FAILED = "Failed"


@dataclass
class CardResult:
    """Final state of one card; ``story_id`` is set only when created"""

    reference: str
    state: CardState = CardState.PENDING
    detail: str = ""
    story_id: int | None = None


class DuplicatePolicy:
    """Apply the run's :class:`DuplicateMode` to one card before creation"""

    def __init__(self, client: ClubhouseClient, project_id: int, mode: DuplicateMode):
        self.client = client
        self.project_id = project_id
        self.mode = mode

    def find_duplicates(self, card: Card) -> list[int]:
        """Ids of the project's stories named exactly like the card

        A failed lookup counts as no duplicates.
        """
        try:
            stories = self.client.list_stories(self.project_id)
        except ClubhouseAPIError as e:
            logger.warning("Could not list stories to check duplicates of '%s': %s", card.title, e)
            return []
        return [story["id"] for story in stories if story.get("name") == card.title]

    def apply(self, card: Card) -> bool:
        """Return True if the card should be created

        In delete mode every match is deleted first; a failed deletion is
        logged and creation still goes ahead.
        """
        if self.mode is DuplicateMode.ALLOW_DUPLICATES:
            return True

        duplicates = self.find_duplicates(card)

        if self.mode is DuplicateMode.SKIP_EXISTING:
            return not duplicates

        for story_id in duplicates:
            try:
                self.client.delete_story(story_id)
            except ClubhouseAPIError as e:
                logger.warning("Failed to delete matching story %s: %s", story_id, e)
                continue
            status_logger.info(
                STATUS_FORMAT, card.short_url, "Deleted Matching", f"Story ID: {story_id}"
            )

        return True


class MigrationDriver:
    """Run policy check, build and create for each card, strictly in order

    Every card ends in exactly one of Skipped, Created (reported as
    Success) or Failed, and gets one status line. A failing card never
    stops the batch.
    """

    def __init__(self, client: ClubhouseClient, builder: StoryBuilder, policy: DuplicatePolicy):
        self.client = client
        self.builder = builder
        self.policy = policy

    def migrate_card(self, card: Card) -> CardResult:
        result = CardResult(reference=card.short_url)

        try:
            if not self.policy.apply(card):
                result.state = CardState.SKIPPED
                result.detail = "Story with the same name exists"
                return result
            result.state = CardState.POLICY_CHECKED

            payload = self.builder.build(card)
            result.state = CardState.BUILT

            story = self.client.create_story(payload)
        except Exception as e:
            result.state = CardState.FAILED
            result.detail = str(e)
            logger.error("Failed to import '%s': %s", card.title, e)
            return result

        result.state = CardState.CREATED
        result.story_id = story.get("id")
        result.detail = f"Story ID: {result.story_id}"
        return result

    def run(self, cards: list[Card]) -> list[CardResult]:
        logger.info("Importing trello cards into Clubhouse...")
        status_logger.info(STATUS_FORMAT, "Trello Card Link", "Import Status", "Error/Story ID")

        results = []
        for card in cards:
            result = self.migrate_card(card)
            status_logger.info(STATUS_FORMAT, result.reference, result.state.value, result.detail)
            results.append(result)
        return results
