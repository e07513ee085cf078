"""Build Clubhouse story creation payloads from canonical cards."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from trello2clubhouse.clubhouse_client import ClubhouseClient
from trello2clubhouse.exceptions import ClubhouseAPIError
from trello2clubhouse.identity import UserMap
from trello2clubhouse.models import Card
from trello2clubhouse.options import ClubhouseOptions

logger = logging.getLogger(__name__)


def format_timestamp(value: datetime | None) -> str | None:
    """ISO 8601 in UTC with a ``Z`` suffix, as Clubhouse expects"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class StoryBuilder:
    """Map a :class:`Card` onto a Clubhouse ``CreateStory`` payload

    Project, workflow state and story type come from the run options and are
    the same for every card. Trello member ids are resolved through the user
    map here and nowhere earlier.

    Attachments are turned into linked files with one API call each before
    the payload is returned; a linked file that fails is logged and left out.
    """

    def __init__(
        self,
        client: ClubhouseClient,
        options: ClubhouseOptions,
        user_map: UserMap,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.client = client
        self.options = options
        self.user_map = user_map
        self.now = now

    def build_labels(self, card: Card) -> list[dict]:
        return [{"name": name} for name in card.labels]

    def build_tasks(self, card: Card) -> list[dict]:
        return [{"complete": t.completed, "description": t.description} for t in card.tasks]

    def build_comments(self, card: Card) -> list[dict]:
        comments = []
        for comment in card.comments:
            entry = {
                "author_id": self.user_map.resolve(comment.creator_id),
                "text": comment.text,
            }
            if comment.created_at is not None:
                entry["created_at"] = format_timestamp(comment.created_at)
            comments.append(entry)

        if self.options.add_comment_with_trello_link:
            comments.append(
                {
                    "created_at": format_timestamp(self.now()),
                    "text": f"Card imported from Trello: {card.short_url}",
                }
            )

        return comments

    def build_linked_files(self, card: Card) -> list[int]:
        ids = []
        for name, ref in card.attachments.items():
            linked_file = {
                "name": name,
                "type": "url",
                "url": ref.url,
                "uploader_id": self.user_map.resolve(ref.creator_id),
            }
            try:
                created = self.client.create_linked_file(linked_file)
            except ClubhouseAPIError as e:
                logger.warning(
                    "Failed to create linked file for card: %s, link: %s, error: %s",
                    card.title,
                    ref.url,
                    e,
                )
                continue
            ids.append(created["id"])
        return ids

    def build(self, card: Card) -> dict:
        """Return the full creation payload for ``card``

        Absent dates are left out of the payload rather than sent as null.
        """
        payload = {
            "project_id": self.options.project_id,
            "workflow_state_id": self.options.workflow_state_id,
            "requested_by_id": self.user_map.resolve(card.creator_id),
            "owner_ids": self.user_map.resolve_all(card.owner_ids),
            "story_type": self.options.story_type,
            "follower_ids": [],
            "file_ids": [],
            "name": card.title,
            "description": card.description,
            "labels": self.build_labels(card),
            "tasks": self.build_tasks(card),
            "comments": self.build_comments(card),
            "linked_file_ids": self.build_linked_files(card),
        }

        if card.short_url:
            payload["external_id"] = card.short_url
        if card.due_at is not None:
            payload["deadline"] = format_timestamp(card.due_at)
        if card.created_at is not None:
            payload["created_at"] = format_timestamp(card.created_at)

        return payload
