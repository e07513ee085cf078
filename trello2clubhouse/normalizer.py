"""Turn raw Trello card records into canonical :class:`Card` objects."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from trello2clubhouse.attachments import AttachmentRelocator
from trello2clubhouse.exceptions import TrelloAPIError
from trello2clubhouse.models import (
    ActionEvent,
    AttachmentRef,
    Card,
    Comment,
    CommentEvent,
    CreationEvent,
    Task,
)
from trello2clubhouse.trello_client import TrelloReader

logger = logging.getLogger(__name__)

TRELLO_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def parse_trello_date(value: str | None) -> datetime | None:
    """Parse a Trello timestamp such as ``2019-03-01T10:15:30.000Z``

    Returns None for empty or malformed values rather than raising.
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, TRELLO_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def scan_actions(actions: Iterable[dict]) -> list[ActionEvent]:
    """Classify a card's action log in one pass

    ``createCard`` entries become :class:`CreationEvent`, ``commentCard``
    entries with text become :class:`CommentEvent`. Anything else is dropped.
    """
    events: list[ActionEvent] = []

    for action in actions:
        action_type = action.get("type")
        member = action.get("memberCreator") or {}
        member_id = member.get("id") or action.get("idMemberCreator", "")

        if action_type == "commentCard":
            text = (action.get("data") or {}).get("text", "")
            if not text:
                continue
            events.append(
                CommentEvent(
                    Comment(
                        text=text,
                        creator_id=member_id,
                        creator_name=member.get("fullName", ""),
                        created_at=parse_trello_date(action.get("date")),
                    )
                )
            )
        elif action_type == "createCard":
            events.append(
                CreationEvent(creator_id=member_id, created_at=parse_trello_date(action.get("date")))
            )

    return events


def fold_actions(events: Iterable[ActionEvent]) -> tuple[CreationEvent | None, list[Comment]]:
    """Split scanned events into the card's creation event and its comments

    The first creation event wins; later ones are ignored.
    """
    creation: CreationEvent | None = None
    comments: list[Comment] = []

    for event in events:
        if isinstance(event, CommentEvent):
            comments.append(event.comment)
        elif creation is None:
            creation = event

    return creation, comments


def flatten_checklists(checklists: Iterable[dict]) -> list[Task]:
    """One task per checklist item, described as ``"<checklist> - <item>"``"""
    tasks = []
    for checklist in checklists:
        for item in checklist.get("checkItems") or []:
            tasks.append(
                Task(
                    completed=item.get("state") == "complete",
                    description=f"{checklist.get('name', '')} - {item.get('name', '')}",
                )
            )
    return tasks


def flatten_labels(labels: Iterable[dict]) -> list[str]:
    return [label.get("name", "") for label in labels]


class CardNormalizer:
    """Build canonical cards from Trello card records

    Sub-resources already embedded in the record (``checklists``,
    ``attachments``, ``actions``) are used as-is; missing ones are fetched
    through the reader. A failed fetch only empties that part of the card.

    Attachments are relocated only when a relocator is given.
    """

    def __init__(self, trello: TrelloReader, relocator: AttachmentRelocator | None = None):
        self.trello = trello
        self.relocator = relocator

    def _actions(self, record: dict) -> list[dict]:
        if "actions" in record:
            return list(record["actions"] or [])
        try:
            return self.trello.get_card_actions(record["id"])
        except TrelloAPIError as e:
            logger.warning(
                "Error querying the actions for: %s, ignoring... %s", record.get("name"), e
            )
            return []

    def _checklists(self, record: dict) -> list[dict]:
        if "checklists" in record:
            return list(record["checklists"] or [])
        try:
            return self.trello.get_card_checklists(record["id"])
        except TrelloAPIError as e:
            logger.warning(
                "Error querying checklists for: %s, ignoring... %s", record.get("name"), e
            )
            return []

    def _attachments(self, record: dict) -> dict[str, AttachmentRef]:
        if self.relocator is None:
            return {}
        return self.relocator.relocate_card(record)

    def normalize(self, record: dict) -> Card:
        creation, comments = fold_actions(scan_actions(self._actions(record)))

        return Card(
            title=record.get("name", ""),
            description=record.get("desc") or "",
            labels=tuple(flatten_labels(record.get("labels") or [])),
            due_at=parse_trello_date(record.get("due")),
            creator_id=creation.creator_id if creation else "",
            owner_ids=tuple(record.get("idMembers") or []),
            created_at=creation.created_at if creation else None,
            comments=tuple(comments),
            tasks=tuple(flatten_checklists(self._checklists(record))),
            position=float(record.get("pos") or 0),
            short_url=record.get("shortUrl", ""),
            attachments=self._attachments(record),
        )

    def normalize_all(self, records: Iterable[dict]) -> list[Card]:
        cards = []
        for record in records:
            cards.append(self.normalize(record))
            logger.debug("Normalized card %s", record.get("shortUrl", record.get("id")))
        return cards
