"""Mark migrated Trello cards with the exported label."""

from __future__ import annotations

import logging
import time

from trello2clubhouse.exceptions import TrelloAPIError
from trello2clubhouse.trello_client import TrelloReader

logger = logging.getLogger(__name__)

TAG_DELAY_SECONDS = 0.007


class SourceTagger:
    """Apply a board label to each source card unless it already carries it

    A tagger without ``label_id`` does nothing, which is how a run without a
    configured (or findable) exported label behaves.
    """

    def __init__(
        self,
        trello: TrelloReader,
        label_name: str | None,
        label_id: str | None,
        delay: float = TAG_DELAY_SECONDS,
    ):
        self.trello = trello
        self.label_name = label_name
        self.label_id = label_id
        self.delay = delay

    @classmethod
    def from_board(cls, trello: TrelloReader, label_name: str | None) -> SourceTagger:
        """Look the label up by name on the board"""
        if not label_name:
            return cls(trello, None, None)

        try:
            label = trello.find_label(label_name)
        except TrelloAPIError as e:
            logger.warning("Could not read board labels, cards will not be tagged: %s", e)
            return cls(trello, label_name, None)

        if label is None:
            logger.warning(
                "Label '%s' not found on the board, cards will not be tagged", label_name
            )
            return cls(trello, label_name, None)
        return cls(trello, label_name, label["id"])

    @property
    def enabled(self) -> bool:
        return bool(self.label_name and self.label_id)

    def has_label(self, record: dict) -> bool:
        return any(label.get("name") == self.label_name for label in record.get("labels") or [])

    def tag(self, records: list[dict]) -> int:
        """Label every untagged record; returns how many were updated"""
        if not self.enabled:
            return 0

        logger.info("Update Cards with Label: %s, id: %s", self.label_name, self.label_id)
        updated = 0
        for record in records:
            if self.has_label(record):
                continue
            try:
                self.trello.add_label_to_card(record["id"], self.label_id)
            except TrelloAPIError as e:
                logger.warning("Error on updating Card: %s %s", record["id"], e)
            else:
                logger.info("Card %s updated.", record.get("shortUrl", record["id"]))
                updated += 1
            time.sleep(self.delay)
        return updated
