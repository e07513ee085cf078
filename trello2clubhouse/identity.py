"""Translate Trello member ids into Clubhouse member ids."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

from trello2clubhouse.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class UserMap:
    """Read-only Trello → Clubhouse member mapping with a fallback member

    Any Trello id without an entry (including the empty id of a card whose
    creator is unknown) resolves to ``fallback_id``, the member picked as the
    import account.
    """

    def __init__(self, mapping: Mapping[str, str], fallback_id: str):
        self._mapping = dict(mapping)
        self.fallback_id = fallback_id

    def __len__(self) -> int:
        return len(self._mapping)

    def __contains__(self, trello_id: object) -> bool:
        return trello_id in self._mapping

    def resolve(self, trello_id: str) -> str:
        mapped = self._mapping.get(trello_id)
        if mapped:
            return mapped
        if trello_id:
            logger.debug("No Clubhouse member mapped for %s, using fallback", trello_id)
        return self.fallback_id

    def resolve_all(self, trello_ids: list[str] | tuple[str, ...]) -> list[str]:
        return [self.resolve(trello_id) for trello_id in trello_ids]

    def with_fallback(self, fallback_id: str) -> UserMap:
        """Same mapping, different fallback member"""
        return UserMap(self._mapping, fallback_id)


def load_user_map(json_path: str, fallback_id: str = "") -> UserMap:
    """Load a user map from a JSON object of ``{"<trello id>": "<clubhouse uuid>"}``

    Raises:
        ConfigurationError: If the file is missing or not a flat string mapping
    """
    path = Path(json_path)
    if not path.exists():
        raise ConfigurationError(f"User map file not found: {json_path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in user map file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("User map must be a JSON object")

    for trello_id, clubhouse_id in data.items():
        if not isinstance(clubhouse_id, str) or not clubhouse_id:
            raise ConfigurationError(
                f"User map entry for '{trello_id}' must be a non-empty string"
            )

    logger.info("Loaded %d user mapping(s) from %s", len(data), json_path)
    return UserMap(data, fallback_id)
