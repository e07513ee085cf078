"""Canonical card entities produced by normalization.

These are plain frozen dataclasses: built once per Trello card and read by
every later stage. Member identifiers are kept as raw Trello ids; they are
only translated to Clubhouse ids when the story payload is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Union


@dataclass(frozen=True)
class AttachmentRef:
    """Where a relocated attachment now lives, and who uploaded it on Trello"""

    url: str
    creator_id: str


@dataclass(frozen=True)
class Comment:
    text: str
    creator_id: str
    creator_name: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class Task:
    completed: bool
    description: str


@dataclass(frozen=True)
class Card:
    """A Trello card reduced to what a Clubhouse story needs"""

    title: str
    description: str = ""
    labels: tuple[str, ...] = ()
    due_at: datetime | None = None
    creator_id: str = ""
    owner_ids: tuple[str, ...] = ()
    created_at: datetime | None = None
    comments: tuple[Comment, ...] = ()
    tasks: tuple[Task, ...] = ()
    position: float = 0.0
    short_url: str = ""
    attachments: Mapping[str, AttachmentRef] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # Freeze the attachment mapping as well as the dataclass fields
        object.__setattr__(self, "attachments", MappingProxyType(dict(self.attachments)))


@dataclass(frozen=True)
class CreationEvent:
    """A ``createCard`` entry of the action log"""

    creator_id: str
    created_at: datetime | None


@dataclass(frozen=True)
class CommentEvent:
    """A ``commentCard`` entry of the action log with non-empty text"""

    comment: Comment


ActionEvent = Union[CreationEvent, CommentEvent]
