"""Migrate Trello cards into Clubhouse stories."""

from __future__ import annotations

from trello2clubhouse.attachments import (
    AttachmentBackend,
    AttachmentRelocator,
    DropboxBackend,
    S3Backend,
    sanitize_name,
)
from trello2clubhouse.cli import main
from trello2clubhouse.clubhouse_client import ClubhouseClient
from trello2clubhouse.config import Settings
from trello2clubhouse.dropbox_client import DropboxClient
from trello2clubhouse.exceptions import (
    ClubhouseAPIError,
    ClubhouseAuthenticationError,
    ClubhouseNotFoundError,
    ClubhouseRateLimitError,
    ClubhouseServerError,
    ConfigurationError,
    TransferError,
    TrelloAPIError,
    TrelloAuthenticationError,
    TrelloNotFoundError,
    TrelloRateLimitError,
    TrelloServerError,
)
from trello2clubhouse.identity import UserMap, load_user_map
from trello2clubhouse.logging_config import setup_logging
from trello2clubhouse.migration import (
    CardResult,
    CardState,
    DuplicateMode,
    DuplicatePolicy,
    MigrationDriver,
    parse_duplicate_mode,
)
from trello2clubhouse.models import AttachmentRef, Card, Comment, Task
from trello2clubhouse.normalizer import CardNormalizer
from trello2clubhouse.options import ClubhouseOptions, TrelloOptions
from trello2clubhouse.rate_limiter import RateLimiter
from trello2clubhouse.story_builder import StoryBuilder
from trello2clubhouse.tagger import SourceTagger
from trello2clubhouse.trello_client import TrelloReader

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "CardNormalizer",
    "AttachmentRelocator",
    "AttachmentBackend",
    "S3Backend",
    "DropboxBackend",
    "StoryBuilder",
    "DuplicatePolicy",
    "DuplicateMode",
    "MigrationDriver",
    "CardResult",
    "CardState",
    "SourceTagger",
    "UserMap",
    "load_user_map",
    "parse_duplicate_mode",
    "sanitize_name",
    # Models
    "Card",
    "Comment",
    "Task",
    "AttachmentRef",
    # Clients
    "TrelloReader",
    "ClubhouseClient",
    "DropboxClient",
    "RateLimiter",
    # Configuration
    "Settings",
    "ClubhouseOptions",
    "TrelloOptions",
    "setup_logging",
    # Exceptions
    "TrelloAPIError",
    "TrelloAuthenticationError",
    "TrelloNotFoundError",
    "TrelloRateLimitError",
    "TrelloServerError",
    "ClubhouseAPIError",
    "ClubhouseAuthenticationError",
    "ClubhouseNotFoundError",
    "ClubhouseRateLimitError",
    "ClubhouseServerError",
    "TransferError",
    "ConfigurationError",
    # CLI
    "main",
]
