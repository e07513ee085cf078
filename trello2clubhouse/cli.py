"""CLI entry point for trello2clubhouse."""

from __future__ import annotations

import logging
import os
import sys

from trello2clubhouse.attachments import (
    AttachmentRelocator,
    DropboxBackend,
    S3Backend,
)
from trello2clubhouse.clubhouse_client import ClubhouseClient
from trello2clubhouse.config import Settings, load_env_file
from trello2clubhouse.dropbox_client import DropboxClient
from trello2clubhouse.exceptions import (
    ClubhouseAPIError,
    ConfigurationError,
    TrelloAPIError,
)
from trello2clubhouse.identity import UserMap, load_user_map
from trello2clubhouse.logging_config import setup_logging
from trello2clubhouse.migration import DuplicatePolicy, MigrationDriver
from trello2clubhouse.normalizer import CardNormalizer
from trello2clubhouse.options import collect_clubhouse_options, collect_trello_options
from trello2clubhouse.story_builder import StoryBuilder
from trello2clubhouse.tagger import SourceTagger
from trello2clubhouse.trello_client import TrelloReader

logger = logging.getLogger("trello2clubhouse.cli")

__doc__ = """
trello2clubhouse - Migrate Trello cards into Clubhouse stories

Usage:
    export TRELLO_API_KEY="your-key"
    export TRELLO_TOKEN="your-token"
    export TRELLO_BOARD_ID="your-board-id"      # or TRELLO_BOARD_URL
    export CLUBHOUSE_API_TOKEN="your-token"

    # Optional
    export RECREATE_CARDS=skip                  # 1/true/yes: delete, skip: skip, else allow
    export ATTACHMENT_BACKEND=s3                # none (default), s3, dropbox
    export AWS_S3_BUCKET=my-bucket              # required with s3
    export DROPBOX_TOKEN=...                    # required with dropbox
    export TRELLO_EXPORTED_LABEL=exported       # label put on migrated cards
    export USER_MAP_FILE=users.json             # {"<trello member id>": "<clubhouse uuid>"}

    trello2clubhouse [options]

Options:
    -n, --dry-run       Read Trello and relocate attachments, but only log Clubhouse writes
    --fast              Add the "imported from Trello" comment without asking
    -v, --verbose       Debug logging
    -q, --quiet         Errors and the per-card status table only
    --log-level LEVEL   DEBUG, INFO, WARNING or ERROR
    --log-file PATH     Also write logs to PATH
    -h, --help          Show this help
"""


def build_relocator(settings: Settings, trello: TrelloReader) -> AttachmentRelocator | None:
    """Attachment relocator for the configured backend, or None when disabled"""
    if settings.attachment_backend == "s3":
        assert settings.aws_s3_bucket is not None
        backend = S3Backend(settings.aws_s3_bucket, trello.download_attachment)
    elif settings.attachment_backend == "dropbox":
        assert settings.dropbox_token is not None
        backend = DropboxBackend(DropboxClient(settings.dropbox_token), trello.download_attachment)
    else:
        return None

    logger.info("Attachments will be copied to %s", backend.name)
    return AttachmentRelocator(backend, trello.get_card_attachments)


def main() -> None:
    if "--help" in sys.argv or "-h" in sys.argv:
        print(__doc__)
        sys.exit(0)

    log_level = "INFO"
    log_file = None

    if "--verbose" in sys.argv or "-v" in sys.argv:
        log_level = "DEBUG"
    elif "--quiet" in sys.argv or "-q" in sys.argv:
        log_level = "ERROR"
    elif "--log-level" in sys.argv:
        idx = sys.argv.index("--log-level")
        if idx + 1 < len(sys.argv):
            log_level = sys.argv[idx + 1].upper()

    if "--log-file" in sys.argv:
        idx = sys.argv.index("--log-file")
        if idx + 1 < len(sys.argv):
            log_file = sys.argv[idx + 1]

    setup_logging(log_level, log_file)

    dry_run = "--dry-run" in sys.argv or "-n" in sys.argv
    fast = "--fast" in sys.argv

    load_env_file(os.getenv("TRELLO_ENV_FILE", ".env"))

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logger.error("❌ Error: %s", e)
        logger.error("Run with --help for the list of settings")
        sys.exit(1)

    trello = TrelloReader(
        settings.trello_api_key,
        settings.trello_token,
        board_id=settings.trello_board_id,
        board_url=settings.trello_board_url,
    )

    logger.info("🔍 Validating Trello credentials and board access...")
    try:
        trello.validate_credentials()
    except TrelloAPIError as e:
        logger.error("❌ Validation failed: %s", e)
        sys.exit(1)

    clubhouse = ClubhouseClient(settings.clubhouse_token, dry_run=dry_run)

    try:
        clubhouse_options = collect_clubhouse_options(clubhouse, fast=fast)
        trello_options = collect_trello_options(trello, settings.exported_label)
        if settings.user_map_file:
            user_map = load_user_map(settings.user_map_file, clubhouse_options.fallback_member_id)
        else:
            user_map = UserMap({}, clubhouse_options.fallback_member_id)
        relocator = build_relocator(settings, trello)
        records = trello.get_cards(trello_options.list_ids)
    except (ConfigurationError, ClubhouseAPIError, TrelloAPIError) as e:
        logger.error("❌ Error: %s", e)
        sys.exit(1)

    logger.info("🎴 Exporting %d Trello card(s)...", len(records))
    cards = CardNormalizer(trello, relocator).normalize_all(records)

    driver = MigrationDriver(
        clubhouse,
        StoryBuilder(clubhouse, clubhouse_options, user_map),
        DuplicatePolicy(clubhouse, clubhouse_options.project_id, settings.duplicate_mode),
    )
    driver.run(cards)

    if dry_run:
        logger.info("[DRY-RUN] Skipping Trello card labelling")
        return

    SourceTagger.from_board(trello, trello_options.exported_label).tag(records)


if __name__ == "__main__":
    main()
