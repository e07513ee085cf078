"""Environment-based settings for a migration run."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from trello2clubhouse.exceptions import ConfigurationError
from trello2clubhouse.migration import DuplicateMode, parse_duplicate_mode

logger = logging.getLogger(__name__)

BACKENDS = {"none", "s3", "dropbox"}


def load_env_file(path: str, environ: dict | None = None) -> None:
    """Copy ``KEY=value`` lines from ``path`` into the environment

    Variables that are already set win over the file. Missing files are ignored.
    """
    target = os.environ if environ is None else environ
    env_path = Path(path)
    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                if key not in target:
                    target[key] = value.strip().strip("'\"")
    logger.debug("Loaded environment from %s", path)


@dataclass(frozen=True)
class Settings:
    trello_api_key: str
    trello_token: str
    trello_board_id: str | None
    trello_board_url: str | None
    clubhouse_token: str
    duplicate_mode: DuplicateMode = DuplicateMode.ALLOW_DUPLICATES
    attachment_backend: str = "none"
    aws_s3_bucket: str | None = None
    dropbox_token: str | None = None
    exported_label: str | None = None
    user_map_file: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read settings from environment variables

        Raises:
            ConfigurationError: If a required value is missing or invalid
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(name, "").strip()
            return value or None

        api_key = get("TRELLO_API_KEY")
        token = get("TRELLO_TOKEN")
        if not api_key or not token:
            raise ConfigurationError(
                "Missing required Trello credentials.\n"
                "Set TRELLO_API_KEY and TRELLO_TOKEN in your environment or .env file.\n"
                "Get credentials at: https://trello.com/power-ups/admin"
            )

        board_id = get("TRELLO_BOARD_ID")
        board_url = get("TRELLO_BOARD_URL")
        if not board_id and not board_url:
            raise ConfigurationError(
                "Missing board identifier. Set TRELLO_BOARD_ID (e.g. Bm0nnz1R) or "
                "TRELLO_BOARD_URL (e.g. https://trello.com/b/Bm0nnz1R/my-board)."
            )

        clubhouse_token = get("CLUBHOUSE_API_TOKEN")
        if not clubhouse_token:
            raise ConfigurationError("Missing CLUBHOUSE_API_TOKEN.")

        backend = (get("ATTACHMENT_BACKEND") or "none").lower()
        if backend not in BACKENDS:
            raise ConfigurationError(
                f"Invalid ATTACHMENT_BACKEND '{backend}'. Must be one of: {sorted(BACKENDS)}"
            )

        bucket = get("AWS_S3_BUCKET")
        if backend == "s3" and not bucket:
            raise ConfigurationError("Undefined env variable AWS_S3_BUCKET.")

        dropbox_token = get("DROPBOX_TOKEN")
        if backend == "dropbox" and not dropbox_token:
            raise ConfigurationError("Undefined env variable DROPBOX_TOKEN.")

        return cls(
            trello_api_key=api_key,
            trello_token=token,
            trello_board_id=board_id,
            trello_board_url=board_url,
            clubhouse_token=clubhouse_token,
            duplicate_mode=parse_duplicate_mode(get("RECREATE_CARDS")),
            attachment_backend=backend,
            aws_s3_bucket=bucket,
            dropbox_token=dropbox_token,
            exported_label=get("TRELLO_EXPORTED_LABEL"),
            user_map_file=get("USER_MAP_FILE"),
        )
