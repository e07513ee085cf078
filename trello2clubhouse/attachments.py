"""Relocate Trello card attachments to durable storage.

Trello attachment URLs are tied to the board's permissions, so each file is
copied to a storage target chosen for the run (an S3 bucket or a Dropbox
account) and the new location is what ends up on the Clubhouse story.

Both targets implement :class:`AttachmentBackend`. The relocator computes a
deterministic path per attachment and hands each one to the backend in turn;
a failure only drops that one attachment.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from trello2clubhouse.dropbox_client import DropboxClient
from trello2clubhouse.exceptions import TransferError, TrelloAPIError
from trello2clubhouse.models import AttachmentRef

logger = logging.getLogger(__name__)

SAFE_FILE_NAME = re.compile(r"[^a-zA-Z0-9_.]+")
MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}

Downloader = Callable[[str], tuple[bytes, str]]


def sanitize_name(name: str) -> str:
    """Replace every run of characters outside ``[A-Za-z0-9_.]`` with one underscore

    >>> sanitize_name("Screen Shot (2).png")
    'Screen_Shot_2_.png'
    """
    return SAFE_FILE_NAME.sub("_", name)


def attachment_path(list_id: str, card_id: str, index: int, name: str) -> str:
    """Storage path of the ``index``-th attachment of a card, without leading slash"""
    return f"trello/{list_id}/{card_id}/{index}_{name}"


class AttachmentBackend(ABC):
    """A durable place to republish attachments"""

    name = "backend"

    @abstractmethod
    def relocate(self, attachment: dict, path: str) -> AttachmentRef:
        """Copy one Trello attachment to ``path`` and return where it lives now

        Raises:
            TransferError: If the attachment could not be downloaded or stored
        """

    def _download(self, download: Downloader, attachment: dict, path: str) -> tuple[bytes, str]:
        url = attachment.get("url", "")
        try:
            return download(url)
        except TrelloAPIError as e:
            raise TransferError(
                f"Error downloading Trello attachment from {url}: {e}",
                attachment_name=attachment.get("name"),
                path=path,
            ) from e


class S3Backend(AttachmentBackend):
    """Store attachments as private objects in an S3 bucket

    Object keys are deterministic, so an object that is already present is
    reused instead of downloaded and uploaded again. Re-running a migration
    therefore yields the same URLs.
    """

    name = "s3"

    def __init__(self, bucket: str, download: Downloader, s3_client: Any = None):
        self.bucket = bucket
        self.download = download
        self.s3 = s3_client if s3_client is not None else boto3.client("s3")

    def object_url(self, key: str) -> str:
        endpoint = self.s3.meta.endpoint_url.rstrip("/")
        return f"{endpoint}/{self.bucket}/{key}"

    def exists(self, key: str) -> bool:
        """Whether an object is stored under ``key``

        Only a missing object counts as absent without a warning; other S3
        errors are logged and also count as absent.

        Raises:
            BotoCoreError: If S3 cannot be reached or no credentials are found
        """
        try:
            self.s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code not in MISSING_OBJECT_CODES:
                logger.warning(
                    "Could not check s3://%s/%s (%s), uploading anyway", self.bucket, key, code
                )
            return False
        return True

    def relocate(self, attachment: dict, path: str) -> AttachmentRef:
        url = self.object_url(path)
        creator_id = attachment.get("idMember", "")

        try:
            found = self.exists(path)
        except BotoCoreError as e:
            raise TransferError(
                f"Error checking file {path} on AWS S3: {e}",
                attachment_name=attachment.get("name"),
                path=path,
            ) from e

        if found:
            logger.info("Skipped uploading file to AWS S3. File exists: %s", url)
            return AttachmentRef(url=url, creator_id=creator_id)

        content, content_type = self._download(self.download, attachment, path)
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=content,
                ACL="private",
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise TransferError(
                f"Error uploading file {path} to AWS S3: {e}",
                attachment_name=attachment.get("name"),
                path=path,
            ) from e

        logger.debug("Uploaded %s to s3://%s/%s", attachment.get("name"), self.bucket, path)
        return AttachmentRef(url=url, creator_id=creator_id)


class DropboxBackend(AttachmentBackend):
    """Store attachments in Dropbox and share them by link

    Dropbox has no existence check here: each run uploads again (Dropbox
    keeps both copies) and creates a fresh shared link.
    """

    name = "dropbox"

    def __init__(self, client: DropboxClient, download: Downloader):
        self.client = client
        self.download = download

    def relocate(self, attachment: dict, path: str) -> AttachmentRef:
        dropbox_path = f"/{path}"
        content, _ = self._download(self.download, attachment, dropbox_path)

        try:
            self.client.upload(dropbox_path, content)
        except requests.RequestException as e:
            raise TransferError(
                f"Error uploading file to dropbox: {e}",
                attachment_name=attachment.get("name"),
                path=dropbox_path,
            ) from e

        try:
            url = self.client.create_shared_link(dropbox_path)
        except (requests.RequestException, KeyError) as e:
            raise TransferError(
                f"Error sharing file on dropbox: {e}",
                attachment_name=attachment.get("name"),
                path=dropbox_path,
            ) from e

        return AttachmentRef(url=url, creator_id=attachment.get("idMember", ""))


class AttachmentRelocator:
    """Relocate every attachment of a Trello card through one backend"""

    def __init__(self, backend: AttachmentBackend, fetch_attachments: Callable[[str], list[dict]]):
        self.backend = backend
        self.fetch_attachments = fetch_attachments

    def _attachments_of(self, record: dict) -> list[dict]:
        if "attachments" in record:
            return list(record["attachments"] or [])
        try:
            return self.fetch_attachments(record["id"])
        except TrelloAPIError as e:
            logger.warning(
                "Error querying attachments for: %s, ignoring... %s", record.get("name"), e
            )
            return []

    def relocate_card(self, record: dict) -> dict[str, AttachmentRef]:
        """Relocate a card's attachments

        Returns:
            Sanitized attachment name → reference, in attachment order. Failed
            attachments are logged and left out.
        """
        refs: dict[str, AttachmentRef] = {}

        for index, attachment in enumerate(self._attachments_of(record)):
            name = sanitize_name(attachment.get("name", ""))
            path = attachment_path(record.get("idList", ""), record["id"], index, name)

            try:
                ref = self.backend.relocate(attachment, path)
            except TransferError as e:
                logger.warning("%s, continuing...", e)
                continue

            if name in refs:
                logger.warning(
                    "Card %s has several attachments named %s, keeping the last one",
                    record.get("shortUrl", record["id"]),
                    name,
                )
            refs[name] = ref

        return refs
