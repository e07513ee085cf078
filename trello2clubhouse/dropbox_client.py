"""Minimal Dropbox HTTP API client: upload a file, share it."""

from __future__ import annotations

import json
import logging
from typing import cast

import requests

logger = logging.getLogger(__name__)


class DropboxClient:
    """Upload files to Dropbox and create shared links for them.

    Only the two calls the attachment relocation needs are wrapped. Errors
    surface as ``requests.RequestException`` and are translated by the caller.
    """

    def __init__(self, token: str):
        self.token = token
        self.api_url = "https://api.dropboxapi.com/2"
        self.content_url = "https://content.dropboxapi.com/2"

    def upload(self, path: str, content: bytes) -> dict:
        """Upload ``content`` to ``path`` without overwriting an existing file"""
        api_arg = {"path": path, "mode": "add", "autorename": False, "mute": True}
        response = requests.post(
            f"{self.content_url}/files/upload",
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps(api_arg),
            },
            data=content,
            timeout=120,
        )
        response.raise_for_status()
        logger.debug("Uploaded %d bytes to dropbox:%s", len(content), path)
        return cast(dict, response.json())

    def create_shared_link(self, path: str) -> str:
        """Create a public shared link for an uploaded file and return its URL"""
        response = requests.post(
            f"{self.api_url}/sharing/create_shared_link_with_settings",
            headers={"Authorization": f"Bearer {self.token}"},
            json={"path": path},
            timeout=30,
        )
        response.raise_for_status()
        return cast(str, response.json()["url"])
