"""Clubhouse (Shortcut) REST API client for story creation and lookup."""

from __future__ import annotations

import logging
from typing import Any, cast

import requests

from trello2clubhouse.exceptions import (
    ClubhouseAPIError,
    ClubhouseAuthenticationError,
    ClubhouseNotFoundError,
    ClubhouseRateLimitError,
    ClubhouseServerError,
)
from trello2clubhouse.rate_limiter import RateLimiter
from trello2clubhouse.retry import MAX_RETRIES, RETRY_STATUSES, request_with_retry

logger = logging.getLogger(__name__)

DRY_RUN_ID = 0


class ClubhouseClient:
    """Talk to the Clubhouse v3 REST API (now served by Shortcut).

    Covers the handful of endpoints the migration needs: listing projects,
    workflows and members for option selection, listing and deleting
    stories for duplicate handling, and creating linked files and stories.

    Clubhouse allows 200 requests per minute per token. We stay under that
    with 3 req/sec and a burst of 10.

    Dry-run mode:
        Read calls go to the API as usual so the duplicate policy sees real
        data. Create calls are logged and return ``{"id": 0}``; deletions
        are logged only.

    Example:
        >>> client = ClubhouseClient(api_token="...")
        >>> story = client.create_story({"name": "Fix login bug", "project_id": 12})
        >>> story["id"]
        1234
    """

    def __init__(
        self,
        api_token: str,
        dry_run: bool = False,
        base_url: str = "https://api.app.shortcut.com/api/v3",
    ):
        self.api_token = api_token
        self.dry_run = dry_run
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = RateLimiter(requests_per_second=3.0, burst_allowance=10)

        mode = " (dry-run mode)" if dry_run else ""
        logger.debug("ClubhouseClient initialized for %s%s", self.base_url, mode)

    def _request(self, method: str, endpoint: str, payload: dict | None = None) -> Any:
        """Make an authenticated JSON request with rate limiting and retry logic"""
        if not self.rate_limiter.acquire(timeout=60.0):
            raise RuntimeError("Rate limiter timeout - too many requests queued")

        url = f"{self.base_url}/{endpoint}"
        headers = {"Content-Type": "application/json", "Shortcut-Token": self.api_token}

        try:
            response = request_with_retry(method, url, headers=headers, json=payload, timeout=30)
        except requests.HTTPError as e:
            raise self._http_error(method, endpoint, e) from e
        except requests.RequestException as e:
            raise ClubhouseAPIError(f"Network error after {MAX_RETRIES} attempts: {str(e)}") from e

        if response.status_code == 204 or not response.content:
            return None
        return cast(Any, response.json())

    @staticmethod
    def _http_error(method: str, endpoint: str, error: requests.HTTPError) -> ClubhouseAPIError:
        response = error.response
        status_code = response.status_code if response is not None else 0
        response_text = response.text if response is not None else ""

        if status_code in (401, 403):
            return ClubhouseAuthenticationError(
                f"Clubhouse rejected the API token for {method} {endpoint}.\n"
                "Check CLUBHOUSE_API_TOKEN and the token's workspace.",
                status_code=status_code,
                response_text=response_text,
            )
        if status_code == 404:
            return ClubhouseNotFoundError(
                f"Clubhouse resource not found: {endpoint}",
                status_code=status_code,
                response_text=response_text,
            )
        if status_code == 429:
            return ClubhouseRateLimitError(
                f"Rate limit exceeded after {MAX_RETRIES} retry attempts.\n"
                "Clubhouse allows 200 requests per minute.",
                status_code=status_code,
                response_text=response_text,
            )
        if status_code in RETRY_STATUSES:
            return ClubhouseServerError(
                f"Clubhouse server error (HTTP {status_code}) "
                f"persisted after {MAX_RETRIES} retries.",
                status_code=status_code,
                response_text=response_text,
            )
        return ClubhouseAPIError(
            f"HTTP {status_code} error for {method} {endpoint}: {response_text[:200]}",
            status_code=status_code,
            response_text=response_text,
        )

    def list_projects(self) -> list[dict]:
        return cast(list[dict], self._request("GET", "projects"))

    def list_workflows(self) -> list[dict]:
        return cast(list[dict], self._request("GET", "workflows"))

    def list_members(self) -> list[dict]:
        return cast(list[dict], self._request("GET", "members"))

    def list_stories(self, project_id: int) -> list[dict]:
        """List the stories of a project (id and name are all the policy needs)"""
        return cast(list[dict], self._request("GET", f"projects/{project_id}/stories"))

    def delete_story(self, story_id: int) -> None:
        if self.dry_run:
            logger.info("[DRY-RUN] Would delete story %s", story_id)
            return
        self._request("DELETE", f"stories/{story_id}")

    def create_story(self, payload: dict) -> dict:
        """Create a story and return the created entity

        Raises:
            ClubhouseAPIError: If the API refuses the story
        """
        if self.dry_run:
            logger.info("[DRY-RUN] Would create story: %s", payload.get("name"))
            return {"id": DRY_RUN_ID, "name": payload.get("name")}
        return cast(dict, self._request("POST", "stories", payload))

    def create_linked_file(self, payload: dict) -> dict:
        """Create a linked file (a reference to an externally hosted file)"""
        if self.dry_run:
            logger.info("[DRY-RUN] Would create linked file: %s", payload.get("name"))
            return {"id": DRY_RUN_ID, "name": payload.get("name")}
        return cast(dict, self._request("POST", "linked-files", payload))
