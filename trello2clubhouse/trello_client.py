"""Trello API client with rate limiting and retry logic."""

from __future__ import annotations

import logging
import re
from typing import Any, cast
from urllib.parse import urlparse

import requests

from trello2clubhouse.exceptions import (
    TrelloAPIError,
    TrelloAuthenticationError,
    TrelloNotFoundError,
    TrelloRateLimitError,
    TrelloServerError,
)
from trello2clubhouse.rate_limiter import RateLimiter
from trello2clubhouse.retry import MAX_RETRIES, RETRY_STATUSES, request_with_retry

logger = logging.getLogger(__name__)

TRELLO_DOMAIN = "trello.com"


class TrelloReader:
    """Read cards from Trello and apply the exported label

    Trello API rate limits (per token):
    - 100 requests per 10 seconds = 10 req/sec sustained
    - 300 requests per 10 seconds per API key = 30 req/sec

    We use 10 req/sec with burst allowance of 10 for conservative usage.
    """

    def __init__(
        self, api_key: str, token: str, board_id: str | None = None, board_url: str | None = None
    ):
        self.api_key = api_key
        self.token = token
        self.base_url = "https://api.trello.com/1"
        self.rate_limiter = RateLimiter(requests_per_second=10.0, burst_allowance=10)

        # board_id is only needed for board-level calls; card calls work without it
        self.board_id: str | None
        if board_url:
            self.board_id = self.parse_board_url(board_url)
        else:
            self.board_id = board_id

    @staticmethod
    def parse_board_url(url: str) -> str:
        """Extract board ID from Trello URL

        Supports formats:
        - https://trello.com/b/Bm0nnz1R/board-name
        - https://trello.com/b/Bm0nnz1R
        - trello.com/b/Bm0nnz1R/board-name

        Raises:
            ValueError: If URL format is invalid or board ID cannot be extracted
        """
        if not url:
            raise ValueError("URL cannot be empty")

        match = re.search(r"trello\.com/b/([a-zA-Z0-9]+)", url)
        if match:
            return match.group(1)

        raise ValueError(f"Could not extract board ID from URL: {url}")

    def _require_board(self) -> str:
        if not self.board_id:
            raise ValueError(
                "board_id is required for this operation. "
                "Initialize TrelloReader with board_id or board_url parameter."
            )
        return self.board_id

    def _request(self, endpoint: str, params: dict | None = None, method: str = "GET") -> Any:
        """Make authenticated request to Trello API with rate limiting and retry logic"""
        if not self.rate_limiter.acquire(timeout=30.0):
            raise RuntimeError("Rate limiter timeout - too many requests queued")

        url = f"{self.base_url}/{endpoint}"
        auth_params = {"key": self.api_key, "token": self.token}
        if params:
            auth_params.update(params)

        try:
            response = request_with_retry(method, url, params=auth_params, timeout=30)
        except requests.HTTPError as e:
            raise self._http_error(endpoint, e) from e
        except requests.RequestException as e:
            raise TrelloAPIError(
                f"Network error after {MAX_RETRIES} attempts: {str(e)}\n"
                "Check your internet connection and try again.",
            ) from e

        return cast(Any, response.json())

    @staticmethod
    def _http_error(endpoint: str, error: requests.HTTPError) -> TrelloAPIError:
        """Translate a failed response into the matching TrelloAPIError subclass"""
        response = error.response
        status_code = response.status_code if response is not None else 0
        response_text = response.text if response is not None else ""

        if status_code == 401:
            return TrelloAuthenticationError(
                "Invalid API credentials. Check your TRELLO_API_KEY and TRELLO_TOKEN.\n"
                "Get credentials at: https://trello.com/power-ups/admin",
                status_code=status_code,
                response_text=response_text,
            )
        if status_code == 403:
            return TrelloAuthenticationError(
                f"Access forbidden to resource: {endpoint}\n"
                "Your API token may not have permission to access this board.",
                status_code=status_code,
                response_text=response_text,
            )
        if status_code == 404:
            return TrelloNotFoundError(
                f"Resource not found: {endpoint}",
                status_code=status_code,
                response_text=response_text,
            )
        if status_code == 429:
            return TrelloRateLimitError(
                f"Rate limit exceeded after {MAX_RETRIES} retry attempts.\n"
                "Trello's API rate limit: 100 requests per 10 seconds.\n"
                "Wait a few minutes and try again.",
                status_code=status_code,
                response_text=response_text,
            )
        if status_code in RETRY_STATUSES:
            return TrelloServerError(
                f"Trello server error (HTTP {status_code}) persisted after {MAX_RETRIES} retries.\n"
                "Trello's servers may be experiencing issues. Try again later.",
                status_code=status_code,
                response_text=response_text,
            )
        return TrelloAPIError(
            f"HTTP {status_code} error for {endpoint}: {response_text[:200]}",
            status_code=status_code,
            response_text=response_text,
        )

    def _paginated_request(self, endpoint: str, params: dict | None = None) -> list[dict]:
        """Follow Trello's 1000-item pages using the ``before`` parameter"""
        all_items: list[dict] = []
        request_params = params.copy() if params else {}
        request_params["limit"] = 1000

        while True:
            page_items = self._request(endpoint, request_params)

            if not isinstance(page_items, list):
                return cast(list[dict], page_items)

            if not page_items:
                break

            all_items.extend(page_items)

            if len(page_items) < 1000:
                break

            last_item_id = page_items[-1].get("id")
            if not last_item_id:
                break

            request_params["before"] = last_item_id

        return all_items

    def validate_credentials(self) -> None:
        """Verify credentials work and, if set, that the board is accessible.

        Raises:
            TrelloAuthenticationError: If API credentials are invalid
            TrelloNotFoundError: If board_id is set but the board isn't accessible
            TrelloAPIError: If other API errors occur
        """
        self._request("members/me", params={"fields": "id,username"})

        if self.board_id:
            try:
                self._request(f"boards/{self.board_id}", params={"fields": "id,name,url"})
            except TrelloNotFoundError as e:
                raise TrelloNotFoundError(
                    f"Board '{self.board_id}' not found or you don't have access to it.\n"
                    "Check your board URL and privacy settings.",
                    status_code=404,
                    response_text=f"Board {self.board_id} not found",
                ) from e

    def get_board(self) -> dict:
        """Get board info"""
        board_id = self._require_board()
        return cast(dict, self._request(f"boards/{board_id}", {"fields": "name,desc,url"}))

    def get_lists(self) -> list[dict]:
        """Get all open lists on the board, in board order"""
        board_id = self._require_board()
        lists = self._request(f"boards/{board_id}/lists", {"fields": "name,id,pos"})
        return cast(list[dict], lists)

    def get_cards(self, list_ids: list[str] | None = None) -> list[dict]:
        """Get the board's open cards in board order

        Labels, checklists and attachments are embedded in each card so the
        normalizer only has to go back to the API for the action log.

        Args:
            list_ids: Restrict to cards on these lists. None means every list.
        """
        board_id = self._require_board()
        cards = self._paginated_request(
            f"boards/{board_id}/cards",
            {
                "attachments": "true",
                "checklists": "all",
                "fields": "name,desc,due,idList,idMembers,labels,pos,shortUrl,shortLink",
            },
        )
        if list_ids is not None:
            wanted = set(list_ids)
            cards = [card for card in cards if card.get("idList") in wanted]
        return cards

    def get_card_actions(self, card_id: str) -> list[dict]:
        """Get the card's creation and comment actions (paginated)"""
        return self._paginated_request(
            f"cards/{card_id}/actions", {"filter": "commentCard,createCard"}
        )

    def get_card_checklists(self, card_id: str) -> list[dict]:
        return cast(list[dict], self._request(f"cards/{card_id}/checklists"))

    def get_card_attachments(self, card_id: str) -> list[dict]:
        return cast(list[dict], self._request(f"cards/{card_id}/attachments"))

    def get_board_labels(self) -> list[dict]:
        board_id = self._require_board()
        return cast(
            list[dict], self._request(f"boards/{board_id}/labels", {"fields": "id,name,color"})
        )

    def find_label(self, name: str) -> dict | None:
        """Return the first board label whose name matches exactly, or None"""
        for label in self.get_board_labels():
            if label.get("name") == name:
                return label
        return None

    def add_label_to_card(self, card_id: str, label_id: str) -> Any:
        """Associate an existing board label with a card"""
        return self._request(f"cards/{card_id}/idLabels", {"value": label_id}, method="POST")

    @staticmethod
    def is_trello_url(url: str) -> bool:
        """True if ``url`` points at trello.com or one of its subdomains"""
        host = (urlparse(url).hostname or "").lower()
        return host == TRELLO_DOMAIN or host.endswith(f".{TRELLO_DOMAIN}")

    def download_attachment(self, url: str) -> tuple[bytes, str]:
        """Download an attachment's binary content.

        Files uploaded to Trello are only served with the OAuth header. The
        header is sent to Trello hosts only; links to other sites are fetched
        without credentials.

        Returns:
            (content, content_type)

        Raises:
            TrelloAPIError: If the download fails
        """
        if not self.rate_limiter.acquire(timeout=30.0):
            raise RuntimeError("Rate limiter timeout - too many requests queued")

        headers: dict[str, str] = {}
        if self.is_trello_url(url):
            headers["Authorization"] = (
                f'OAuth oauth_consumer_key="{self.api_key}", oauth_token="{self.token}"'
            )
        else:
            logger.debug("Downloading external attachment %s without Trello credentials", url)

        try:
            response = requests.get(url, headers=headers, timeout=60)
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise TrelloAPIError(
                f"Failed to download attachment {url}: HTTP {status_code}",
                status_code=status_code,
                response_text=e.response.text[:200] if e.response is not None else None,
            ) from e
        except requests.RequestException as e:
            raise TrelloAPIError(f"Failed to download attachment {url}: {e}") from e

        content_type = response.headers.get("Content-Type", "application/octet-stream")
        return response.content, content_type
