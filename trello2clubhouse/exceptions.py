"""Custom exception classes for trello2clubhouse.

This module defines the exception hierarchy for Trello API errors,
Clubhouse API errors, attachment transfer errors and fatal configuration
errors.
"""

from __future__ import annotations


class TrelloAPIError(Exception):
    """Base exception for Trello API errors"""

    def __init__(
        self, message: str, status_code: int | None = None, response_text: str | None = None
    ):
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)


class TrelloAuthenticationError(TrelloAPIError):
    """Raised when API credentials are invalid or expired (401/403)"""

    pass


class TrelloNotFoundError(TrelloAPIError):
    """Raised when a board, card, or resource is not found (404)"""

    pass


class TrelloRateLimitError(TrelloAPIError):
    """Raised when rate limit is exceeded (429) after retries"""

    pass


class TrelloServerError(TrelloAPIError):
    """Raised when Trello's servers return an error (500/502/503/504)"""

    pass


class ClubhouseAPIError(Exception):
    """Base exception for all Clubhouse (Shortcut) API errors.

    Attributes:
        status_code: HTTP status returned by the API (None for network errors)
        response_text: Raw response body, useful when the API explains a 400

    Example:
        >>> try:
        ...     client.create_story(payload)
        ... except ClubhouseAPIError as e:
        ...     print(f"HTTP {e.status_code}: {e.response_text}")
    """

    def __init__(
        self, message: str, status_code: int | None = None, response_text: str | None = None
    ):
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)


class ClubhouseAuthenticationError(ClubhouseAPIError):
    """Raised when the Clubhouse API token is invalid or lacks access (401/403)"""

    pass


class ClubhouseNotFoundError(ClubhouseAPIError):
    """Raised when a story, project or other entity does not exist (404)"""

    pass


class ClubhouseRateLimitError(ClubhouseAPIError):
    """Raised when Clubhouse keeps answering 429 after retries"""

    pass


class ClubhouseServerError(ClubhouseAPIError):
    """Raised when Clubhouse's servers return an error (500/502/503/504)"""

    pass


class TransferError(Exception):
    """Raised when an attachment cannot be copied to durable storage.

    Covers both halves of a relocation: downloading the binary from Trello
    and publishing it to the object store or file host.

    Attributes:
        attachment_name: Original attachment name as shown on the card
        path: Target path/key the attachment was being written to
    """

    def __init__(self, message: str, attachment_name: str | None = None, path: str | None = None):
        self.attachment_name = attachment_name
        self.path = path
        super().__init__(message)


class ConfigurationError(Exception):
    """Raised for unrecoverable setup problems that must abort the whole run.

    Examples: missing credentials, a storage backend selected without its
    bucket or token, an unreadable user map, an out-of-range selection.
    """

    pass
