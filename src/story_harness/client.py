"""HTTP client for the story service REST API.

StoryClient wraps an httpx.Client so that every request carries the bearer
token acquired at login. It never raises on HTTP error statuses: callers get
a ResponseRecord back and decide what the status means. Transport failures
below HTTP (connection refused, timeouts) raise StoryClientError.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from .errors import MalformedBodyError, StoryClientError, map_transport_error
from .shared.auth import auth_headers
from .shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

# Story service endpoints
LOGIN_PATH = "/api/User/Authentication"
CREATE_PATH = "/api/Story/Create"
EDIT_PATH = "/api/Story/Edit/{story_id}"
LIST_PATH = "/api/Story/All"
DELETE_PATH = "/api/Story/Delete/{story_id}"


@dataclass
class ResponseRecord:
    """Status code and body of a single HTTP exchange."""

    method: str
    path: str
    status_code: int
    text: str
    headers: dict[str, str] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @classmethod
    def from_httpx(cls, response: httpx.Response, method: str, path: str) -> "ResponseRecord":
        try:
            elapsed_ms = response.elapsed.total_seconds() * 1000
        except RuntimeError:
            # elapsed is only set once the response has been closed
            elapsed_ms = 0.0
        return cls(
            method=method,
            path=path,
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
            elapsed_ms=elapsed_ms,
        )

    @property
    def is_empty(self) -> bool:
        """True when the body is empty or whitespace only."""
        return not self.text.strip()

    def json(self) -> Any:
        """Parse the body as JSON.

        Raises:
            MalformedBodyError: If the body is empty or not valid JSON
        """
        if self.is_empty:
            raise MalformedBodyError(
                message=f"{self.method} {self.path} returned an empty body",
                data={"status_code": self.status_code},
            )
        try:
            return json.loads(self.text)
        except json.JSONDecodeError as e:
            raise MalformedBodyError(
                message=f"{self.method} {self.path} returned invalid JSON: {e.msg}",
                data={"status_code": self.status_code, "body": self.text[:200]},
            ) from e


class StoryClient:
    """Authenticated HTTP client for the story service.

    Use as a context manager; the underlying transport is released exactly
    once when the scope exits, whatever happened inside it.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None,
        timeout: float = DEFAULT_TIMEOUT,
        insecure: bool = False,
        http_client: httpx.Client | None = None,
    ):
        """Initialize client.

        Args:
            base_url: Story service URL (e.g., https://stories.example.com)
            token: Bearer token attached to every request
            timeout: Request timeout in seconds
            insecure: Skip SSL certificate verification (like curl -k)
            http_client: Pre-built client to send through. It is not closed
                on exit; whoever built it owns it.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.insecure = insecure
        self._token = token
        self._external_client = http_client
        self._client: httpx.Client | None = None
        self._closed = False

    def __enter__(self) -> "StoryClient":
        if self._external_client is not None:
            self._client = self._external_client
        else:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                verify=not self.insecure,
            )
        self._closed = False
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release the transport. Safe to call more than once."""
        if self._closed or self._client is None:
            return
        if self._client is not self._external_client:
            self._client.close()
        self._client = None
        self._closed = True
        logger.debug("client_closed", base_url=self.base_url)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_client(self) -> httpx.Client:
        if not self._client:
            raise StoryClientError(message="Client not initialized. Use 'with StoryClient(...)'.")
        return self._client

    def send(self, method: str, path: str, json: dict[str, Any] | None = None) -> ResponseRecord:
        """Send one authenticated request.

        Args:
            method: HTTP method
            path: API path (e.g., /api/Story/All)
            json: JSON body for POST/PUT

        Returns:
            ResponseRecord for any HTTP status

        Raises:
            StoryClientError: On connection errors, timeouts, redirect loops
                or a response that cannot be decoded
        """
        client = self._ensure_client()
        url = f"{self.base_url}{path}"
        try:
            response = client.request(method, path, json=json, headers=auth_headers(self._token))
        except httpx.RequestError as e:
            logger.warning("request_failed", method=method, path=path, error=str(e))
            raise map_transport_error(e, url, self.timeout) from e

        record = ResponseRecord.from_httpx(response, method, path)
        logger.debug(
            "request_sent",
            method=method,
            path=path,
            status_code=record.status_code,
            elapsed_ms=round(record.elapsed_ms, 1),
        )
        return record

    # -------------------------------------------------------------------------
    # Stories: direct calls for ad-hoc and live checks; scenarios use send
    # -------------------------------------------------------------------------

    def create_story(self, body: dict[str, Any]) -> ResponseRecord:
        """Create a story. Expects 201 with {storyId}."""
        return self.send("POST", CREATE_PATH, json=body)

    def edit_story(self, story_id: str, body: dict[str, Any]) -> ResponseRecord:
        """Edit a story by id. Expects 200, or 404 for unknown ids."""
        return self.send("PUT", EDIT_PATH.format(story_id=story_id), json=body)

    def list_stories(self) -> ResponseRecord:
        """List all stories. Expects 200 with a JSON array."""
        return self.send("GET", LIST_PATH)

    def delete_story(self, story_id: str) -> ResponseRecord:
        """Delete a story by id. Expects 200, or 400 for unknown ids."""
        return self.send("DELETE", DELETE_PATH.format(story_id=story_id))
