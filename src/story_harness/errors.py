"""Error taxonomy for the story harness.

Errors raised while defining or running a scenario. Step-level failures are
recorded as step outcomes by the executor; only scenario definition errors
stop a run before any request is sent.
"""

from dataclasses import dataclass, field
from typing import Any

import httpx

# Error codes
PRECONDITION_NOT_MET = "PRECONDITION_NOT_MET"
TRANSPORT_ERROR = "TRANSPORT_ERROR"
MALFORMED_BODY = "MALFORMED_BODY"
INVALID_SCENARIO = "INVALID_SCENARIO"
STATE_CONFLICT = "STATE_CONFLICT"
MISSING_FIELD = "MISSING_FIELD"


@dataclass
class HarnessError(Exception):
    """Base error class for harness errors."""

    code: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable error object."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data:
            error["data"] = self.data
        return error


@dataclass
class PreconditionError(HarnessError):
    """A step needs a scenario state value that was never produced."""

    code: str = PRECONDITION_NOT_MET
    message: str = "Precondition not met"
    key: str | None = None


@dataclass
class StoryClientError(HarnessError):
    """Transport-level failure below HTTP semantics."""

    code: str = TRANSPORT_ERROR
    message: str = "Transport error"


@dataclass
class MalformedBodyError(HarnessError):
    """Response body could not be parsed as JSON."""

    code: str = MALFORMED_BODY
    message: str = "Response body is not valid JSON"


@dataclass
class ScenarioDefinitionError(HarnessError):
    """Step definitions do not form a valid ordered chain."""

    code: str = INVALID_SCENARIO
    message: str = "Invalid scenario definition"


@dataclass
class StateConflictError(HarnessError):
    """A step tried to write a state key owned by another step."""

    code: str = STATE_CONFLICT
    message: str = "State key already owned by another step"


def map_transport_error(error: Exception, url: str, timeout: float | None = None) -> StoryClientError:
    """Map an httpx request exception to StoryClientError.

    Args:
        error: Exception raised by the transport
        url: URL that was being accessed
        timeout: Configured timeout, for the message

    Returns:
        StoryClientError describing the failure
    """
    if isinstance(error, httpx.TimeoutException):
        suffix = f" after {timeout}s" if timeout else ""
        message = f"Request to {url} timed out{suffix}"
    elif isinstance(error, httpx.ConnectError):
        from urllib.parse import urlparse

        parsed = urlparse(url)
        host_port = f"{parsed.hostname}:{parsed.port}" if parsed.port else parsed.hostname
        message = f"Cannot connect to story service at {host_port}"
    elif isinstance(error, httpx.DecodingError):
        message = f"Could not decode response from {url}: {error}"
    elif isinstance(error, httpx.TooManyRedirects):
        message = f"Too many redirects calling {url}"
    else:
        message = f"Transport error calling {url}: {error}"

    return StoryClientError(
        message=message,
        data={"url": url, "original_error": str(error), "error_type": type(error).__name__},
    )
