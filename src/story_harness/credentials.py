"""Login exchange against the story service.

Performs one unauthenticated POST with {username, password} and pulls the
bearer token out of the ``accessToken`` field. A missing field does not raise:
the result carries an empty token and a status saying why, and the first
authenticated call will surface the problem (typically as 401).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from .client import DEFAULT_TIMEOUT, LOGIN_PATH
from .errors import map_transport_error
from .shared.logging import get_logger

logger = get_logger(__name__)

TOKEN_FIELD = "accessToken"


class CredentialStatus(str, Enum):
    """How the login exchange ended."""

    ISSUED = "issued"
    MISSING_TOKEN = "missing_token"
    UNPARSEABLE_RESPONSE = "unparseable_response"


@dataclass(frozen=True)
class Credential:
    """Bearer token produced by a login exchange."""

    token: str
    status: CredentialStatus
    status_code: int | None = None

    def __bool__(self) -> bool:
        return self.status == CredentialStatus.ISSUED and bool(self.token)

    def __repr__(self) -> str:
        # Never leak the token into logs or tracebacks
        return (
            f"Credential(status={self.status.value!r}, "
            f"status_code={self.status_code!r}, token={'<set>' if self.token else '<empty>'})"
        )


def extract_token(payload: Any) -> str | None:
    """Return the access token from a decoded login response, if present."""
    if not isinstance(payload, dict):
        return None
    token = payload.get(TOKEN_FIELD)
    if token is None:
        return None
    return str(token)


class CredentialProvider:
    """Acquires a bearer token with a single login request. Does not retry."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        insecure: bool = False,
        http_client: httpx.Client | None = None,
    ):
        """Initialize provider.

        Args:
            base_url: Story service URL
            timeout: Request timeout in seconds
            insecure: Skip SSL certificate verification
            http_client: Pre-built client to log in through (left open)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.insecure = insecure
        self._http_client = http_client

    def acquire_token(self, username: str, password: str) -> Credential:
        """Log in and return the credential.

        Raises:
            StoryClientError: If the login endpoint cannot be reached
        """
        body = {"username": username, "password": password}
        try:
            if self._http_client is not None:
                response = self._http_client.post(LOGIN_PATH, json=body)
            else:
                with httpx.Client(
                    base_url=self.base_url,
                    timeout=self.timeout,
                    verify=not self.insecure,
                ) as login_client:
                    response = login_client.post(LOGIN_PATH, json=body)
        except httpx.RequestError as e:
            raise map_transport_error(e, f"{self.base_url}{LOGIN_PATH}", self.timeout) from e

        return self._credential_from_response(response, username)

    def _credential_from_response(self, response: httpx.Response, username: str) -> Credential:
        try:
            payload = response.json()
        except ValueError:
            logger.warning(
                "token_missing",
                username=username,
                status_code=response.status_code,
                reason=CredentialStatus.UNPARSEABLE_RESPONSE.value,
            )
            return Credential("", CredentialStatus.UNPARSEABLE_RESPONSE, response.status_code)

        token = extract_token(payload)
        if not token:
            logger.warning(
                "token_missing",
                username=username,
                status_code=response.status_code,
                reason=CredentialStatus.MISSING_TOKEN.value,
            )
            return Credential("", CredentialStatus.MISSING_TOKEN, response.status_code)

        logger.info("token_acquired", username=username, status_code=response.status_code)
        return Credential(token, CredentialStatus.ISSUED, response.status_code)
