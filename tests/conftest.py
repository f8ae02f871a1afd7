"""Shared test fixtures for story-harness tests.

- mock_story_server: in-process mock of the story service
- story_http: TestClient (an httpx.Client) bound to that mock
- harness_config: HarnessConfig pointing at the mock with valid credentials
- story_client: entered StoryClient authenticated against the mock
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from story_harness.client import StoryClient
from story_harness.config import HarnessConfig
from story_harness.credentials import CredentialProvider
from tests.mocks import MockStoryServer

MOCK_BASE_URL = "http://testserver"


@pytest.fixture
def mock_story_server() -> MockStoryServer:
    """Fixture providing a fresh mock story service."""
    return MockStoryServer(users={"tester": "secret"})


@pytest.fixture
def story_http(mock_story_server: MockStoryServer) -> Generator[TestClient, None, None]:
    """Fixture providing an HTTP client wired to the mock story service."""
    with mock_story_server.get_test_client() as client:
        yield client


@pytest.fixture
def harness_config() -> HarnessConfig:
    """Fixture providing config for the mock story service."""
    return HarnessConfig(base_url=MOCK_BASE_URL, username="tester", password="secret")


@pytest.fixture
def story_client(
    story_http: TestClient, harness_config: HarnessConfig
) -> Generator[StoryClient, None, None]:
    """Fixture providing an authenticated, entered StoryClient."""
    provider = CredentialProvider(harness_config.base_url, http_client=story_http)
    credential = provider.acquire_token(harness_config.username, harness_config.password)
    with StoryClient(harness_config.base_url, credential.token, http_client=story_http) as client:
        yield client
