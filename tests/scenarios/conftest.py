"""Shared fixtures for live story service scenario tests.

These tests run the harness against a real deployment. They are skipped
unless STORY_HARNESS_URL, STORY_HARNESS_USERNAME and STORY_HARNESS_PASSWORD
are set and the service answers.
"""

from __future__ import annotations

import os

import httpx
import pytest

from story_harness.config import HarnessConfig, load_config


def service_reachable(url: str, timeout: float = 5.0) -> bool:
    """Return True if anything answers HTTP at url."""
    try:
        httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.TransportError:
        return False
    return True


@pytest.fixture(scope="module")
def live_config() -> HarnessConfig:
    """Harness config for the live service. Skips if not configured."""
    if not os.environ.get("STORY_HARNESS_URL"):
        pytest.skip("STORY_HARNESS_URL not set")
    config = load_config()
    if not config.username or not config.password:
        pytest.skip("STORY_HARNESS_USERNAME / STORY_HARNESS_PASSWORD not set")
    if not service_reachable(config.base_url, timeout=config.timeout):
        pytest.skip(f"Story service not reachable at {config.base_url}")
    return config
