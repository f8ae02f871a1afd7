"""Test mocks for story-harness.

Provides mock implementations for testing:
- MockStoryServer: Simulates the story service REST API
"""

from .mock_story_server import MockStoryServer

__all__ = ["MockStoryServer"]
