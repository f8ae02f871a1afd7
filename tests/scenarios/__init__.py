"""Scenario tests against a live story service.

Skipped unless STORY_HARNESS_URL and credentials are set in the environment.
"""
