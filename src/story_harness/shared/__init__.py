"""Shared modules for story-harness.

Paths, auth header helpers and logging used by the CLI and the harness core.
"""

from .auth import auth_headers, mask_secret
from .logging import configure_logging, get_logger, verbosity_to_level
from .paths import CONFIG_FILE, HARNESS_DIR

__all__ = [
    # Paths
    "HARNESS_DIR",
    "CONFIG_FILE",
    # Auth
    "auth_headers",
    "mask_secret",
    # Logging
    "configure_logging",
    "get_logger",
    "verbosity_to_level",
]
