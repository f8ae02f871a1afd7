"""Path management for story-harness.

Manages the ~/.story-harness/ directory structure.
"""

from pathlib import Path

# Base directory for all harness data
HARNESS_DIR = Path.home() / ".story-harness"

# Persistent CLI configuration (may hold a password, kept user-only)
CONFIG_FILE = HARNESS_DIR / "config.yaml"
