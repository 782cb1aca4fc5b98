"""Pytest configuration; the test config must be selected before any import of ``src``."""

import os
from pathlib import Path

os.environ["APP_CONFIG_FILE"] = str(Path(__file__).parent / "config.test.yaml")
os.environ.setdefault("APP_ENVIRONMENT", "test")

from tests.fixtures import *  # noqa: E402,F401,F403
