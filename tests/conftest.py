"""Shared fixtures — policy loaded from the repository's config directory."""

import pytest
from pathlib import Path

from leaveflow.policy.resolver import PolicyResolver

CONFIG_DIR = Path(__file__).parent.parent / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)
