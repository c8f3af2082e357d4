# ABOUTME: Shared test fixtures for the weather logger test suite.
# ABOUTME: Provides settings pointing at a temporary output directory and a recording sleep.

import pytest

from src.config import LoggerSettings
from tests.helpers import TARGET_ID, RecordingSleep


@pytest.fixture
def settings(tmp_path) -> LoggerSettings:
    return LoggerSettings(
        api_key="test-key",
        geocodes=TARGET_ID,
        output_dir=tmp_path / "data",
        target_id=TARGET_ID,
        timezone="Europe/London",
        poll_minutes=10,
        fetch_timeout_ms=1000,
    )


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()
