"""Pytest configuration and common fixtures."""

import os
import sys
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Try to load test-specific environment file if it exists
test_env_file = Path(__file__).parent / ".env.test"
if test_env_file.exists():
    load_dotenv(test_env_file)

# Set before any src import so settings never pick up a production environment
os.environ.setdefault("ENV", "testing")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from src.core.config.settings import BotSettings, TimingSettings, reset_settings
from src.selector import SelectorManager, reset_selector_manager
from src.utils.error_capture import ErrorCapture, reset_error_capture
from tests.fakes import fast_timings

SELECTORS_FILE = str(Path(__file__).parent.parent / "config" / "selectors.yaml")


def pytest_configure(config):
    """Configure pytest environment before tests run."""
    warnings.filterwarnings("ignore", message="coroutine.*was never awaited")


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Isolate settings and module singletons for every test."""
    monkeypatch.setenv("ENV", "testing")
    monkeypatch.setenv("SELECTORS_FILE", SELECTORS_FILE)
    monkeypatch.setenv("ERROR_CAPTURE_TO_DISK", "false")

    reset_settings()
    reset_selector_manager()
    reset_error_capture()
    yield
    reset_settings()
    reset_selector_manager()
    reset_error_capture()


@pytest.fixture
def timings() -> TimingSettings:
    """Zero-delay timings."""
    return fast_timings()


@pytest.fixture
def selectors() -> SelectorManager:
    """Selector catalogue from the repository's YAML file."""
    return SelectorManager(SELECTORS_FILE)


@pytest.fixture
def settings(timings) -> BotSettings:
    """Settings wired for scripted portal runs."""
    return BotSettings(
        env="testing",
        timings=timings,
        selectors_file=SELECTORS_FILE,
        milestone_screenshots=False,
        conversation_ttl_seconds=60,
        conversation_max_entries=10,
    )


@pytest.fixture
def error_capture(tmp_path) -> ErrorCapture:
    """In-memory error capture rooted in a temporary directory."""
    return ErrorCapture(screenshots_dir=str(tmp_path / "errors"))
