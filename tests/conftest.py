"""
Pytest configuration and fixtures for session runner tests.

Provides common test fixtures and configuration for unit and integration tests.
"""

import time

import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Add custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: unit test (fast, no I/O)")
    config.addinivalue_line("markers", "integration: integration test (with mocks)")
    config.addinivalue_line("markers", "slow: slow test (real file I/O)")


# ==================== MOCK FIXTURES ====================

class RecordingScheduler:
    """
    Stand-in for pyglet.clock.schedule_once.

    Captures (callback, delay) pairs; fire_all() runs them as if the delay
    had elapsed.
    """

    def __init__(self):
        self.calls = []

    def __call__(self, callback, delay):
        self.calls.append((callback, delay))

    @property
    def delays(self):
        return [delay for _, delay in self.calls]

    def fire_all(self):
        for callback, delay in list(self.calls):
            callback(delay)


@pytest.fixture
def scheduler():
    """Recording scheduler (nothing runs until fire_all)."""
    return RecordingScheduler()


@pytest.fixture
def mock_display():
    """
    Mock Display capturing every participant-facing call.
    """
    from core.display import Display

    return MagicMock(spec=Display)


@pytest.fixture
def mock_store():
    """
    In-memory store that always succeeds.

    Shut down after the test so no worker threads leak.
    """
    from core.persistence import MockStore

    store = MockStore()
    yield store
    store.shutdown(wait=True)


@pytest.fixture
def session_config():
    """Production-mode config with a completion code and URL."""
    from config.session import SessionConfig

    return SessionConfig(
        debug=False,
        mock_store=True,
        completion_url="https://app.prolific.co/submissions/complete?cc=C1234ABC",
        completion_code="C1234ABC",
    )


@pytest.fixture
def debug_config():
    """Debug + mock-store config."""
    from config.session import SessionConfig

    return SessionConfig(
        debug=True,
        mock_store=True,
        completion_url="https://app.prolific.co/submissions/complete?cc=C1234ABC",
        completion_code="C1234ABC",
    )


# ==================== TEST DATA FIXTURES ====================

@pytest.fixture
def three_trial_timeline():
    """
    Timeline of three response trials, all saved incrementally.

    Returns:
        Timeline: 3 units, correct key 'f'
    """
    from core.execution.timeline import Timeline

    timeline = Timeline(name="three_trials")
    for i in range(3):
        timeline.add_unit(create_response_trial(item=i, save_incrementally=True))
    return timeline


@pytest.fixture
def sample_events():
    """
    Response events for the debrief: correct at 500 ms, wrong at 700 ms,
    correct at 300 ms, plus a fixation that must be ignored.
    """
    from core.execution.trial_data import TrialDataEvent

    return [
        TrialDataEvent(0, 'html-keyboard-response', task='fixation', time_elapsed=500.0),
        TrialDataEvent(1, 'rdk', task='response', response='a', correct=True, rt=500.0),
        TrialDataEvent(2, 'rdk', task='response', response='f', correct=False, rt=700.0),
        TrialDataEvent(3, 'rdk', task='response', response='a', correct=True, rt=300.0),
    ]


# ==================== HELPER FUNCTIONS ====================

def create_response_trial(correct_key='f', **tags):
    """Create a minimal valid response trial."""
    from core.execution.trials import HtmlKeyboardResponse

    data = {'task': 'response', 'correct_response': correct_key}
    data.update(tags)
    return HtmlKeyboardResponse(stimulus='<p>Which way?</p>', choices=['a', 'f'], data=data)


def create_fixation(duration=500):
    """Create a minimal fixation cross."""
    from core.execution.trial import NO_KEYS
    from core.execution.trials import HtmlKeyboardResponse

    return HtmlKeyboardResponse(
        stimulus='<div>+</div>',
        choices=NO_KEYS,
        trial_duration=duration,
        data={'task': 'fixation'},
    )


def wait_until(predicate, timeout=5.0, interval=0.01):
    """
    Poll predicate until it returns True.

    Returns:
        bool: True if predicate became true before timeout
    """
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
