# tests/test_step_executor/conftest.py
import pytest

from mend.mock_executor import MockExecutor, MockRepository
from mend.notifier import Notifier
from mend.step_executor import StepExecutor

BASE_ENV = {"PATH": "/usr/bin", "HOME": "/home/me"}


class RecordingNotifier(Notifier):
    """Keeps every callback so tests can check the order of state changes."""

    def __init__(self):
        self.started = None
        self.transitions = []
        self.report = None

    def run_started(self, steps, start_at=0):
        self.started = (list(steps), start_at)

    def step_changed(self, result):
        self.transitions.append((result.index, result.state.value))

    def run_finished(self, report):
        self.report = report


@pytest.fixture
def events():
    """Shared log of commands and commits, in the order they happened."""
    return []


@pytest.fixture
def mock_executor(events):
    return MockExecutor(events=events)


@pytest.fixture
def mock_repository(events):
    return MockRepository(events=events)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_executor(mock_executor, mock_repository, notifier):
    """
    Factory building a StepExecutor around the shared mocks.
    Use it like:
        step_executor = make_executor(plan, skip_unchanged=True)
    """
    def _make(plan, executor=None, repository=None, **kwargs):
        kwargs.setdefault("notifier", notifier)
        kwargs.setdefault("base_env", BASE_ENV)
        return StepExecutor(
            plan,
            executor or mock_executor,
            repository or mock_repository,
            **kwargs,
        )

    return _make
