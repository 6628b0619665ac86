"""
Shared pytest fixtures and configuration for treewatch tests.
"""

from unittest.mock import Mock

import pytest

from treewatch import ObservationRegistry, TaskQueue, _reset_default_registry


@pytest.fixture(autouse=True)
def reset_default_registry():
    """Reset the default registry before each test to prevent state leakage."""
    _reset_default_registry()


@pytest.fixture
def tasks():
    """Task queue on a frozen clock; time only moves through advance()."""
    return TaskQueue(clock=lambda: 0.0)


@pytest.fixture
def registry(tasks):
    """Provide a fresh registry draining deferred work from the manual queue."""
    return ObservationRegistry(task_queue=tasks)


@pytest.fixture
def observer():
    return Mock()
