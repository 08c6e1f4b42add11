import pytest

from reactivity import DependencyGraph


@pytest.fixture
def graph():
    """A fresh, isolated dependency graph."""
    return DependencyGraph()
