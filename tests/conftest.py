"""Shared test fixtures for taskboard tests."""

import sys
from pathlib import Path

import pytest

# Ensure the package is importable from a source checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskboard.persistence import SnapshotSlot
from taskboard.store import BoardStore


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "taskboard.db")


@pytest.fixture
def slot(db_path):
    return SnapshotSlot(db_path)


@pytest.fixture
def store():
    """In-memory store (no writer)."""
    return BoardStore()


@pytest.fixture
def sprint(store):
    """Store with one seeded board; returns (store, board)."""
    board = store.create_board("Sprint 1")
    return store, board
