# Task board core: board hierarchy state and persistence
#
# Components:
#   schema.py      - Data model (Board, Column, Task, Priority)
#   store.py       - BoardStore: validated mutations, current board, subscribers
#   persistence.py - SQLite key/value slot holding the JSON snapshot
#   writer.py      - Background writer (single thread, depth-1 queue)
#   config.py      - YAML configuration and logging setup

from .config import Config, ConfigError, configure_logging
from .schema import Board, Column, Task, Priority
from .store import BoardStore, Result, TaskboardError, ValidationError, NotFoundError

__all__ = [
    "Board",
    "BoardStore",
    "Column",
    "Config",
    "ConfigError",
    "NotFoundError",
    "Priority",
    "Result",
    "Task",
    "TaskboardError",
    "ValidationError",
    "configure_logging",
]
