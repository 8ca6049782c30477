"""
Board store: single owner of the board hierarchy.

Every mutation validates its input, builds a new snapshot (a tuple of frozen
Boards), swaps it in, re-resolves the current board and hands the snapshot
to the writer. Readers always see a complete snapshot.

Top-level misses (unknown board on board operations, unknown parent on
create) raise NotFoundError. Nested misses on move/update/delete return
Result.NOT_FOUND: the UI can hold stale ids during a drag.
"""
import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from .config import Config, configure_logging
from .persistence import SnapshotSlot
from .schema import Board, Column, Priority, Task, new_id, utc_now, DEFAULT_COLUMN_TITLES
from .writer import SnapshotWriter

logger = logging.getLogger(__name__)

ALL_EVENTS = "*"


class TaskboardError(Exception):
    """Base class for store errors."""
    pass


class ValidationError(TaskboardError, ValueError):
    """Raised when input fails validation. State is left untouched."""
    pass


class NotFoundError(TaskboardError, LookupError):
    """Raised when a board (or a create target) does not exist."""
    pass


class Result(Enum):
    """Outcome of nested update/delete/move operations."""
    OK = "ok"
    NOT_FOUND = "not_found"
    UNCHANGED = "unchanged"


def _clean_title(title, kind: str) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError(f"{kind} title cannot be empty")
    return title.strip()


def _parse_priority(value) -> Priority:
    try:
        return Priority.parse(value)
    except ValueError as e:
        raise ValidationError(str(e)) from None


class BoardStore:
    """In-memory board hierarchy with optional background persistence."""

    def __init__(self, boards: Iterable[Board] = (), writer: Optional[SnapshotWriter] = None):
        self._boards: Tuple[Board, ...] = tuple(boards)
        self._writer = writer
        self._issued: Set[str] = set()
        for board in self._boards:
            self._issued.update(board.ids())
        self._current_id: Optional[str] = self._boards[0].id if self._boards else None
        self.flush_timeout: Optional[float] = None
        self.subscribers: Dict[str, list] = {}  # event_type -> list of callbacks

    # ──────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────

    @classmethod
    def open(cls, config: Optional[Config] = None) -> "BoardStore":
        """
        Restore the persisted snapshot and start the background writer.

        Logging is set up from cfg.log_level via configure_logging().
        """
        cfg = config or Config.load()
        configure_logging(cfg.log_level)
        slot = SnapshotSlot(cfg.db_path, cfg.slot_key)
        store = cls(slot.restore(), writer=SnapshotWriter(slot))
        store.flush_timeout = cfg.flush_timeout
        return store

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for the latest snapshot to reach durable storage."""
        if self._writer is None:
            return True
        return self._writer.flush(timeout if timeout is not None else self.flush_timeout)

    def close(self) -> None:
        """Write the final snapshot and stop the writer."""
        if self._writer is not None and not self._writer.closed:
            self._writer.close(self.flush_timeout)

    def __enter__(self) -> "BoardStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ──────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────

    @property
    def boards(self) -> Tuple[Board, ...]:
        return self._boards

    @property
    def current_board_id(self) -> Optional[str]:
        return self._current_id

    @property
    def current_board(self) -> Optional[Board]:
        """The selected board, looked up in the live snapshot."""
        if self._current_id is None:
            return None
        return self.get_board(self._current_id)

    def get_board(self, board_id: str) -> Optional[Board]:
        for board in self._boards:
            if board.id == board_id:
                return board
        return None

    def _require_board(self, board_id: str) -> Board:
        board = self.get_board(board_id)
        if board is None:
            raise NotFoundError(f"Board {board_id} not found")
        return board

    # ──────────────────────────────────────────
    # Subscribers
    # ──────────────────────────────────────────

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """
        Register a callback for an event type ("*" for every event).

        Callbacks are invoked as ``callback(event_type, **ids)``.
        """
        self.subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        callbacks = self.subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def _emit(self, event_type: str, **kwargs) -> None:
        callbacks = self.subscribers.get(event_type, []) + self.subscribers.get(ALL_EVENTS, [])
        for callback in callbacks:
            try:
                callback(event_type, **kwargs)
            except Exception:
                logger.exception(f"Error in {event_type} callback")

    # ──────────────────────────────────────────
    # Snapshot plumbing
    # ──────────────────────────────────────────

    def _new_id(self) -> str:
        ident = new_id()
        while ident in self._issued:
            ident = new_id()
        self._issued.add(ident)
        return ident

    def _commit(self, boards: Iterable[Board], event_type: str, **kwargs) -> None:
        self._boards = tuple(boards)
        if self.get_board(self._current_id or "") is None:
            self._current_id = self._boards[0].id if self._boards else None
        if self._writer is not None:
            self._writer.submit(self._boards)
        self._emit(event_type, **kwargs)

    def _swap_board(self, updated: Board) -> List[Board]:
        return [updated if b.id == updated.id else b for b in self._boards]

    # ──────────────────────────────────────────
    # Boards
    # ──────────────────────────────────────────

    def create_board(self, title: str) -> Board:
        """Create a board with the default columns and make it current."""
        title = _clean_title(title, "Board")
        board_id = self._new_id()
        column_ids = tuple(self._new_id() for _ in DEFAULT_COLUMN_TITLES)
        board = Board.seeded(board_id, title, column_ids)
        self._current_id = board.id
        self._commit(self._boards + (board,), "board_created", board_id=board.id)
        logger.debug(f"Created board {board.id} ({title!r})")
        return board

    def update_board(self, board: Board) -> Board:
        """
        Rename the board with board.id.

        Unlike a whole-entity replace, only the title is taken from *board*:
        columns, tasks and created_at stay as the store holds them and change
        only through the column and task operations.
        """
        existing = self._require_board(board.id)
        updated = replace(existing, title=_clean_title(board.title, "Board"))
        self._commit(self._swap_board(updated), "board_updated", board_id=board.id)
        return updated

    def delete_board(self, board_id: str) -> None:
        """Remove a board with all its columns and tasks."""
        self._require_board(board_id)
        self._commit(
            [b for b in self._boards if b.id != board_id],
            "board_deleted", board_id=board_id,
        )

    def select_board(self, board_id: str) -> Board:
        board = self._require_board(board_id)
        if self._current_id != board_id:
            self._current_id = board_id
            self._emit("board_selected", board_id=board_id)
        return board

    # ──────────────────────────────────────────
    # Columns
    # ──────────────────────────────────────────

    def create_column(self, board_id: str, title: str) -> Column:
        """Append an empty column to a board."""
        title = _clean_title(title, "Column")
        board = self._require_board(board_id)
        column = Column(id=self._new_id(), title=title)
        updated = replace(board, columns=board.columns + (column,))
        self._commit(self._swap_board(updated), "column_created",
                     board_id=board_id, column_id=column.id)
        return column

    def update_column(self, board_id: str, column: Column) -> Result:
        """Rename a column. Its tasks are kept."""
        title = _clean_title(column.title, "Column")
        board = self.get_board(board_id)
        if board is None or board.find_column(column.id) is None:
            return Result.NOT_FOUND
        updated = board.with_column(column.id, title=title)
        self._commit(self._swap_board(updated), "column_updated",
                     board_id=board_id, column_id=column.id)
        return Result.OK

    def delete_column(self, board_id: str, column_id: str) -> Result:
        """Remove a column and every task in it."""
        board = self.get_board(board_id)
        if board is None or board.find_column(column_id) is None:
            return Result.NOT_FOUND
        updated = replace(board, columns=tuple(c for c in board.columns if c.id != column_id))
        self._commit(self._swap_board(updated), "column_deleted",
                     board_id=board_id, column_id=column_id)
        return Result.OK

    # ──────────────────────────────────────────
    # Tasks
    # ──────────────────────────────────────────

    def create_task(
        self,
        board_id: str,
        column_id: str,
        title: str,
        description: str = "",
        due_date: Optional[datetime] = None,
        priority=Priority.NORMAL,
        completed: bool = False,
    ) -> Task:
        """Append a new task to a column. Id and created_at are assigned here."""
        title = _clean_title(title, "Task")
        priority = _parse_priority(priority)
        board = self._require_board(board_id)
        column = board.find_column(column_id)
        if column is None:
            raise NotFoundError(f"Column {column_id} not found in board {board_id}")
        task = Task(
            id=self._new_id(),
            title=title,
            description=(description or "").strip(),
            due_date=due_date,
            priority=priority,
            completed=bool(completed),
            created_at=utc_now(),
        )
        updated = board.with_column(column_id, tasks=column.tasks + (task,))
        self._commit(self._swap_board(updated), "task_created",
                     board_id=board_id, column_id=column_id, task_id=task.id)
        return task

    def update_task(self, board_id: str, column_id: str, task: Task) -> Result:
        """
        Overwrite a task's editable fields (last write wins).

        id and created_at belong to the store and are never taken from *task*.
        """
        title = _clean_title(task.title, "Task")
        priority = _parse_priority(task.priority)
        board = self.get_board(board_id)
        column = board.find_column(column_id) if board else None
        existing = column.find_task(task.id) if column else None
        if existing is None:
            return Result.NOT_FOUND
        replacement = replace(
            existing,
            title=title,
            description=(task.description or "").strip(),
            due_date=task.due_date,
            priority=priority,
            completed=bool(task.completed),
        )
        return self._replace_task(board, column, replacement, "task_updated")

    def toggle_task(self, board_id: str, column_id: str, task_id: str) -> Result:
        """Flip a task's completed flag."""
        board = self.get_board(board_id)
        column = board.find_column(column_id) if board else None
        existing = column.find_task(task_id) if column else None
        if existing is None:
            return Result.NOT_FOUND
        replacement = replace(existing, completed=not existing.completed)
        return self._replace_task(board, column, replacement, "task_updated")

    def _replace_task(self, board: Board, column: Column, task: Task, event_type: str) -> Result:
        tasks = tuple(task if t.id == task.id else t for t in column.tasks)
        updated = board.with_column(column.id, tasks=tasks)
        self._commit(self._swap_board(updated), event_type,
                     board_id=board.id, column_id=column.id, task_id=task.id)
        return Result.OK

    def delete_task(self, board_id: str, column_id: str, task_id: str) -> Result:
        board = self.get_board(board_id)
        column = board.find_column(column_id) if board else None
        if column is None or column.find_task(task_id) is None:
            return Result.NOT_FOUND
        tasks = tuple(t for t in column.tasks if t.id != task_id)
        updated = board.with_column(column_id, tasks=tasks)
        self._commit(self._swap_board(updated), "task_deleted",
                     board_id=board_id, column_id=column_id, task_id=task_id)
        return Result.OK

    def move_task(
        self,
        board_id: str,
        source_column_id: str,
        dest_column_id: str,
        task_id: str,
    ) -> Result:
        """
        Move a task to the end of another column in the same board.

        Same source and destination → UNCHANGED. Any missing board, column or
        task → NOT_FOUND. In both cases nothing is written.
        """
        board = self.get_board(board_id)
        if board is None:
            return Result.NOT_FOUND
        source = board.find_column(source_column_id)
        dest = board.find_column(dest_column_id)
        task = source.find_task(task_id) if source else None
        if dest is None or task is None:
            return Result.NOT_FOUND
        if source_column_id == dest_column_id:
            return Result.UNCHANGED

        columns = []
        for column in board.columns:
            if column.id == source_column_id:
                column = replace(column, tasks=tuple(t for t in column.tasks if t.id != task_id))
            elif column.id == dest_column_id:
                column = replace(column, tasks=column.tasks + (task,))
            columns.append(column)
        updated = replace(board, columns=tuple(columns))
        self._commit(self._swap_board(updated), "task_moved",
                     board_id=board_id, source_column_id=source_column_id,
                     dest_column_id=dest_column_id, task_id=task_id)
        return Result.OK
