"""
Board hierarchy schema.

  Board → Column → Task

Entities are frozen; the store builds a new snapshot for every mutation
instead of editing in place. to_dict()/from_dict() produce the persisted
layout (camelCase keys, ISO-8601 dates).
"""
import uuid
from enum import Enum
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Optional, Tuple, Dict, Any, Iterator


DEFAULT_COLUMN_TITLES = ("To Do", "In Progress", "Done")


def utc_now() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Random UUID4 identifier."""
    return str(uuid.uuid4())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (a trailing ``Z`` is accepted). None/"" → None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Priority(Enum):
    """Task priority."""
    LOW = "low"
    NORMAL = "normal"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_str(cls, value: str) -> "Priority":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.NORMAL

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        """Strict variant of from_str: unknown values raise ValueError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown priority {value!r}. "
                f"Expected one of: {', '.join(p.value for p in cls)}"
            ) from None


@dataclass(frozen=True)
class Task:
    """A unit of work. Leaf of the hierarchy."""

    id: str
    title: str
    description: str = ""
    due_date: Optional[datetime] = None
    priority: Priority = Priority.NORMAL
    completed: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def is_overdue(self, today: Optional[date] = None) -> bool:
        """True if the due day has passed and the task is still open."""
        if self.due_date is None or self.completed:
            return False
        today = today or date.today()
        due = self.due_date
        if due.tzinfo is not None:
            due = due.astimezone()
        return due.date() < today

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": format_timestamp(self.due_date),
            "priority": self.priority.value,
            "completed": self.completed,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        _require(data, "task")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            description=str(data.get("description") or ""),
            due_date=parse_timestamp(data.get("dueDate")),
            priority=Priority.from_str(data.get("priority", "normal")),
            completed=bool(data.get("completed", False)),
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
        )


@dataclass(frozen=True)
class Column:
    """Named, ordered bucket of tasks (a workflow stage)."""

    id: str
    title: str
    tasks: Tuple[Task, ...] = ()

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        _require(data, "column")
        tasks = data.get("tasks") or []
        if not isinstance(tasks, list):
            raise ValueError(f"Column {data['id']!r}: 'tasks' must be a list")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            tasks=tuple(Task.from_dict(t) for t in tasks),
        )


@dataclass(frozen=True)
class Board:
    """Top-level container of columns; the unit a user switches between."""

    id: str
    title: str
    columns: Tuple[Column, ...] = ()
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def seeded(cls, board_id: str, title: str, column_ids: Tuple[str, ...]) -> "Board":
        """New board with the default empty columns, one id per column."""
        columns = tuple(
            Column(id=cid, title=name)
            for cid, name in zip(column_ids, DEFAULT_COLUMN_TITLES)
        )
        return cls(id=board_id, title=title, columns=columns)

    def find_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def iter_tasks(self) -> Iterator[Task]:
        for column in self.columns:
            yield from column.tasks

    def ids(self) -> Iterator[str]:
        """Every identifier owned by this board, its own included."""
        yield self.id
        for column in self.columns:
            yield column.id
            for task in column.tasks:
                yield task.id

    def with_column(self, column_id: str, **changes) -> "Board":
        """Copy of the board with one column replaced via dataclasses.replace."""
        return replace(self, columns=tuple(
            replace(c, **changes) if c.id == column_id else c
            for c in self.columns
        ))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "columns": [c.to_dict() for c in self.columns],
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Board":
        _require(data, "board")
        columns = data.get("columns") or []
        if not isinstance(columns, list):
            raise ValueError(f"Board {data['id']!r}: 'columns' must be a list")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            columns=tuple(Column.from_dict(c) for c in columns),
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
        )


def _require(data: Any, kind: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"Expected {kind} object, got {type(data).__name__}")
    for key in ("id", "title"):
        if data.get(key) is None:
            raise ValueError(f"{kind.capitalize()} is missing '{key}'")
