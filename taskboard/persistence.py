"""
Snapshot persistence (SQLite key/value slot).

The whole board list is stored as one JSON document under a single key.
Every persist overwrites the previous value; restore reads it back once at
startup.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import List, Sequence, Optional

from .schema import Board, utc_now

logger = logging.getLogger(__name__)

DEFAULT_SLOT_KEY = "boards"
CORRUPT_SUFFIX = ".corrupt"


@contextmanager
def _connect(db_path: str):
    """Open a WAL-mode connection; commit on success, always close."""
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode = WAL")
        with conn:
            yield conn
    finally:
        conn.close()


def encode_boards(boards: Sequence[Board]) -> str:
    """Serialize the full board list to the persisted JSON layout."""
    return json.dumps([b.to_dict() for b in boards], ensure_ascii=False)


def decode_boards(raw: str) -> List[Board]:
    """
    Parse a persisted JSON document back into Boards.

    Raises ValueError on invalid JSON, a wrong shape or duplicate ids.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise ValueError("Snapshot is nested too deeply") from e
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of boards, got {type(data).__name__}")
    try:
        boards = [Board.from_dict(item) for item in data]
    except (TypeError, KeyError, RecursionError) as e:
        raise ValueError(f"Malformed board data: {e!r}") from e
    _check_integrity(boards)
    return boards


def _check_integrity(boards: Sequence[Board]) -> None:
    board_ids = set()
    for board in boards:
        if board.id in board_ids:
            raise ValueError(f"Duplicate board id {board.id!r}")
        board_ids.add(board.id)
        seen = set()
        for ident in list(board.ids())[1:]:
            if ident in seen or ident == board.id:
                raise ValueError(f"Duplicate id {ident!r} in board {board.id!r}")
            seen.add(ident)


class SnapshotSlot:
    """Durable key/value slot holding the serialized board list."""

    def __init__(self, db_path: str, key: str = DEFAULT_SLOT_KEY):
        """Create the database file and table if needed."""
        self.db_path = db_path
        self.key = key
        try:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._init_schema()
        except (OSError, sqlite3.Error) as e:
            # restore() and persist() report their own failures
            logger.warning(f"Could not initialize {db_path}: {e}")

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def read_raw(self, key: Optional[str] = None) -> Optional[str]:
        """Raw value stored under *key* (defaults to this slot's key)."""
        with _connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM kv_slots WHERE key = ?",
                (key or self.key,)
            ).fetchone()
        return row[0] if row else None

    def write_raw(self, value: str, key: Optional[str] = None) -> None:
        with _connect(self.db_path) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_slots (key, value, updated_at) VALUES (?, ?, ?)",
                (key or self.key, value, utc_now().isoformat())
            )

    def restore(self) -> List[Board]:
        """
        Load the persisted board list.

        Missing slot → []. A malformed value is logged, copied aside to
        ``<key>.corrupt`` and treated as missing; nothing is raised.
        """
        try:
            raw = self.read_raw()
        except sqlite3.Error as e:
            logger.warning(f"Could not read slot '{self.key}' from {self.db_path}: {e}")
            return []
        if raw is None:
            return []
        try:
            boards = decode_boards(raw)
        except ValueError as e:
            logger.warning(f"Discarding malformed snapshot in slot '{self.key}': {e}")
            self._quarantine(raw)
            return []
        logger.info(f"Restored {len(boards)} board(s) from {self.db_path}")
        return boards

    def _quarantine(self, raw: str) -> None:
        try:
            self.write_raw(raw, key=self.key + CORRUPT_SUFFIX)
        except sqlite3.Error as e:
            logger.error(f"Could not preserve malformed snapshot: {e}")

    def persist(self, boards: Sequence[Board]) -> bool:
        """Overwrite the slot with the full board list. Returns False on failure."""
        try:
            self.write_raw(encode_boards(boards))
            return True
        except Exception as e:
            logger.error(f"Error persisting {len(boards)} board(s) to {self.db_path}: {e}")
            return False
