# src/dev_task_scheduler/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from pathlib import Path

from ..core.errors import PersistenceError
from .task_models import NotifierConfig, Task

logger = logging.getLogger(__name__)


class SqliteTaskStore:
    """
    SQLite task store.

    The whole task collection is one unit: write_all replaces every row inside a
    single BEGIN IMMEDIATE transaction, so readers see either the previous or the
    new collection, never a mix. Row order is kept in the `position` column.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "dev-task-scheduler.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are opened explicitly in write_all.
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot open task store {self._db_path}: {exc}") from exc
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    position INTEGER NOT NULL,
                    id INTEGER NOT NULL UNIQUE,
                    description TEXT NOT NULL,
                    scheduled_time TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending'
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS notifier_config (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    email TEXT NOT NULL,
                    password TEXT NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s.%s", table, name)

            add_col("tasks", "failed_attempts", "INTEGER NOT NULL DEFAULT 0")
            add_col("notifier_config", "smtp_host", "TEXT NOT NULL DEFAULT 'smtp.gmail.com'")
            add_col("notifier_config", "smtp_port", "INTEGER NOT NULL DEFAULT 465")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_position ON tasks(position)")
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot prepare task store schema: {exc}") from exc
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task.from_record(
            {
                "id": row["id"],
                "description": row["description"] or "",
                "scheduledTime": row["scheduled_time"],
                "status": row["status"],
                "failedAttempts": row["failed_attempts"],
            }
        )

    # ---- tasks ----

    def read_all(self) -> list[Task]:
        try:
            conn = self._get_conn()
            try:
                cur = conn.execute("SELECT * FROM tasks ORDER BY position ASC")
                rows = cur.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to read tasks: {exc}") from exc

        try:
            return [self._row_to_task(r) for r in rows]
        except ValueError as exc:
            raise PersistenceError(f"corrupt task row: {exc}") from exc

    def write_all(self, tasks: list[Task]) -> None:
        ids = [t.id for t in tasks]
        if len(ids) != len(set(ids)):
            raise PersistenceError("refusing to write tasks with duplicate ids")

        records = [t.to_record() for t in tasks]
        rows = [
            (position, r["id"], r["description"], r["scheduledTime"], r["status"], r["failedAttempts"])
            for position, r in enumerate(records)
        ]

        try:
            conn = self._get_conn()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to open task store: {exc}") from exc
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute("DELETE FROM tasks")
                conn.executemany(
                    """
                    INSERT INTO tasks(position, id, description, scheduled_time, status, failed_attempts)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
                conn.execute("COMMIT")
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to write tasks: {exc}") from exc
        finally:
            conn.close()

        logger.debug("TaskStore wrote %d tasks", len(rows))

    # ---- notifier config ----

    def load_notifier_config(self) -> NotifierConfig | None:
        try:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT * FROM notifier_config WHERE id = 1").fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to read notifier config: {exc}") from exc

        if row is None:
            return None
        return NotifierConfig(
            email=str(row["email"]),
            password=str(row["password"]),
            smtp_host=str(row["smtp_host"]),
            smtp_port=int(row["smtp_port"]),
        )

    def save_notifier_config(self, config: NotifierConfig) -> None:
        try:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO notifier_config(id, email, password, smtp_host, smtp_port)
                    VALUES (1, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        email = excluded.email,
                        password = excluded.password,
                        smtp_host = excluded.smtp_host,
                        smtp_port = excluded.smtp_port
                    """,
                    (config.email, config.password, config.smtp_host, int(config.smtp_port)),
                )
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to save notifier config: {exc}") from exc
        logger.info("Notifier config saved for %s", config.email)

