"""Durable at-least-once event bus on top of SQLite.

The ingest process publishes CommandEvents, the worker claims them. A claimed
event that is neither acked nor nacked within the visibility timeout (e.g. the
worker died) goes back to pending, so every published event is handled one or
more times. There is no dedup key and no ordering promise.
"""

import sqlite3
from typing import Dict, Optional
from tenacity import retry, stop_after_attempt, wait_fixed, retry_if_exception_type
from .db import get_db_connection
from ..config import Settings
from ..events import CommandEvent, QueuedEvent
from ..log import get_logger

logger = get_logger("bus")

FAILED = "failed"

# "database is locked" under concurrent writers
retry_on_locked_db = retry(
    retry=retry_if_exception_type(sqlite3.OperationalError),
    stop=stop_after_attempt(3),
    wait=wait_fixed(0.5),
    reraise=True
)

class EventBus:
    def __init__(self, settings: Settings):
        self.db_path = settings.DB_PATH
        self.max_attempts = settings.EVENT_MAX_ATTEMPTS
        self.visibility_timeout = settings.EVENT_VISIBILITY_TIMEOUT_SECONDS

    @retry_on_locked_db
    def publish(self, event: CommandEvent) -> int:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO command_events (user_id, text, callback_url, status)
                VALUES (?, ?, ?, 'pending')
                """,
                (event.user_id, event.text, event.callback_url)
            )
            conn.commit()
            return cursor.lastrowid

    def claim(self) -> Optional[QueuedEvent]:
        """
        Atomic claim: find a pending event, mark it processing, return it.
        """
        with get_db_connection(self.db_path) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT * FROM command_events WHERE status = 'pending' ORDER BY id ASC LIMIT 1"
                ).fetchone()

                if not row:
                    conn.rollback()
                    return None

                conn.execute(
                    """
                    UPDATE command_events
                    SET status = 'processing', attempts = attempts + 1, updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                    """,
                    (row["id"],)
                )
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        return QueuedEvent(
            id=row["id"],
            attempts=row["attempts"] + 1,
            event=CommandEvent(
                user_id=row["user_id"],
                text=row["text"],
                callback_url=row["callback_url"],
            ),
        )

    @retry_on_locked_db
    def ack(self, event_id: int):
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "UPDATE command_events SET status = 'done', updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (event_id,)
            )
            conn.commit()

    @retry_on_locked_db
    def nack(self, event_id: int, error: str) -> str:
        """
        Record a failed handling. The event is redelivered until it has been
        attempted EVENT_MAX_ATTEMPTS times, then it is parked as failed.
        Returns the new status.
        """
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                """
                UPDATE command_events
                SET status = CASE WHEN attempts >= ? THEN 'failed' ELSE 'pending' END,
                    last_error = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (self.max_attempts, str(error), event_id)
            )
            conn.commit()
            row = conn.execute("SELECT status FROM command_events WHERE id = ?", (event_id,)).fetchone()

        status = row["status"] if row else FAILED
        if status == FAILED:
            logger.error(f"Event {event_id} failed {self.max_attempts} times, giving up: {error}")
        return status

    def requeue_stale(self) -> int:
        """Hand events whose claim outlived the visibility timeout back out."""
        cutoff = f"-{int(self.visibility_timeout)} seconds"
        with get_db_connection(self.db_path) as conn:
            cursor = conn.execute(
                """
                UPDATE command_events
                SET status = CASE WHEN attempts >= ? THEN 'failed' ELSE 'pending' END,
                    last_error = 'visibility timeout expired',
                    updated_at = CURRENT_TIMESTAMP
                WHERE status = 'processing' AND updated_at <= datetime('now', ?)
                """,
                (self.max_attempts, cutoff)
            )
            conn.commit()
            requeued = cursor.rowcount

        if requeued:
            logger.warning(f"Re-queued {requeued} stale event(s)")
        return requeued

    def status(self, event_id: int) -> Optional[str]:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT status FROM command_events WHERE id = ?", (event_id,)
            ).fetchone()
            return row["status"] if row else None

    def counts(self) -> Dict[str, int]:
        with get_db_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS n FROM command_events GROUP BY status"
            ).fetchall()
            return {row["status"]: row["n"] for row in rows}
