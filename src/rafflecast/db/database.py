"""
RaffleCast Database - SQLite storage for participants, winners and prizes.

Database is stored in a platform-appropriate data directory:
- Linux: ~/.local/share/rafflecast/rafflecast.db
- macOS: ~/Library/Application Support/rafflecast/rafflecast.db
- Windows: %LOCALAPPDATA%/rafflecast/rafflecast.db

The database auto-creates and self-heals if corrupted. Every sqlite
failure surfaces as StorageError.
"""

import os
import sys
import sqlite3
import json
import shutil
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, List
from contextlib import contextmanager

from ..core.errors import StorageError
from ..core.models import ParticipantRecord, WinnerRecord

logger = logging.getLogger(__name__)


def get_data_dir() -> Path:
    """Get platform-appropriate data directory for RaffleCast."""
    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        # Linux/Unix - follow XDG spec
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / "rafflecast"


def get_default_db_path() -> Path:
    """Get the default database path."""
    return get_data_dir() / "rafflecast.db"


class Database:
    """SQLite storage collaborator with self-healing capabilities."""

    # Current schema version for migrations
    SCHEMA_VERSION = 1

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else get_default_db_path()
        self._ensure_data_dir()
        self._init_db()

    def _ensure_data_dir(self):
        """Create data directory if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Data directory: {self.db_path.parent}")

    def _check_db_health(self) -> bool:
        """Check if database is healthy and accessible."""
        if not self.db_path.exists():
            return False

        try:
            conn = sqlite3.connect(str(self.db_path))
            cursor = conn.cursor()
            # Run integrity check
            cursor.execute("PRAGMA integrity_check")
            result = cursor.fetchone()
            conn.close()
            return result[0] == "ok"
        except sqlite3.Error as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def _backup_corrupted_db(self):
        """Backup corrupted database before recreation."""
        if self.db_path.exists():
            backup_path = self.db_path.with_suffix(
                f".corrupted.{datetime.now().strftime('%Y%m%d_%H%M%S')}.db"
            )
            try:
                shutil.move(str(self.db_path), str(backup_path))
                logger.warning(f"Corrupted database backed up to: {backup_path}")
            except OSError as e:
                logger.error(f"Failed to backup corrupted database: {e}")
                # Try to just delete it
                try:
                    self.db_path.unlink()
                except OSError as unlink_error:
                    logger.error(f"Failed to delete corrupted database: {unlink_error}")

    def _init_db(self):
        """Initialize database schema with self-healing."""
        # Check health and recreate if needed
        if self.db_path.exists() and not self._check_db_health():
            logger.warning("Database corruption detected, recreating...")
            self._backup_corrupted_db()

        try:
            self._create_schema()
            logger.info(f"Database initialized at {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database: {e}")
            # Last resort - delete and retry
            if self.db_path.exists():
                self._backup_corrupted_db()
                self._create_schema()

    @contextmanager
    def _get_conn(self):
        """Context manager for database connections; sqlite errors become StorageError."""
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            logger.error(f"Database connection error: {e}")
            raise StorageError(f"Database unavailable: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise StorageError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _create_schema(self):
        """Create database schema."""
        conn = sqlite3.connect(str(self.db_path))
        cursor = conn.cursor()

        try:
            # Schema version table for future migrations
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS participants (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    phone TEXT DEFAULT '',
                    document_id TEXT DEFAULT '',
                    city TEXT DEFAULT '',
                    address TEXT DEFAULT '',
                    email TEXT DEFAULT '',
                    details TEXT DEFAULT '{}',
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    participant_id INTEGER,
                    name TEXT NOT NULL,
                    phone TEXT DEFAULT '',
                    document_id TEXT DEFAULT '',
                    city TEXT DEFAULT '',
                    address TEXT DEFAULT '',
                    email TEXT DEFAULT '',
                    prize TEXT NOT NULL,
                    won_at TEXT NOT NULL,
                    details TEXT DEFAULT '{}'
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS prizes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    label TEXT NOT NULL UNIQUE,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # Indexes for faster queries
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_history_won ON history(won_at)")

            # Record schema version
            cursor.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,)
            )

            conn.commit()
            logger.debug("Database schema initialized")
        finally:
            conn.close()

    # =====================
    # Participants
    # =====================

    def list_participants(self) -> List[ParticipantRecord]:
        """Get all participants in import order."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, name, phone, document_id, city, address, email, details
                FROM participants ORDER BY id
            """)
            return [ParticipantRecord.from_dict(dict(row)) for row in cursor.fetchall()]

    def replace_participants(self, records: List[ParticipantRecord]) -> List[ParticipantRecord]:
        """
        Delete every participant and insert the given ones in one transaction.

        Returns:
            The inserted records carrying their new ids
        """
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM participants")
            saved = []
            for record in records:
                cursor.execute("""
                    INSERT INTO participants (name, phone, document_id, city, address, email, details)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (record.name, record.phone, record.document_id, record.city,
                      record.address, record.email, json.dumps(record.details)))
                saved.append(record.with_id(cursor.lastrowid))

            logger.info(f"Replaced participants: {len(saved)} saved")
            return saved

    def delete_participant(self, participant_id: int) -> bool:
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM participants WHERE id = ?", (participant_id,))
            return cursor.rowcount > 0

    def clear_participants(self) -> None:
        with self._get_conn() as conn:
            conn.execute("DELETE FROM participants")
            logger.info("Cleared all participants")

    # =====================
    # History
    # =====================

    def append_history(self, winner: WinnerRecord) -> int:
        """Store a winner and return its history id."""
        participant = winner.participant
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO history (participant_id, name, phone, document_id, city,
                                     address, email, prize, won_at, details)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (participant.id, participant.name, participant.phone, participant.document_id,
                  participant.city, participant.address, participant.email, winner.prize,
                  winner.won_at.isoformat(), json.dumps(participant.details)))
            history_id = cursor.lastrowid
            logger.info(f"Saved winner {participant.name} as history {history_id}")
            return history_id

    def list_history(self) -> List[WinnerRecord]:
        """Get all winners, most recent first."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM history ORDER BY won_at DESC, id DESC")
            return [WinnerRecord.from_dict(dict(row)) for row in cursor.fetchall()]

    def delete_history(self, history_id: int) -> bool:
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM history WHERE id = ?", (history_id,))
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info(f"Deleted history entry {history_id}")
            return deleted

    def clear_history(self) -> None:
        with self._get_conn() as conn:
            conn.execute("DELETE FROM history")
            logger.info("Cleared history")

    # =====================
    # Prizes
    # =====================

    def list_prizes(self) -> List[str]:
        """Get prize labels in the order they were added."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT label FROM prizes ORDER BY id")
            return [row["label"] for row in cursor.fetchall()]

    def add_prize(self, label: str) -> None:
        with self._get_conn() as conn:
            conn.execute("INSERT INTO prizes (label) VALUES (?)", (label,))

    def remove_prize(self, label: str) -> bool:
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM prizes WHERE label = ?", (label,))
            return cursor.rowcount > 0
