"""
RaffleCast Database Module
SQLite-based storage for participants, winner history and prizes.

Database location:
- Linux: ~/.local/share/rafflecast/rafflecast.db
- macOS: ~/Library/Application Support/rafflecast/rafflecast.db
- Windows: %LOCALAPPDATA%/rafflecast/rafflecast.db
"""

from .database import Database, get_data_dir, get_default_db_path

__all__ = ["Database", "get_data_dir", "get_default_db_path"]
