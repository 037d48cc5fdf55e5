import sqlite3
import json
from datetime import datetime
from typing import Optional
import logging

from pydantic import ValidationError

from .config import settings
from ..models.schemas import UserPreferences

logger = logging.getLogger(__name__)


class PreferenceStore:
    """
    Key-value store for ``UserPreferences`` backed by SQLite.

    The feed pipeline never touches this store; the application layer loads
    the current preferences and hands them to the ranker.  A missing or
    unreadable entry loads as empty preferences.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or settings.PREFERENCES_DB_PATH

    async def init_db(self):
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS user_preferences (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        conn.commit()
        conn.close()
        logger.info("Preference store initialized at %s", self.db_path)

    async def load_preferences(self, key: str = "default") -> UserPreferences:
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()
        cursor.execute('SELECT value FROM user_preferences WHERE key = ?', (key,))
        row = cursor.fetchone()
        conn.close()

        if not row:
            return UserPreferences()
        try:
            return UserPreferences(**json.loads(row[0]))
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Failed to parse saved preferences for '{key}': {e}")
            return UserPreferences()

    async def save_preferences(self, key: str, preferences: UserPreferences) -> UserPreferences:
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute('''
            INSERT INTO user_preferences (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
        ''', (
            key,
            preferences.model_dump_json(),
            datetime.now().isoformat(),
        ))

        conn.commit()
        conn.close()
        return preferences

    async def reset_preferences(self, key: str = "default") -> UserPreferences:
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()
        cursor.execute('DELETE FROM user_preferences WHERE key = ?', (key,))
        conn.commit()
        conn.close()
        return UserPreferences()


# Global store instance
preference_store = PreferenceStore()


async def init_db():
    await preference_store.init_db()
