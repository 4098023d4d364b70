# session/storage.py
#
# Server-side home for conversation tokens, keyed by the sender's phone
# number. Used when the transport does not echo cookies back.

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class SenderStateStore:
    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def get_conn(self):
        return sqlite3.connect(self.db_path)

    def init_db(self):
        conn = self.get_conn()
        cur = conn.cursor()

        cur.execute("""
        CREATE TABLE IF NOT EXISTS sender_state (
            sender TEXT PRIMARY KEY,
            tokens TEXT NOT NULL,
            updated_at TEXT
        )
        """)

        conn.commit()
        conn.close()

    def load(self, sender: str) -> dict:
        if not sender:
            return {}

        try:
            conn = self.get_conn()
            cur = conn.cursor()
            cur.execute("SELECT tokens FROM sender_state WHERE sender = ?", (sender,))
            row = cur.fetchone()
            conn.close()
        except sqlite3.Error as e:
            # no state is the same as a fresh conversation
            logger.warning("Could not load conversation state: %s", e)
            return {}

        if not row:
            return {}

        try:
            return json.loads(row[0])
        except ValueError:
            logger.warning("Discarding unreadable conversation state")
            return {}

    def save(self, sender: str, tokens: dict):
        """Replace the sender's tokens. Failure is logged, never raised."""
        if not sender:
            return

        try:
            conn = self.get_conn()
            cur = conn.cursor()
            if tokens:
                cur.execute(
                    "INSERT OR REPLACE INTO sender_state (sender, tokens, updated_at) VALUES (?, ?, ?)",
                    (sender, json.dumps(tokens), datetime.utcnow().isoformat()),
                )
            else:
                cur.execute("DELETE FROM sender_state WHERE sender = ?", (sender,))
            conn.commit()
            conn.close()
        except sqlite3.Error as e:
            logger.warning("Could not save conversation state: %s", e)
