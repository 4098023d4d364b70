import json
import logging
import sqlite3
import uuid
from datetime import datetime
from functools import wraps
from pathlib import Path

from sms.errors import StorageFailure

logger = logging.getLogger(__name__)

SUPPLEMENTARY_INFORMATION = "Supplementary information"


def _storage_errors(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except sqlite3.Error as e:
            logger.error("Report store %s failed: %s", fn.__name__, e)
            raise StorageFailure(f"Report store {fn.__name__} failed: {e}") from e
    return wrapper


class ReportStore:
    """
    Reports submitted over SMS, one database per deployment.

    Storage invariant:
    - `submitted` is ONE JSON object of field label -> answer text
    - reports are hard-deleted when the respondent chooses not to store them
    """

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def get_conn(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @_storage_errors
    def init_db(self):
        conn = self.get_conn()
        cur = conn.cursor()

        cur.execute("""
            CREATE TABLE IF NOT EXISTS reports (
                id TEXT PRIMARY KEY,
                org TEXT NOT NULL,
                project TEXT NOT NULL,
                alias TEXT NOT NULL,
                spec_version TEXT,
                user_agent TEXT,
                evidence_token TEXT,
                submitted TEXT NOT NULL DEFAULT '{}',
                created_at TEXT,
                last_updated TEXT
            )
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS reports_alias ON reports (org, alias)")
        cur.execute("CREATE INDEX IF NOT EXISTS reports_evidence_token ON reports (org, evidence_token)")

        conn.commit()
        conn.close()

    # -------------------------------------------------
    # Write
    # -------------------------------------------------

    @_storage_errors
    def create_skeleton(self, org, project, alias, version, user_agent) -> str:
        conn = self.get_conn()
        cur = conn.cursor()

        session_id = uuid.uuid4().hex
        now = datetime.utcnow().isoformat()
        cur.execute("""
            INSERT INTO reports
            (id, org, project, alias, spec_version, user_agent, submitted, created_at, last_updated)
            VALUES (?, ?, ?, ?, ?, ?, '{}', ?, ?)
        """, (
            session_id,
            org,
            project,
            alias,
            None if version is None else str(version),
            user_agent,
            now,
            now,
        ))

        conn.commit()
        conn.close()
        return session_id

    @_storage_errors
    def set_field(self, session_id, field_label, value):
        conn = self.get_conn()
        cur = conn.cursor()

        cur.execute("SELECT submitted FROM reports WHERE id = ?", (session_id,))
        row = cur.fetchone()
        if row is None:
            conn.close()
            raise StorageFailure(f"Report {session_id} does not exist")

        submitted = json.loads(row["submitted"] or "{}")
        submitted[field_label] = value
        cur.execute(
            "UPDATE reports SET submitted = ? WHERE id = ?",
            (json.dumps(submitted, ensure_ascii=False), session_id),
        )

        conn.commit()
        conn.close()

    @_storage_errors
    def set_meta(self, session_id, last_updated=None, evidence_token=None):
        assignments = []
        params = []

        if last_updated is not None:
            assignments.append("last_updated = ?")
            params.append(last_updated.isoformat())

        if evidence_token is not None:
            assignments.append("evidence_token = ?")
            params.append(evidence_token)

        if not assignments:
            return

        conn = self.get_conn()
        cur = conn.cursor()
        params.append(session_id)
        cur.execute(f"UPDATE reports SET {', '.join(assignments)} WHERE id = ?", params)
        conn.commit()
        conn.close()

    @_storage_errors
    def delete(self, session_id):
        conn = self.get_conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM reports WHERE id = ?", (session_id,))
        conn.commit()
        conn.close()

    # -------------------------------------------------
    # Read
    # -------------------------------------------------

    @_storage_errors
    def get(self, session_id):
        conn = self.get_conn()
        cur = conn.cursor()
        cur.execute("SELECT * FROM reports WHERE id = ?", (session_id,))
        row = cur.fetchone()
        conn.close()
        return _to_report(row) if row else None

    @_storage_errors
    def find_by_alias(self, org, alias):
        return self._find_one(org, "alias", alias)

    @_storage_errors
    def find_by_evidence_token(self, org, token):
        return self._find_one(org, "evidence_token", token)

    @_storage_errors
    def get_reports(self, org, project=None):
        conn = self.get_conn()
        cur = conn.cursor()

        query = "SELECT * FROM reports WHERE org = ?"
        params = [org]

        if project:
            query += " AND project = ?"
            params.append(project)

        query += " ORDER BY created_at DESC"

        cur.execute(query, params)
        rows = cur.fetchall()
        conn.close()
        return [_to_report(r) for r in rows]

    def _find_one(self, org, column, value):
        conn = self.get_conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT * FROM reports WHERE org = ? AND {column} = ? ORDER BY created_at DESC LIMIT 1",
            (org, value),
        )
        row = cur.fetchone()
        conn.close()
        return _to_report(row) if row else None


def _to_report(r):
    try:
        submitted = json.loads(r["submitted"]) if r["submitted"] else {}
    except ValueError:
        submitted = {}

    return {
        "id": r["id"],
        "org": r["org"],
        "project": r["project"],
        "alias": r["alias"],
        "spec_version": r["spec_version"],
        "user_agent": r["user_agent"],
        "evidence_token": r["evidence_token"],
        "submitted": submitted,
        "created_at": r["created_at"],
        "last_updated": r["last_updated"],
    }
