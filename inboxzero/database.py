"""
Database - SQLite persistence for InboxZero

Stores processed emails with their extracted constraints, generated
suggestions (whose pending/completed/dismissed status is owned here, not
by the generator), follow-up tracking and per-user preferences.

Timestamps are stored as ISO-8601 text in UTC; list and object fields as
JSON text.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from inboxzero.models import Analysis, Email, Suggestion, UserPreferences, to_utc

logger = logging.getLogger(__name__)

SUGGESTION_STATUSES = ("pending", "completed", "dismissed")

# Suggestion JSON columns and their empty value when NULL
_SUGGESTION_JSON_FIELDS = ("action_items", "time_slots", "attachments_needed")

PathLike = Union[str, Path]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return to_utc(value).isoformat() if value else None


def _dump(value: Any) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _load(value: Optional[str]) -> Any:
    return json.loads(value) if value else None


def get_db(db_path: PathLike) -> sqlite3.Connection:
    """
    Create and return a database connection with Row factory.

    Uses a 30-second timeout to handle concurrent access.
    """
    conn = sqlite3.connect(str(db_path), timeout=30.0)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: PathLike) -> None:
    """
    Initialize the SQLite database with required tables.

    Creates tables for:
    - email_records: Processed Gmail messages
    - email_constraints: Classifier output per email
    - email_suggestions: Generated suggestions with user-owned status
    - follow_up_tracking: Deadlines and high-priority items to chase
    - user_preferences: Job-search profile per user (JSON)

    Uses WAL (Write-Ahead Logging) mode for better concurrency.
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=30.0)
    try:
        conn.execute("PRAGMA journal_mode=WAL")

        conn.execute("""
            CREATE TABLE IF NOT EXISTS email_records (
                id TEXT NOT NULL,
                thread_id TEXT,
                user_id TEXT NOT NULL,
                subject TEXT,
                sender TEXT,
                sender_name TEXT,
                company_name TEXT,
                received_date TEXT,
                body TEXT,
                snippet TEXT,
                is_linkedin_notification INTEGER DEFAULT 0,
                linkedin_profile_url TEXT,
                created_at TEXT,
                updated_at TEXT,
                PRIMARY KEY (user_id, id)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS email_constraints (
                user_id TEXT NOT NULL,
                email_id TEXT NOT NULL,
                intent TEXT NOT NULL,
                constraints_json TEXT NOT NULL,
                constraints_text TEXT,
                action_items TEXT,
                sender_info TEXT,
                priority TEXT,
                company_category TEXT,
                platform TEXT,
                created_at TEXT,
                updated_at TEXT,
                PRIMARY KEY (user_id, email_id),
                FOREIGN KEY (user_id, email_id)
                    REFERENCES email_records(user_id, id) ON DELETE CASCADE
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS email_suggestions (
                id TEXT NOT NULL,
                email_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                type TEXT NOT NULL,
                title TEXT,
                description TEXT,
                generated_response TEXT,
                time_slots TEXT,
                attachments_needed TEXT,
                suggested_time TEXT,
                deadline TEXT,
                action_items TEXT,
                priority TEXT,
                linkedin_profile_url TEXT,
                linkedin_message_url TEXT,
                status TEXT DEFAULT 'pending',
                created_at TEXT,
                updated_at TEXT,
                last_reminded TEXT,
                PRIMARY KEY (user_id, id)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS follow_up_tracking (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email_id TEXT NOT NULL,
                suggestion_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                status TEXT DEFAULT 'pending',
                deadline TEXT,
                priority TEXT,
                last_reminded TEXT,
                reminder_count INTEGER DEFAULT 0,
                completed_at TEXT,
                notes TEXT,
                created_at TEXT,
                updated_at TEXT,
                UNIQUE (user_id, suggestion_id)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS user_preferences (
                user_id TEXT PRIMARY KEY,
                preferences_json TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_suggestions_user ON email_suggestions(user_id, email_id)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_followups_user ON follow_up_tracking(user_id, status)"
        )

        conn.commit()
    finally:
        conn.close()

    logger.info(f"Database initialized at {db_path}")


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


class PreferenceStore:
    """Per-user job-search profile, stored as JSON."""

    def __init__(self, db_path: PathLike):
        self.db_path = db_path

    def load(self, user_id: str) -> UserPreferences:
        """Return the user's preferences, or defaults if none are stored."""
        conn = get_db(self.db_path)
        try:
            row = conn.execute(
                "SELECT preferences_json FROM user_preferences WHERE user_id = ?", (user_id,)
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return UserPreferences()
        return UserPreferences.from_dict(json.loads(row["preferences_json"]))

    def save(self, user_id: str, preferences: UserPreferences) -> None:
        conn = get_db(self.db_path)
        try:
            conn.execute(
                """
                INSERT INTO user_preferences (user_id, preferences_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    preferences_json = excluded.preferences_json,
                    updated_at = excluded.updated_at
                """,
                (user_id, json.dumps(preferences.to_dict()), _now()),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Saved preferences for {user_id}")


# ---------------------------------------------------------------------------
# Emails, suggestions and follow-ups
# ---------------------------------------------------------------------------


def _suggestion_row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
    data = dict(row)
    for name in _SUGGESTION_JSON_FIELDS:
        data[name] = _load(data.get(name))
    if data["action_items"] is None:
        data["action_items"] = []
    return data


class SuggestionStore:
    """
    Processed emails, their suggestions and follow-up tracking.

    Every row is keyed by ``user_id`` together with its own id, so two
    users can store the same Gmail message id without touching each
    other's rows.
    """

    def __init__(self, db_path: PathLike):
        self.db_path = db_path

    def _write_email(
        self, conn: sqlite3.Connection, user_id: str, email: Email, analysis: Analysis, now: str
    ) -> None:
        conn.execute(
            """
            INSERT INTO email_records (
                id, thread_id, user_id, subject, sender, sender_name, company_name,
                received_date, body, snippet, is_linkedin_notification,
                linkedin_profile_url, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, id) DO UPDATE SET
                subject = excluded.subject,
                sender = excluded.sender,
                sender_name = excluded.sender_name,
                company_name = excluded.company_name,
                body = excluded.body,
                snippet = excluded.snippet,
                is_linkedin_notification = excluded.is_linkedin_notification,
                linkedin_profile_url = excluded.linkedin_profile_url,
                updated_at = excluded.updated_at
            """,
            (
                email.id,
                email.thread_id,
                user_id,
                email.subject,
                email.sender,
                email.sender_name,
                analysis.company,
                _iso(email.received_at),
                email.body,
                email.snippet,
                int(email.is_linkedin_notification),
                email.linkedin_profile_url,
                now,
                now,
            ),
        )
        conn.execute(
            """
            INSERT INTO email_constraints (
                user_id, email_id, intent, constraints_json, constraints_text, action_items,
                sender_info, priority, company_category, platform, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, email_id) DO UPDATE SET
                intent = excluded.intent,
                constraints_json = excluded.constraints_json,
                constraints_text = excluded.constraints_text,
                action_items = excluded.action_items,
                sender_info = excluded.sender_info,
                priority = excluded.priority,
                company_category = excluded.company_category,
                platform = excluded.platform,
                updated_at = excluded.updated_at
            """,
            (
                user_id,
                email.id,
                analysis.intent,
                json.dumps(analysis.constraints.to_dict()),
                analysis.constraints_text,
                json.dumps(analysis.action_items),
                _dump(analysis.sender_info.to_dict() if analysis.sender_info else None),
                analysis.priority,
                analysis.company_category,
                analysis.platform,
                now,
                now,
            ),
        )

    def _prune_stale(
        self, conn: sqlite3.Connection, user_id: str, email_id: str, keep: List[str]
    ) -> List[str]:
        """Delete pending suggestions of an email that were not regenerated."""
        rows = conn.execute(
            """
            SELECT id FROM email_suggestions
            WHERE user_id = ? AND email_id = ? AND status = 'pending'
            """,
            (user_id, email_id),
        ).fetchall()
        stale = [row["id"] for row in rows if row["id"] not in keep]
        for suggestion_id in stale:
            conn.execute(
                "DELETE FROM follow_up_tracking WHERE user_id = ? AND suggestion_id = ?",
                (user_id, suggestion_id),
            )
            conn.execute(
                "DELETE FROM email_suggestions WHERE user_id = ? AND id = ?",
                (user_id, suggestion_id),
            )
        return stale

    def _write_suggestions(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        email_id: str,
        suggestions: List[Suggestion],
        now: str,
    ) -> None:
        stale = self._prune_stale(conn, user_id, email_id, [s.id for s in suggestions])
        if stale:
            logger.debug(f"Removed {len(stale)} stale suggestion(s) for email {email_id}")

        for suggestion in suggestions:
            conn.execute(
                """
                INSERT INTO email_suggestions (
                    id, email_id, user_id, type, title, description, generated_response,
                    time_slots, attachments_needed, suggested_time, deadline,
                    action_items, priority, linkedin_profile_url, linkedin_message_url,
                    status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'pending', ?, ?)
                ON CONFLICT(user_id, id) DO UPDATE SET
                    type = excluded.type,
                    title = excluded.title,
                    description = excluded.description,
                    generated_response = excluded.generated_response,
                    time_slots = excluded.time_slots,
                    attachments_needed = excluded.attachments_needed,
                    suggested_time = excluded.suggested_time,
                    deadline = excluded.deadline,
                    action_items = excluded.action_items,
                    priority = excluded.priority,
                    linkedin_profile_url = excluded.linkedin_profile_url,
                    linkedin_message_url = excluded.linkedin_message_url,
                    updated_at = excluded.updated_at
                """,
                (
                    suggestion.id,
                    email_id,
                    user_id,
                    suggestion.type,
                    suggestion.title,
                    suggestion.description,
                    suggestion.generated_response,
                    _dump(suggestion.time_slots),
                    _dump(suggestion.attachments_needed),
                    suggestion.suggested_time,
                    _iso(suggestion.deadline),
                    json.dumps(suggestion.action_items),
                    suggestion.priority,
                    suggestion.linkedin_profile_url,
                    suggestion.linkedin_message_url,
                    _iso(suggestion.created_at),
                    now,
                ),
            )

            if suggestion.deadline or suggestion.priority == "high":
                conn.execute(
                    """
                    INSERT INTO follow_up_tracking (
                        email_id, suggestion_id, user_id, status, deadline, priority,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, 'pending', ?, ?, ?, ?)
                    ON CONFLICT(user_id, suggestion_id) DO UPDATE SET
                        deadline = excluded.deadline,
                        priority = excluded.priority,
                        updated_at = excluded.updated_at
                    """,
                    (
                        email_id,
                        suggestion.id,
                        user_id,
                        _iso(suggestion.deadline),
                        suggestion.priority,
                        now,
                        now,
                    ),
                )

    def put_email(self, user_id: str, email: Email, analysis: Analysis) -> None:
        """Upsert an email record and its extracted constraints."""
        conn = get_db(self.db_path)
        try:
            self._write_email(conn, user_id, email, analysis, _now())
            conn.commit()
        finally:
            conn.close()

    def put_suggestions(self, user_id: str, email_id: str, suggestions: List[Suggestion]) -> None:
        """
        Replace an email's generated suggestions.

        Suggestions are upserted by id: regenerating refreshes their
        content but keeps any status the user already set. Pending
        suggestions that are no longer generated are removed with their
        follow-up rows; completed and dismissed ones are kept. Suggestions
        with a deadline or high priority get a follow-up tracking row.
        """
        conn = get_db(self.db_path)
        try:
            self._write_suggestions(conn, user_id, email_id, suggestions, _now())
            conn.commit()
        finally:
            conn.close()

        logger.debug(f"Stored {len(suggestions)} suggestion(s) for email {email_id}")

    def save_result(
        self, user_id: str, email: Email, analysis: Analysis, suggestions: List[Suggestion]
    ) -> None:
        """
        Store an email, its constraints and its suggestions in one transaction.

        Nothing is written if any part fails.
        """
        now = _now()
        conn = get_db(self.db_path)
        try:
            self._write_email(conn, user_id, email, analysis, now)
            self._write_suggestions(conn, user_id, email.id, suggestions, now)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.debug(f"Saved email {email.id} with {len(suggestions)} suggestion(s)")

    def get_email(self, user_id: str, email_id: str) -> Optional[Dict[str, Any]]:
        """Return a stored email with its constraints, or None."""
        conn = get_db(self.db_path)
        try:
            row = conn.execute(
                """
                SELECT r.*, c.intent, c.constraints_json, c.constraints_text,
                       c.action_items, c.priority, c.company_category, c.platform
                FROM email_records r
                LEFT JOIN email_constraints c
                    ON c.user_id = r.user_id AND c.email_id = r.id
                WHERE r.user_id = ? AND r.id = ?
                """,
                (user_id, email_id),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        data = dict(row)
        data["is_linkedin_notification"] = bool(data["is_linkedin_notification"])
        data["constraints"] = _load(data.pop("constraints_json")) or {}
        data["action_items"] = _load(data["action_items"]) or []
        return data

    def get_suggestions(self, user_id: str, email_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return stored suggestions for a user, optionally for one email."""
        query = "SELECT * FROM email_suggestions WHERE user_id = ?"
        params: List[Any] = [user_id]
        if email_id is not None:
            query += " AND email_id = ?"
            params.append(email_id)
        query += " ORDER BY created_at, id"

        conn = get_db(self.db_path)
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [_suggestion_row_to_dict(row) for row in rows]

    def _followups(self, conn: sqlite3.Connection, user_id: str, statuses) -> List[sqlite3.Row]:
        placeholders = ", ".join("?" for _ in statuses)
        return conn.execute(
            f"""
            SELECT s.*, f.id AS followup_id, f.status AS followup_status,
                   f.reminder_count, f.last_reminded AS followup_last_reminded
            FROM follow_up_tracking f
            JOIN email_suggestions s ON s.user_id = f.user_id AND s.id = f.suggestion_id
            WHERE f.user_id = ? AND f.status IN ({placeholders})
            ORDER BY f.deadline IS NULL, f.deadline, s.id
            """,
            [user_id, *statuses],
        ).fetchall()

    def get_pending_followups(self, user_id: str) -> List[Dict[str, Any]]:
        """Follow-ups still waiting on the user, soonest deadline first."""
        conn = get_db(self.db_path)
        try:
            rows = self._followups(conn, user_id, ("pending",))
        finally:
            conn.close()
        return [_suggestion_row_to_dict(row) for row in rows]

    def get_overdue_followups(
        self, user_id: str, now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Return follow-ups whose deadline has passed, marking them overdue.

        Args:
            user_id: Owner of the follow-ups
            now: Reference time (defaults to the current UTC time)
        """
        now = to_utc(now or datetime.now(timezone.utc))
        conn = get_db(self.db_path)
        try:
            rows = self._followups(conn, user_id, ("pending", "overdue"))
            overdue = [
                row
                for row in rows
                if row["deadline"] and to_utc(datetime.fromisoformat(row["deadline"])) < now
            ]

            newly_overdue = [
                row["followup_id"] for row in overdue if row["followup_status"] == "pending"
            ]
            for followup_id in newly_overdue:
                conn.execute(
                    "UPDATE follow_up_tracking SET status = 'overdue', updated_at = ? WHERE id = ?",
                    (_now(), followup_id),
                )
            conn.commit()
        finally:
            conn.close()

        if newly_overdue:
            logger.info(f"Marked {len(newly_overdue)} follow-up(s) overdue for {user_id}")

        results = []
        for row in overdue:
            data = _suggestion_row_to_dict(row)
            data["followup_status"] = "overdue"
            results.append(data)
        return results

    def set_suggestion_status(self, user_id: str, suggestion_id: str, status: str) -> bool:
        """
        Set a suggestion's status and mirror it onto its follow-up row.

        Returns:
            False if the user has no suggestion with this id

        Raises:
            ValueError: If ``status`` is not pending, completed or dismissed
        """
        if status not in SUGGESTION_STATUSES:
            raise ValueError(
                f"Invalid status '{status}'. Expected one of: {', '.join(SUGGESTION_STATUSES)}"
            )

        now = _now()
        conn = get_db(self.db_path)
        try:
            cursor = conn.execute(
                """
                UPDATE email_suggestions SET status = ?, updated_at = ?
                WHERE user_id = ? AND id = ?
                """,
                (status, now, user_id, suggestion_id),
            )
            if cursor.rowcount == 0:
                return False

            conn.execute(
                """
                UPDATE follow_up_tracking
                SET status = ?, completed_at = ?, updated_at = ?
                WHERE user_id = ? AND suggestion_id = ?
                """,
                (status, now if status == "completed" else None, now, user_id, suggestion_id),
            )
            conn.commit()
        finally:
            conn.close()

        logger.info(f"Suggestion {suggestion_id} marked {status}")
        return True
