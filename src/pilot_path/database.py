"""
pilot_path/database.py — SQLite persistence layer for learner profiles
======================================================================
Stores every learner as one row of the `profiles` table so returning users
resume their skill tree and 9-week journey exactly where they left off.

Design decisions
----------------
- **Single-table flat schema** — the whole UserProfile (node overlay,
  verified skills, artifacts, program progress) is one JSON blob; a few
  columns are duplicated out of it for listing and filtering.
- **WAL journal mode** — concurrent readers while a review result is
  being written.
- **Path from settings** — PILOTPATH_DB_PATH is read on every connection so
  tests can point the store at a temporary file.

Profile record schema (see init_db for the full CREATE TABLE)
-------------------------------------------------------------
  id             TEXT PRIMARY KEY — learner id
  name           TEXT
  is_admin       INTEGER          — 0 / 1
  domain         TEXT             — "ops" | "marketing"
  program_id     TEXT             — active 9-week program
  mastery_score  INTEGER
  profile_json   TEXT             — JSON-serialised UserProfile
  created_at / updated_at TEXT    — ISO-8601 timestamps

Public API
----------
  init_db()                 create tables if they don't exist
  load_profile(user_id)     → UserProfile | None
  save_profile(profile)     insert or replace the learner row
  list_profiles()           → list[dict]   (admin overview, no blobs)
  delete_profile(user_id)   → bool
  SqliteProfileStore        object wrapper used by the journey
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from pilot_path.config import get_settings
from pilot_path.models import UserProfile

logger = logging.getLogger(__name__)


def _get_conn(db_path: Optional[Union[str, Path]] = None) -> sqlite3.Connection:
    """Return a connection with row_factory set."""
    path = Path(db_path or get_settings().app.db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
    except sqlite3.Error:
        conn.close()
        raise
    return conn


def init_db(db_path: Optional[Union[str, Path]] = None) -> None:
    """Create tables if they don't exist."""
    with closing(_get_conn(db_path)) as conn:
        conn.executescript("""
    CREATE TABLE IF NOT EXISTS profiles (
        id             TEXT PRIMARY KEY,
        name           TEXT,
        is_admin       INTEGER DEFAULT 0,
        domain         TEXT,
        program_id     TEXT,
        mastery_score  INTEGER,
        profile_json   TEXT NOT NULL,
        created_at     TEXT DEFAULT (datetime('now')),
        updated_at     TEXT DEFAULT (datetime('now'))
    );
    CREATE INDEX IF NOT EXISTS idx_profiles_domain ON profiles(domain);
        """)
        conn.commit()


# ─── Profile CRUD ─────────────────────────────────────────────────────────────

def load_profile(user_id: str, db_path: Optional[Union[str, Path]] = None) -> Optional[UserProfile]:
    """Fetch a learner by id.  Returns None when absent or unreadable."""
    init_db(db_path)
    with closing(_get_conn(db_path)) as conn:
        row = conn.execute("SELECT profile_json FROM profiles WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        return None
    try:
        return UserProfile.model_validate_json(row["profile_json"])
    except ValidationError as exc:
        logger.warning("Stored profile %s is unreadable: %s", user_id, exc)
        return None


def save_profile(profile: UserProfile, db_path: Optional[Union[str, Path]] = None) -> None:
    """Insert or update the learner row; created_at survives updates."""
    init_db(db_path)
    now = datetime.now(timezone.utc).isoformat()
    with closing(_get_conn(db_path)) as conn:
        conn.execute(
            """
            INSERT INTO profiles
                (id, name, is_admin, domain, program_id, mastery_score, profile_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name          = excluded.name,
                is_admin      = excluded.is_admin,
                domain        = excluded.domain,
                program_id    = excluded.program_id,
                mastery_score = excluded.mastery_score,
                profile_json  = excluded.profile_json,
                updated_at    = excluded.updated_at
            """,
            (
                profile.id,
                profile.name,
                int(profile.is_admin),
                profile.domain_preference.value,
                profile.active_program_id,
                profile.mastery_score,
                profile.model_dump_json(),
                now,
                now,
            ),
        )
        conn.commit()
    logger.debug("Saved profile %s (mastery=%d)", profile.id, profile.mastery_score)


def list_profiles(db_path: Optional[Union[str, Path]] = None) -> list[dict]:
    """Fetch summary rows for every learner, most recently updated first."""
    init_db(db_path)
    with closing(_get_conn(db_path)) as conn:
        rows = conn.execute(
            "SELECT id, name, is_admin, domain, program_id, mastery_score, created_at, updated_at "
            "FROM profiles ORDER BY updated_at DESC"
        ).fetchall()
    return [dict(r) for r in rows]


def delete_profile(user_id: str, db_path: Optional[Union[str, Path]] = None) -> bool:
    """Remove a learner.  Returns True if a row was deleted."""
    init_db(db_path)
    with closing(_get_conn(db_path)) as conn:
        cur = conn.execute("DELETE FROM profiles WHERE id = ?", (user_id,))
        conn.commit()
        deleted = cur.rowcount > 0
    return deleted


class SqliteProfileStore:
    """``load_profile`` / ``save_profile`` bound to one database file."""

    def __init__(self, db_path: Optional[Union[str, Path]] = None) -> None:
        self.db_path = str(db_path or get_settings().app.db_path)
        init_db(self.db_path)

    def load_profile(self, user_id: str) -> Optional[UserProfile]:
        return load_profile(user_id, self.db_path)

    def save_profile(self, profile: UserProfile) -> None:
        save_profile(profile, self.db_path)
