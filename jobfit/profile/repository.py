"""Database repository for candidate profiles.

This module provides async SQLite storage for companies, roles,
experiences, education records, API tokens and cached Stage 1 results.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import aiosqlite

from jobfit.profile.loader import ProfileDocument
from jobfit.profile.models import Company, Education, Experience, Role

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS companies (
    user_id TEXT NOT NULL,
    id TEXT NOT NULL,
    name TEXT NOT NULL,
    PRIMARY KEY (user_id, id)
);
CREATE TABLE IF NOT EXISTS roles (
    user_id TEXT NOT NULL,
    id TEXT NOT NULL,
    company_id TEXT NOT NULL,
    title TEXT NOT NULL,
    specialty TEXT,
    start_date TEXT NOT NULL,
    end_date TEXT,
    is_current INTEGER DEFAULT 0,
    PRIMARY KEY (user_id, id),
    FOREIGN KEY (user_id, company_id) REFERENCES companies(user_id, id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS experiences (
    user_id TEXT NOT NULL,
    id TEXT NOT NULL,
    role_id TEXT NOT NULL,
    title TEXT NOT NULL,
    situation TEXT,
    task TEXT,
    action TEXT NOT NULL,
    result TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL,
    PRIMARY KEY (user_id, id),
    FOREIGN KEY (user_id, role_id) REFERENCES roles(user_id, id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS education (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    school TEXT NOT NULL,
    degree TEXT,
    field TEXT,
    graduation_date TEXT,
    is_expected_graduation INTEGER DEFAULT 0
);
CREATE TABLE IF NOT EXISTS api_tokens (
    token_hash TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS extraction_cache (
    user_id TEXT NOT NULL,
    jd_hash TEXT NOT NULL,
    payload TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    PRIMARY KEY (user_id, jd_hash)
);
"""

CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_experiences_user ON experiences(user_id);
CREATE INDEX IF NOT EXISTS idx_education_user ON education(user_id);
CREATE INDEX IF NOT EXISTS idx_cache_expires ON extraction_cache(expires_at);
"""

SELECT_EXPERIENCES_SQL = """
SELECT
    e.id, e.title, e.situation, e.task, e.action, e.result, e.tags,
    r.id AS role_id, r.title AS role_title, r.specialty, r.start_date,
    r.end_date, r.is_current,
    c.id AS company_id, c.name AS company_name
FROM experiences e
JOIN roles r ON r.user_id = e.user_id AND r.id = e.role_id
JOIN companies c ON c.user_id = r.user_id AND c.id = r.company_id
WHERE e.user_id = ?
ORDER BY r.start_date DESC, e.created_at, e.rowid
"""


def hash_token(token: str) -> str:
    """Tokens are stored only as SHA-256 digests."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _now() -> datetime:
    return datetime.now(UTC)


def _parse_date(value: str | None) -> date | None:
    if value is None:
        return None
    return date.fromisoformat(value)


class ProfileRepository:
    """Async SQLite repository for profile data.

    Implements the storage reads the analysis pipeline needs
    (``fetch_experiences``, ``fetch_education``), bearer token resolution
    and the Stage 1 extraction cache.
    """

    def __init__(self, db_path: Path | str):
        """Initialize the repository.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._connection: aiosqlite.Connection | None = None
        self._connect_lock = asyncio.Lock()

    @asynccontextmanager
    async def _get_connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Get a database connection.

        Yields:
            An aiosqlite connection.
        """
        if self._connection is None:
            async with self._connect_lock:
                if self._connection is None:
                    connection = await aiosqlite.connect(self.db_path)
                    connection.row_factory = aiosqlite.Row
                    await connection.execute("PRAGMA foreign_keys = ON")
                    self._connection = connection
        yield self._connection

    async def initialize(self) -> None:
        """Initialize the database, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with self._get_connection() as conn:
            await conn.executescript(CREATE_TABLES_SQL)
            await conn.executescript(CREATE_INDEX_SQL)
            await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    # Profile writes

    async def import_profile(
        self, user_id: str, document: ProfileDocument, *, replace: bool = True
    ) -> int:
        """Store every company, role, experience and education record in ``document``.

        Args:
            user_id: Owner of the imported records.
            document: Parsed profile file.
            replace: Delete the user's existing profile first.

        Returns:
            Number of experiences stored.
        """
        experiences = document.experiences()

        async with self._get_connection() as conn:
            if replace:
                await self._delete_profile(conn, user_id)
            for experience in experiences:
                await self._insert_experience(conn, user_id, experience)
            for record in document.education:
                await self._insert_education(conn, user_id, record)
            await conn.commit()

        logger.info(
            "Imported profile for %s: experiences=%s education=%s",
            user_id,
            len(experiences),
            len(document.education),
        )
        return len(experiences)

    async def insert_experience(self, user_id: str, experience: Experience) -> None:
        """Insert one experience, creating its role and company if needed."""
        async with self._get_connection() as conn:
            await self._insert_experience(conn, user_id, experience)
            await conn.commit()

    async def insert_education(self, user_id: str, education: Education) -> None:
        async with self._get_connection() as conn:
            await self._insert_education(conn, user_id, education)
            await conn.commit()

    async def _delete_profile(self, conn: aiosqlite.Connection, user_id: str) -> None:
        for table in ("experiences", "roles", "companies", "education"):
            await conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))

    async def _insert_experience(
        self, conn: aiosqlite.Connection, user_id: str, experience: Experience
    ) -> None:
        role = experience.role
        await conn.execute(
            "INSERT OR IGNORE INTO companies (id, user_id, name) VALUES (?, ?, ?)",
            (role.company.id, user_id, role.company.name),
        )
        await conn.execute(
            """
            INSERT OR IGNORE INTO roles (
                id, user_id, company_id, title, specialty, start_date, end_date, is_current
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                role.id,
                user_id,
                role.company.id,
                role.title,
                role.specialty,
                role.start_date.isoformat(),
                role.end_date.isoformat() if role.end_date else None,
                1 if role.is_current else 0,
            ),
        )
        await conn.execute(
            """
            INSERT INTO experiences (
                id, user_id, role_id, title, situation, task, action, result, tags, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (user_id, id) DO UPDATE SET
                role_id = excluded.role_id,
                title = excluded.title,
                situation = excluded.situation,
                task = excluded.task,
                action = excluded.action,
                result = excluded.result,
                tags = excluded.tags
            """,
            (
                experience.id,
                user_id,
                role.id,
                experience.title,
                experience.situation,
                experience.task,
                experience.action,
                experience.result,
                json.dumps(experience.tags),
                _now().isoformat(),
            ),
        )

    async def _insert_education(
        self, conn: aiosqlite.Connection, user_id: str, education: Education
    ) -> None:
        await conn.execute(
            """
            INSERT INTO education (
                user_id, school, degree, field, graduation_date, is_expected_graduation
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                education.school,
                education.degree,
                education.field,
                education.graduation_date.isoformat() if education.graduation_date else None,
                1 if education.is_expected_graduation else 0,
            ),
        )

    # Pipeline reads

    async def fetch_experiences(self, user_id: str) -> list[Experience]:
        """Return the user's experiences, most recent role first."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(SELECT_EXPERIENCES_SQL, (user_id,))
            rows = await cursor.fetchall()

        return [self._row_to_experience(row) for row in rows]

    async def fetch_education(self, user_id: str) -> list[Education]:
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM education WHERE user_id = ? ORDER BY id",
                (user_id,),
            )
            rows = await cursor.fetchall()

        return [
            Education(
                school=row["school"],
                degree=row["degree"],
                field=row["field"],
                graduation_date=_parse_date(row["graduation_date"]),
                is_expected_graduation=bool(row["is_expected_graduation"]),
            )
            for row in rows
        ]

    def _row_to_experience(self, row: aiosqlite.Row) -> Experience:
        role = Role(
            id=row["role_id"],
            title=row["role_title"],
            specialty=row["specialty"],
            company=Company(id=row["company_id"], name=row["company_name"]),
            start_date=date.fromisoformat(row["start_date"]),
            end_date=_parse_date(row["end_date"]),
            is_current=bool(row["is_current"]),
        )
        return Experience(
            id=row["id"],
            role=role,
            title=row["title"],
            situation=row["situation"],
            task=row["task"],
            action=row["action"],
            result=row["result"],
            tags=json.loads(row["tags"] or "[]"),
        )

    # Tokens

    async def add_token(self, user_id: str, token: str | None = None) -> str:
        """Register a bearer token for ``user_id`` and return it.

        A random token is generated when none is given. Only its hash is
        stored, so the returned value cannot be recovered later.
        """
        token = token or secrets.token_urlsafe(32)
        async with self._get_connection() as conn:
            await conn.execute(
                "INSERT OR REPLACE INTO api_tokens (token_hash, user_id, created_at) "
                "VALUES (?, ?, ?)",
                (hash_token(token), user_id, _now().isoformat()),
            )
            await conn.commit()
        return token

    async def resolve_user_id(self, token: str) -> str | None:
        """Return the user owning ``token``, or None if it is unknown."""
        if not token:
            return None
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT user_id FROM api_tokens WHERE token_hash = ?",
                (hash_token(token),),
            )
            row = await cursor.fetchone()

        return None if row is None else row["user_id"]

    # Stage 1 cache

    async def get_cached_extraction(self, user_id: str, jd_hash: str) -> dict | None:
        """Return an unexpired cached extraction payload, if any."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT payload FROM extraction_cache
                WHERE user_id = ? AND jd_hash = ? AND expires_at > ?
                """,
                (user_id, jd_hash, _now().isoformat()),
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        return json.loads(row["payload"])

    async def set_cached_extraction(
        self, user_id: str, jd_hash: str, payload: dict, ttl_hours: int
    ) -> None:
        now = _now()
        async with self._get_connection() as conn:
            await conn.execute(
                """
                INSERT OR REPLACE INTO extraction_cache (
                    user_id, jd_hash, payload, created_at, expires_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    jd_hash,
                    json.dumps(payload),
                    now.isoformat(),
                    (now + timedelta(hours=ttl_hours)).isoformat(),
                ),
            )
            await conn.commit()

    async def purge_expired_cache(self) -> int:
        """Delete expired cache rows and return how many were removed."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM extraction_cache WHERE expires_at <= ?",
                (_now().isoformat(),),
            )
            await conn.commit()
        return cursor.rowcount
