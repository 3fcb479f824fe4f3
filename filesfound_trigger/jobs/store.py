"""SQLite-backed persistence for jobs and their build records.

    - Single aiosqlite connection per store instance
    - All I/O is async
    - JSON serialisation for the job definition and the build causes

Job definitions are stored in the current trigger format.  Rows written
by older releases are migrated when read; a row that cannot be migrated
is logged and skipped by ``list_jobs()`` so one bad job does not keep the
others from loading.

Schema
------
``jobs``
    name        TEXT PRIMARY KEY
    enabled     INTEGER (0/1)
    definition  TEXT   (JobDefinition.to_dict() as JSON)
    created_at  REAL
    updated_at  REAL

``builds``
    job_name, number (unique together), status, return_code,
    causes (JSON), started_at, finished_at, output, error
"""

from __future__ import annotations

import json
import time
from pathlib import Path

import aiosqlite

from filesfound_trigger.builds.runner import BuildRecord, BuildStatus
from filesfound_trigger.exceptions import ConfigurationError, JobNotFoundError
from filesfound_trigger.jobs.models import JobDefinition
from filesfound_trigger.logging import get_logger

log = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS jobs (
    name        TEXT PRIMARY KEY,
    enabled     INTEGER NOT NULL DEFAULT 1,
    definition  TEXT NOT NULL,
    created_at  REAL NOT NULL,
    updated_at  REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS builds (
    job_name     TEXT NOT NULL,
    number       INTEGER NOT NULL,
    status       TEXT NOT NULL,
    return_code  INTEGER,
    causes       TEXT NOT NULL DEFAULT '[]',
    started_at   REAL NOT NULL,
    finished_at  REAL,
    output       TEXT NOT NULL DEFAULT '',
    error        TEXT,
    PRIMARY KEY (job_name, number)
);
CREATE INDEX IF NOT EXISTS idx_jobs_enabled ON jobs(enabled);
"""


class JobStore:
    """Async SQLite store for JobDefinition and BuildRecord objects.

    Usage::

        store = JobStore(Path("~/.filesfound/jobs.db"))
        await store.init()

        await store.save_job(job)
        job = await store.get_job("nightly")
        jobs = await store.list_jobs(enabled_only=True)
        await store.set_enabled("nightly", False)
        await store.delete_job("nightly")

        await store.close()
    """

    def __init__(self, db_path: Path) -> None:
        self._path = Path(db_path).expanduser()
        self._conn: aiosqlite.Connection | None = None

    # ---------------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------------

    async def init(self) -> None:
        """Open the database and create tables if needed."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self._path))
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()
        log.info("job_store_initialized", path=str(self._path))

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "JobStore":
        await self.init()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ---------------------------------------------------------------------------
    # Jobs
    # ---------------------------------------------------------------------------

    async def save_job(self, job: JobDefinition) -> None:
        """Insert or update a job (upsert by name)."""
        now = time.time()
        assert self._conn is not None
        await self._conn.execute(
            """
            INSERT INTO jobs (name, enabled, definition, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(name) DO UPDATE SET
                enabled    = excluded.enabled,
                definition = excluded.definition,
                updated_at = excluded.updated_at
            """,
            (job.name, int(job.enabled), json.dumps(job.to_dict()), now, now),
        )
        await self._conn.commit()

    async def get_job(self, name: str) -> JobDefinition | None:
        """Load a job by name.  Returns None if not found.

        Raises:
            ConfigurationError: The stored definition cannot be migrated.
        """
        assert self._conn is not None
        async with self._conn.execute(
            "SELECT definition, enabled FROM jobs WHERE name = ?", (name,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return _job_from_row(row[0], row[1])

    async def require_job(self, name: str) -> JobDefinition:
        job = await self.get_job(name)
        if job is None:
            raise JobNotFoundError(name)
        return job

    async def list_jobs(self, enabled_only: bool = False) -> list[JobDefinition]:
        """Return jobs ordered by name, skipping rows that fail to load."""
        assert self._conn is not None
        query = "SELECT name, definition, enabled FROM jobs"
        if enabled_only:
            query += " WHERE enabled = 1"
        query += " ORDER BY name"
        async with self._conn.execute(query) as cursor:
            rows = await cursor.fetchall()

        jobs = []
        for name, definition, enabled in rows:
            try:
                jobs.append(_job_from_row(definition, enabled))
            except (ConfigurationError, ValueError) as exc:
                log.error("job_load_failed", job=name, error=str(exc))
        return jobs

    async def set_enabled(self, name: str, enabled: bool) -> JobDefinition:
        """Raises JobNotFoundError if *name* is unknown."""
        job = await self.require_job(name)
        job.enabled = enabled
        await self.save_job(job)
        return job

    async def delete_job(self, name: str) -> bool:
        """Delete a job and its build records.  Returns True if it existed."""
        assert self._conn is not None
        cursor = await self._conn.execute("DELETE FROM jobs WHERE name = ?", (name,))
        await self._conn.execute("DELETE FROM builds WHERE job_name = ?", (name,))
        await self._conn.commit()
        return (cursor.rowcount or 0) > 0

    # ---------------------------------------------------------------------------
    # Builds
    # ---------------------------------------------------------------------------

    async def next_build_number(self, job_name: str) -> int:
        assert self._conn is not None
        async with self._conn.execute(
            "SELECT COALESCE(MAX(number), 0) FROM builds WHERE job_name = ?", (job_name,)
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) + 1 if row else 1

    async def save_build(self, record: BuildRecord) -> None:
        assert self._conn is not None
        await self._conn.execute(
            """
            INSERT OR REPLACE INTO builds
                (job_name, number, status, return_code, causes,
                 started_at, finished_at, output, error)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.job_name,
                record.number,
                record.status.value,
                record.return_code,
                json.dumps(record.causes),
                record.started_at,
                record.finished_at,
                record.output,
                record.error,
            ),
        )
        await self._conn.commit()

    async def list_builds(self, job_name: str, limit: int = 20) -> list[BuildRecord]:
        """Most recent builds of *job_name* first."""
        assert self._conn is not None
        async with self._conn.execute(
            """
            SELECT job_name, number, status, return_code, causes,
                   started_at, finished_at, output, error
            FROM builds WHERE job_name = ? ORDER BY number DESC LIMIT ?
            """,
            (job_name, limit),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            BuildRecord(
                job_name=r[0],
                number=r[1],
                status=BuildStatus(r[2]),
                return_code=r[3],
                causes=json.loads(r[4]),
                started_at=r[5],
                finished_at=r[6],
                output=r[7],
                error=r[8],
            )
            for r in rows
        ]


def _job_from_row(definition: str, enabled: int) -> JobDefinition:
    job = JobDefinition.from_dict(json.loads(definition))
    # The enabled column is authoritative.
    job.enabled = bool(enabled)
    return job
