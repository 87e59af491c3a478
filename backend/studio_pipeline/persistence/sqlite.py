"""
SQLite repository for pipeline records.

Single-file database. One connection per operation, so the repository can
be shared between the API threads and the queue worker.

Structured fields (parameters, metadata, output id lists) are stored as
JSON text. Job inputs live in their own table and are written once, when
the job row is first inserted.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..assets.models import Asset
from ..jobs.models import Job
from ..reporting.models import Report
from .errors import LoadError, PersistenceError, SaveError, SchemaError
from .repository import JobRepository

logger = logging.getLogger(__name__)


# Database schema version for migrations
SCHEMA_VERSION = 1


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class SQLiteRepository(JobRepository):
    """
    SQLite-backed JobRepository.

    Stores jobs (with ordered inputs), assets and reports. The run queue is
    not stored; it lives in the queue manager's memory.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Open (and if needed create) the database.

        Args:
            db_path: Path to SQLite database file (defaults to ./studio_pipeline.db)
        """
        if db_path is None:
            db_path = str(Path.cwd() / "studio_pipeline.db")

        self.db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connect(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # Access columns by name
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except PersistenceError:
            conn.rollback()
            raise
        except Exception as e:
            conn.rollback()
            raise PersistenceError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self):
        """Create schema if it doesn't exist."""
        with self._connect() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
            """)

            cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
            row = cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > SCHEMA_VERSION:
                raise SchemaError(
                    f"Database schema version {current_version} is newer than "
                    f"supported version {SCHEMA_VERSION}"
                )

            if current_version < SCHEMA_VERSION:
                self._migrate_schema(conn, current_version)

    def _migrate_schema(self, conn, from_version: int):
        """Apply schema migrations."""
        cursor = conn.cursor()

        if from_version < 1:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL,
                    created_by_id TEXT,
                    preset_id TEXT NOT NULL,
                    parameters TEXT NOT NULL,
                    state TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    started_at TEXT,
                    completed_at TEXT,
                    output_asset_ids TEXT NOT NULL,
                    report_id TEXT,
                    error_category TEXT,
                    error_message TEXT,
                    retried_from_id TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS job_inputs (
                    job_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    asset_id TEXT NOT NULL,
                    PRIMARY KEY (job_id, position),
                    FOREIGN KEY (job_id) REFERENCES jobs (id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS assets (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    file_key TEXT NOT NULL,
                    mime_type TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL,
                    parent_id TEXT,
                    project_id TEXT NOT NULL,
                    output_job_id TEXT,
                    metadata TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_assets_parent_id
                ON assets (parent_id)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS reports (
                    id TEXT PRIMARY KEY,
                    job_id TEXT NOT NULL UNIQUE,
                    type TEXT NOT NULL,
                    summary TEXT NOT NULL,
                    changes_applied TEXT NOT NULL,
                    rationale TEXT NOT NULL,
                    impact_assessment TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    limitations TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (1, datetime.now().isoformat())
            )
            logger.info(f"[Persistence] Migrated {self.db_path} to schema version 1")

    # =========================================================================
    # Jobs
    # =========================================================================

    def _job_values(self, job: Job) -> tuple:
        return (
            job.id,
            job.project_id,
            job.created_by_id,
            job.preset_id,
            json.dumps(job.parameters),
            job.state.value,
            _iso(job.created_at),
            _iso(job.started_at),
            _iso(job.completed_at),
            json.dumps(job.output_asset_ids),
            job.report_id,
            job.error_category.value if job.error_category else None,
            job.error_message,
            job.retried_from_id,
        )

    def add_job(self, job: Job) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("""
                    INSERT INTO jobs (
                        id, project_id, created_by_id, preset_id, parameters, state,
                        created_at, started_at, completed_at, output_asset_ids,
                        report_id, error_category, error_message, retried_from_id
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, self._job_values(job))
            except sqlite3.IntegrityError as e:
                raise SaveError(f"Job with ID '{job.id}' already exists") from e
            self._insert_inputs(cursor, job)

    def save_job(self, job: Job) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO jobs (
                    id, project_id, created_by_id, preset_id, parameters, state,
                    created_at, started_at, completed_at, output_asset_ids,
                    report_id, error_category, error_message, retried_from_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    state = excluded.state,
                    started_at = excluded.started_at,
                    completed_at = excluded.completed_at,
                    output_asset_ids = excluded.output_asset_ids,
                    report_id = excluded.report_id,
                    error_category = excluded.error_category,
                    error_message = excluded.error_message
            """, self._job_values(job))
            self._insert_inputs(cursor, job)

    def _insert_inputs(self, cursor, job: Job) -> None:
        # OR IGNORE keeps the first-written inputs for an existing job
        for position, asset_id in enumerate(job.input_asset_ids):
            cursor.execute("""
                INSERT OR IGNORE INTO job_inputs (job_id, position, asset_id)
                VALUES (?, ?, ?)
            """, (job.id, position, asset_id))

    def _row_to_job(self, cursor, row) -> Job:
        cursor.execute(
            "SELECT asset_id FROM job_inputs WHERE job_id = ? ORDER BY position",
            (row["id"],)
        )
        inputs = [r["asset_id"] for r in cursor.fetchall()]
        try:
            return Job(
                id=row["id"],
                project_id=row["project_id"],
                created_by_id=row["created_by_id"],
                preset_id=row["preset_id"],
                parameters=json.loads(row["parameters"]),
                input_asset_ids=inputs,
                state=row["state"],
                created_at=row["created_at"],
                started_at=row["started_at"],
                completed_at=row["completed_at"],
                output_asset_ids=json.loads(row["output_asset_ids"]),
                report_id=row["report_id"],
                error_category=row["error_category"],
                error_message=row["error_message"],
                retried_from_id=row["retried_from_id"],
            )
        except (ValidationError, ValueError) as e:
            raise LoadError(f"Corrupt job row {row['id']}: {e}") from e

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM jobs WHERE id = ?", (job_id,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._row_to_job(cursor, row)

    def list_jobs(self, project_id: Optional[str] = None) -> List[Job]:
        with self._connect() as conn:
            cursor = conn.cursor()
            if project_id is None:
                cursor.execute("SELECT * FROM jobs ORDER BY created_at DESC")
            else:
                cursor.execute(
                    "SELECT * FROM jobs WHERE project_id = ? ORDER BY created_at DESC",
                    (project_id,)
                )
            rows = cursor.fetchall()
            return [self._row_to_job(cursor, row) for row in rows]

    # =========================================================================
    # Assets
    # =========================================================================

    def add_asset(self, asset: Asset) -> None:
        with self._connect() as conn:
            self._insert_asset(conn.cursor(), asset)

    def _insert_asset(self, cursor, asset: Asset) -> None:
        try:
            cursor.execute("""
                INSERT INTO assets (
                    id, name, category, file_key, mime_type, size_bytes,
                    parent_id, project_id, output_job_id, metadata, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                asset.id,
                asset.name,
                asset.category.value,
                asset.file_key,
                asset.mime_type,
                asset.size_bytes,
                asset.parent_id,
                asset.project_id,
                asset.output_job_id,
                json.dumps(asset.metadata, default=str),
                _iso(asset.created_at),
            ))
        except sqlite3.IntegrityError as e:
            raise SaveError(f"Asset with ID '{asset.id}' already exists") from e

    def _row_to_asset(self, row) -> Asset:
        data: Dict[str, Any] = dict(row)
        data["metadata"] = json.loads(data["metadata"])
        try:
            return Asset(**data)
        except ValidationError as e:
            raise LoadError(f"Corrupt asset row {row['id']}: {e}") from e

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM assets WHERE id = ?", (asset_id,))
            row = cursor.fetchone()
            return self._row_to_asset(row) if row else None

    def list_assets(self, project_id: Optional[str] = None) -> List[Asset]:
        with self._connect() as conn:
            cursor = conn.cursor()
            if project_id is None:
                cursor.execute("SELECT * FROM assets ORDER BY created_at")
            else:
                cursor.execute(
                    "SELECT * FROM assets WHERE project_id = ? ORDER BY created_at",
                    (project_id,)
                )
            return [self._row_to_asset(row) for row in cursor.fetchall()]

    def list_derivatives(self, parent_id: str) -> List[Asset]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM assets WHERE parent_id = ? ORDER BY created_at",
                (parent_id,)
            )
            return [self._row_to_asset(row) for row in cursor.fetchall()]

    # =========================================================================
    # Reports
    # =========================================================================

    def add_report(self, report: Report) -> None:
        with self._connect() as conn:
            self._insert_report(conn.cursor(), report)

    def add_outputs(self, assets: List[Asset], report: Report) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            for asset in assets:
                self._insert_asset(cursor, asset)
            self._insert_report(cursor, report)

    def _insert_report(self, cursor, report: Report) -> None:
        try:
            cursor.execute("""
                INSERT INTO reports (
                    id, job_id, type, summary, changes_applied, rationale,
                    impact_assessment, confidence, limitations, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                report.id,
                report.job_id,
                report.type.value,
                report.summary,
                report.changes_applied,
                report.rationale,
                report.impact_assessment,
                report.confidence,
                report.limitations,
                _iso(report.created_at),
            ))
        except sqlite3.IntegrityError as e:
            raise SaveError(f"Report already exists for job {report.job_id}") from e

    def _row_to_report(self, row) -> Report:
        try:
            return Report(**dict(row))
        except ValidationError as e:
            raise LoadError(f"Corrupt report row {row['id']}: {e}") from e

    def get_report(self, report_id: str) -> Optional[Report]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM reports WHERE id = ?", (report_id,))
            row = cursor.fetchone()
            return self._row_to_report(row) if row else None

    def get_report_for_job(self, job_id: str) -> Optional[Report]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM reports WHERE job_id = ?", (job_id,))
            row = cursor.fetchone()
            return self._row_to_report(row) if row else None
