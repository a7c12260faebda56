"""SQLite-based catalog store."""

import uuid
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from gasingest.catalog.base import CatalogEntry, CatalogStore
from gasingest.exceptions import CatalogError
from gasingest.logging import get_logger
from gasingest.models.library import LibraryStatus, ScrapedLibraryData
from gasingest.models.result import SaveResult
from gasingest.models.summary import SummaryRecord


_ENTRY_COLUMNS = (
    "id, script_id, script_type, name, repository_url, author_name, author_url, "
    "description, license_type, license_url, star_count, last_commit_at, status, "
    "summary_pending, created_at, updated_at"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_entry(row: aiosqlite.Row) -> CatalogEntry:
    values = dict(row)
    values["summary_pending"] = bool(values["summary_pending"])
    return CatalogEntry.model_validate(values)


class SQLiteCatalog(CatalogStore):
    """Local catalog using aiosqlite."""

    def __init__(self, db_path: str = ".gasingest_catalog.db"):
        """
        Initialize SQLite catalog.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None
        self._log = get_logger("catalog")

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Ensure database connection and schema exist."""
        if self._db is None:
            try:
                self._db = await aiosqlite.connect(self.db_path)
            except aiosqlite.Error as e:
                raise CatalogError(f"Cannot open catalog {self.db_path}: {e}") from e
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS libraries (
                    id TEXT PRIMARY KEY,
                    script_id TEXT NOT NULL,
                    script_type TEXT NOT NULL,
                    name TEXT NOT NULL,
                    repository_url TEXT NOT NULL UNIQUE,
                    author_name TEXT NOT NULL DEFAULT '',
                    author_url TEXT NOT NULL DEFAULT '',
                    description TEXT NOT NULL DEFAULT '',
                    license_type TEXT,
                    license_url TEXT,
                    star_count INTEGER NOT NULL DEFAULT 0,
                    last_commit_at TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    readme_content TEXT,
                    summary_pending INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._db.execute(
                "CREATE INDEX IF NOT EXISTS idx_script_id ON libraries(script_id)"
            )
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS summaries (
                    library_id TEXT PRIMARY KEY REFERENCES libraries(id),
                    summary_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._db.commit()
        return self._db

    async def is_duplicate(self, script_id: str) -> bool:
        db = await self._ensure_db()
        async with db.execute(
            "SELECT 1 FROM libraries WHERE script_id = ? LIMIT 1", (script_id,)
        ) as cursor:
            return await cursor.fetchone() is not None

    async def save(self, data: ScrapedLibraryData, generate_summary: bool = False) -> SaveResult:
        """Insert or update by repository URL, never raising."""
        try:
            db = await self._ensure_db()
            existing = await self.find_by_repository_url(data.repository_url)
            if existing is not None:
                await self._write_metadata(db, existing.id, data, generate_summary)
                catalog_id = existing.id
            else:
                catalog_id = uuid.uuid4().hex
                now = _now()
                await db.execute(
                    """
                    INSERT INTO libraries (
                        id, script_id, script_type, name, repository_url, author_name,
                        author_url, description, license_type, license_url, star_count,
                        last_commit_at, status, readme_content, summary_pending,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        catalog_id,
                        data.script_id,
                        data.script_type.value,
                        data.name,
                        data.repository_url,
                        data.author_name,
                        data.author_url,
                        data.description,
                        data.license_type,
                        data.license_url,
                        data.star_count,
                        data.last_commit_at.isoformat(),
                        data.status.value,
                        data.readme_content,
                        int(generate_summary),
                        now,
                        now,
                    ),
                )
            await db.commit()
        except (aiosqlite.Error, CatalogError) as e:
            self._log.error("catalog_save_failed", repository_url=data.repository_url, error=str(e))
            return SaveResult(success=False, error=str(e))
        return SaveResult(success=True, id=catalog_id)

    async def _write_metadata(
        self,
        db: aiosqlite.Connection,
        catalog_id: str,
        data: ScrapedLibraryData,
        summary_pending: bool | None = None,
    ) -> None:
        await db.execute(
            """
            UPDATE libraries SET
                script_id = ?, script_type = ?, name = ?, author_name = ?, author_url = ?,
                description = ?, license_type = ?, license_url = ?, star_count = ?,
                last_commit_at = ?, readme_content = ?,
                summary_pending = COALESCE(?, summary_pending), updated_at = ?
            WHERE id = ?
            """,
            (
                data.script_id,
                data.script_type.value,
                data.name,
                data.author_name,
                data.author_url,
                data.description,
                data.license_type,
                data.license_url,
                data.star_count,
                data.last_commit_at.isoformat(),
                data.readme_content,
                None if summary_pending is None else int(summary_pending),
                _now(),
                catalog_id,
            ),
        )

    async def update_entry(self, catalog_id: str, data: ScrapedLibraryData) -> None:
        db = await self._ensure_db()
        try:
            await self._write_metadata(db, catalog_id, data)
            await db.commit()
        except aiosqlite.Error as e:
            raise CatalogError(f"Cannot update entry {catalog_id}: {e}") from e

    async def get(self, catalog_id: str) -> CatalogEntry | None:
        db = await self._ensure_db()
        async with db.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM libraries WHERE id = ?", (catalog_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_entry(row) if row else None

    async def find_by_repository_url(self, repository_url: str) -> CatalogEntry | None:
        db = await self._ensure_db()
        async with db.execute(
            f"SELECT {_ENTRY_COLUMNS} FROM libraries WHERE repository_url = ?",
            (repository_url,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_entry(row) if row else None

    async def list_entries(self, exclude_rejected: bool = True) -> list[CatalogEntry]:
        db = await self._ensure_db()
        query = f"SELECT {_ENTRY_COLUMNS} FROM libraries"
        params: tuple = ()
        if exclude_rejected:
            query += " WHERE status != ?"
            params = (LibraryStatus.REJECTED.value,)
        query += " ORDER BY created_at, id"
        async with db.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_entry(row) for row in rows]

    async def set_status(self, catalog_id: str, status: LibraryStatus) -> None:
        db = await self._ensure_db()
        await db.execute(
            "UPDATE libraries SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, _now(), catalog_id),
        )
        await db.commit()

    async def summary_exists(self, catalog_id: str) -> bool:
        db = await self._ensure_db()
        async with db.execute(
            "SELECT 1 FROM summaries WHERE library_id = ?", (catalog_id,)
        ) as cursor:
            return await cursor.fetchone() is not None

    async def get_summary(self, catalog_id: str) -> SummaryRecord | None:
        db = await self._ensure_db()
        async with db.execute(
            "SELECT summary_json FROM summaries WHERE library_id = ?", (catalog_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return SummaryRecord.model_validate_json(row["summary_json"]) if row else None

    async def save_summary(self, catalog_id: str, summary: SummaryRecord) -> None:
        db = await self._ensure_db()
        now = _now()
        try:
            await db.execute(
                """
                INSERT OR REPLACE INTO summaries (library_id, summary_json, updated_at)
                VALUES (?, ?, ?)
                """,
                (catalog_id, summary.model_dump_json(), now),
            )
            await db.execute(
                "UPDATE libraries SET summary_pending = 0, updated_at = ? WHERE id = ?",
                (now, catalog_id),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise CatalogError(f"Cannot save summary for {catalog_id}: {e}") from e

    async def count(self) -> int:
        db = await self._ensure_db()
        async with db.execute("SELECT COUNT(*) FROM libraries") as cursor:
            row = await cursor.fetchone()
        return row[0]

    async def close(self) -> None:
        """Close database connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None
