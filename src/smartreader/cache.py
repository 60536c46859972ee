"""SQLite-backed cache tiers.

Two independent tiers share one database:

- ``response_cache`` (edge tier): fully rendered responses keyed by the
  normalised request URL, short-to-medium TTL.
- ``summary_cache`` (durable tier): only the summary points, keyed by a
  hash of the canonical source URL, long TTL. Summaries cost model latency
  and quota; pages are cheap to re-render, so the two expire separately.

Expired rows read as a miss. There is no locking: concurrent writers to the
same key race and the last ``INSERT OR REPLACE`` wins.

A broken or locked database must never fail a page: every method catches
``aiosqlite.Error``, logs it with ``exc_info=True`` and carries on. A failed
read is a miss; a failed write is dropped.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import aiosqlite
import structlog

from smartreader.models.cache import ResponseCacheEntry, SummaryCacheEntry

log = structlog.get_logger()

_CREATE_RESPONSE_TABLE = """
CREATE TABLE IF NOT EXISTS response_cache (
    cache_key   TEXT PRIMARY KEY,
    status_code INTEGER NOT NULL,
    headers     TEXT NOT NULL,
    body        BLOB NOT NULL,
    stored_at   TEXT NOT NULL,
    expires_at  TEXT NOT NULL
)
"""

_CREATE_SUMMARY_TABLE = """
CREATE TABLE IF NOT EXISTS summary_cache (
    cache_key   TEXT PRIMARY KEY,
    source_url  TEXT NOT NULL,
    points      TEXT NOT NULL,
    stored_at   TEXT NOT NULL,
    expires_at  TEXT NOT NULL
)
"""

_CREATE_RESPONSE_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_response_expires ON response_cache(expires_at)"
)
_CREATE_SUMMARY_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_summary_expires ON summary_cache(expires_at)"
)

_CREATE_METADATA_TABLE = """
CREATE TABLE IF NOT EXISTS cache_maintenance (
    task     TEXT PRIMARY KEY,
    last_run TEXT NOT NULL
)
"""


class Cache:
    """SQLite cache implementing CacheProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_RESPONSE_TABLE)
        await self._db.execute(_CREATE_SUMMARY_TABLE)
        await self._db.execute(_CREATE_RESPONSE_INDEX)
        await self._db.execute(_CREATE_SUMMARY_INDEX)
        await self._db.execute(_CREATE_METADATA_TABLE)
        await self._db.commit()

    # ------------------------------------------------------------------
    # Edge tier
    # ------------------------------------------------------------------

    async def get_response(self, cache_key: str) -> ResponseCacheEntry | None:
        """Read a rendered response. ``None`` on miss, expiry or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT cache_key, status_code, headers, body, stored_at, expires_at "
                "FROM response_cache WHERE cache_key = ?",
                (cache_key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            expires_at = datetime.fromisoformat(row[5])
            if datetime.now(UTC) >= expires_at:
                return None

            return ResponseCacheEntry(
                cache_key=row[0],
                status_code=row[1],
                headers=json.loads(row[2]),
                body=bytes(row[3]),
                stored_at=datetime.fromisoformat(row[4]),
                expires_at=expires_at,
            )
        except (aiosqlite.Error, ValueError):
            log.warning("cache_read_error", key=f"response:{cache_key}", exc_info=True)
            return None

    async def set_response(
        self,
        cache_key: str,
        status_code: int,
        headers: dict[str, str],
        body: bytes,
        ttl_seconds: int,
    ) -> None:
        """Write a rendered response. Non-fatal on failure."""
        try:
            now = datetime.now(UTC)
            expires_at = now + timedelta(seconds=ttl_seconds)
            await self._db.execute(
                "INSERT OR REPLACE INTO response_cache "
                "(cache_key, status_code, headers, body, stored_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    cache_key,
                    status_code,
                    json.dumps(headers),
                    body,
                    now.isoformat(),
                    expires_at.isoformat(),
                ),
            )
            await self._db.commit()
            log.debug("edge_cache_stored", key=cache_key, ttl_seconds=ttl_seconds)
        except aiosqlite.Error:
            log.warning("cache_write_error", key=f"response:{cache_key}", exc_info=True)

    # ------------------------------------------------------------------
    # Durable summary tier
    # ------------------------------------------------------------------

    async def get_summary(self, cache_key: str) -> SummaryCacheEntry | None:
        """Read summary points. ``None`` on miss, expiry or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT cache_key, source_url, points, stored_at, expires_at "
                "FROM summary_cache WHERE cache_key = ?",
                (cache_key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            expires_at = datetime.fromisoformat(row[4])
            if datetime.now(UTC) >= expires_at:
                return None

            return SummaryCacheEntry(
                cache_key=row[0],
                source_url=row[1],
                points=json.loads(row[2]),
                stored_at=datetime.fromisoformat(row[3]),
                expires_at=expires_at,
            )
        except (aiosqlite.Error, ValueError):
            log.warning("cache_read_error", key=f"summary:{cache_key}", exc_info=True)
            return None

    async def set_summary(
        self,
        cache_key: str,
        source_url: str,
        points: list[str],
        ttl_days: int,
    ) -> None:
        """Write summary points. Non-fatal on failure."""
        try:
            now = datetime.now(UTC)
            expires_at = now + timedelta(days=ttl_days)
            await self._db.execute(
                "INSERT OR REPLACE INTO summary_cache "
                "(cache_key, source_url, points, stored_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    cache_key,
                    source_url,
                    json.dumps(points, ensure_ascii=False),
                    now.isoformat(),
                    expires_at.isoformat(),
                ),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=f"summary:{cache_key}", exc_info=True)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def cleanup_if_due(self, interval_hours: int) -> None:
        """Purge expired rows unless a purge already ran within ``interval_hours``.

        Quick restarts would otherwise purge on every boot. A missing or
        unreadable ``cache_maintenance`` row counts as due.
        """
        last_run = await self._last_run("cleanup")
        if last_run is not None and datetime.now(UTC) - last_run < timedelta(hours=interval_hours):
            log.debug("cache_cleanup_skipped", last_run=last_run.isoformat())
            return

        await self.cleanup_expired()
        await self._record_run("cleanup")

    async def _last_run(self, task: str) -> datetime | None:
        try:
            cursor = await self._db.execute(
                "SELECT last_run FROM cache_maintenance WHERE task = ?", (task,)
            )
            row = await cursor.fetchone()
            return datetime.fromisoformat(row[0]) if row is not None else None
        except (aiosqlite.Error, ValueError):
            log.warning("cache_maintenance_read_error", task=task, exc_info=True)
            return None

    async def _record_run(self, task: str) -> None:
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO cache_maintenance (task, last_run) VALUES (?, ?)",
                (task, datetime.now(UTC).isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_maintenance_write_error", task=task, exc_info=True)

    async def cleanup_expired(self) -> None:
        """Delete every expired row from both tiers. Non-fatal on failure."""
        try:
            cutoff = datetime.now(UTC).isoformat()

            cursor = await self._db.execute(
                "DELETE FROM response_cache WHERE expires_at < ?", (cutoff,)
            )
            responses_deleted = cursor.rowcount

            cursor = await self._db.execute(
                "DELETE FROM summary_cache WHERE expires_at < ?", (cutoff,)
            )
            summaries_deleted = cursor.rowcount

            await self._db.commit()
            log.info(
                "cache_cleanup_complete",
                responses_deleted=responses_deleted,
                summaries_deleted=summaries_deleted,
            )
        except aiosqlite.Error:
            log.warning("cache_cleanup_error", exc_info=True)
