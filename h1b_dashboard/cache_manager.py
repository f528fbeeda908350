"""
h1b_dashboard/cache_manager.py — Read-through cache in front of the report queries.

Lifecycle:
  1. start_warm()  — background warm of every report at startup.
  2. fetch(name)   — cached rows, or recompute on miss / expiry.
  3. start_refresh(interval) — optional periodic re-warm.
  4. shutdown()    — cancel background work, close the pool, clear the store.

Per-report states:
  missing → computing → cached → expired → computing …
  "computing" is an asyncio.Task registered in _inflight before the query
  starts and removed when it finishes. Every concurrent miss for the same
  report awaits that one task, so a burst of requests issues a single query.
  invalidate() detaches a running task and bumps the report's generation;
  the detached task still answers its callers but never writes the store.

Failure policy:
  fetch() returns Err(reason) when the query fails; nothing is cached so the
  next call retries. get() turns Err into [] — the dashboard shows "no data"
  rather than an error. Failures log at ERROR, empty-but-valid reports at
  INFO, so the two are distinguishable in the logs.
"""
import asyncio
import logging
from dataclasses import dataclass
from time import monotonic

from h1b_dashboard.cache import CacheStore
from h1b_dashboard.config import Settings
from h1b_dashboard.database import Database
from h1b_dashboard.reports import (
    REPORTS,
    Report,
    ReportDefinition,
    UnknownReportError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    rows: list[dict]


@dataclass(frozen=True)
class Err:
    reason: str


ReportResult = Ok | Err


def rows_or_empty(result: ReportResult) -> list[dict]:
    """Availability over correctness: a failed report reads as no data."""
    if isinstance(result, Ok):
        return result.rows
    return []


class ReportCacheManager:
    """Owns the report cache store and the database connection pool."""

    def __init__(
        self,
        database: Database,
        store: CacheStore,
        reports: dict[str, ReportDefinition] | None = None,
    ):
        self._database = database
        self._store = store
        self._reports = reports if reports is not None else REPORTS
        self._inflight: dict[str, asyncio.Task] = {}
        # Tasks orphaned by invalidation; still cancelled on shutdown.
        self._detached: set[asyncio.Task] = set()
        self._generation: dict[str, int] = {}
        self._warm_task: asyncio.Task | None = None
        self._refresh_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReportCacheManager":
        return cls(
            database=Database(settings),
            store=CacheStore(ttl_seconds=settings.cache_ttl_seconds),
        )

    @property
    def database(self) -> Database:
        return self._database

    @property
    def report_names(self) -> list[str]:
        return list(self._reports)

    def _lookup(self, name: str | Report) -> ReportDefinition:
        key = name.value if isinstance(name, Report) else name
        try:
            return self._reports[key]
        except KeyError:
            raise UnknownReportError(key) from None

    # -----------------------------------------------------------------------
    # Serving
    # -----------------------------------------------------------------------

    async def fetch(self, name: str | Report) -> ReportResult:
        """
        Return Ok(rows) from the cache, recomputing on a miss.

        Raises UnknownReportError for names outside the catalog; data-store
        failures come back as Err and are never raised.
        """
        report = self._lookup(name)
        cached = self._read_cache(report.name)
        if cached is not None:
            logger.debug("Cache hit: %s", report.name)
            return Ok(cached)
        logger.debug("Cache miss: %s", report.name)
        return await self._compute_shared(report)

    async def get(self, name: str | Report) -> list[dict]:
        return rows_or_empty(await self.fetch(name))

    def _read_cache(self, name: str) -> list[dict] | None:
        try:
            return self._store.get(name)
        except Exception:
            logger.exception("Cache store read failed for %s; recomputing", name)
            return None

    def _write_cache(self, name: str, rows: list[dict]) -> None:
        try:
            self._store.set(name, rows)
        except Exception:
            logger.exception("Cache store write failed for %s; serving uncached", name)

    async def _compute_shared(self, report: ReportDefinition) -> ReportResult:
        task = self._inflight.get(report.name)
        if task is None:
            task = asyncio.create_task(self._compute(report), name=f"report:{report.name}")
            self._inflight[report.name] = task
            task.add_done_callback(lambda t, name=report.name: self._forget(name, t))
        # shield: one cancelled caller must not cancel the shared computation
        return await asyncio.shield(task)

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._inflight.get(name) is task:
            del self._inflight[name]

    async def _compute(self, report: ReportDefinition) -> ReportResult:
        started = monotonic()
        generation = self._generation.get(report.name, 0)
        try:
            rows = report.shape(await self._database.fetch(report.sql))
        except Exception as exc:
            logger.error("Report %s failed: %s", report.name, exc)
            return Err(f"{type(exc).__name__}: {exc}")

        if self._generation.get(report.name, 0) != generation:
            # Invalidated while the query ran: answer the waiting callers only.
            logger.info("Report %s invalidated mid-compute; result not cached", report.name)
            return Ok(rows)

        self._write_cache(report.name, rows)
        duration = monotonic() - started
        if rows:
            logger.info("Report %s cached: %d rows in %.2fs", report.name, len(rows), duration)
        else:
            logger.info("Report %s cached with no rows (%.2fs)", report.name, duration)
        return Ok(rows)

    # -----------------------------------------------------------------------
    # Warming / refresh
    # -----------------------------------------------------------------------

    async def warm_all(self) -> dict[str, bool]:
        """
        Recompute every report concurrently.

        Returns {report name: succeeded}. One failing report never stops the
        others; the warm finishes when every report has succeeded or failed.
        """
        started = monotonic()
        names = list(self._reports)
        logger.info("Warming %d reports…", len(names))

        results = await asyncio.gather(
            *(self._compute_shared(self._reports[name]) for name in names),
            return_exceptions=True,
        )

        outcome: dict[str, bool] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.error("Warming %s raised: %r", name, result)
                outcome[name] = False
            else:
                outcome[name] = isinstance(result, Ok)

        failed = sorted(name for name, ok in outcome.items() if not ok)
        duration = monotonic() - started
        if failed:
            logger.warning(
                "Cache warm finished in %.2f seconds; %d report(s) failed: %s",
                duration, len(failed), ", ".join(failed),
            )
        else:
            logger.info("Cache warm completed in %.2f seconds", duration)
        return outcome

    def start_warm(self) -> asyncio.Task:
        """Schedule warm_all() without waiting for it."""
        if self._warm_task is None or self._warm_task.done():
            self._warm_task = asyncio.create_task(self.warm_all(), name="report-cache-warm")
        return self._warm_task

    def start_refresh(self, interval_seconds: float) -> None:
        """Re-warm every interval_seconds; 0 or less disables the schedule."""
        if interval_seconds <= 0 or self._refresh_task is not None:
            return
        self._refresh_task = asyncio.create_task(
            self._refresh_loop(interval_seconds), name="report-cache-refresh"
        )
        logger.info("Scheduled report refresh every %s seconds", interval_seconds)

    async def _refresh_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.warm_all()

    # -----------------------------------------------------------------------
    # Invalidation / introspection
    # -----------------------------------------------------------------------

    def invalidate(self, name: str | Report) -> None:
        report = self._lookup(name)
        self._bump(report.name)
        self._store.delete(report.name)
        logger.info("Cache invalidated: %s", report.name)

    def invalidate_all(self) -> None:
        for name in self._reports:
            self._bump(name)
        self._store.clear()
        logger.info("All report cache entries cleared")

    def _bump(self, name: str) -> None:
        """Start a new generation so a running computation cannot publish."""
        self._generation[name] = self._generation.get(name, 0) + 1
        task = self._inflight.pop(name, None)
        if task is not None and not task.done():
            self._detached.add(task)
            task.add_done_callback(self._detached.discard)

    def status(self) -> list[dict]:
        now = self._store.now()
        states: list[dict] = []
        for name in self._reports:
            entry = self._store.entry(name)
            if name in self._inflight:
                state = "computing"
            elif entry is None:
                state = "missing"
            elif entry.is_expired(now):
                state = "expired"
            else:
                state = "cached"
            states.append({
                "report": name,
                "state": state,
                "rows": len(entry.value) if entry else None,
                "age_seconds": round(now - entry.stored_at, 1) if entry else None,
            })
        return states

    # -----------------------------------------------------------------------
    # Teardown
    # -----------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Cancel background work, close the pool and clear the store. Idempotent."""
        tasks = [t for t in (self._warm_task, self._refresh_task) if t is not None]
        tasks.extend(self._inflight.values())
        tasks.extend(self._detached)
        self._warm_task = None
        self._refresh_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
        self._detached.clear()

        await self._database.close()
        self._store.clear()
        logger.info("Report cache shut down.")

    # -----------------------------------------------------------------------
    # Named getters (one per dashboard endpoint)
    # -----------------------------------------------------------------------

    async def get_industry_approval(self) -> list[dict]:
        return await self.get(Report.INDUSTRY_APPROVAL)

    async def get_industry_salary(self) -> list[dict]:
        return await self.get(Report.INDUSTRY_SALARY)

    async def get_company_size_stats(self) -> list[dict]:
        return await self.get(Report.COMPANY_SIZE_STATS)

    async def get_nationality_stats(self) -> list[dict]:
        return await self.get(Report.NATIONALITY_STATS)

    async def get_remote_work_stats(self) -> list[dict]:
        return await self.get(Report.REMOTE_WORK_STATS)

    async def get_job_level_stats(self) -> list[dict]:
        return await self.get(Report.JOB_LEVEL_STATS)

    async def get_company_tier_stats(self) -> list[dict]:
        return await self.get(Report.COMPANY_TIER_STATS)

    async def get_gender_stats(self) -> list[dict]:
        return await self.get(Report.GENDER_STATS)

    async def get_state_stats(self) -> list[dict]:
        return await self.get(Report.STATE_STATS)

    async def get_industry_size_stats(self) -> list[dict]:
        return await self.get(Report.INDUSTRY_SIZE_STATS)

    async def get_company_stats(self) -> list[dict]:
        return await self.get(Report.COMPANY_STATS)

    async def get_salary_distribution(self) -> list[dict]:
        return await self.get(Report.SALARY_DISTRIBUTION)

    async def get_h1b_trends(self) -> list[dict]:
        return await self.get(Report.H1B_TRENDS)
