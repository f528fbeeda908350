import asyncio
from collections import Counter

import pytest

from h1b_dashboard.cache import CacheStore
from h1b_dashboard.cache_manager import ReportCacheManager
from h1b_dashboard.reports import REPORTS

TTL = 3600

# One valid row per report, already in shaped form.
SAMPLE_ROWS: dict[str, list[dict]] = {
    "industry_approval": [
        {"industry": "Tech", "total_applications": 6, "approved_applications": 4, "approval_rate": 66.67},
    ],
    "industry_salary": [
        {"industry": "Tech", "job_count": 12, "avg_min_salary": 90000,
         "avg_max_salary": 150000, "avg_mid_salary": 120000},
    ],
    "company_size_stats": [
        {"size_category": "Small (<100)", "industry": "Tech", "companies_count": 2,
         "total_applications": 7, "approval_rate": 57.14},
    ],
    "nationality_stats": [
        {"country": "India", "total_applications": 10, "approved_applications": 7, "approval_rate": 70.0},
    ],
    "remote_work_stats": [
        {"work_arrangement": "Remote Allowed", "total_applications": 8, "approval_rate": 50.0,
         "avg_salary": 110000, "unique_companies": 3},
    ],
    "job_level_stats": [
        {"seniority_level": "Senior Level", "work_type": "FULL_TIME", "industry": "Tech",
         "job_count": 5, "avg_min_salary": 120000, "avg_max_salary": 180000, "avg_salary_range": 60000},
    ],
    "company_tier_stats": [
        {"industry": "Tech", "company_size": "SMB", "company_count": 5, "avg_followers": 1200,
         "avg_employees": 450, "total_jobs": 40, "avg_max_salary": 140000, "h1b_approval_rate": 80.0},
    ],
    "gender_stats": [
        {"gender": "F", "total_applications": 9, "approved_applications": 6, "approval_rate": 66.67},
    ],
    "state_stats": [
        {"state": "CA", "num_companies": 5, "num_jobs": 30, "avg_salary": 130000,
         "top_industries": "Finance, Tech"},
    ],
    "industry_size_stats": [
        {"industry": "Tech", "company_count": 6, "avg_employees": 1500.5,
         "size_category": "Large", "rounded_avg_employees": 1501},
    ],
    "company_stats": [
        {"company_id": 1, "company_name": "Acme", "industry": "Tech", "tier": "SMB",
         "employee_count": 500, "follower_count": 1000, "total_h1b_applications": 5,
         "approved_h1b_applications": 4, "h1b_approval_rate": 80.0, "avg_max_salary": 150000,
         "avg_min_salary": 100000, "total_job_postings": 7},
    ],
    "salary_distribution": [
        {"company_name": "Acme", "industry": "Tech", "avg_min_salary": 100000,
         "avg_max_salary": 150000, "job_count": 5, "employee_count": 500},
    ],
    "h1b_trends": [
        {"company_name": "Acme", "year": 2023, "applications": 5, "approvals": 3, "approval_rate": 60.0},
    ],
}


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDatabase:
    """Stands in for Database: serves canned rows per report and counts queries."""

    def __init__(self, rows: dict[str, list[dict]] | None = None):
        self.rows = {name: [dict(r) for r in rs] for name, rs in (rows or {}).items()}
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: Counter = Counter()
        self.connected = False
        self.close_calls = 0
        self._report_by_sql = {report.sql: name for name, report in REPORTS.items()}

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.close_calls += 1
        self.connected = False

    def is_available(self) -> bool:
        return self.connected

    async def fetch(self, sql: str) -> list[dict]:
        name = self._report_by_sql[sql]
        self.calls[name] += 1
        await asyncio.sleep(0)
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        if name in self.failures:
            raise self.failures[name]
        return [dict(r) for r in self.rows.get(name, [])]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_db():
    return FakeDatabase(SAMPLE_ROWS)


@pytest.fixture
def store(clock):
    return CacheStore(ttl_seconds=TTL, clock=clock)


@pytest.fixture
def manager(fake_db, store):
    return ReportCacheManager(database=fake_db, store=store)
