"""
h1b_dashboard/routes.py — Report endpoints consumed by the dashboard front end.

Every endpoint:
  - takes no body and no query parameters
  - answers 200 with a JSON array of row objects
  - answers 200 with [] when the report query failed (logged by the manager)
"""
from fastapi import APIRouter, Depends, Request

from h1b_dashboard.cache_manager import ReportCacheManager, rows_or_empty
from h1b_dashboard.reports import Report

router = APIRouter()


def get_cache_manager(request: Request) -> ReportCacheManager:
    return request.app.state.cache_manager


async def _serve(manager: ReportCacheManager, report: Report) -> list[dict]:
    # Err is mapped to an empty 200 here, not inside the manager's fetch().
    return rows_or_empty(await manager.fetch(report))


# ── H1B ──────────────────────────────────────────────────────────────────────

@router.get("/h1b/industry-approval", summary="Top industries by H1B approval rate")
async def industry_approval(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.INDUSTRY_APPROVAL)


@router.get("/h1b/nationality-stats", summary="Applications and approvals per country")
async def nationality_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.NATIONALITY_STATS)


@router.get("/h1b/gender-stats", summary="Applications and approvals per gender")
async def gender_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.GENDER_STATS)


# ── Industry ─────────────────────────────────────────────────────────────────

@router.get("/industry/salary", summary="Yearly salary bands per industry")
async def industry_salary(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.INDUSTRY_SALARY)


@router.get("/industry/size-stats", summary="Average headcount category per industry")
async def industry_size_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.INDUSTRY_SIZE_STATS)


# ── Company ──────────────────────────────────────────────────────────────────

@router.get("/company/size-stats", summary="Approval rate by company size and industry")
async def company_size_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.COMPANY_SIZE_STATS)


@router.get("/company/tier-stats", summary="Startup / SMB / Enterprise breakdown per industry")
async def company_tier_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.COMPANY_TIER_STATS)


@router.get("/company/state-stats", summary="Jobs, companies and salary per US state")
async def state_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.STATE_STATS)


@router.get("/companies/detailed-stats", summary="Per-company H1B statistics")
async def company_detailed_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.COMPANY_STATS)


@router.get("/companies/salary-distribution", summary="Per-company salary averages")
async def company_salary_distribution(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.SALARY_DISTRIBUTION)


@router.get("/companies/h1b-trends", summary="Per-company applications by lottery year")
async def company_h1b_trends(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.H1B_TRENDS)


# ── Jobs ─────────────────────────────────────────────────────────────────────

@router.get("/jobs/remote-stats", summary="Approval rate and salary by work arrangement")
async def remote_work_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.REMOTE_WORK_STATS)


@router.get("/jobs/level-stats", summary="Salary by seniority, work type and industry")
async def job_level_stats(manager: ReportCacheManager = Depends(get_cache_manager)) -> list[dict]:
    return await _serve(manager, Report.JOB_LEVEL_STATS)


# Endpoint path → report, used by tests and the warm script's summary.
REPORT_ENDPOINTS: dict[str, Report] = {
    "/h1b/industry-approval": Report.INDUSTRY_APPROVAL,
    "/h1b/nationality-stats": Report.NATIONALITY_STATS,
    "/h1b/gender-stats": Report.GENDER_STATS,
    "/industry/salary": Report.INDUSTRY_SALARY,
    "/industry/size-stats": Report.INDUSTRY_SIZE_STATS,
    "/company/size-stats": Report.COMPANY_SIZE_STATS,
    "/company/tier-stats": Report.COMPANY_TIER_STATS,
    "/company/state-stats": Report.STATE_STATS,
    "/companies/detailed-stats": Report.COMPANY_STATS,
    "/companies/salary-distribution": Report.SALARY_DISTRIBUTION,
    "/companies/h1b-trends": Report.H1B_TRENDS,
    "/jobs/remote-stats": Report.REMOTE_WORK_STATS,
    "/jobs/level-stats": Report.JOB_LEVEL_STATS,
}
