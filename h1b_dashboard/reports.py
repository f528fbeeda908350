"""
h1b_dashboard/reports.py — The fixed catalog of dashboard reports.

Reports supported:
  1.  industry_approval     → top industries by H1B approval rate
  2.  industry_salary       → yearly salary bands per industry
  3.  company_size_stats    → approval rate by company size and industry
  4.  nationality_stats     → applications / approvals per country
  5.  remote_work_stats     → approval rate and salary by work arrangement
  6.  job_level_stats       → salary by seniority, work type, industry
  7.  company_tier_stats    → Startup / SMB / Enterprise breakdown per industry
  8.  gender_stats          → applications / approvals per gender
  9.  state_stats           → jobs, companies and salary per US state
  10. industry_size_stats   → average headcount category per industry
  11. company_stats         → per-company H1B and salary figures
  12. salary_distribution   → per-company salary averages
  13. h1b_trends            → per-company applications by lottery year

Shaping rules (applied to every result after the query)
───────────────────────────────────────────────────────
  min_sample    — rows whose sample column is NULL or below the minimum are
                  dropped, even though each query already filters in SQL.
  ratios        — percentages derived from two count columns, rounded to 2
                  decimals; a zero or NULL denominator yields 0.
  zero_if_null  — ratio columns computed by the engine that must read 0
                  rather than NULL.
"""
from dataclasses import dataclass
from enum import Enum

from h1b_dashboard import queries


class Report(str, Enum):
    INDUSTRY_APPROVAL   = "industry_approval"
    INDUSTRY_SALARY     = "industry_salary"
    COMPANY_SIZE_STATS  = "company_size_stats"
    NATIONALITY_STATS   = "nationality_stats"
    REMOTE_WORK_STATS   = "remote_work_stats"
    JOB_LEVEL_STATS     = "job_level_stats"
    COMPANY_TIER_STATS  = "company_tier_stats"
    GENDER_STATS        = "gender_stats"
    STATE_STATS         = "state_stats"
    INDUSTRY_SIZE_STATS = "industry_size_stats"
    COMPANY_STATS       = "company_stats"
    SALARY_DISTRIBUTION = "salary_distribution"
    H1B_TRENDS          = "h1b_trends"


class UnknownReportError(KeyError):
    """Raised for a report name that is not in the catalog."""


@dataclass(frozen=True)
class Ratio:
    column: str
    numerator: str
    denominator: str


@dataclass(frozen=True)
class ReportDefinition:
    name: str
    sql: str
    sample_column: str
    min_sample: int
    ratios: tuple[Ratio, ...] = ()
    zero_if_null: tuple[str, ...] = ()

    def shape(self, rows: list[dict]) -> list[dict]:
        return shape_rows(self, rows)


# ---------------------------------------------------------------------------
# Ratio helpers
# ---------------------------------------------------------------------------

def safe_percentage(numerator, denominator, digits: int = 2) -> float:
    """numerator / denominator * 100, or 0.0 when the denominator is 0 or NULL."""
    if not denominator or numerator is None:
        return 0.0
    return round(float(numerator) * 100.0 / float(denominator), digits)


def _meets_min_sample(row: dict, column: str, minimum: int) -> bool:
    value = row.get(column)
    return value is not None and value >= minimum


def shape_rows(report: ReportDefinition, rows: list[dict]) -> list[dict]:
    shaped: list[dict] = []
    for raw in rows:
        if not _meets_min_sample(raw, report.sample_column, report.min_sample):
            continue
        row = dict(raw)
        for ratio in report.ratios:
            row[ratio.column] = safe_percentage(
                row.get(ratio.numerator), row.get(ratio.denominator)
            )
        for column in report.zero_if_null:
            if row.get(column) is None:
                row[column] = 0.0
        shaped.append(row)
    return shaped


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_APPROVAL_RATE = Ratio("approval_rate", "approved_applications", "total_applications")

REPORTS: dict[str, ReportDefinition] = {
    r.name: r
    for r in (
        ReportDefinition(
            Report.INDUSTRY_APPROVAL.value, queries.SQL_INDUSTRY_APPROVAL,
            sample_column="total_applications", min_sample=5,
            ratios=(_APPROVAL_RATE,),
        ),
        ReportDefinition(
            Report.INDUSTRY_SALARY.value, queries.SQL_INDUSTRY_SALARY,
            sample_column="job_count", min_sample=10,
        ),
        ReportDefinition(
            Report.COMPANY_SIZE_STATS.value, queries.SQL_COMPANY_SIZE_STATS,
            sample_column="total_applications", min_sample=5,
            zero_if_null=("approval_rate",),
        ),
        ReportDefinition(
            Report.NATIONALITY_STATS.value, queries.SQL_NATIONALITY_STATS,
            sample_column="total_applications", min_sample=5,
            ratios=(_APPROVAL_RATE,),
        ),
        ReportDefinition(
            Report.REMOTE_WORK_STATS.value, queries.SQL_REMOTE_WORK_STATS,
            sample_column="total_applications", min_sample=5,
            zero_if_null=("approval_rate",),
        ),
        ReportDefinition(
            Report.JOB_LEVEL_STATS.value, queries.SQL_JOB_LEVEL_STATS,
            sample_column="job_count", min_sample=5,
        ),
        ReportDefinition(
            Report.COMPANY_TIER_STATS.value, queries.SQL_COMPANY_TIER_STATS,
            sample_column="company_count", min_sample=5,
            zero_if_null=("h1b_approval_rate",),
        ),
        ReportDefinition(
            Report.GENDER_STATS.value, queries.SQL_GENDER_STATS,
            sample_column="total_applications", min_sample=5,
            ratios=(_APPROVAL_RATE,),
        ),
        ReportDefinition(
            Report.STATE_STATS.value, queries.SQL_STATE_STATS,
            sample_column="num_companies", min_sample=5,
        ),
        ReportDefinition(
            Report.INDUSTRY_SIZE_STATS.value, queries.SQL_INDUSTRY_SIZE_STATS,
            sample_column="company_count", min_sample=5,
        ),
        ReportDefinition(
            Report.COMPANY_STATS.value, queries.SQL_COMPANY_STATS,
            sample_column="total_h1b_applications", min_sample=5,
            ratios=(
                Ratio("h1b_approval_rate", "approved_h1b_applications", "total_h1b_applications"),
            ),
        ),
        ReportDefinition(
            Report.SALARY_DISTRIBUTION.value, queries.SQL_SALARY_DISTRIBUTION,
            sample_column="job_count", min_sample=5,
        ),
        ReportDefinition(
            Report.H1B_TRENDS.value, queries.SQL_H1B_TRENDS,
            sample_column="applications", min_sample=5,
            ratios=(Ratio("approval_rate", "approvals", "applications"),),
        ),
    )
}
