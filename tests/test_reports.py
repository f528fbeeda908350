import re
from decimal import Decimal

import pytest

from h1b_dashboard import queries
from h1b_dashboard.config import Settings
from h1b_dashboard.database import Database, DatabaseUnavailableError, to_json_scalar
from h1b_dashboard.reports import REPORTS, Report, Ratio, ReportDefinition, safe_percentage


def test_catalog_covers_every_report():
    assert set(REPORTS) == {r.value for r in Report}
    assert len(REPORTS) == 13


def _sample_guards(report):
    pattern = rf"(?:HAVING|WHERE)\s+([^\n]+?)\s*>=\s*{report.min_sample}\b"
    return re.findall(pattern, report.sql)


@pytest.mark.parametrize("name", sorted(REPORTS))
def test_every_query_filters_on_its_minimum_sample(name):
    report = REPORTS[name]
    assert report.min_sample >= 5
    guards = _sample_guards(report)
    assert guards, f"{name} has no minimum-sample guard"
    assert any(
        expr == report.sample_column or f"{expr} AS {report.sample_column}" in report.sql
        for expr in guards
    ), f"{name} guard {guards} does not bound {report.sample_column}"


SALARY_BAND_REPORTS = {
    Report.INDUSTRY_SALARY.value,
    Report.COMPANY_STATS.value,
    Report.SALARY_DISTRIBUTION.value,
}


@pytest.mark.parametrize("name", sorted(SALARY_BAND_REPORTS))
def test_salary_band_reports_exclude_implausible_salaries(name):
    sql = REPORTS[name].sql
    assert "s.min_salary > 0" in sql
    assert "s.max_salary < 1000000" in sql


@pytest.mark.parametrize("name", sorted(set(REPORTS) - SALARY_BAND_REPORTS))
def test_other_salary_reports_use_yearly_pay_only(name):
    sql = REPORTS[name].sql
    if "salary" in sql:
        assert "pay_period = 'YEARLY'" in sql


@pytest.mark.parametrize("name", sorted(REPORTS))
def test_shaping_drops_rows_below_minimum_sample(name):
    report = REPORTS[name]
    rows = [
        {report.sample_column: report.min_sample - 1},
        {report.sample_column: None},
        {report.sample_column: report.min_sample},
    ]
    shaped = report.shape(rows)
    assert len(shaped) == 1
    assert all(row[report.sample_column] >= report.min_sample for row in shaped)


@pytest.mark.parametrize("numerator,denominator,expected", [
    (4, 6, 66.67),
    (3, 3, 100.0),
    (0, 5, 0.0),
    (0, 0, 0.0),
    (5, None, 0.0),
    (None, 5, 0.0),
])
def test_safe_percentage(numerator, denominator, expected):
    result = safe_percentage(numerator, denominator)
    assert result == expected
    assert isinstance(result, float)


def test_zero_denominator_ratio_yields_zero():
    report = ReportDefinition(
        "synthetic", "SELECT 1", sample_column="n", min_sample=0,
        ratios=(Ratio("rate", "hits", "total"),),
    )
    assert report.shape([{"n": 0, "hits": 0, "total": 0}]) == [
        {"n": 0, "hits": 0, "total": 0, "rate": 0.0}
    ]


def test_engine_ratios_default_to_zero_when_null():
    report = REPORTS[Report.COMPANY_TIER_STATS.value]
    shaped = report.shape([{"company_count": 5, "h1b_approval_rate": None}])
    assert shaped[0]["h1b_approval_rate"] == 0.0
    assert isinstance(shaped[0]["h1b_approval_rate"], float)


def test_shaping_does_not_mutate_input_rows():
    report = REPORTS[Report.GENDER_STATS.value]
    raw = [{"gender": "M", "total_applications": 8, "approved_applications": 2, "approval_rate": None}]
    shaped = report.shape(raw)
    assert raw[0]["approval_rate"] is None
    assert shaped[0]["approval_rate"] == 25.0


def test_state_mapping_is_complete():
    assert len(queries.STATE_ABBREVIATIONS) == 51
    assert "('California', 'CA')" in queries.SQL_STATE_STATS
    assert "('District of Columbia', 'DC')" in queries.SQL_STATE_STATS
    assert "LOWER(m.state) = LOWER(sm.state_name)" in queries.SQL_STATE_STATS


def test_decimal_values_become_json_numbers():
    assert to_json_scalar(Decimal("66.67")) == 66.67
    assert isinstance(to_json_scalar(Decimal("120000")), int)
    assert to_json_scalar(Decimal("50.00")) == 50.0
    assert isinstance(to_json_scalar(Decimal("50.00")), float)
    assert isinstance(to_json_scalar(Decimal("1E+3")), int)
    assert to_json_scalar("Tech") == "Tech"
    assert to_json_scalar(None) is None


async def test_fetch_without_pool_raises():
    database = Database(Settings())
    assert not database.is_available()
    with pytest.raises(DatabaseUnavailableError):
        await database.fetch("SELECT 1")
    await database.close()
