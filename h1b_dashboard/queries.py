"""
h1b_dashboard/queries.py — SQL for every dashboard report.

All statements are constants: no parameters, read-only, aggregation pushed
into PostgreSQL. Each grouped query carries its minimum-sample guard
(HAVING / WHERE) and every ratio guards its denominator with NULLIF or CASE.

Tables: h1b, companies, company_industries, employee_counts, postings, salary.
h1b.status = 1 means the application was approved.
"""

# Full state name → USPS abbreviation (50 states + DC).
STATE_ABBREVIATIONS: dict[str, str] = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "Florida": "FL", "Georgia": "GA", "Hawaii": "HI", "Idaho": "ID",
    "Illinois": "IL", "Indiana": "IN", "Iowa": "IA", "Kansas": "KS",
    "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME", "Maryland": "MD",
    "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN", "Mississippi": "MS",
    "Missouri": "MO", "Montana": "MT", "Nebraska": "NE", "Nevada": "NV",
    "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM", "New York": "NY",
    "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH", "Oklahoma": "OK",
    "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC",
    "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX", "Utah": "UT",
    "Vermont": "VT", "Virginia": "VA", "Washington": "WA", "West Virginia": "WV",
    "Wisconsin": "WI", "Wyoming": "WY", "District of Columbia": "DC",
}


def _state_mapping_values() -> str:
    """Render STATE_ABBREVIATIONS as a SQL VALUES list."""
    return ",\n    ".join(
        f"('{name}', '{abbr}')" for name, abbr in STATE_ABBREVIATIONS.items()
    )


# Salary rows we trust: yearly figures inside a sane band.
_YEARLY_SALARY_FILTER = (
    "s.pay_period = 'YEARLY'\n"
    "  AND s.min_salary > 0\n"
    "  AND s.max_salary < 1000000"
)


SQL_INDUSTRY_APPROVAL = """
SELECT
  ci.industry,
  SUM(h.total_apps) AS total_applications,
  SUM(h.approved_apps) AS approved_applications,
  ROUND(
    CASE
      WHEN SUM(h.total_apps) > 0 THEN
        (SUM(h.approved_apps)::DECIMAL * 100.0) / SUM(h.total_apps)
      ELSE 0
    END,
    2
  ) AS approval_rate
FROM (
  SELECT
    matched_company_id,
    COUNT(*) AS total_apps,
    SUM(CASE WHEN status = 1 THEN 1 ELSE 0 END) AS approved_apps
  FROM h1b
  WHERE matched_company_id IS NOT NULL
    AND status IS NOT NULL
  GROUP BY matched_company_id
) h
JOIN companies c ON h.matched_company_id = c.company_id
JOIN company_industries ci ON c.company_id = ci.company_id
WHERE ci.industry IS NOT NULL
GROUP BY ci.industry
HAVING SUM(h.total_apps) >= 5
ORDER BY approval_rate DESC
LIMIT 10;
"""

SQL_INDUSTRY_SALARY = f"""
WITH yearly_salaries AS (
  SELECT s.min_salary, s.max_salary, ci.industry
  FROM salary s
  JOIN postings p ON s.job_id = p.job_id
  JOIN company_industries ci ON p.company_id = ci.company_id
  WHERE {_YEARLY_SALARY_FILTER}
)
SELECT
  industry,
  COUNT(*) AS job_count,
  ROUND(AVG(min_salary)) AS avg_min_salary,
  ROUND(AVG(max_salary)) AS avg_max_salary,
  ROUND((AVG(min_salary) + AVG(max_salary)) / 2) AS avg_mid_salary
FROM yearly_salaries
GROUP BY industry
HAVING COUNT(*) >= 10
ORDER BY avg_mid_salary DESC;
"""

SQL_COMPANY_SIZE_STATS = """
WITH company_size_groups AS (
  SELECT
    c.company_id,
    CASE
      WHEN ec.employee_count < 100 THEN 'Small (<100)'
      WHEN ec.employee_count < 1000 THEN 'Medium (100-999)'
      WHEN ec.employee_count < 10000 THEN 'Large (1000-9999)'
      ELSE 'Huge (10000+)'
    END AS size_category
  FROM companies c
  JOIN employee_counts ec ON c.company_id = ec.company_id
)
SELECT
  csg.size_category,
  ci.industry,
  COUNT(DISTINCT h.matched_company_id) AS companies_count,
  COUNT(*) AS total_applications,
  ROUND(AVG(CASE WHEN h.status = 1 THEN 1 ELSE 0 END) * 100, 2) AS approval_rate
FROM h1b h
JOIN company_size_groups csg ON h.matched_company_id = csg.company_id
JOIN company_industries ci ON csg.company_id = ci.company_id
WHERE h.matched_company_id IS NOT NULL
GROUP BY csg.size_category, ci.industry
HAVING COUNT(*) >= 5
ORDER BY csg.size_category, approval_rate DESC;
"""

SQL_NATIONALITY_STATS = """
WITH nationality_stats AS (
  SELECT
    COALESCE(country_of_birth, country_of_nationality) AS country,
    COUNT(*) AS total_applications,
    SUM(CASE WHEN status = 1 THEN 1 ELSE 0 END) AS approved_applications
  FROM h1b
  WHERE COALESCE(country_of_birth, country_of_nationality) IS NOT NULL
  GROUP BY COALESCE(country_of_birth, country_of_nationality)
  HAVING COUNT(*) >= 5
)
SELECT
  country,
  total_applications,
  approved_applications,
  ROUND(approved_applications::DECIMAL * 100.0 / NULLIF(total_applications, 0), 2) AS approval_rate
FROM nationality_stats
ORDER BY total_applications DESC;
"""

SQL_REMOTE_WORK_STATS = """
SELECT
  CASE
    WHEN p.remote_allowed = 1 THEN 'Remote Allowed'
    ELSE 'Not Specified'
  END AS work_arrangement,
  COUNT(*) AS total_applications,
  ROUND(AVG(CASE WHEN h.status = 1 THEN 1 ELSE 0 END) * 100, 2) AS approval_rate,
  ROUND(AVG((s.min_salary + s.max_salary) / 2)) AS avg_salary,
  COUNT(DISTINCT p.company_id) AS unique_companies
FROM h1b h
JOIN postings p ON h.matched_company_id = p.company_id
JOIN salary s ON p.job_id = s.job_id
WHERE s.pay_period = 'YEARLY'
GROUP BY
  CASE
    WHEN p.remote_allowed = 1 THEN 'Remote Allowed'
    ELSE 'Not Specified'
  END
HAVING COUNT(*) >= 5
ORDER BY total_applications DESC;
"""

SQL_JOB_LEVEL_STATS = """
WITH job_characteristics AS (
  SELECT
    CASE
      WHEN LOWER(p.title) LIKE '%senior%' OR LOWER(p.title) LIKE '%sr%' OR LOWER(p.title) LIKE '%lead%' THEN 'Senior Level'
      WHEN LOWER(p.title) LIKE '%junior%' OR LOWER(p.title) LIKE '%jr%' OR LOWER(p.title) LIKE '%associate%' THEN 'Junior Level'
      ELSE 'Mid Level'
    END AS seniority_level,
    p.work_type,
    s.min_salary,
    s.max_salary,
    ci.industry
  FROM postings p
  JOIN salary s ON p.job_id = s.job_id
  JOIN company_industries ci ON p.company_id = ci.company_id
  WHERE s.pay_period = 'YEARLY'
)
SELECT
  seniority_level,
  work_type,
  industry,
  COUNT(*) AS job_count,
  ROUND(AVG(min_salary)) AS avg_min_salary,
  ROUND(AVG(max_salary)) AS avg_max_salary,
  ROUND(AVG(max_salary - min_salary)) AS avg_salary_range
FROM job_characteristics
GROUP BY seniority_level, work_type, industry
HAVING COUNT(*) >= 5
ORDER BY seniority_level, job_count DESC;
"""

SQL_COMPANY_TIER_STATS = """
WITH company_tiers AS (
  SELECT
    c.company_id,
    ci.industry,
    CASE
      WHEN ec.employee_count < 100 THEN 'Startup'
      WHEN ec.employee_count < 1000 THEN 'SMB'
      ELSE 'Enterprise'
    END AS company_size,
    ec.employee_count,
    ec.follower_count
  FROM companies c
  JOIN employee_counts ec ON c.company_id = ec.company_id
  JOIN company_industries ci ON c.company_id = ci.company_id
)
SELECT
  ct.industry,
  ct.company_size,
  COUNT(DISTINCT ct.company_id) AS company_count,
  ROUND(AVG(ct.follower_count)) AS avg_followers,
  ROUND(AVG(ct.employee_count)) AS avg_employees,
  COUNT(DISTINCT p.job_id) AS total_jobs,
  ROUND(AVG(s.max_salary)) AS avg_max_salary,
  ROUND(AVG(CASE WHEN h.status = 1 THEN 1 ELSE 0 END) * 100, 2) AS h1b_approval_rate
FROM company_tiers ct
LEFT JOIN postings p ON ct.company_id = p.company_id
LEFT JOIN salary s ON p.job_id = s.job_id
LEFT JOIN h1b h ON p.company_id = h.matched_company_id
WHERE s.pay_period = 'YEARLY'
GROUP BY ct.industry, ct.company_size
HAVING COUNT(DISTINCT ct.company_id) >= 5
ORDER BY company_count DESC, avg_max_salary DESC;
"""

SQL_GENDER_STATS = """
SELECT
  gender,
  COUNT(*) AS total_applications,
  SUM(CASE WHEN status = 1 THEN 1 ELSE 0 END) AS approved_applications,
  ROUND(
    SUM(CASE WHEN status = 1 THEN 1 ELSE 0 END)::DECIMAL * 100.0 / NULLIF(COUNT(*), 0),
    2
  ) AS approval_rate
FROM h1b
WHERE gender IS NOT NULL
GROUP BY gender
HAVING COUNT(*) >= 5
ORDER BY total_applications DESC;
"""

SQL_STATE_STATS = f"""
WITH state_mapping (state_name, state_abbr) AS (
  VALUES
    {_state_mapping_values()}
),
state_metrics AS (
  SELECT
    c.company_id,
    c.state,
    p.job_id,
    (s.min_salary + s.max_salary) / 2 AS avg_salary,
    ci.industry
  FROM companies c
  JOIN postings p ON c.company_id = p.company_id
  JOIN salary s ON p.job_id = s.job_id
  JOIN company_industries ci ON c.company_id = ci.company_id
  WHERE s.pay_period = 'YEARLY'
    AND c.state IS NOT NULL
)
SELECT
  COALESCE(sm.state_abbr, m.state) AS state,
  COUNT(DISTINCT m.company_id) AS num_companies,
  COUNT(DISTINCT m.job_id) AS num_jobs,
  ROUND(AVG(m.avg_salary)) AS avg_salary,
  STRING_AGG(DISTINCT m.industry, ', ' ORDER BY m.industry) AS top_industries
FROM state_metrics m
LEFT JOIN state_mapping sm ON LOWER(m.state) = LOWER(sm.state_name)
GROUP BY COALESCE(sm.state_abbr, m.state)
HAVING COUNT(DISTINCT m.company_id) >= 5
ORDER BY num_jobs DESC;
"""

SQL_INDUSTRY_SIZE_STATS = """
WITH industry_stats AS (
  SELECT
    ci.industry,
    COUNT(DISTINCT c.company_id) AS company_count,
    AVG(ec.employee_count) AS avg_employees
  FROM company_industries ci
  JOIN companies c ON ci.company_id = c.company_id
  JOIN employee_counts ec ON c.company_id = ec.company_id
  GROUP BY ci.industry
)
SELECT
  industry,
  company_count,
  avg_employees,
  CASE
    WHEN avg_employees > 10000 THEN 'Huge'
    WHEN avg_employees > 1000 THEN 'Large'
    WHEN avg_employees > 100 THEN 'Medium'
    ELSE 'Small'
  END AS size_category,
  ROUND(avg_employees) AS rounded_avg_employees
FROM industry_stats
WHERE company_count >= 5
ORDER BY avg_employees DESC;
"""

SQL_COMPANY_STATS = f"""
WITH company_h1b_metrics AS (
  SELECT
    matched_company_id,
    COUNT(*) AS total_apps,
    SUM(CASE WHEN status = 1 THEN 1 ELSE 0 END) AS approved_apps
  FROM h1b
  WHERE matched_company_id IS NOT NULL
    AND status IS NOT NULL
  GROUP BY matched_company_id
),
company_salary_metrics AS (
  SELECT
    p.company_id,
    ROUND(AVG(s.min_salary)) AS avg_min_salary,
    ROUND(AVG(s.max_salary)) AS avg_max_salary,
    COUNT(DISTINCT p.job_id) AS total_job_postings
  FROM postings p
  JOIN salary s ON p.job_id = s.job_id
  WHERE {_YEARLY_SALARY_FILTER}
  GROUP BY p.company_id
)
SELECT
  c.company_id,
  c.name AS company_name,
  ci.industry,
  CASE
    WHEN ec.employee_count < 100 THEN 'Startup'
    WHEN ec.employee_count < 1000 THEN 'SMB'
    ELSE 'Enterprise'
  END AS tier,
  ec.employee_count,
  ec.follower_count,
  hm.total_apps AS total_h1b_applications,
  hm.approved_apps AS approved_h1b_applications,
  ROUND((hm.approved_apps::DECIMAL * 100.0) / NULLIF(hm.total_apps, 0), 2) AS h1b_approval_rate,
  sm.avg_max_salary,
  sm.avg_min_salary,
  COALESCE(sm.total_job_postings, 0) AS total_job_postings
FROM companies c
JOIN company_industries ci ON c.company_id = ci.company_id
JOIN employee_counts ec ON c.company_id = ec.company_id
JOIN company_h1b_metrics hm ON c.company_id = hm.matched_company_id
LEFT JOIN company_salary_metrics sm ON c.company_id = sm.company_id
WHERE hm.total_apps >= 5
ORDER BY hm.total_apps DESC;
"""

SQL_SALARY_DISTRIBUTION = f"""
SELECT
  c.name AS company_name,
  ci.industry,
  ROUND(AVG(s.min_salary)) AS avg_min_salary,
  ROUND(AVG(s.max_salary)) AS avg_max_salary,
  COUNT(DISTINCT p.job_id) AS job_count,
  ec.employee_count
FROM companies c
JOIN company_industries ci ON c.company_id = ci.company_id
JOIN postings p ON c.company_id = p.company_id
JOIN salary s ON p.job_id = s.job_id
JOIN employee_counts ec ON c.company_id = ec.company_id
WHERE {_YEARLY_SALARY_FILTER}
GROUP BY c.name, ci.industry, ec.employee_count
HAVING COUNT(DISTINCT p.job_id) >= 5
ORDER BY avg_max_salary DESC;
"""

SQL_H1B_TRENDS = """
SELECT
  c.name AS company_name,
  h.lottery_year AS year,
  COUNT(*) AS applications,
  SUM(CASE WHEN h.status = 1 THEN 1 ELSE 0 END) AS approvals,
  ROUND(
    (SUM(CASE WHEN h.status = 1 THEN 1 ELSE 0 END)::DECIMAL / NULLIF(COUNT(*), 0)) * 100,
    2
  ) AS approval_rate
FROM h1b h
JOIN companies c ON h.matched_company_id = c.company_id
WHERE h.lottery_year IS NOT NULL
GROUP BY c.name, h.lottery_year
HAVING COUNT(*) >= 5
ORDER BY c.name, year;
"""
