#!/usr/bin/env python3
"""
scripts/warm_cache.py — Run every dashboard report query once and report the outcome.

Useful after a schema or data load to confirm each report still computes:
    python scripts/warm_cache.py

Connects with DATABASE_URL from .env, runs the full warm, prints one line per
report and exits with status 1 if any report failed.
"""
import asyncio
import logging
import sys
from pathlib import Path

# Make the project root importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from h1b_dashboard.cache_manager import ReportCacheManager
from h1b_dashboard.config import settings
from h1b_dashboard.routes import REPORT_ENDPOINTS

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


async def warm() -> bool:
    manager = ReportCacheManager.from_settings(settings)
    await manager.database.connect()
    if not manager.database.is_available():
        logger.error("Database unavailable; nothing to warm.")
        return False

    try:
        outcome = await manager.warm_all()
        paths = {report.value: path for path, report in REPORT_ENDPOINTS.items()}
        for entry in manager.status():
            name = entry["report"]
            mark = "ok    " if outcome.get(name) else "FAILED"
            logger.info(
                "%s %-22s %-32s rows=%s",
                mark, name, paths.get(name, "-"), entry["rows"],
            )
    finally:
        await manager.shutdown()

    return all(outcome.values())


def main():
    logger.info("=== Cache warm started ===")
    logger.info("Database        : %s", settings.database_url.split("@")[-1])
    ok = asyncio.run(warm())
    logger.info("=== Cache warm %s ===", "complete" if ok else "finished with failures")
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
