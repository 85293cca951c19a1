"""Cron entry point for the nightly bulk logout.

Example crontab line (server clock in UTC, window in the configured zone)::

    */10 13-14 * * * cd /srv/club-attendance && python scripts/force_logout.py
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.club_attendance.club_attendance.common.datetime_utils import load_timezone, now_utc
from src.club_attendance.club_attendance.container import build_container
from src.club_attendance.club_attendance.system.service import logout_window_open


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"))

    now = now_utc()
    if not logout_window_open(
        now,
        tz=load_timezone(settings.TIMEZONE),
        start=settings.LOGOUT_WINDOW_START,
        end=settings.LOGOUT_WINDOW_END,
    ):
        print(f"SKIP: {now.isoformat()} is outside {settings.LOGOUT_WINDOW_START}-{settings.LOGOUT_WINDOW_END}")
        return 0

    container = build_container(db_config=settings.DB_CONFIG, timezone=settings.TIMEZONE)
    result = container.bulk_logout_service.force_logout_all(timeout=60)
    print(f"{result.status.value.upper()}: {result.message}")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
