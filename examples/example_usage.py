"""Example: using the service layer without Flask.

Controllers stay thin; the attendance rules live in the services.
"""

import importlib
from datetime import timedelta

from config import get_settings_module

from src.club_attendance.club_attendance.common.datetime_utils import local_today
from src.club_attendance.club_attendance.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, timezone=settings.TIMEZONE)

    result = container.punch_service.record_punch("04:A3:1F:22")
    print(result.to_kiosk())

    today = local_today(container.timezone)
    for day, rollup in container.aggregator.rollup(today - timedelta(days=6), today).items():
        print(day.isoformat(), rollup.to_dict())


if __name__ == "__main__":
    main()
