"""Example: drive the service layer directly, without Flask.

Controllers are thin; scanning, statistics and edits all live in services.
"""

import importlib
import sys

from dotenv import load_dotenv

from config import get_settings_module

from src.campus_attendance.campus_attendance.container import build_container


def main(event_id: int, barcode: str) -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    result = container.scan_service.record_scan(event_id, barcode)
    print(f"{result.student_name} ({result.student_number}): {result.action.value} at {result.timestamp:%H:%M:%S}")

    stats = container.report_service.compute_event_stats(event_id)
    print(f"{stats.attended}/{stats.total_eligible} attended ({stats.percentage}%)")


if __name__ == "__main__":
    main(int(sys.argv[1]), sys.argv[2])
