"""
Upcoming Lessons: calendar lessons merged with their payment status.

Usage:
    python scripts/upcoming_lessons.py
    python scripts/upcoming_lessons.py --days 7
    python scripts/upcoming_lessons.py --debug

Output (JSON to stdout):
    {
        "generated_at": "<ISO 8601 UTC>",
        "window_days": int,
        "lesson_count": int,
        "unpaid_count": int,
        "lessons": [ { lessonKey, id, summary, start, end, duration_minutes,
                       location, is_all_day, link, paymentStatus, paymentUpdated } ]
    }
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lessonbook.base import BaseScript
from lessonbook.models import UNPAID_STATUS


class UpcomingLessons(BaseScript):
    """Lists upcoming lessons with their payment status."""

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--days", type=int, default=None, metavar="N",
            help="How many days ahead to look (default: LESSONBOOK_WINDOW_DAYS, 30)",
        )

    def run(self) -> dict[str, Any]:
        days = self.settings.window_days if self.args.days is None else self.args.days
        self.logger.info("Fetching lessons for the next %d day(s)…", days)

        lessons = self.services.lessons.list_next(days)
        unpaid = [l for l in lessons if l.payment_status == UNPAID_STATUS]
        self.logger.info("%d lesson(s), %d without a recorded payment", len(lessons), len(unpaid))

        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "window_days": days,
            "lesson_count": len(lessons),
            "unpaid_count": len(unpaid),
            "lessons": [l.to_dict() for l in lessons],
        }


if __name__ == "__main__":
    UpcomingLessons.main()
