"""
record_payment.py: set the payment status of one lesson.

The lesson key is the calendar event id shown as "lessonKey" by
upcoming_lessons.py.

Usage:
    python scripts/record_payment.py --lesson-key abc123
    python scripts/record_payment.py --lesson-key abc123 --status "paid (cash)"
    python scripts/record_payment.py --lesson-key abc123 --retry-on-conflict

Output (JSON to stdout):
    { "lessonKey": "...", "status": "...", "updated": "<ISO 8601 UTC>" }
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lessonbook.base import BaseScript
from lessonbook.errors import RevisionConflict


class RecordPayment(BaseScript):
    """Records a payment status for a lesson in the payment ledger."""

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--lesson-key", required=True, help="Calendar event id of the lesson.")
        parser.add_argument("--status", default="paid", help="Payment status label (default: paid).")
        parser.add_argument(
            "--retry-on-conflict", action="store_true",
            help="If someone else updated the ledger meanwhile, re-read it and try once more.",
        )

    def run(self) -> dict[str, Any]:
        ledger = self.services.ledger
        try:
            record = ledger.record_payment(self.args.lesson_key, self.args.status)
        except RevisionConflict:
            if not self.args.retry_on_conflict:
                raise
            # record_payment() re-reads, so the other writer's change is kept
            self.logger.warning("Ledger changed while recording; retrying once")
            record = ledger.record_payment(self.args.lesson_key, self.args.status)

        return {
            "lessonKey": self.args.lesson_key,
            "status": record.status,
            "updated": record.updated_at.isoformat() if record.updated_at else None,
        }


if __name__ == "__main__":
    RecordPayment.main()
