"""
students.py: show or replace the student roster.

--save reads a JSON file holding either {"students": [...]} or a bare list of
{id, name, price} objects. price may be omitted (defaults to 170). The save
is conditional on the roster revision read just before, so a concurrent edit
fails instead of being overwritten.

Usage:
    python scripts/students.py
    python scripts/students.py --save /tmp/students.json

Output (JSON to stdout):
    { "count": int, "students": [ { id, name, price } ], "revision": "..." }
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lessonbook.base import BaseScript
from lessonbook.errors import InvalidInput


def _read_payload(path: Path) -> Any:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise InvalidInput(f"Could not read students from {path}: {exc}") from exc
    if isinstance(payload, dict):
        if "students" not in payload:
            raise InvalidInput('Expected {"students": [...]} or a list')
        return payload["students"]
    return payload


class Students(BaseScript):
    """Shows or replaces the student roster."""

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--save", type=Path, metavar="FILE",
            help="Replace the roster with the students in this JSON file.",
        )

    def run(self) -> dict[str, Any]:
        roster = self.services.roster

        if self.args.save:
            students = _read_payload(self.args.save)
            _, revision = roster.load_with_revision()
            roster.save(students, revision)

        students, revision = roster.load_with_revision()
        self.logger.info("Roster has %d student(s)", len(students))
        return {
            "count": len(students),
            "students": [s.to_dict() for s in students],
            "revision": revision,
        }


if __name__ == "__main__":
    Students.main()
