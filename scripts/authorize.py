"""
authorize.py: connect Lessonbook to the tutor's Google Calendar.

Step 1: run without arguments and open the printed URL in a browser.
Step 2: after consenting, Google redirects to GOOGLE_REDIRECT_URI with
        ?code=...; pass that code back with --code. The refresh token is
        stored in the "credentials" document.

Usage:
    python scripts/authorize.py
    python scripts/authorize.py --code 4/0AX4XfW...
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lessonbook.base import BaseScript


class Authorize(BaseScript):
    """Prints the Google consent URL or completes the code exchange."""

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--code", help="Authorization code from the OAuth redirect.")

    def run(self) -> dict[str, Any]:
        lifecycle = self.services.lifecycle

        if self.args.code is None:
            url = lifecycle.authorization_url()
            self.logger.info("Open the authorization URL in a browser to continue")
            return {"authorization_url": url}

        record = lifecycle.complete_authorization(self.args.code)
        return {
            "authorized": True,
            "scope": record.scope,
            "refresh_token": record.masked_token,
        }


if __name__ == "__main__":
    Authorize.main()
