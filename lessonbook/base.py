"""
BaseScript: abstract base class for the Lessonbook operator scripts.

Provides:
  - Rotating file logger + stderr handler, scoped to <log_dir>/<script>.log
  - add_arguments() hook for script-specific CLI flags
  - Abstract run() method that must return a JSON-serialisable dict
  - main() classmethod: parses args, runs the script, prints JSON to stdout
  - Lessonbook errors rendered as {"error": message} with exit status 1

Subclass usage:
    class MyScript(BaseScript):
        def run(self) -> dict:
            self.logger.info("doing work...")
            return {"result": "done"}

    if __name__ == "__main__":
        MyScript.main()
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from abc import ABC, abstractmethod
from logging.handlers import RotatingFileHandler
from typing import Any, Optional, Sequence

from .config import Settings
from .container import Services, build_services
from .errors import LessonbookError


class BaseScript(ABC):
    """Abstract base for all Lessonbook scripts."""

    def __init__(
        self,
        args: argparse.Namespace,
        settings: Settings,
        log_level: int = logging.INFO,
    ) -> None:
        # Derive script name from the concrete class name (lowercased)
        self.script_name: str = type(self).__name__.lower()
        self.args = args
        self.settings = settings
        self.logger: logging.Logger = self._setup_logger(log_level)
        self._services: Optional[Services] = None

    @property
    def services(self) -> Services:
        """Object graph, built on first use so argument errors never touch the network."""
        if self._services is None:
            self._services = build_services(self.settings)
        return self._services

    # ── Logging ───────────────────────────────────────────────────────────────

    def _setup_logger(self, log_level: int) -> logging.Logger:
        """
        Configure the 'lessonbook' logger tree to write to both:
          - <log_dir>/<script_name>.log  (rotating, max 2 MB × 5 backups)
          - stderr, so stdout stays pure JSON
        """
        self.settings.log_dir.mkdir(parents=True, exist_ok=True)

        logger = logging.getLogger("lessonbook")
        logger.setLevel(log_level)

        # Avoid adding duplicate handlers if main() runs twice in one process
        if logger.handlers:
            return logger.getChild(self.script_name)

        fmt = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        file_handler = RotatingFileHandler(
            self.settings.log_dir / f"{self.script_name}.log",
            maxBytes=2_000_000,   # 2 MB per file
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(fmt)

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(fmt)

        logger.addHandler(file_handler)
        logger.addHandler(stream_handler)
        return logger.getChild(self.script_name)

    # ── Abstract interface ────────────────────────────────────────────────────

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Register script-specific flags. Default: none."""

    @abstractmethod
    def run(self) -> dict[str, Any]:
        """
        Execute the script.

        Must return a dict that is JSON-serialisable (str keys, JSON-safe values).
        datetime objects are serialised via default=str.
        """

    # ── CLI entrypoint ────────────────────────────────────────────────────────

    @classmethod
    def main(cls, argv: Optional[Sequence[str]] = None) -> None:
        """
        Standard CLI entrypoint. Wire up as:
            if __name__ == "__main__":
                MyScript.main()
        """
        doc = (cls.__doc__ or cls.__name__).strip().splitlines()[0]
        parser = argparse.ArgumentParser(description=doc)
        parser.add_argument(
            "--debug", action="store_true", help="Enable DEBUG-level logging"
        )
        cls.add_arguments(parser)
        args = parser.parse_args(argv)

        try:
            settings = Settings.from_env()
        except LessonbookError as exc:
            print(json.dumps({"error": str(exc)}))
            sys.exit(1)

        log_level = logging.DEBUG if args.debug else logging.INFO
        script = cls(args, settings, log_level=log_level)

        t0 = time.monotonic()
        try:
            result = script.run()
        except LessonbookError as exc:
            elapsed = time.monotonic() - t0
            script.logger.error("%s after %.2fs: %s", type(exc).__name__, elapsed, exc)
            print(json.dumps({"error": str(exc)}, ensure_ascii=False))
            sys.exit(1)
        except Exception:
            elapsed = time.monotonic() - t0
            script.logger.exception("Script failed after %.2fs", elapsed)
            raise

        elapsed = time.monotonic() - t0
        script.logger.info("Completed in %.2fs", elapsed)
        print(json.dumps(result, indent=2, default=str, ensure_ascii=False))
