"""
SizeKeeper - Entry point.

Run with:  python -m sizekeeper
"""

import logging
import sys

from sizekeeper.config import TrackerConfig
from sizekeeper.core.win32_system import Win32WindowSystem
from sizekeeper.tracking import SizeTracker


class SafeStreamHandler(logging.StreamHandler):
    """Handler that replaces unencodable characters instead of crashing."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            enc = getattr(self.stream, "encoding", "utf-8") or "utf-8"
            safe = msg.encode(enc, errors="replace").decode(enc, errors="replace")
            self.stream.write(safe + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging() -> None:
    """Configure logging for the tracker."""
    fmt = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
    handler = SafeStreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    # Polling and per-event chatter
    logging.getLogger("sizekeeper.tracking.identity").setLevel(logging.INFO)
    logging.getLogger("sizekeeper.core.win32_system").setLevel(logging.INFO)


def main() -> None:
    setup_logging()

    config = TrackerConfig()
    system = Win32WindowSystem()
    system.install()

    tracker = SizeTracker(system, config)
    tracker.enable()

    print("=" * 60)
    print("  SizeKeeper running. Press Ctrl+C to stop.")
    print(f"  State file: {config.data_file}")
    print(f"  Tracked windows: {len(tracker.registry.tracked_windows)}")
    print("=" * 60 + "\n")

    try:
        system.run()
    finally:
        # Flush saved sizes even if the loop died
        tracker.disable()
        system.uninstall()


if __name__ == "__main__":
    main()
