from __future__ import annotations

import argparse
from pathlib import Path

from player_notify.ipc import CTL_ACTIONS


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="player-notify: now-playing notification for MPRIS players"
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml", default=None)
    parser.add_argument("--log-level", default="INFO", help="Python log level (INFO, DEBUG, ...)")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Run the notification daemon")
    subparsers.add_parser("doctor", help="Check runtime dependencies and config")
    subparsers.add_parser("status", help="Show player and notification state from the daemon")

    ctl = subparsers.add_parser("ctl", help="Deliver a notification action to the daemon")
    ctl.add_argument("action", choices=list(CTL_ACTIONS))

    return parser.parse_args(argv)
