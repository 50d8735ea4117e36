from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from power_bench.core.logging_config import configure_logging
from power_bench.progress.status_line import LiveStatusLine


LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def add_common_cli_arguments(
    parser: argparse.ArgumentParser,
    *,
    include_config: bool = True,
    include_console_control: bool = True,
    default_console_output: bool = True,
) -> None:
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default="info",
        help="Logging verbosity",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to write logs",
    )

    if include_config:
        parser.add_argument(
            "--config",
            type=Path,
            default=None,
            help="Config file (key = value) whose values CLI arguments override",
        )

    if include_console_control:
        console_group = parser.add_mutually_exclusive_group()
        console_group.add_argument(
            "--console",
            dest="console_output",
            action="store_true",
            default=default_console_output,
            help="Log to console (default)",
        )
        console_group.add_argument(
            "--no-console",
            dest="console_output",
            action="store_false",
            help="Log to file only (no console output)",
        )


def setup_cli_logging(
    args: argparse.Namespace,
    *,
    status_line: Optional[LiveStatusLine] = None,
) -> None:
    configure_logging(
        LOG_LEVELS.get(getattr(args, "log_level", "info"), logging.INFO),
        force=True,
        console=getattr(args, "console_output", True),
        log_file=getattr(args, "log_file", None),
        status_line=status_line,
    )


__all__ = ["LOG_LEVELS", "add_common_cli_arguments", "setup_cli_logging"]
