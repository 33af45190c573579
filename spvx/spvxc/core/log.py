# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
structlog configuration for the CLI.

Library modules only create loggers (`structlog.get_logger(__name__)`); the
driver decides where events go. Output goes to stderr so stdout stays
machine-readable for `--json`/`--print-summary`.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_LEVELS = {
	"debug": logging.DEBUG,
	"info": logging.INFO,
	"warning": logging.WARNING,
	"error": logging.ERROR,
}


def configure_logging(level: str = "warning", *, stream: TextIO | None = None) -> None:
	"""Route structlog events at or above `level` to `stream` (default stderr)."""
	structlog.configure(
		processors=[
			structlog.processors.add_log_level,
			structlog.processors.TimeStamper(fmt="iso"),
			structlog.dev.ConsoleRenderer(colors=False),
		],
		wrapper_class=structlog.make_filtering_bound_logger(_LEVELS[level]),
		context_class=dict,
		logger_factory=structlog.PrintLoggerFactory(file=stream if stream is not None else sys.stderr),
		cache_logger_on_first_use=False,
	)
