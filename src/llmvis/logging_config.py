# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge. Terminal: ConsoleRenderer, pipelines: JSONRenderer.

Leaf module: no llmvis imports. Call once from the CLI before any analysis.
Library callers that never configure logging get stdlib defaults.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers that are chatty at INFO (one line per HTTP request)
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def configure(*, json_output: bool = False, level: str | int = "INFO") -> None:
    """Route stdlib log records through a structlog ProcessorFormatter on stderr.

    Args:
        json_output: True for JSON lines (machine consumers), False for human-readable output.
        level: Root logger level name or number (default INFO).
    """
    # llmvis modules log through stdlib loggers only; these run on every foreign record
    pre_chain: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)
