# sticker_sheet/core/logs.py
# SPDX-License-Identifier: Apache-2.0
"""Process-wide logging setup.

Modules log through `logging.getLogger(__name__)`; only entrypoints (the app
factory and the CLI) call `configure_logging()`. Repeated calls are no-ops
apart from adjusting the level, so tests can build many apps.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Attach one stream handler to the package logger and set its level."""
    root = logging.getLogger("sticker_sheet")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
