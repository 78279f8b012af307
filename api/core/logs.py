"""
Root logging setup for the API process.

Modules log through `logging.getLogger(__name__)` with short
`event_name key=value` messages; this only decides where they go.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_HANDLER_NAME = "agromind-api"


def configure_logging(level: str = "INFO") -> None:
    resolved = logging.getLevelName((level or "").strip().upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    root = logging.getLogger()
    root.setLevel(resolved)

    # uvicorn reload and repeated create_app() calls must not stack handlers.
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return None

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
