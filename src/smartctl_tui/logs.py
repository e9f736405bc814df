from __future__ import annotations

import logging

from textual.logging import TextualHandler

from .config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach handlers to the package logger.

    The terminal belongs to the dashboard, so records go to the Textual
    devtools console and, if SMARTCTL_LOG_FILE is set, to that file.
    """
    root = logging.getLogger("smartctl_tui")
    root.setLevel(settings.log_level)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    root.addHandler(TextualHandler())
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(settings.log_file, encoding="utf-8")
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(fh)
    root.propagate = False
    return root
