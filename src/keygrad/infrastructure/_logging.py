"""
Package logging helper.

All keygrad loggers live under the `keygrad` namespace. The namespace root
gets a single stream handler the first time a logger is requested; its level
comes from the `KEYGRAD_LOG_LEVEL` environment variable (default WARNING).
"""

import logging
import os

_ROOT_NAME = "keygrad"
_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"
_LEVEL_ENV = "KEYGRAD_LOG_LEVEL"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(_ROOT_NAME)
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        root.propagate = False
        level = os.getenv(_LEVEL_ENV, "WARNING").upper()
        root.setLevel(getattr(logging, level, logging.WARNING))
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the keygrad namespace."""
    _configure_root()
    if name == _ROOT_NAME or name.startswith(_ROOT_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_NAME}.{name}")
