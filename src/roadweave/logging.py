from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

_LEVEL_MAP = {
    "none": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

# silent unless an application installs a handler
logging.getLogger("roadweave").addHandler(logging.NullHandler())


def _normalize(level: Optional[str]) -> int:
    if not level:
        return logging.WARNING
    return _LEVEL_MAP.get(str(level).strip().lower(), logging.WARNING)


def level_from_cfg(cfg: Any) -> int:
    """Logging level named by ``cfg.log_level`` (model or mapping)."""
    if cfg is None:
        return logging.WARNING
    if isinstance(cfg, Mapping):
        return _normalize(cfg.get("log_level"))
    return _normalize(getattr(cfg, "log_level", None))


def init_logging(level: int | str | None = None) -> None:
    """
    Install one root stream handler and set the ``roadweave`` level.
    Repeated calls may change the level but never add a second handler.
    """
    lvl = _normalize(level) if isinstance(level, str) or level is None else int(level)

    fmt = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    datefmt = "%H:%M:%S"

    root = logging.getLogger()
    if not any(getattr(h, "_roadweave", False) for h in root.handlers):
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        h._roadweave = True
        root.addHandler(h)
    root.setLevel(lvl)

    logging.getLogger("roadweave").setLevel(lvl)


def init_logging_from_cfg(cfg: Any) -> None:
    init_logging(level_from_cfg(cfg))
