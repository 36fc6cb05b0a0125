# -*- coding: utf-8 -*-
from __future__ import annotations
import json, logging, os, sys
from typing import Any, Dict


class _JSONFormatter(logging.Formatter):
    def format(self, record):
        base = {"level": record.levelname, "name": record.name, "msg": record.getMessage()}
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            base.update(extra)
        return json.dumps(base, ensure_ascii=False)


def get_logger(name: str, cfg: Dict[str, Any] | None = None) -> logging.Logger:
    """Logger with its own stdout handler; env vars override ``cfg["logging"]``."""
    level = "INFO"
    fmt = "text"
    if cfg:
        lg = cfg.get("logging", {})
        level = lg.get("level", level)
        fmt = lg.get("format", fmt)
    level = os.getenv("ROADWEAVE_LOG_LEVEL", level)
    fmt = os.getenv("ROADWEAVE_LOG_FORMAT", fmt)

    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
        h = logging.StreamHandler(stream=sys.stdout)
        if fmt == "json":
            h.setFormatter(_JSONFormatter())
        else:
            h.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(h)
        logger.propagate = False
    return logger
