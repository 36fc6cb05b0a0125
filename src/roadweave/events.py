from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted at every suspension point of a generation run."""

    progress: float
    status: Optional[str] = None
    stage: str = ""


class GenerationCancelled(RuntimeError):
    """Raised inside a run whose :class:`CancelToken` was cancelled."""


class CancelToken:
    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise GenerationCancelled(self.reason or "generation cancelled")


__all__ = ["ProgressEvent", "GenerationCancelled", "CancelToken"]
