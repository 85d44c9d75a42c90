# burnrank/ports/progress.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import ProgressEvent


class ProgressSink(Protocol):
    """Observer fed after every scanned chunk / resolved address."""

    def update(self, event: ProgressEvent) -> None: ...

    def close(self) -> None: ...


class NullProgress:
    def update(self, event: ProgressEvent) -> None: pass
    def close(self) -> None: pass
