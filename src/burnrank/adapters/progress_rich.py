from __future__ import annotations
from rich.console import Console
from rich.progress import (
    Progress, BarColumn, TextColumn, TimeElapsedColumn,
    TimeRemainingColumn, MofNCompleteColumn, SpinnerColumn, TaskID
)
from ..domain.models import ProgressEvent
from ..ports.progress import ProgressSink

class RichProgress(ProgressSink):
    """One bar per phase: chunks while scanning, addresses while resolving."""

    def __init__(self, chain_name: str, console: Console | None = None) -> None:
        self.chain_name = chain_name
        self.progress = Progress(SpinnerColumn(),
                                 TextColumn("[bold]{task.description}[/]"),
                                 BarColumn(),
                                 MofNCompleteColumn(),
                                 TextColumn("•"),
                                 TimeElapsedColumn(),
                                 TextColumn("→"),
                                 TimeRemainingColumn(),
                                 TextColumn(" • {task.fields[info]}"),
                                 console=console,
                                 transient=False,
                                 expand=True,
                                 )
        self._tasks: dict[str, TaskID] = {}
        self._started = False

    def _task(self, event: ProgressEvent) -> TaskID:
        if not self._started:
            self.progress.start(); self._started = True
        tid = self._tasks.get(event.phase)
        if tid is None:
            label = "scanning" if event.phase == "scan" else "querying userBurns"
            tid = self.progress.add_task(f"{self.chain_name} {label}", total=event.total, info="")
            self._tasks[event.phase] = tid
        return tid

    def update(self, event: ProgressEvent) -> None:
        tid = self._task(event)
        if event.phase == "scan":
            info = f"addresses: {event.extra.get('addresses', 0):,}"
        else:
            info = f"burners: {event.extra.get('burners', 0):,}"
            if event.extra.get("failed"):
                info += f" • [red]failed: {event.extra['failed']:,}[/]"
        self.progress.update(tid, completed=event.done, info=info)

    def close(self) -> None:
        if self._started:
            self.progress.stop(); self._started = False
