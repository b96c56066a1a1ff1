import threading
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from autocfr.domain.events import (
    DiscoveryFinished, VideoEncoded, VideoArchived, VideoFailed, RunFinished
)
from autocfr.infrastructure.event_bus import EventBus


class RunReport:
    """Subscribes to EventBus and collects what happened during a run.

    Covers videos archived during triage discovery as well as those handled
    by the orchestrator.
    """

    def __init__(self, bus: EventBus):
        self._lock = threading.Lock()
        self.files_found = 0
        self.to_encode = 0
        self.already_encoded = 0
        self.already_archived = 0
        self.encoded_count = 0
        self.archived_count = 0
        self.skipped_count = 0
        self.failures: List[Tuple[str, str, str]] = []  # (video, stage, message)
        self.success: Optional[bool] = None

        bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        bus.subscribe(VideoEncoded, self.on_video_encoded)
        bus.subscribe(VideoArchived, self.on_video_archived)
        bus.subscribe(VideoFailed, self.on_video_failed)
        bus.subscribe(RunFinished, self.on_run_finished)

    def on_discovery_finished(self, event: DiscoveryFinished):
        with self._lock:
            self.files_found = event.files_found
            self.to_encode = event.to_encode
            self.already_encoded = event.already_encoded
            self.already_archived = event.already_archived

    def on_video_encoded(self, event: VideoEncoded):
        with self._lock:
            if event.skipped:
                self.skipped_count += 1
            else:
                self.encoded_count += 1

    def on_video_archived(self, event: VideoArchived):
        with self._lock:
            self.archived_count += 1

    def on_video_failed(self, event: VideoFailed):
        with self._lock:
            self.failures.append((str(event.record), event.stage, event.error_message))

    def on_run_finished(self, event: RunFinished):
        with self._lock:
            self.success = event.success

    def render(self, console: Optional[Console] = None):
        console = console or Console()
        with self._lock:
            console.print(
                f"Found: {self.files_found} | To encode: {self.to_encode} | "
                f"Encoded: {self.encoded_count} | Skipped (exists): {self.skipped_count} | "
                f"Archived: {self.archived_count} | Already archived: {self.already_archived}"
            )
            if not self.failures:
                if self.success is not False:
                    console.print("[green]All videos encoded and archived.[/green]")
                return

            table = Table(title=f"Failed videos ({len(self.failures)})", title_style="bold red")
            table.add_column("Video", overflow="fold")
            table.add_column("Stage")
            table.add_column("Error", overflow="fold")
            for video, stage, message in self.failures:
                table.add_row(video, stage, message)
            console.print(table)
