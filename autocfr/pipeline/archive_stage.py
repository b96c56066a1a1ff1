import concurrent.futures
import itertools
import logging
import shutil
import threading
from typing import List, Optional

from autocfr.config.models import ArchiveMode
from autocfr.domain.events import VideoArchived, VideoFailed
from autocfr.domain.models import VideoRecord
from autocfr.infrastructure.event_bus import EventBus


class VideoArchiver:
    """Relocates committed encodes into the archive root.

    The transfer goes to the staging path first and is renamed into place
    once complete. Archiving may be slow (another disk, a NAS), so
    `archive_async` runs it on its own thread and returns a future; the
    number of concurrent archives is not bounded.
    """

    def __init__(self, mode: ArchiveMode = ArchiveMode.MOVE, event_bus: Optional[EventBus] = None):
        self.mode = mode
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)
        self._threads: List[threading.Thread] = []
        self._threads_lock = threading.Lock()
        self._counter = itertools.count(1)

    def _publish(self, event):
        if self.event_bus:
            self.event_bus.publish(event)

    def archive(self, record: VideoRecord) -> bool:
        """Returns True if the committed archive exists afterwards. Never raises."""
        try:
            self.logger.info(f"Archiving: {record.encoded_path} -> {record.archived_path}")

            if record.archived_path.exists():
                self.logger.warning(f"Archived file ({record.archived_path}) already exists")
                self._publish(VideoArchived(record=record, skipped=True))
                return True

            if not record.encoded_path.exists():
                raise FileNotFoundError(f"Encoded file not found: {record.encoded_path}")

            expected_size = record.encoded_path.stat().st_size
            record.archived_path.parent.mkdir(parents=True, exist_ok=True)

            if self.mode == ArchiveMode.COPY:
                shutil.copy2(record.encoded_path, record.temp_archived_path)
            else:
                shutil.move(str(record.encoded_path), str(record.temp_archived_path))

            actual_size = record.temp_archived_path.stat().st_size
            if actual_size != expected_size:
                if self.mode == ArchiveMode.MOVE:
                    # The staged copy is the only one left; put it back for the next run
                    shutil.move(str(record.temp_archived_path), str(record.encoded_path))
                raise RuntimeError(f"Size mismatch after transfer (src={expected_size}, dest={actual_size})")

            record.temp_archived_path.replace(record.archived_path)
            self.logger.info(f"Archived: {record.encoded_path} -> {record.archived_path}")
            self._publish(VideoArchived(record=record))
            return True
        except Exception as e:
            self.logger.exception(f"Error archiving: {record}")
            self._publish(VideoFailed(record=record, stage="archive", error_message=f"Exception: {e}"))
            return False

    def archive_async(self, record: VideoRecord) -> "concurrent.futures.Future[bool]":
        """Starts archiving in the background and returns a handle to wait on."""
        future: "concurrent.futures.Future[bool]" = concurrent.futures.Future()
        future.set_running_or_notify_cancel()

        def _run():
            future.set_result(self.archive(record))

        thread = threading.Thread(target=_run, name=f"archive-{next(self._counter)}", daemon=True)
        with self._threads_lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()
        return future

    def close(self):
        """Waits for every background archive to finish."""
        with self._threads_lock:
            threads = list(self._threads)
            self._threads.clear()
        for thread in threads:
            thread.join()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
