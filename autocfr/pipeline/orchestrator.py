"""Pipeline orchestrator: schedules encode and archive work for a run.

Each discovered video becomes one task. Two ordering strategies share the
same contract:

- barrier: all tasks start at once on their own threads. Task i waits on a
  latch that opens once tasks 0..i-1 have taken the encode permit, takes the
  permit itself, opens the latches of later tasks, encodes, gives the permit
  back and archives. Permit acquisition is therefore in discovery order,
  while archiving overlaps with later encodes.
- sequential: one loop encodes each video in turn and launches its archive
  in the background; every archive handle is awaited after the loop.

Either way the encode permit (a semaphore with one permit, injected so tests
can substitute their own) allows a single active encode, each video is
attempted exactly once, and one video's failure never blocks the others.
"""

import concurrent.futures
import logging
import threading
from typing import Iterable, List, Optional, Sequence

from autocfr.config.models import Ordering
from autocfr.domain.events import RunFinished, VideoFailed
from autocfr.domain.models import RunSummary, VideoOutcome, VideoRecord, VideoStatus
from autocfr.infrastructure.event_bus import EventBus
from autocfr.pipeline.archive_stage import VideoArchiver
from autocfr.pipeline.encode_stage import VideoEncoder
from autocfr.pipeline.ordering import LatchChain, POLL_INTERVAL_S


class Orchestrator:
    """Drives EncodeStage then ArchiveStage for every record.

    Args:
        video_encoder: Encode stage.
        video_archiver: Archive stage (sync and async).
        encode_permit: Semaphore guarding the encoder; defaults to one permit.
        ordering: Scheduling strategy (barrier or sequential).
        event_bus: Optional bus for VideoFailed/RunFinished events.
        shutdown_event: Set on cancel_all() so running encodes are terminated.
    """

    def __init__(
        self,
        video_encoder: VideoEncoder,
        video_archiver: VideoArchiver,
        encode_permit: Optional[threading.Semaphore] = None,
        ordering: Ordering = Ordering.BARRIER,
        event_bus: Optional[EventBus] = None,
        shutdown_event: Optional[threading.Event] = None,
    ):
        self.video_encoder = video_encoder
        self.video_archiver = video_archiver
        self.encode_permit = encode_permit if encode_permit is not None else threading.BoundedSemaphore(1)
        self.ordering = ordering
        self.event_bus = event_bus
        self.shutdown_event = shutdown_event
        self.logger = logging.getLogger(__name__)

        self.summary = RunSummary()
        self._summary_lock = threading.Lock()
        self._cancel_events: List[threading.Event] = []
        self._records: List[VideoRecord] = []

    # -- cancellation ------------------------------------------------------

    def cancel(self, record: VideoRecord):
        """Asks the task for `record` to give up. Other tasks are unaffected."""
        for index, candidate in enumerate(self._records):
            if candidate == record:
                self._cancel_events[index].set()

    def cancel_all(self):
        for event in self._cancel_events:
            event.set()
        if self.shutdown_event is not None:
            self.shutdown_event.set()

    # -- bookkeeping -------------------------------------------------------

    def _set_status(self, index: int, status: VideoStatus, error_message: Optional[str] = None):
        with self._summary_lock:
            outcome = self.summary.outcomes[index]
            outcome.status = status
            outcome.error_message = error_message

    def _cancelled(self, index: int, record: VideoRecord) -> bool:
        self.logger.warning(f"Cancelled: {record}")
        self._set_status(index, VideoStatus.CANCELLED, "Cancelled")
        if self.event_bus:
            self.event_bus.publish(VideoFailed(record=record, stage="schedule", error_message="Cancelled"))
        return False

    def _acquire_permit(self, cancel_event: threading.Event) -> bool:
        while not self.encode_permit.acquire(timeout=POLL_INTERVAL_S):
            if cancel_event.is_set():
                return False
        if cancel_event.is_set():
            self.encode_permit.release()
            return False
        return True

    def _encode(self, index: int, record: VideoRecord) -> bool:
        self.logger.info(f"Encoding ({index + 1}/{len(self._records)}): {record}")
        encoded = self.video_encoder.encode(record)
        if encoded:
            self._set_status(index, VideoStatus.ENCODED)
        else:
            self._set_status(index, VideoStatus.FAILED, "Encode failed")
        return encoded

    def _finish_archive(self, index: int, archived: bool) -> bool:
        if archived:
            self._set_status(index, VideoStatus.ARCHIVED)
        else:
            self._set_status(index, VideoStatus.FAILED, "Archive failed")
        return archived

    # -- run ---------------------------------------------------------------

    def run(self, records: Iterable[VideoRecord]) -> bool:
        """Processes every record once. Returns True only if all succeeded."""
        records = list(records)
        self._records = records
        self._cancel_events = [threading.Event() for _ in records]
        self.summary = RunSummary(outcomes=[VideoOutcome(record=r) for r in records])

        self.logger.info(f"Detected {len(records)} video(s) to encode")
        for i, record in enumerate(records, start=1):
            self.logger.info(f"Detected ({i}/{len(records)}): {record}")

        if not records:
            self.logger.info("No videos to encode")
            success = True
        elif self.ordering == Ordering.SEQUENTIAL:
            success = all(self._run_sequential(records))
        else:
            success = all(self._run_barrier(records))

        if self.event_bus:
            self.event_bus.publish(RunFinished(success=success, videos=len(records)))
        return success

    def _run_barrier(self, records: Sequence[VideoRecord]) -> List[bool]:
        latches = LatchChain(len(records))

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=len(records), thread_name_prefix="job"
        ) as executor:
            futures = [
                executor.submit(self._run_task, index, record, latches)
                for index, record in enumerate(records)
            ]
            try:
                return [future.result() for future in futures]
            except KeyboardInterrupt:
                self.logger.info("Ctrl+C detected - cancelling pending videos...")
                self.cancel_all()
                raise

    def _run_task(self, index: int, record: VideoRecord, latches: LatchChain) -> bool:
        cancel_event = self._cancel_events[index]
        holding_permit = False
        try:
            if not latches.wait_turn(index, cancel_event) or cancel_event.is_set():
                return self._cancelled(index, record)
            if not self._acquire_permit(cancel_event):
                return self._cancelled(index, record)
            holding_permit = True
            latches.release_successors(index)

            encoded = self._encode(index, record)
            self.encode_permit.release()
            holding_permit = False
            if not encoded:
                return False

            # Archive runs outside the permit so the next encode can start
            return self._finish_archive(index, self.video_archiver.archive(record))
        except Exception as e:
            self.logger.exception(f"Unexpected error processing {record}")
            self._set_status(index, VideoStatus.FAILED, f"Exception: {e}")
            return False
        finally:
            # Later tasks must never wait on a task that gave up early
            latches.release_successors(index)
            if holding_permit:
                self.encode_permit.release()

    def _run_sequential(self, records: Sequence[VideoRecord]) -> List[bool]:
        results = [False] * len(records)
        pending = []
        try:
            for index, record in enumerate(records):
                cancel_event = self._cancel_events[index]
                if cancel_event.is_set() or not self._acquire_permit(cancel_event):
                    self._cancelled(index, record)
                    continue
                try:
                    encoded = self._encode(index, record)
                finally:
                    self.encode_permit.release()
                if encoded:
                    # Archive in the background while the next video encodes
                    pending.append((index, self.video_archiver.archive_async(record)))
        except KeyboardInterrupt:
            self.logger.info("Ctrl+C detected - cancelling pending videos...")
            self.cancel_all()
            raise
        finally:
            for index, future in pending:
                results[index] = self._finish_archive(index, future.result())
        return results
