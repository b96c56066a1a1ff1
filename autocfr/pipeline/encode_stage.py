import logging
import threading
import time
from pathlib import Path
from typing import Optional, Protocol

from autocfr.domain.events import VideoEncodeStarted, VideoEncoded, VideoFailed
from autocfr.domain.models import VideoRecord
from autocfr.infrastructure.event_bus import EventBus


class EncoderBackend(Protocol):
    def encode(self, input_path: Path, output_path: Path, *options, shutdown_event=None) -> bool:
        ...


class VideoEncoder:
    """Produces the committed encode of one video.

    The encoder writes to the staging path and the result is renamed into
    place only on success, so the committed path never holds a partial file.
    """

    def __init__(
        self,
        encoder: EncoderBackend,
        event_bus: Optional[EventBus] = None,
        shutdown_event: Optional[threading.Event] = None,
    ):
        self.encoder = encoder
        self.event_bus = event_bus
        self.shutdown_event = shutdown_event
        self.logger = logging.getLogger(__name__)

    def _publish(self, event):
        if self.event_bus:
            self.event_bus.publish(event)

    def encode(self, record: VideoRecord) -> bool:
        """Returns True if the committed encode exists afterwards. Never raises."""
        try:
            self.logger.info(f"Encoding: {record.original_path} -> {record.encoded_path}")

            if record.encoded_path.exists():
                self.logger.warning(f"Encoded file ({record.encoded_path}) already exists")
                self._publish(VideoEncoded(record=record, skipped=True))
                return True

            record.encoded_path.parent.mkdir(parents=True, exist_ok=True)
            self._publish(VideoEncodeStarted(record=record))

            start_time = time.monotonic()
            encode_successful = self.encoder.encode(
                record.original_path,
                record.temp_encoded_path,
                shutdown_event=self.shutdown_event,
            )

            if encode_successful and record.temp_encoded_path.exists():
                record.temp_encoded_path.replace(record.encoded_path)
                elapsed = time.monotonic() - start_time
                self.logger.info(f"Encoded: {record.original_path} -> {record.encoded_path} ({elapsed:.1f}s)")
                self._publish(VideoEncoded(record=record))
                return True

            if encode_successful:
                error_message = f"Encoder reported success but {record.temp_encoded_path} is missing"
            else:
                error_message = "Encoder failed"
            self._discard_temp(record)
            self.logger.error(f"Error encoding: {record}: {error_message}")
            self._publish(VideoFailed(record=record, stage="encode", error_message=error_message))
            return False
        except Exception as e:
            self.logger.exception(f"Error encoding: {record}")
            self._discard_temp(record)
            self._publish(VideoFailed(record=record, stage="encode", error_message=f"Exception: {e}"))
            return False

    def _discard_temp(self, record: VideoRecord):
        try:
            record.temp_encoded_path.unlink(missing_ok=True)
        except OSError as e:
            # Left for the next run's recovery sweep
            self.logger.warning(f"Failed to remove incomplete encode {record.temp_encoded_path}: {e}")
