"""Domain events for the encode/archive pipeline.

Events flow through the EventBus, decoupling the pipeline stages from
whoever reports on the run (the CLI summary, tests).

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from pydantic import BaseModel
from .models import VideoRecord


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class VideoEvent(Event):
    """Base class for events about a single video."""

    record: VideoRecord


class VideoEncodeStarted(VideoEvent):
    """Emitted right before the encoder is invoked."""

    pass


class EncodeProgress(Event):
    """Emitted at every 10% milestone reported by the encoder."""

    input_path: Path
    percent: int
    eta: str


class VideoEncoded(VideoEvent):
    """Emitted once the committed encode exists (including skip-by-exists)."""

    skipped: bool = False


class VideoArchived(VideoEvent):
    """Emitted once the committed archive exists."""

    skipped: bool = False


class VideoFailed(VideoEvent):
    """Emitted when a stage fails or a task is cancelled."""

    stage: str
    error_message: str


class DiscoveryFinished(Event):
    """Emitted after discovery and classification."""

    files_found: int
    to_encode: int = 0
    already_encoded: int = 0
    already_archived: int = 0


class RunFinished(Event):
    """Emitted when every task and archive handle has resolved."""

    success: bool
    videos: int
