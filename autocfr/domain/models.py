from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from autocfr.domain import naming


class VideoStatus(str, Enum):
    PENDING = "PENDING"
    ENCODED = "ENCODED"
    ARCHIVED = "ARCHIVED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class VideoRecord(BaseModel):
    """One unit of work and its derived path set.

    Never mutated: stage transitions are expressed by which files exist on
    disk, not by in-memory state.
    """

    model_config = ConfigDict(frozen=True)

    original_path: Path
    encoded_path: Path
    temp_encoded_path: Path
    archived_path: Path
    temp_archived_path: Path

    def has_been_encoded(self) -> bool:
        return self.encoded_path.exists()

    def has_been_archived(self) -> bool:
        return self.archived_path.exists()

    def __str__(self) -> str:
        return str(self.original_path)


class RecordFactory:
    """Builds records for videos under `input_root`."""

    def __init__(self, input_root: Path, output_root: Path, archive_root: Path):
        self.input_root = Path(input_root)
        self.output_root = Path(output_root)
        self.archive_root = Path(archive_root)

    def new_record(self, original_path: Path) -> VideoRecord:
        original_path = Path(original_path)
        try:
            encoded_path = naming.derive_encoded_path(original_path, self.input_root, self.output_root)
        except ValueError:
            raise ValueError(f"{original_path} is not under input root {self.input_root}") from None
        archived_path = naming.derive_archived_path(encoded_path, self.output_root, self.archive_root)
        return VideoRecord(
            original_path=original_path,
            encoded_path=encoded_path,
            temp_encoded_path=naming.in_progress_path(encoded_path),
            archived_path=archived_path,
            temp_archived_path=naming.in_progress_path(archived_path),
        )


class VideoOutcome(BaseModel):
    record: VideoRecord
    status: VideoStatus = VideoStatus.PENDING
    error_message: Optional[str] = None


class RunSummary(BaseModel):
    """Per-video outcomes of one run."""

    outcomes: List[VideoOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[VideoRecord]:
        return [o.record for o in self.outcomes if o.status == VideoStatus.ARCHIVED]

    @property
    def failed(self) -> List[VideoOutcome]:
        return [o for o in self.outcomes if o.status != VideoStatus.ARCHIVED]

    @property
    def success(self) -> bool:
        return not self.failed
