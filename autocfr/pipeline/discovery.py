import logging
from pathlib import Path
from typing import List, Optional

from autocfr.config.models import DiscoveryMode
from autocfr.domain import naming
from autocfr.domain.events import DiscoveryFinished
from autocfr.domain.models import RecordFactory, VideoRecord
from autocfr.infrastructure.event_bus import EventBus
from autocfr.infrastructure.file_scanner import FileScanner
from autocfr.pipeline.archive_stage import VideoArchiver


class VideoDiscovery:
    """Builds the ordered work list from the input tree.

    Both modes share the same walk and classification:

    - strict: archive-named files are excluded too; already-encoded videos
      stay in the list (the encode stage skips them).
    - triage: videos that already have a committed encode are archived
      right away, one at a time, and left out of the list. Those that fail
      to archive are kept in `triage_failures` for the caller to report.

    Videos whose committed archive exists are done and always left out.
    The list is ordered by original path so scheduling is reproducible.
    """

    def __init__(
        self,
        file_scanner: FileScanner,
        mode: DiscoveryMode = DiscoveryMode.STRICT,
        archiver: Optional[VideoArchiver] = None,
        event_bus: Optional[EventBus] = None,
    ):
        if mode == DiscoveryMode.TRIAGE and archiver is None:
            raise ValueError("triage discovery needs an archiver")
        self.file_scanner = file_scanner
        self.mode = mode
        self.archiver = archiver
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)
        self.triage_failures: List[VideoRecord] = []

    def _is_archive_named(self, path: Path) -> bool:
        extensions = self.file_scanner.extensions
        return naming.is_committed_archive(path, extensions) or naming.is_in_progress_archive(path, extensions)

    def discover(self, input_root: Path, output_root: Path, archive_root: Path) -> List[VideoRecord]:
        factory = RecordFactory(input_root, output_root, archive_root)
        self.triage_failures = []

        records: List[VideoRecord] = []
        files_found = 0
        already_archived = 0
        for path in self.file_scanner.scan(input_root):
            if self.mode == DiscoveryMode.STRICT and self._is_archive_named(path):
                continue
            files_found += 1
            record = factory.new_record(path)
            if record.has_been_archived():
                already_archived += 1
                self.logger.debug(f"Already archived: {record} -> {record.archived_path}")
                continue
            records.append(record)

        records.sort(key=lambda r: str(r.original_path))

        already_encoded = 0
        if self.mode == DiscoveryMode.TRIAGE:
            encoded: List[VideoRecord] = []
            unencoded: List[VideoRecord] = []
            for record in records:
                (encoded if record.has_been_encoded() else unencoded).append(record)
            records = unencoded
            already_encoded = len(encoded)
            self.triage_failures = self._archive_already_encoded(encoded)

        self.logger.info(
            f"Discovery finished: found={files_found}, to_encode={len(records)}, "
            f"already_encoded={already_encoded}, already_archived={already_archived}"
        )
        if self.event_bus:
            self.event_bus.publish(DiscoveryFinished(
                files_found=files_found,
                to_encode=len(records),
                already_encoded=already_encoded,
                already_archived=already_archived,
            ))
        return records

    def _archive_already_encoded(self, records: List[VideoRecord]) -> List[VideoRecord]:
        """Archives each record in turn and returns the ones that failed."""
        failed: List[VideoRecord] = []
        if not records:
            return failed
        self.logger.warning(f"Detected {len(records)} unencoded video(s) that have already been encoded")
        for i, record in enumerate(records, start=1):
            self.logger.warning(f"Archiving ({i}/{len(records)}): {record}")
            if not self.archiver.archive_async(record).result():
                failed.append(record)
        return failed
