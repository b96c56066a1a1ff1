import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Optional

from autocfr.domain.exceptions import SetupError
from autocfr.infrastructure.computer import Computer
from autocfr.infrastructure.housekeeping import HousekeepingService
from autocfr.pipeline.discovery import VideoDiscovery
from autocfr.pipeline.orchestrator import Orchestrator

LOG_BREAK = "-" * 83


class BatchRunner:
    """One end-to-end run: recovery sweep, discovery, encode and archive.

    Sweep and discovery errors propagate (the run cannot continue with
    unknown partial state); per-video failures only affect the returned flag.
    """

    def __init__(
        self,
        housekeeper: HousekeepingService,
        discovery: VideoDiscovery,
        orchestrator: Orchestrator,
        computer: Optional[Computer] = None,
    ):
        self.housekeeper = housekeeper
        self.discovery = discovery
        self.orchestrator = orchestrator
        self.computer = computer
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _validate_roots(input_dir: Path, output_dir: Path, archive_dir: Path):
        if not input_dir.is_dir():
            raise SetupError(f"Input directory does not exist: {input_dir}")
        for label, directory in (("Output", output_dir), ("Archive", archive_dir)):
            if directory.exists() and not directory.is_dir():
                raise SetupError(f"{label} path is not a directory: {directory}")
            directory.mkdir(parents=True, exist_ok=True)

    def run(self, input_dir: Path, output_dir: Path, archive_dir: Path, shutdown_computer: bool = False) -> bool:
        """Returns True if every video was encoded and archived."""
        self.logger.info(
            f"run(input_dir={input_dir}, output_dir={output_dir}, archive_dir={archive_dir}, "
            f"shutdown_computer={shutdown_computer}) started"
        )
        self.logger.info(LOG_BREAK)

        start_time = time.monotonic()
        try:
            self._validate_roots(input_dir, output_dir, archive_dir)

            if self.housekeeper.cleanup_incomplete_files([input_dir, output_dir, archive_dir]):
                self.logger.info(LOG_BREAK)

            records = self.discovery.discover(input_dir, output_dir, archive_dir)
            self.logger.info(LOG_BREAK)

            success = self.orchestrator.run(records)
            for record in self.discovery.triage_failures:
                self.logger.error(f"Failed (ARCHIVE): {record} - Archive of existing encode failed")
            for outcome in self.orchestrator.summary.failed:
                self.logger.error(f"Failed ({outcome.status.value}): {outcome.record} - {outcome.error_message}")
            return success and not self.discovery.triage_failures
        finally:
            elapsed = timedelta(seconds=round(time.monotonic() - start_time))
            self.logger.info(f"Elapsed: {elapsed}")

            if shutdown_computer:
                self._shutdown()

    def _shutdown(self):
        if self.computer is None:
            self.logger.warning("Shutdown requested but no computer controller configured")
            return
        try:
            self.computer.shutdown()
        except Exception as e:
            self.logger.error(f"Failed to shut down computer: {e}")
