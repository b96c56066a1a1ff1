import logging
import os
from pathlib import Path
from typing import Iterable, List

from autocfr.domain import naming
from autocfr.domain.exceptions import RecoverySweepError


def dedupe_roots(roots: Iterable[Path]) -> List[Path]:
    """Drops repeated roots, keeping the first occurrence."""
    seen = set()
    result: List[Path] = []
    for root in roots:
        key = Path(root).resolve()
        if key in seen:
            continue
        seen.add(key)
        result.append(Path(root))
    return result


class HousekeepingService:
    """Deletes artifacts left behind by interrupted encodes and archives."""

    def __init__(self, extensions: Iterable[str] = naming.DEFAULT_EXTENSIONS):
        self.extensions = naming.normalize_extensions(extensions)
        self.logger = logging.getLogger(__name__)

    def find_incomplete_files(self, roots: Iterable[Path]) -> List[Path]:
        found: List[Path] = []
        for root in dedupe_roots(roots):
            if not root.exists():
                continue
            for dirpath, dirs, files in os.walk(root):
                dirs.sort()
                for file in sorted(files):
                    path = Path(dirpath) / file
                    if path.is_file() and naming.is_in_progress(path, self.extensions):
                        found.append(path)
        return found

    def cleanup_incomplete_files(self, roots: Iterable[Path]) -> List[Path]:
        """Recursively removes in-progress encodes and archives under every root.

        Raises RecoverySweepError if any of them cannot be deleted.
        """
        incomplete = self.find_incomplete_files(roots)
        if not incomplete:
            return []

        self.logger.warning(f"Detected {len(incomplete)} incomplete encoding(s)/archive(s)")
        for i, path in enumerate(incomplete, start=1):
            self.logger.warning(f"Deleting ({i}/{len(incomplete)}): {path}")
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise RecoverySweepError(f"Failed to delete incomplete file {path}: {e}") from e
        return incomplete
