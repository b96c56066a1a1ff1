import os
from pathlib import Path
from typing import Iterable, Generator

from autocfr.domain import naming
from autocfr.domain.exceptions import DiscoveryError


class FileScanner:
    """Recursively scans for source videos in a directory."""

    def __init__(self, extensions: Iterable[str] = naming.DEFAULT_EXTENSIONS):
        self.extensions = naming.normalize_extensions(extensions)

    def _on_walk_error(self, error: OSError):
        raise DiscoveryError(f"Failed to scan {error.filename}: {error}") from error

    def scan(self, root_dir: Path) -> Generator[Path, None, None]:
        """Yields source videos in deterministic order.

        Encoder output (`*.cfr.<ext>`) and staging files (`*.part`) are never
        yielded, so an output root nested in the input root is harmless.
        """
        if not root_dir.is_dir():
            raise DiscoveryError(f"Input directory does not exist: {root_dir}")

        for root, dirs, files in os.walk(str(root_dir), onerror=self._on_walk_error):
            root_path = Path(root)

            # Ensure deterministic traversal: sort directories and files
            dirs.sort()
            files.sort()

            for file_name in files:
                file_path = root_path / file_name
                if not naming.is_source_video(file_path, self.extensions):
                    continue
                if not file_path.is_file():
                    continue
                yield file_path
