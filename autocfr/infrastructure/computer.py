import logging
import subprocess
import sys
from typing import List


class Computer:
    """Host machine controls."""

    def __init__(self, platform: str = sys.platform):
        self.platform = platform
        self.logger = logging.getLogger(__name__)

    def _shutdown_command(self) -> List[str]:
        if self.platform.startswith("win"):
            return ["shutdown", "-s", "-t", "60"]
        return ["shutdown", "-h", "+1"]

    def shutdown(self) -> bool:
        """Schedules a host shutdown. Failures are logged, never raised."""
        cmd = self._shutdown_command()
        self.logger.info(f"Shutting down computer: {' '.join(cmd)}")
        try:
            res = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            self.logger.error(f"Failed to shut down computer: {e}")
            return False
        if res.returncode != 0:
            self.logger.error(f"Shutdown command failed (code {res.returncode}): {res.stderr.strip()}")
            return False
        return True
