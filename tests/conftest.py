import concurrent.futures
import threading
import time
import pytest
from pathlib import Path
from typing import Iterable, List, Tuple
from autocfr.config.models import AppConfig
from autocfr.domain.models import RecordFactory, VideoRecord
from autocfr.infrastructure.event_bus import EventBus

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Returns a sample AppConfig object for testing."""
    return AppConfig(
        general={"extensions": [".mp4"], "debug": False},
        encoder={"preset": "Fast 1080p30", "frame_rate_control": "cfr"},
        discovery={"mode": "strict"},
        pipeline={"ordering": "barrier"},
        archive={"mode": "move"},
    )

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def roots(tmp_path) -> Tuple[Path, Path, Path]:
    """Creates input, output and archive roots."""
    input_dir = tmp_path / "input"
    output_dir = tmp_path / "output"
    archive_dir = tmp_path / "archive"
    for directory in (input_dir, output_dir, archive_dir):
        directory.mkdir()
    return input_dir, output_dir, archive_dir


@pytest.fixture
def record_factory(roots) -> RecordFactory:
    return RecordFactory(*roots)


def make_videos(input_dir: Path, names: Iterable[str]) -> List[Path]:
    files = []
    for name in names:
        f = input_dir / name
        f.parent.mkdir(parents=True, exist_ok=True)
        f.write_bytes(b"dummy video content " * 100)
        files.append(f)
    return files


@pytest.fixture
def dummy_video_files(roots):
    """Creates three source videos, one of them in a subdirectory."""
    input_dir, _, _ = roots
    return make_videos(input_dir, ["video0.mp4", "video1.mp4", "subdir/video2.mp4"])

# ============================================================================
# Collaborator fakes
# ============================================================================

class FakeEncoder:
    """Stands in for HandBrakeAdapter; writes a small file instead of encoding."""

    def __init__(self, fail_on: Iterable[str] = (), delay: float = 0.0, raise_on: Iterable[str] = ()):
        self.fail_on = set(fail_on)
        self.raise_on = set(raise_on)
        self.delay = delay
        self.calls: List[Path] = []
        self.started = {}
        self._lock = threading.Lock()

    def started_event(self, name: str) -> threading.Event:
        with self._lock:
            return self.started.setdefault(name, threading.Event())

    def encode(self, input_path: Path, output_path: Path, *options, shutdown_event=None) -> bool:
        with self._lock:
            self.calls.append(input_path)
        self.started_event(input_path.name).set()
        if self.delay:
            time.sleep(self.delay)
        if input_path.name in self.raise_on:
            output_path.write_bytes(b"partial")
            raise RuntimeError("encoder crashed")
        if input_path.name in self.fail_on:
            output_path.write_bytes(b"partial")
            return False
        output_path.write_bytes(b"encoded:" + input_path.name.encode())
        return True


@pytest.fixture
def fake_encoder():
    return FakeEncoder()


class StubArchiver:
    """Records archive calls without touching the filesystem."""

    def __init__(self, result: bool = True, hook=None):
        self.result = result
        self.hook = hook
        self.calls: List[VideoRecord] = []
        self._lock = threading.Lock()

    def archive(self, record: VideoRecord) -> bool:
        with self._lock:
            self.calls.append(record)
        if self.hook:
            self.hook(record)
        return self.result

    def archive_async(self, record: VideoRecord):
        future = concurrent.futures.Future()
        thread = threading.Thread(target=lambda: future.set_result(self.archive(record)), daemon=True)
        thread.start()
        return future


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
