import shutil
import pytest
from unittest.mock import patch
from conftest import make_videos
from autocfr.config.models import ArchiveMode
from autocfr.domain.events import VideoArchived, VideoFailed
from autocfr.pipeline.archive_stage import VideoArchiver


@pytest.fixture
def encoded_record(roots, record_factory):
    make_videos(roots[0], ["sub/video.mp4"])
    record = record_factory.new_record(roots[0] / "sub" / "video.mp4")
    record.encoded_path.parent.mkdir(parents=True, exist_ok=True)
    record.encoded_path.write_bytes(b"encoded content")
    return record


def test_archive_moves_encoded_file(encoded_record):
    assert VideoArchiver().archive(encoded_record) is True

    assert encoded_record.archived_path.read_bytes() == b"encoded content"
    assert not encoded_record.encoded_path.exists()
    assert not encoded_record.temp_archived_path.exists()
    assert encoded_record.original_path.exists()


def test_archive_copy_mode_keeps_encoded_file(encoded_record):
    assert VideoArchiver(mode=ArchiveMode.COPY).archive(encoded_record) is True

    assert encoded_record.archived_path.read_bytes() == b"encoded content"
    assert encoded_record.encoded_path.exists()


def test_archive_skips_when_already_archived(encoded_record, event_bus):
    encoded_record.archived_path.parent.mkdir(parents=True)
    encoded_record.archived_path.write_bytes(b"old")
    archived = []
    event_bus.subscribe(VideoArchived, archived.append)

    assert VideoArchiver(event_bus=event_bus).archive(encoded_record) is True

    assert encoded_record.archived_path.read_bytes() == b"old"
    assert archived[0].skipped is True


def test_archive_missing_encoded_file_fails(roots, record_factory, event_bus):
    make_videos(roots[0], ["video.mp4"])
    record = record_factory.new_record(roots[0] / "video.mp4")
    failed = []
    event_bus.subscribe(VideoFailed, failed.append)

    assert VideoArchiver(event_bus=event_bus).archive(record) is False

    assert failed[0].stage == "archive"
    assert not record.archived_path.exists()


def test_archive_size_mismatch_is_not_committed(encoded_record):
    def short_copy(src, dst):
        with open(dst, "wb") as f:
            f.write(b"short")

    with patch("autocfr.pipeline.archive_stage.shutil.move", side_effect=short_copy):
        assert VideoArchiver().archive(encoded_record) is False

    assert not encoded_record.archived_path.exists()


def test_archive_size_mismatch_keeps_encoded_file_in_move_mode(encoded_record):
    real_move = shutil.move
    calls = []

    def growing_move(src, dst):
        calls.append((src, dst))
        real_move(src, dst)
        if len(calls) == 1:
            with open(dst, "ab") as f:
                f.write(b" trailing garbage")

    with patch("autocfr.pipeline.archive_stage.shutil.move", side_effect=growing_move):
        assert VideoArchiver().archive(encoded_record) is False

    assert len(calls) == 2
    assert encoded_record.encoded_path.exists()
    assert not encoded_record.temp_archived_path.exists()
    assert not encoded_record.archived_path.exists()


def test_archive_transfer_error_is_reported(encoded_record):
    with patch.object(shutil, "move", side_effect=OSError("disk full")):
        assert VideoArchiver().archive(encoded_record) is False
    assert encoded_record.encoded_path.exists()


def test_archive_async_returns_future(encoded_record):
    with VideoArchiver() as archiver:
        future = archiver.archive_async(encoded_record)
        assert future.result(timeout=10) is True
    assert encoded_record.archived_path.exists()


def test_close_waits_for_background_archives(roots, record_factory):
    records = []
    for name in ("a.mp4", "b.mp4", "c.mp4"):
        make_videos(roots[0], [name])
        record = record_factory.new_record(roots[0] / name)
        record.encoded_path.write_bytes(b"encoded " + name.encode())
        records.append(record)

    archiver = VideoArchiver()
    futures = [archiver.archive_async(r) for r in records]
    archiver.close()

    assert all(f.done() for f in futures)
    assert all(r.archived_path.exists() for r in records)
