import pytest
from autocfr.domain.exceptions import DiscoveryError
from autocfr.infrastructure.file_scanner import FileScanner


def test_file_scanner_excludes_encoded_and_staging_files(tmp_path):
    for name in ["video1.mp4", "video.cfr.mp4", "video.mp4.part", "video.cfr.mp4.part", "notes.txt"]:
        (tmp_path / name).write_text("dummy")

    files = list(FileScanner().scan(tmp_path))

    assert files == [tmp_path / "video1.mp4"]


def test_file_scanner_recurses_in_sorted_order(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    for rel in ["b/2.mp4", "a/1.mp4", "z.mp4", "a/0.mp4"]:
        (tmp_path / rel).write_text("dummy")

    files = list(FileScanner().scan(tmp_path))

    assert files == [tmp_path / "z.mp4", tmp_path / "a" / "0.mp4", tmp_path / "a" / "1.mp4", tmp_path / "b" / "2.mp4"]


def test_file_scanner_custom_extensions(tmp_path):
    (tmp_path / "clip.mkv").write_text("dummy")
    (tmp_path / "clip.mp4").write_text("dummy")

    files = list(FileScanner(extensions=["mkv"]).scan(tmp_path))

    assert files == [tmp_path / "clip.mkv"]


def test_file_scanner_skips_directories_named_like_videos(tmp_path):
    (tmp_path / "folder.mp4").mkdir()
    (tmp_path / "folder.mp4" / "inner.mp4").write_text("dummy")

    files = list(FileScanner().scan(tmp_path))

    assert files == [tmp_path / "folder.mp4" / "inner.mp4"]


def test_file_scanner_missing_root(tmp_path):
    with pytest.raises(DiscoveryError):
        list(FileScanner().scan(tmp_path / "missing"))
