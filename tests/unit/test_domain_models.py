import pytest
from pathlib import Path
from pydantic import ValidationError
from autocfr.domain.models import (
    RecordFactory, RunSummary, VideoOutcome, VideoRecord, VideoStatus
)


def test_record_factory_derives_all_paths(roots):
    input_dir, output_dir, archive_dir = roots
    factory = RecordFactory(input_dir, output_dir, archive_dir)

    record = factory.new_record(input_dir / "sub" / "video.mp4")

    assert record.original_path == input_dir / "sub" / "video.mp4"
    assert record.encoded_path == output_dir / "sub" / "video.cfr.mp4"
    assert record.temp_encoded_path == output_dir / "sub" / "video.cfr.mp4.part"
    assert record.archived_path == archive_dir / "sub" / "video.cfr.mp4"
    assert record.temp_archived_path == archive_dir / "sub" / "video.cfr.mp4.part"
    assert str(record) == str(input_dir / "sub" / "video.mp4")


def test_record_factory_rejects_path_outside_input_root(roots, tmp_path):
    factory = RecordFactory(*roots)
    with pytest.raises(ValueError, match="not under input root"):
        factory.new_record(tmp_path / "elsewhere" / "video.mp4")


def test_record_is_immutable(record_factory, roots):
    record = record_factory.new_record(roots[0] / "video.mp4")
    with pytest.raises(ValidationError):
        record.encoded_path = Path("other.mp4")


def test_record_predicates_follow_filesystem(record_factory, roots):
    record = record_factory.new_record(roots[0] / "video.mp4")
    assert not record.has_been_encoded()
    assert not record.has_been_archived()

    record.temp_encoded_path.write_bytes(b"partial")
    assert not record.has_been_encoded()

    record.encoded_path.write_bytes(b"done")
    assert record.has_been_encoded()

    record.archived_path.write_bytes(b"done")
    assert record.has_been_archived()


def test_records_are_equal_when_derived_from_same_path(record_factory, roots):
    a = record_factory.new_record(roots[0] / "video.mp4")
    b = record_factory.new_record(roots[0] / "video.mp4")
    assert a == b


def test_run_summary_success_and_failures(record_factory, roots):
    ok = record_factory.new_record(roots[0] / "a.mp4")
    bad = record_factory.new_record(roots[0] / "b.mp4")
    summary = RunSummary(outcomes=[
        VideoOutcome(record=ok, status=VideoStatus.ARCHIVED),
        VideoOutcome(record=bad, status=VideoStatus.FAILED, error_message="Encode failed"),
    ])

    assert summary.succeeded == [ok]
    assert [o.record for o in summary.failed] == [bad]
    assert summary.success is False
    assert RunSummary().success is True


def test_invalid_status():
    record = VideoRecord(
        original_path=Path("a.mp4"),
        encoded_path=Path("a.cfr.mp4"),
        temp_encoded_path=Path("a.cfr.mp4.part"),
        archived_path=Path("x/a.cfr.mp4"),
        temp_archived_path=Path("x/a.cfr.mp4.part"),
    )
    with pytest.raises(ValidationError):
        VideoOutcome(record=record, status="INVALID")
