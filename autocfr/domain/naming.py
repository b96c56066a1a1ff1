"""Filename conventions for every artifact the pipeline produces.

All rules here are pure functions of a path (no filesystem access), so the
convention can be tested in isolation from I/O:

    source              <stem><ext>             (input root)
    committed encode    <stem>.cfr<ext>         (output root)
    in-progress encode  <stem>.cfr<ext>.part    (output root)
    committed archive   <stem>.cfr<ext>         (archive root)
    in-progress archive <stem>.cfr<ext>.part    (archive root)

The archive stores the encoded artifact under its own name, so committed
archive naming and committed encode naming are the same rule.
"""

from pathlib import Path
from typing import Iterable, Tuple

CFR_MARKER = ".cfr"
IN_PROGRESS_SUFFIX = ".part"
DEFAULT_EXTENSIONS: Tuple[str, ...] = (".mp4",)


def normalize_extensions(extensions: Iterable[str]) -> Tuple[str, ...]:
    """Lower-cases extensions and makes sure each one starts with a dot."""
    normalized = []
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext}"
        if ext not in normalized:
            normalized.append(ext)
    return tuple(normalized)


def _matching_extension(name: str, extensions: Tuple[str, ...]) -> str:
    lower = name.lower()
    for ext in extensions:
        if lower.endswith(ext) and len(lower) > len(ext):
            return ext
    return ""


def is_committed_encode(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    exts = normalize_extensions(extensions)
    ext = _matching_extension(path.name, exts)
    if not ext:
        return False
    base = path.name[: -len(ext)]
    return base.lower().endswith(CFR_MARKER) and len(base) > len(CFR_MARKER)


def is_source_video(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    exts = normalize_extensions(extensions)
    if not _matching_extension(path.name, exts):
        return False
    return not is_committed_encode(path, exts)


def is_in_progress_encode(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    if not path.name.lower().endswith(IN_PROGRESS_SUFFIX):
        return False
    return is_committed_encode(strip_in_progress(path), extensions)


def is_committed_archive(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    return is_committed_encode(path, extensions)


def is_in_progress_archive(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    # Any staged video counts, marked or not: older runs archived unmarked copies.
    if not path.name.lower().endswith(IN_PROGRESS_SUFFIX):
        return False
    staged = strip_in_progress(path)
    return bool(_matching_extension(staged.name, normalize_extensions(extensions)))


def is_in_progress(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    return is_in_progress_encode(path, extensions) or is_in_progress_archive(path, extensions)


def strip_in_progress(path: Path) -> Path:
    if path.name.lower().endswith(IN_PROGRESS_SUFFIX):
        return path.with_name(path.name[: -len(IN_PROGRESS_SUFFIX)])
    return path


def in_progress_path(path: Path) -> Path:
    """Staging location for a committed path."""
    return path.with_name(f"{path.name}{IN_PROGRESS_SUFFIX}")


def encoded_name(path: Path) -> str:
    """`video.mp4` -> `video.cfr.mp4`. Extension case is preserved."""
    return f"{path.stem}{CFR_MARKER}{path.suffix}"


def derive_encoded_path(original_path: Path, input_root: Path, output_root: Path) -> Path:
    rel_path = original_path.relative_to(input_root)
    return output_root / rel_path.with_name(encoded_name(rel_path))


def derive_archived_path(encoded_path: Path, output_root: Path, archive_root: Path) -> Path:
    return archive_root / encoded_path.relative_to(output_root)
