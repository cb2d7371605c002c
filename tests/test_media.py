from __future__ import annotations

from pathlib import Path

from sheet_upload.media import find_media_file, list_media_files


def test_exact_match_preferred_over_prefix(make_media):
    folder = make_media("10.mp4", "1.mp4", "1_extra.mov")
    assert find_media_file(folder, "1") == folder / "1.mp4"


def test_prefix_match_when_no_exact(make_media):
    folder = make_media("A12_final.mp4", "B1.mp4")
    assert find_media_file(folder, "A12") == folder / "A12_final.mp4"


def test_prefix_ties_resolved_by_sorted_name(make_media):
    folder = make_media("7_b.mp4", "7_a.mp4")
    assert find_media_file(folder, "7") == folder / "7_a.mp4"


def test_no_match_returns_none(make_media):
    folder = make_media("1.mp4")
    assert find_media_file(folder, "2") is None


def test_missing_folder_returns_none(tmp_path: Path):
    assert find_media_file(tmp_path / "nope", "1") is None
    assert list_media_files(tmp_path / "nope") == []


def test_directories_are_ignored(media_folder: Path, make_media):
    (media_folder / "5").mkdir()
    make_media("5-cut.mp4")
    assert find_media_file(media_folder, "5") == media_folder / "5-cut.mp4"
