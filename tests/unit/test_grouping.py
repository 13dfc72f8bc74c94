"""Unit tests for folder grouping

Tests cover:
- Shared root: subject is the second segment
- Top-level folders: subject is the first segment
- Fallback for loose files
- Order preservation and path normalization
"""

from __future__ import annotations

from portfolioq.evaluation.grouping import UploadEntry, group_by_subject, split_path
from portfolioq.evaluation.models import BytesEvidenceFile


def _entries(*paths: str) -> list[UploadEntry]:
    return [
        UploadEntry(relative_path=p, file=BytesEvidenceFile(name=p.rsplit("/", 1)[-1], data=b"x"))
        for p in paths
    ]


def test_shared_root_groups_by_second_segment():
    groups = group_by_subject(
        _entries(
            "Portfolios/Ahmed/plans/weekly plan.pdf",
            "Portfolios/Sara/report.pdf",
            "Portfolios/Ahmed/photo.jpg",
        )
    )

    assert list(groups) == ["Ahmed", "Sara"]
    assert groups["Ahmed"].files == ["plans/weekly plan.pdf", "photo.jpg"]
    assert groups["Ahmed"].folder_path == "Portfolios/Ahmed"
    assert groups["Sara"].files == ["report.pdf"]


def test_shared_root_drops_files_directly_under_root():
    groups = group_by_subject(
        _entries("Portfolios/index.pdf", "Portfolios/Ahmed/plan.pdf")
    )

    assert list(groups) == ["Ahmed"]
    assert groups["Ahmed"].files == ["plan.pdf"]


def test_shared_root_keeps_handles_aligned_with_paths():
    entries = _entries("Root/A/one.pdf", "Root/B/two.pdf", "Root/A/three.pdf")
    groups = group_by_subject(entries)

    assert groups["A"].file_objects == [entries[0].file, entries[2].file]
    assert groups["B"].file_objects == [entries[1].file]


def test_top_level_folders_group_by_first_segment():
    groups = group_by_subject(_entries("Ahmed/plan.pdf", "Sara/x/report.pdf", "Ahmed/log.png"))

    assert list(groups) == ["Ahmed", "Sara"]
    assert groups["Ahmed"].files == ["plan.pdf", "log.png"]
    assert groups["Sara"].files == ["x/report.pdf"]
    assert groups["Sara"].folder_path == "Sara"


def test_top_level_drops_single_segment_entries():
    groups = group_by_subject(_entries("Ahmed/plan.pdf", "loose.pdf"))

    assert list(groups) == ["Ahmed"]


def test_flat_listing_falls_back_to_first_segment():
    groups = group_by_subject(_entries("a.pdf", "b.jpg", "c.pdf"))

    assert list(groups) == ["a.pdf"]
    assert groups["a.pdf"].files == ["a.pdf", "b.jpg", "c.pdf"]


def test_single_root_with_only_direct_files_falls_back():
    groups = group_by_subject(_entries("Ahmed/plan.pdf", "Ahmed/log.pdf"))

    assert list(groups) == ["Ahmed"]
    assert groups["Ahmed"].files == ["plan.pdf", "log.pdf"]


def test_empty_input_yields_no_groups():
    assert group_by_subject([]) == {}


def test_backslashes_and_empty_segments_are_normalized():
    assert split_path("Root\\Ahmed//plan.pdf") == ["Root", "Ahmed", "plan.pdf"]
    assert split_path("/") == []

    groups = group_by_subject(_entries("Root\\Ahmed\\plan.pdf", "Root/Sara/x.pdf", "///"))
    assert list(groups) == ["Ahmed", "Sara"]


def test_shared_root_reproduces_depth_two_names():
    names = [f"Teacher {i}" for i in range(7)]
    paths = [f"All/{n}/sub/{j}.pdf" for n in names for j in range(3)]
    groups = group_by_subject(_entries(*paths))

    assert set(groups) == set(names)
    for name in names:
        assert groups[name].files == [f"sub/{j}.pdf" for j in range(3)]
