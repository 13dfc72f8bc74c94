"""
Folder grouping: turn a flat list of uploaded relative paths into subjects.

Three tiers, first match wins:

1. Every path shares one root folder ("Portfolios/Ahmed/plan.pdf"):
   the subject is the second segment.
2. Otherwise the subject is the first segment ("Ahmed/plan.pdf").
3. Nothing grouped (e.g. loose files): everything goes under the first
   path's first segment.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from portfolioq.evaluation.models import EvidenceFile
from portfolioq.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadEntry:
    """One uploaded file and the path it had inside the selected directory."""

    relative_path: str
    file: EvidenceFile


@dataclass
class SubjectGroup:
    """Files attributed to one subject, in input order."""

    name: str
    folder_path: str
    files: list[str] = field(default_factory=list)
    file_objects: list[EvidenceFile] = field(default_factory=list)

    def add(self, relative_path: str, file: EvidenceFile) -> None:
        self.files.append(relative_path)
        self.file_objects.append(file)


def split_path(relative_path: str) -> list[str]:
    """Split on '/', treating '\\' as a separator and dropping empty segments."""
    return [segment for segment in relative_path.replace("\\", "/").split("/") if segment]


def group_by_subject(entries: list[UploadEntry]) -> dict[str, SubjectGroup]:
    """
    Group upload entries by subject name.

    Returns:
        Mapping of subject name to group, in first-encounter order.
    """
    parsed = [(split_path(e.relative_path), e.file) for e in entries]
    parsed = [(parts, file) for parts, file in parsed if parts]
    if not parsed:
        return {}

    groups: dict[str, SubjectGroup] = {}

    def _group(name: str, folder_path: str) -> SubjectGroup:
        if name not in groups:
            groups[name] = SubjectGroup(name=name, folder_path=folder_path)
        return groups[name]

    root = parsed[0][0][0]
    shared_root = all(len(parts) >= 2 and parts[0] == root for parts, _ in parsed)

    if shared_root:
        for parts, file in parsed:
            # root/file.pdf has no subject folder
            if len(parts) < 3:
                continue
            name = parts[1]
            _group(name, f"{root}/{name}").add("/".join(parts[2:]), file)
        tier = "shared_root"
    else:
        for parts, file in parsed:
            if len(parts) < 2:
                continue
            name = parts[0]
            _group(name, name).add("/".join(parts[1:]), file)
        tier = "top_level"

    if not groups:
        fallback = _group(root, root)
        for parts, file in parsed:
            relative = "/".join(parts[1:]) if len(parts) > 1 else parts[0]
            fallback.add(relative, file)
        tier = "fallback"

    logger.info("Grouped %d files into %d subjects (%s)", len(parsed), len(groups), tier)
    return groups
