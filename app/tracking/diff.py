"""
Word-level diff between two content bodies.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any


class SegmentType:
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffSegment:
    """
    One contiguous run of words sharing the same diff tag.
    """

    type: str
    value: str

    @property
    def is_change(self) -> bool:
        return self.type != SegmentType.UNCHANGED

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value}


class DiffEngine:
    """
    Deterministic word diff built on difflib's SequenceMatcher.

    Content is tokenized on whitespace, so whitespace-only edits produce no
    added or removed segments.
    """

    @staticmethod
    def tokenize(content: str) -> list[str]:
        return content.split()

    def diff(self, old_content: str, new_content: str) -> list[DiffSegment]:
        old_words = self.tokenize(old_content)
        new_words = self.tokenize(new_content)
        matcher = SequenceMatcher(None, old_words, new_words, autojunk=False)

        segments: list[DiffSegment] = []
        for tag, old_start, old_end, new_start, new_end in matcher.get_opcodes():
            if tag == "equal":
                segments.append(
                    DiffSegment(SegmentType.UNCHANGED, " ".join(old_words[old_start:old_end]))
                )
                continue
            if tag in {"delete", "replace"}:
                segments.append(
                    DiffSegment(SegmentType.REMOVED, " ".join(old_words[old_start:old_end]))
                )
            if tag in {"insert", "replace"}:
                segments.append(
                    DiffSegment(SegmentType.ADDED, " ".join(new_words[new_start:new_end]))
                )
        return segments

    def changes(self, old_content: str, new_content: str) -> list[DiffSegment]:
        """
        Added/removed segments only, the form persisted on change records.
        """

        return [segment for segment in self.diff(old_content, new_content) if segment.is_change]
