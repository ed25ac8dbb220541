# text_tools.py
"""Small text helpers shared by the keyword, readability and quality modules."""

import re
from dataclasses import dataclass
from typing import List

_SENT_SPLIT = re.compile(r"[.!?]+")
_HEADER_RE = re.compile(r"^(#+)\s+(.+)$")
_PARA_SPLIT = re.compile(r"\n\n+")


@dataclass(frozen=True)
class Header:
    level: int
    text: str
    line_number: int  # 0-based


def extract_sentences(text: str) -> List[str]:
    """Split on runs of . ! ? and drop empty pieces."""
    if not text:
        return []
    return [s.strip() for s in _SENT_SPLIT.split(text) if s.strip()]


def word_count(text: str) -> int:
    return len((text or "").split())


def split_paragraphs(text: str) -> List[str]:
    """Blank-line separated blocks; trailing empty blocks are dropped."""
    parts = _PARA_SPLIT.split(text or "")
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def extract_headers(content: str) -> List[Header]:
    headers: List[Header] = []
    for i, line in enumerate((content or "").split("\n")):
        m = _HEADER_RE.match(line)
        if m:
            headers.append(Header(level=len(m.group(1)), text=m.group(2).strip(), line_number=i))
    return headers


def letter_grade(score: float) -> str:
    """A-F label; anything outside 0..100 is 'F (Poor)'."""
    if 90 <= score <= 100:
        return "A (Excellent)"
    if 80 <= score < 90:
        return "B (Good)"
    if 70 <= score < 80:
        return "C (Average)"
    if 60 <= score < 70:
        return "D (Needs Work)"
    return "F (Poor)"
