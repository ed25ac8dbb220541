# content_scrubber.py

from __future__ import annotations

import re
import logging
import unicodedata
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)

# Invisible characters commonly left behind by text generators
WATERMARK_CHARS = (
    "\u200b",  # zero-width space
    "\ufeff",  # BOM
    "\u200c",  # zero-width non-joiner
    "\u2060",  # word joiner
    "\u00ad",  # soft hyphen
    "\u202f",  # narrow no-break space
)
EM_DASH = "\u2014"

_ZWSP_BETWEEN_WORDS = re.compile(r"(\w)\u200b(\w)")
_EM_DASH_RE = re.compile(EM_DASH)
# code fences, inline code, link targets and bare URLs keep their exact spacing
_PROTECTED_RE = re.compile(r"```.*?```|`[^`\n]+`|\]\([^)]*\)|https?://\S+|www\.\S+", re.DOTALL)

_ATTRIBUTION_PATTERNS = (
    re.compile(r"\b(said|wrote|noted|according to|via)\s*\Z", re.IGNORECASE),
    re.compile(r"\A[A-Z][a-z]+ [A-Z]"),
)
_VERB_RE = re.compile(
    r"\b(is|are|was|were|has|have|had|do|does|did|can|could|will|would|should|may|might)\b",
    re.IGNORECASE,
)
_MULTI_SPACE_RE = re.compile(r" {2,}")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,;:!?])")
# a dot only starts a new sentence before a capitalised word (Node.js, config.json stay intact)
_NO_SPACE_AFTER_PUNCT_RE = re.compile(r"([,;:!?])([A-Za-z])|(\.)([A-Z][a-z])")
_MANY_NEWLINES_RE = re.compile(r"\n{3,}")


def _space_after_punct(m: re.Match) -> str:
    return f"{m.group(1) or m.group(3)} {m.group(2) or m.group(4)}"


class ContentScrubber:
    """
    Removes invisible Unicode watermarks and em-dashes from prose.

    scrub() returns (cleaned_text, stats) where stats counts
    unicode_removed, format_control_removed and emdashes_replaced.
    """

    def __init__(self) -> None:
        self.stats: Dict[str, int] = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {"unicode_removed": 0, "emdashes_replaced": 0, "format_control_removed": 0}

    def scrub(self, content: str) -> Tuple[str, Dict[str, int]]:
        self.stats = self._empty_stats()
        content = content or ""
        content = self._remove_watermark_chars(content)
        content = self._remove_format_control_chars(content)
        content = self._replace_emdashes(content)
        content = self._clean_whitespace(content)
        return content, dict(self.stats)

    # ----------------------------- Unicode ----------------------------------

    def _remove_watermark_chars(self, content: str) -> str:
        before = len(content)
        content = _ZWSP_BETWEEN_WORDS.sub(r"\1 \2", content)
        for char in WATERMARK_CHARS:
            content = content.replace(char, "")
        self.stats["unicode_removed"] = before - len(content)
        return content

    def _remove_format_control_chars(self, content: str) -> str:
        kept: List[str] = []
        removed = 0
        for ch in content:
            if unicodedata.category(ch) == "Cf":
                removed += 1
            else:
                kept.append(ch)
        self.stats["format_control_removed"] = removed
        return "".join(kept)

    # ----------------------------- Em-dashes --------------------------------

    def _replace_emdashes(self, content: str) -> str:
        def repl(m: re.Match) -> str:
            # context stops at the nearest hyphen on either side
            before = m.string[max(0, m.start() - 100):m.start()].rsplit("-", 1)[-1]
            after = m.string[m.end():m.end() + 100].split("-", 1)[0]
            self.stats["emdashes_replaced"] += 1
            return self.emdash_replacement(before, after)

        return _EM_DASH_RE.sub(repl, content)

    @staticmethod
    def emdash_replacement(before: str, after: str) -> str:
        """Pick the punctuation that best stands in for an em-dash between two contexts."""
        before_ctx = (before or "")[-50:].strip()
        after_ctx = (after or "")[:50].strip()

        if re.match(r"[.!?]", after_ctx):
            return ""

        for pattern in _ATTRIBUTION_PATTERNS:
            if pattern.search(before_ctx) or pattern.search(after_ctx):
                return ", "

        # two independent clauses
        if _VERB_RE.search(before_ctx[-30:]) and _VERB_RE.search(after_ctx[:30]):
            if after_ctx[:1].isupper():
                return ". "
            return "; "

        return ", "

    # ----------------------------- Whitespace -------------------------------

    @staticmethod
    def _fix_spacing(text: str) -> str:
        text = _MULTI_SPACE_RE.sub(" ", text)
        text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
        text = _NO_SPACE_AFTER_PUNCT_RE.sub(_space_after_punct, text)
        return _MANY_NEWLINES_RE.sub("\n\n", text)

    def _clean_whitespace(self, content: str) -> str:
        chunks: List[str] = []
        last = 0
        for m in _PROTECTED_RE.finditer(content):
            chunks.append(self._fix_spacing(content[last:m.start()]))
            chunks.append(m.group(0))
            last = m.end()
        chunks.append(self._fix_spacing(content[last:]))
        return "".join(chunks)


def scrub_content(content: str, verbose: bool = False) -> str:
    """Scrub and return just the text; verbose logs the removal counts."""
    cleaned, stats = ContentScrubber().scrub(content)
    if verbose:
        logger.info(
            "Content scrubbing complete: unicode watermarks removed=%d, format-control chars removed=%d, "
            "em-dashes replaced=%d",
            stats["unicode_removed"], stats["format_control_removed"], stats["emdashes_replaced"],
        )
    return cleaned
