# keyword_analyzer.py

from __future__ import annotations

import re
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from .helpers.text_tools import split_paragraphs
from .utils.utils import section

logger = logging.getLogger(__name__)

# --- Heuristics and regexes -------------------------------------------------
STOP_WORDS = frozenset("""
    a an and are as at be by for from has he in is it its of on that the
    to was will with you your this their but or not can have all when there
    been if more so about what which who would could
""".split())

_H1_LINE = re.compile(r"^#\s+(.+)$")
_H2_LINE = re.compile(r"^##\s+(.+)$")
_H3_LINE = re.compile(r"^###\s+(.+)$")
_SENT_SPLIT = re.compile(r"[.!?]+")
_TERM_RE = re.compile(r"\b[a-z]{4,}\b")

DEFAULT_TARGET_DENSITY = 1.5


class KeywordAnalyzer:
    """
    Keyword density, placement and distribution analysis for one markdown article.

    settings.json -> keyword_analysis:
    {
      "target_density": 1.5,     // primary keyword target, percent
      "max_lsi_keywords": 15
    }
    """

    def __init__(self, app_settings: Optional[Dict[str, Any]] = None):
        cfg = section(app_settings, "keyword_analysis")
        self.target_density = float(cfg.get("target_density", DEFAULT_TARGET_DENSITY))
        self.max_lsi_keywords = int(cfg.get("max_lsi_keywords", 15))
        self.stop_words = STOP_WORDS

    def analyze(
        self,
        content: str,
        primary_keyword: str,
        secondary_keywords: Optional[List[str]] = None,
        target_density: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Full keyword report: density and placements for the primary keyword,
        secondary keyword coverage, stuffing risk, topic clusters, per-section
        heatmap, related (LSI) terms and recommendations.
        """
        if not primary_keyword or not primary_keyword.strip():
            raise ValueError("primary_keyword must be a non-empty string")

        content = content or ""
        target = self.target_density if target_density is None else float(target_density)
        word_count = len(content.split())
        sections = self.extract_sections(content)

        primary = self._analyze_keyword(content, primary_keyword, word_count, sections, target)
        secondary = [
            {"keyword": kw, **self._analyze_keyword(content, kw, word_count, sections, target * 0.5)}
            for kw in (secondary_keywords or [])
            if kw and kw.strip()
        ]
        stuffing = self._detect_keyword_stuffing(content, primary_keyword, primary["density"])

        primary_record = {"keyword": primary_keyword, **primary}
        return {
            "word_count": word_count,
            "primary_keyword": primary_record,
            "secondary_keywords": secondary,
            "keyword_stuffing": stuffing,
            "topic_clusters": self._perform_clustering(sections),
            "distribution_heatmap": self._distribution_heatmap(primary_keyword, sections),
            "lsi_keywords": self._find_lsi_keywords(content, primary_keyword),
            "recommendations": self._recommendations(primary_record, secondary, stuffing, target),
        }

    # ----------------------------- Sections ---------------------------------

    @staticmethod
    def extract_sections(content: str) -> List[Dict[str, Any]]:
        """
        Split markdown into sections at H1/H2/H3 lines. Text before the first
        header becomes an 'intro' section; header-only sections are dropped.
        """
        if not content:
            return []

        sections: List[Dict[str, Any]] = []
        current: Dict[str, Any] = {"type": "intro", "header": "", "content": "", "start_pos": 0}
        pos = 0

        for line in content.rstrip("\n").split("\n"):
            header_type, header = None, None
            for kind, pattern in (("h1", _H1_LINE), ("h2", _H2_LINE), ("h3", _H3_LINE)):
                m = pattern.match(line)
                if m:
                    header_type, header = kind, m.group(1)
                    break

            if header_type:
                if current["content"]:
                    current["end_pos"] = pos
                    sections.append(current)
                current = {"type": header_type, "header": header, "content": "", "start_pos": pos}
            else:
                current["content"] += line + "\n"
            pos += len(line) + 1

        if current["content"]:
            current["end_pos"] = pos
            sections.append(current)
        return sections

    # ----------------------------- Per keyword ------------------------------

    def _analyze_keyword(
        self,
        content: str,
        keyword: str,
        word_count: int,
        sections: List[Dict[str, Any]],
        target_density: float,
    ) -> Dict[str, Any]:
        content_lower = content.lower()
        keyword_lower = keyword.lower()

        exact = content_lower.count(keyword_lower)

        # multi-word keywords also earn partial credit for their words appearing separately
        words = keyword_lower.split()
        total = exact
        if len(words) > 1:
            pattern = re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b")
            variations = len(pattern.findall(content_lower)) - exact * len(words)
            total = exact + variations // len(words)

        density = (total / word_count * 100) if word_count else 0.0

        return {
            "exact_matches": exact,
            "total_occurrences": total,
            "density": round(density, 2),
            "target_density": target_density,
            "density_status": self.density_status(density, target_density),
            "positions": self._keyword_positions(content_lower, keyword_lower),
            "critical_placements": self._critical_placements(content, sections, keyword_lower),
            "section_distribution": self._section_distribution(sections, keyword_lower),
        }

    @staticmethod
    def density_status(actual: float, target: float) -> str:
        if actual < target * 0.5:
            return "too_low"
        if actual < target * 0.8:
            return "slightly_low"
        if actual <= target * 1.2:
            return "optimal"
        if actual <= target * 1.5:
            return "slightly_high"
        return "too_high"

    @staticmethod
    def _keyword_positions(content_lower: str, keyword_lower: str) -> List[int]:
        positions: List[int] = []
        start = content_lower.find(keyword_lower)
        while start != -1:
            positions.append(start)
            start = content_lower.find(keyword_lower, start + 1)
        return positions

    @staticmethod
    def _critical_placements(content: str, sections: List[Dict[str, Any]], keyword_lower: str) -> Dict[str, Any]:
        first_100 = " ".join(content.split()[:100]).lower()

        paragraphs = split_paragraphs(content)
        last_para = paragraphs[-1].lower() if paragraphs else content[-500:].lower()

        in_h1 = bool(sections) and keyword_lower in sections[0]["header"].lower()

        h2_headers = [s["header"].lower() for s in sections if s["type"] == "h2"]
        h2_with_kw = sum(1 for h in h2_headers if keyword_lower in h)

        return {
            "in_first_100_words": keyword_lower in first_100,
            "in_conclusion": keyword_lower in last_para,
            "in_h1": in_h1,
            "in_h2_headings": f"{h2_with_kw}/{len(h2_headers)}",
            "h2_keyword_ratio": (h2_with_kw / len(h2_headers)) if h2_headers else 0,
        }

    @staticmethod
    def _section_counts(sect: Dict[str, Any], keyword_lower: str):
        text = f"{sect['header']} {sect['content']}".lower()
        count = text.count(keyword_lower)
        words = len(text.split())
        density = (count / words * 100) if words else 0.0
        return count, words, density

    def _section_distribution(self, sections: List[Dict[str, Any]], keyword_lower: str) -> List[Dict[str, Any]]:
        out = []
        for i, sect in enumerate(sections):
            count, words, density = self._section_counts(sect, keyword_lower)
            out.append({
                "section_index": i,
                "section_type": sect["type"],
                "header": sect["header"][:50],
                "keyword_count": count,
                "word_count": words,
                "density": round(density, 2),
            })
        return out

    # ----------------------------- Stuffing ---------------------------------

    @staticmethod
    def _detect_keyword_stuffing(content: str, keyword: str, density: float) -> Dict[str, Any]:
        keyword_lower = keyword.lower()
        risk = "none"
        warnings: List[str] = []

        if density > 3.0:
            risk = "high"
            warnings.append(f"Keyword density {density}% is very high (over 3%)")
        elif density > 2.5:
            risk = "medium"
            warnings.append(f"Keyword density {density}% is high (over 2.5%)")

        for i, para in enumerate(split_paragraphs(content), start=1):
            words = len(para.split())
            if not words:
                continue
            para_density = para.lower().count(keyword_lower) / words * 100
            if para_density > 5:
                if risk == "medium":
                    risk = "high"
                warnings.append(f"Paragraph {i} has very high keyword density ({round(para_density, 1)}%)")

        consecutive = longest = 0
        for sentence in _SENT_SPLIT.split(content):
            if keyword_lower in sentence.lower():
                consecutive += 1
                longest = max(longest, consecutive)
            else:
                consecutive = 0

        if longest >= 5:
            risk = "high"
            warnings.append(f"Keyword appears in {longest} consecutive sentences")
        elif longest >= 3:
            if risk == "none":
                risk = "low"
            warnings.append(f"Keyword appears in {longest} consecutive sentences")

        return {"risk_level": risk, "warnings": warnings, "safe": risk in ("none", "low")}

    # ----------------------------- Semantics --------------------------------

    def _top_terms(self, text: str, n: int) -> Counter:
        freq = Counter(w for w in _TERM_RE.findall(text.lower()) if w not in self.stop_words)
        return Counter(dict(freq.most_common(n)))

    def _perform_clustering(self, sections: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Group sections that share the article's most frequent terms."""
        texts = [f"{s['header']} {s['content']}" for s in sections if len(s["content"].split()) > 10]
        if len(texts) < 3:
            return {"clusters_found": 0, "note": "Insufficient sections for clustering"}

        section_terms = [self._top_terms(t, 10) for t in texts]
        n_clusters = min(5, max(2, len(texts) // 2))

        all_terms = Counter(term for terms in section_terms for term in terms)
        top_terms = [t for t, _ in all_terms.most_common(20)]

        clusters = []
        for i in range(n_clusters):
            cluster_terms = top_terms[i * 4:i * 4 + 4]
            members = [j for j, terms in enumerate(section_terms) if any(t in terms for t in cluster_terms)]
            clusters.append({
                "cluster_id": i,
                "top_terms": cluster_terms,
                "section_count": len(members),
                "sections": members,
            })
        return {"clusters_found": len(clusters), "clusters": clusters}

    def _distribution_heatmap(self, keyword: str, sections: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        keyword_lower = keyword.lower()
        heatmap = []
        for i, sect in enumerate(sections):
            count, _, density = self._section_counts(sect, keyword_lower)
            if density == 0:
                heat = 0
            elif density < 0.5:
                heat = 1
            elif density < 1.0:
                heat = 2
            elif density < 2.0:
                heat = 3
            elif density < 3.0:
                heat = 4
            else:
                heat = 5
            label = sect["header"][:40]
            heatmap.append({
                "section": label or f"Section {i + 1}",
                "keyword_count": count,
                "heat_level": heat,
                "density": round(density, 2),
            })
        return heatmap

    def _find_lsi_keywords(self, content: str, primary_keyword: str) -> List[str]:
        """Frequent single terms plus recurring 2-3 word phrases (no stop words)."""
        text = content.lower()
        primary_terms = set(primary_keyword.lower().split())
        freq = Counter(
            w for w in _TERM_RE.findall(text)
            if w not in self.stop_words and w not in primary_terms
        )
        top_terms = [t for t, _ in freq.most_common(10)]

        phrases: List[str] = []
        for sentence in _SENT_SPLIT.split(text):
            words = sentence.split()
            for size, min_len in ((2, 8), (3, 12)):
                for i in range(len(words) - size + 1):
                    gram = words[i:i + size]
                    phrase = " ".join(gram)
                    if len(phrase) > min_len and not any(w in self.stop_words for w in gram):
                        phrases.append(phrase)
        top_phrases = [p for p, _ in Counter(phrases).most_common(5)]

        return (top_terms + top_phrases)[:self.max_lsi_keywords]

    # ----------------------------- Recommendations --------------------------

    @staticmethod
    def _recommendations(
        primary: Dict[str, Any],
        secondary: List[Dict[str, Any]],
        stuffing: Dict[str, Any],
        target_density: float,
    ) -> List[str]:
        recs: List[str] = []
        density = primary["density"]
        keyword = primary["keyword"]
        status = primary["density_status"]

        if status == "too_low":
            recs.append(
                f"Primary keyword density is too low ({density}%). "
                f"Target is {target_density}%. Add {keyword} naturally in more paragraphs."
            )
        elif status == "slightly_low":
            recs.append(
                f"Primary keyword density is slightly low ({density}%). "
                f"Consider adding a few more mentions of '{keyword}'."
            )
        elif status == "too_high":
            recs.append(
                f"Primary keyword density is too high ({density}%). "
                "This may trigger keyword stuffing penalties. Remove some instances or replace with variations."
            )
        elif status == "slightly_high":
            recs.append(
                f"Primary keyword density is slightly high ({density}%). "
                "Consider using more keyword variations or synonyms."
            )

        placements = primary["critical_placements"]
        if not placements["in_first_100_words"]:
            recs.append("Primary keyword missing from first 100 words - add it to the introduction")
        if not placements["in_h1"]:
            recs.append("Primary keyword missing from H1 headline - include it in the title")
        if placements["h2_keyword_ratio"] < 0.33:
            recs.append(
                f"Primary keyword appears in only {placements['in_h2_headings']} H2 headings. "
                "Aim for 2-3 H2s with keyword variations."
            )
        if not placements["in_conclusion"]:
            recs.append("Consider mentioning primary keyword in the conclusion for better optimization")

        if not stuffing["safe"]:
            recs.append(
                f"KEYWORD STUFFING RISK: {stuffing['risk_level'].upper()} - {'; '.join(stuffing['warnings'])}"
            )

        for analysis in secondary:
            if analysis["total_occurrences"] == 0:
                recs.append(f"Secondary keyword '{analysis['keyword']}' not found in content - consider adding it")

        return recs
