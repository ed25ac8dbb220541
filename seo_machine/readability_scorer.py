# readability_scorer.py

from __future__ import annotations

import re
import math
import logging
from typing import Any, Dict, List, Optional

from .helpers.text_tools import extract_sentences, letter_grade, split_paragraphs
from .utils.utils import section

logger = logging.getLogger(__name__)

# --- Heuristics and regexes -------------------------------------------------
TRANSITION_WORDS = (
    "however", "moreover", "furthermore", "therefore", "consequently", "additionally",
    "meanwhile", "nevertheless", "thus", "hence", "accordingly", "subsequently",
)
TRANSITION_PHRASES = (
    "for example", "for instance", "in addition", "on the other hand",
    "as a result", "in contrast",
)
PASSIVE_INDICATORS = ("was", "were", "been", "being", "is", "are", "am", "be")

_HEADER_MARK_RE = re.compile(r"(?m)^#+\s+")
_MD_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_CODE_FENCE_RE = re.compile(r"```[^`]*```")
_BLANK_LINES_RE = re.compile(r"\n\s*\n")
_SENT_SPLIT = re.compile(r"[.!?]+")
_NON_ALPHA_RE = re.compile(r"[^a-zA-Z]")
_NON_LOWER_RE = re.compile(r"[^a-z]")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+")
_PARTICIPLE_RE = re.compile(r"\b\w+(ed|en)\b")
_TRANSITION_WORD_RES = [re.compile(rf"\b{w}\b") for w in TRANSITION_WORDS]


def count_syllables_word(word: str) -> int:
    """Vowel-group estimate; a silent trailing 'e' is dropped, minimum 1 for real words."""
    word = _NON_LOWER_RE.sub("", word.lower())
    if not word:
        return 0
    count = len(_VOWEL_GROUP_RE.findall(word))
    if word.endswith("e") and count > 1:
        count -= 1
    return max(count, 1)


def _variance(values: List[int]) -> float:
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    return sum((x - mean) ** 2 for x in values) / len(values)


class ReadabilityScorer:
    """
    Readability analysis for markdown articles: classic formulas (Flesch,
    Flesch-Kincaid, Gunning Fog, SMOG, Coleman-Liau, ARI), sentence and
    paragraph structure, passive voice and transition usage, an overall
    0-100 score with letter grade, and plain-English recommendations.

    settings.json -> readability:
    {
      "target_reading_level": [8, 10],
      "target_flesch_ease": [60, 70],
      "max_avg_sentence_length": 20,
      "max_paragraph_sentences": 4
    }
    """

    def __init__(self, app_settings: Optional[Dict[str, Any]] = None):
        cfg = section(app_settings, "readability")
        lo, hi = cfg.get("target_reading_level", [8, 10])
        self.target_reading_level = (float(lo), float(hi))
        ease_lo, ease_hi = cfg.get("target_flesch_ease", [60, 70])
        self.target_flesch_ease = (float(ease_lo), float(ease_hi))
        self.max_avg_sentence_length = int(cfg.get("max_avg_sentence_length", 20))
        self.max_paragraph_sentences = int(cfg.get("max_paragraph_sentences", 4))

    def analyze(self, content: str) -> Dict[str, Any]:
        clean = self.clean_content(content or "")
        if not clean:
            return {"error": "No readable content provided"}

        metrics = self._metrics(clean)
        structure = self._structure(content, clean)
        complexity = self._complexity(clean)
        score = self._overall_score(metrics, structure, complexity)

        return {
            "overall_score": score,
            "grade": letter_grade(score),
            "reading_level": metrics["flesch_kincaid_grade"],
            "readability_metrics": metrics,
            "structure_analysis": structure,
            "complexity_analysis": complexity,
            "recommendations": self._recommendations(metrics, structure, complexity),
            "status": self._status(metrics, structure),
        }

    @staticmethod
    def clean_content(content: str) -> str:
        """Strip header markers and fenced code, keep link text, collapse blank lines."""
        text = _HEADER_MARK_RE.sub("", content)
        text = _MD_LINK_RE.sub(r"\1", text)
        text = _CODE_FENCE_RE.sub("", text)
        text = _BLANK_LINES_RE.sub("\n\n", text)
        return text.strip()

    # ----------------------------- Metrics ----------------------------------

    def _metrics(self, text: str) -> Dict[str, Any]:
        try:
            words = text.split()
            word_count = len(words)
            sentence_count = max(len(extract_sentences(text)), 1)
            per_word = [count_syllables_word(w) for w in words]
            syllable_count = sum(per_word)

            wps = word_count / sentence_count
            spw = syllable_count / max(word_count, 1)

            flesch = min(max(206.835 - 1.015 * wps - 84.6 * spw, 0), 100)
            fk_grade = max(0.39 * wps + 11.8 * spw - 15.59, 0)

            polysyllables = sum(1 for n in per_word if n >= 3)
            fog = 0.4 * (wps + 100 * polysyllables / max(word_count, 1))

            letter_count = len(_NON_ALPHA_RE.sub("", text))
            letters_per_100 = letter_count / max(word_count, 1) * 100
            sentences_per_100 = sentence_count / max(word_count, 1) * 100
            coleman_liau = 0.0588 * letters_per_100 - 0.296 * sentences_per_100 - 15.8

            smog = 1.0430 * math.sqrt(polysyllables * (30.0 / sentence_count)) + 3.1291
            ari = 0.0
            if word_count:
                ari = 4.71 * (letter_count / word_count) + 0.5 * (word_count / sentence_count) - 21.43

            return {
                "flesch_reading_ease": round(flesch, 1),
                "flesch_kincaid_grade": round(fk_grade, 1),
                "gunning_fog": round(fog, 1),
                "smog_index": round(smog, 1),
                "coleman_liau_index": round(coleman_liau, 1),
                "automated_readability_index": round(ari, 1),
                "syllable_count": syllable_count,
                "lexicon_count": word_count,
                "sentence_count": sentence_count,
                "char_count": len(text),
                "letter_count": letter_count,
                "polysyllable_count": polysyllables,
            }
        except (ValueError, ZeroDivisionError) as e:
            logger.warning("Could not calculate readability metrics: %s", e)
            return {
                "error": f"Could not calculate metrics: {e}",
                "flesch_reading_ease": 0,
                "flesch_kincaid_grade": 0,
            }

    # ----------------------------- Structure --------------------------------

    @staticmethod
    def _structure(original: str, clean: str) -> Dict[str, Any]:
        sentences = extract_sentences(clean)
        lengths = [len(s.split()) for s in sentences]
        avg_sentence = sum(lengths) / len(lengths) if lengths else 0

        paragraphs = [
            p for p in split_paragraphs(original)
            if p.strip() and not p.strip().startswith("#")
        ]
        para_sentence_counts = [len(extract_sentences(p)) for p in paragraphs]
        para_sentence_counts = [n for n in para_sentence_counts if n]
        avg_para = sum(para_sentence_counts) / len(para_sentence_counts) if para_sentence_counts else 0

        words = clean.split()
        avg_word_len = sum(len(w) for w in words) / len(words) if words else 0

        return {
            "total_sentences": len(sentences),
            "avg_sentence_length": round(avg_sentence, 1),
            "shortest_sentence": min(lengths) if lengths else 0,
            "longest_sentence": max(lengths) if lengths else 0,
            "sentence_length_variance": round(_variance(lengths), 1),
            "total_paragraphs": len(paragraphs),
            "avg_sentences_per_paragraph": round(avg_para, 1),
            "total_words": len(words),
            "avg_word_length": round(avg_word_len, 1),
            "long_sentences": sum(1 for n in lengths if n > 25),
            "very_long_sentences": sum(1 for n in lengths if n > 35),
        }

    @staticmethod
    def _complexity(text: str) -> Dict[str, Any]:
        lower = text.lower()
        transitions = sum(len(rx.findall(lower)) for rx in _TRANSITION_WORD_RES)
        transitions += sum(lower.count(p) for p in TRANSITION_PHRASES)

        sentences = _SENT_SPLIT.split(text)
        passive = 0
        for sentence in sentences:
            s = sentence.lower()
            if any(f" {w} " in s for w in PASSIVE_INDICATORS) and _PARTICIPLE_RE.search(s):
                passive += 1
        total_sentences = max(sum(1 for s in sentences if s), 1)

        words = text.split()
        complex_words = sum(1 for w in words if count_syllables_word(w) >= 3)

        return {
            "transition_word_count": transitions,
            "transition_words_per_100": round(transitions / len(words) * 100, 1) if words else 0,
            "passive_sentence_count": passive,
            "passive_sentence_ratio": round(passive / total_sentences * 100, 1),
            "complex_word_count": complex_words,
            "complex_word_ratio": round(complex_words / len(words) * 100, 1) if words else 0,
        }

    # ----------------------------- Scoring ----------------------------------

    def _overall_score(self, metrics: Dict[str, Any], structure: Dict[str, Any], complexity: Dict[str, Any]) -> float:
        score = 100

        flesch = metrics.get("flesch_reading_ease", 0)
        if flesch < 30:
            score -= 30
        elif flesch < 50:
            score -= 20
        elif flesch < 60:
            score -= 10
        elif flesch > 80:
            score -= 5

        grade = metrics.get("flesch_kincaid_grade", 0)
        target_min, target_max = self.target_reading_level
        if grade < target_min - 2:
            score -= 10
        elif grade > target_max + 4:
            score -= 25
        elif grade > target_max + 2:
            score -= 15
        elif grade > target_max:
            score -= 5

        avg_sentence = structure.get("avg_sentence_length", 0)
        if avg_sentence > 30:
            score -= 20
        elif avg_sentence > 25:
            score -= 10
        elif avg_sentence > 20:
            score -= 5

        very_long = structure.get("very_long_sentences", 0)
        if very_long > 0:
            score -= min(15, very_long * 3)

        avg_para = structure.get("avg_sentences_per_paragraph", 0)
        if avg_para > 6:
            score -= 10
        elif avg_para > 4:
            score -= 5

        passive_ratio = complexity.get("passive_sentence_ratio", 0)
        if passive_ratio > 30:
            score -= 10
        elif passive_ratio > 20:
            score -= 5

        per_100 = complexity.get("transition_words_per_100", 0)
        if per_100 < 0.5:
            score -= 5
        elif per_100 > 2:
            score += 5

        return min(max(score, 0), 100)

    def _status(self, metrics: Dict[str, Any], structure: Dict[str, Any]) -> Dict[str, str]:
        grade = metrics.get("flesch_kincaid_grade", 0)
        ease = metrics.get("flesch_reading_ease", 0)
        avg_sentence = structure.get("avg_sentence_length", 0)
        target_min, target_max = self.target_reading_level

        if target_min <= grade <= target_max:
            grade_status = "optimal"
        elif grade < target_min:
            grade_status = "too_simple"
        else:
            grade_status = "too_complex"

        if 60 <= ease <= 80:
            ease_status = "good"
        elif ease < 60:
            ease_status = "difficult"
        else:
            ease_status = "too_easy"

        sentence_status = "good" if avg_sentence <= self.max_avg_sentence_length else "too_long"

        statuses = (grade_status, ease_status, sentence_status)
        if all(s in ("good", "optimal") for s in statuses):
            overall = "excellent"
        elif any(s in ("too_complex", "difficult", "too_long") for s in statuses):
            overall = "needs_improvement"
        else:
            overall = "acceptable"

        return {
            "grade_level_status": grade_status,
            "ease_status": ease_status,
            "sentence_length_status": sentence_status,
            "overall_assessment": overall,
        }

    def _recommendations(self, metrics: Dict[str, Any], structure: Dict[str, Any], complexity: Dict[str, Any]) -> List[str]:
        recs: List[str] = []
        target_min, target_max = self.target_reading_level
        target_range = f"{target_min:g}-{target_max:g}"

        grade = metrics.get("flesch_kincaid_grade", 0)
        if grade > target_max + 2:
            recs.append(
                f"Reading level is too high (Grade {grade}). Target is {target_range}. "
                "Simplify sentences and use more common words."
            )
        elif grade > target_max:
            recs.append(
                f"Reading level is slightly high (Grade {grade}). Target is {target_range}. "
                "Consider simplifying some complex sentences."
            )
        elif grade < target_min - 2:
            recs.append(f"Reading level is very simple (Grade {grade}). Consider adding more depth and variation.")

        flesch = metrics.get("flesch_reading_ease", 0)
        ease_lo, ease_hi = self.target_flesch_ease
        if flesch < 50:
            recs.append(
                f"Content is difficult to read (Flesch score: {flesch}). "
                "Break up complex sentences and use simpler words."
            )
        elif flesch < 60:
            recs.append(
                f"Content is fairly difficult (Flesch score: {flesch}). "
                f"Aim for {ease_lo:g}-{ease_hi:g} for better readability."
            )

        avg_sentence = structure.get("avg_sentence_length", 0)
        long_sentences = structure.get("long_sentences", 0)
        very_long = structure.get("very_long_sentences", 0)
        if avg_sentence > 25:
            recs.append(
                f"Average sentence length is too long ({avg_sentence} words). "
                f"Target is under {self.max_avg_sentence_length} words. Break up long sentences."
            )
        elif avg_sentence > 20:
            recs.append(
                f"Average sentence length is high ({avg_sentence} words). "
                "Consider shortening some sentences for better flow."
            )

        if very_long > 0:
            recs.append(f"{very_long} sentences are very long (35+ words). These should be split into multiple sentences.")
        elif long_sentences > structure.get("total_sentences", 1) * 0.2:
            recs.append(f"{long_sentences} sentences are long (25+ words). Breaking these up would improve readability.")

        avg_para = structure.get("avg_sentences_per_paragraph", 0)
        if avg_para > 6:
            recs.append(
                f"Paragraphs are too long (avg {avg_para} sentences). "
                f"Keep paragraphs to {self.max_paragraph_sentences} sentences or less."
            )
        elif avg_para > 4:
            recs.append(f"Paragraphs are fairly long (avg {avg_para} sentences). Consider breaking into smaller chunks.")

        passive_ratio = complexity.get("passive_sentence_ratio", 0)
        if passive_ratio > 30:
            recs.append(
                f"Too much passive voice ({round(passive_ratio)}% of sentences). "
                "Convert to active voice where possible (target: under 20%)."
            )
        elif passive_ratio > 20:
            recs.append(
                f"Passive voice is slightly high ({round(passive_ratio)}%). "
                "Try to use more active voice for direct, engaging writing."
            )

        if complexity.get("transition_words_per_100", 0) < 0.5:
            recs.append(
                "Few transition words detected. Add words like 'however', 'therefore', "
                "'additionally' to improve flow between ideas."
            )

        complex_ratio = complexity.get("complex_word_ratio", 0)
        if complex_ratio > 15:
            recs.append(
                f"High percentage of complex words ({complex_ratio}%). "
                "Consider simpler alternatives where appropriate."
            )

        if not recs:
            recs.append("Readability is excellent! Content is clear and accessible.")
        return recs
