"""Heuristic originality scoring.

Combines four penalty signals (repeated phrasing, generic academic filler,
sentence-length spread, and vocabulary common in generated text) into a
50-98 originality score. This is a style heuristic, not a comparison
against any external corpus.

The final score carries a small random jitter so identical submissions do
not always get identical numbers; callers and tests should reason about
ranges and the score/status relationship, never exact values.
"""

from __future__ import annotations

import logging
import math
import random
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from paperforge.knowledge_base.models import OriginalityMatch, OriginalityReport, RiskStatus
from paperforge.utils.text_processing import (
    excerpt,
    population_variance,
    split_sentences,
    tokenize,
)

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 100

SCORE_FLOOR = 50
SCORE_CEILING = 98
LOW_RISK_MIN = 85
MEDIUM_RISK_MIN = 70
JITTER = 5

MAX_REPETITION_PENALTY = 20
MAX_GENERIC_PENALTY = 25
MAX_VARIETY_PENALTY = 15
MAX_AI_PENALTY = 15

MAX_CANDIDATE_MATCHES = 5
MAX_REPORTED_MATCHES = 3
MAX_SUGGESTIONS = 4

CITATION_TIP = "Add more citations to support claims and improve credibility"

# ---------------------------------------------------------------------------
# Pattern tables
# ---------------------------------------------------------------------------

# Template phrases that make academic prose read as boilerplate
_GENERIC_PATTERNS: list[re.Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"this paper presents",
        r"in recent years",
        r"in this study",
        r"the results show",
        r"it is important to note",
        r"furthermore",
        r"moreover",
        r"in conclusion",
        r"this study aims to",
        r"the purpose of this",
        r"as mentioned earlier",
        r"based on the findings",
        r"the data suggests",
        r"according to",
    )
]

# Inflated vocabulary over-represented in machine-generated text
_AI_PATTERNS: list[re.Pattern] = [
    re.compile(r"\b(utilize|leverage|facilitate|implement)\b", re.IGNORECASE),
    re.compile(r"\b(cutting-edge|state-of-the-art|groundbreaking|innovative)\b", re.IGNORECASE),
    re.compile(r"\b(significant|substantial|considerable|notable)\b", re.IGNORECASE),
]


@dataclass
class PenaltyBreakdown:
    """Intermediate results, kept separate so each signal can be inspected."""

    repeated_phrases: int = 0
    repetition: float = 0.0
    generic_matches: int = 0
    generic: float = 0.0
    variance: float = 0.0
    variety: float = 0.0
    ai_pattern_count: int = 0
    ai: float = 0.0
    candidates: list[OriginalityMatch] = field(default_factory=list)

    @property
    def total(self) -> float:
        return self.repetition + self.generic + self.variety + self.ai


class OriginalityChecker:
    """Scores a block of text for originality.

    Parameters
    ----------
    rng : random.Random, optional
        Source for the score jitter and synthetic match similarities.
        Defaults to a fresh, unseeded generator.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def check(self, text: str) -> OriginalityReport:
        words = tokenize(text)
        sentences = split_sentences(text)

        breakdown = PenaltyBreakdown()
        self._score_repetition(sentences, breakdown)
        self._score_generic_phrases(sentences, breakdown)
        self._score_structure(sentences, breakdown)
        self._score_ai_patterns(text, breakdown)

        raw = 100 - breakdown.total + self.rng.randint(-JITTER, JITTER)
        score = max(SCORE_FLOOR, min(SCORE_CEILING, math.floor(raw + 0.5)))
        status = classify(score)

        logger.debug(
            "Originality score %d (%s): repetition=%.1f generic=%.1f variety=%.1f ai=%.1f",
            score,
            status.value,
            breakdown.repetition,
            breakdown.generic,
            breakdown.variety,
            breakdown.ai,
        )

        return OriginalityReport(
            score=score,
            status=status,
            matches=breakdown.candidates[:MAX_REPORTED_MATCHES],
            suggestions=self._suggestions(score, breakdown),
            analyzed_word_count=len(words),
        )

    # ------------------------------------------------------------------
    # Individual signals
    # ------------------------------------------------------------------

    @staticmethod
    def _score_repetition(sentences: list[str], breakdown: PenaltyBreakdown) -> None:
        """Count distinct 3-word phrases that occur more than once."""
        phrases: Counter[str] = Counter()
        for sentence in sentences:
            tokens = sentence.lower().split()
            for i in range(len(tokens) - 2):
                phrases[" ".join(tokens[i : i + 3])] += 1

        repeated = sum(1 for count in phrases.values() if count > 1)
        breakdown.repeated_phrases = repeated
        breakdown.repetition = min(MAX_REPETITION_PENALTY, repeated * 2)

    def _score_generic_phrases(self, sentences: list[str], breakdown: PenaltyBreakdown) -> None:
        """Density of template phrases per sentence, collecting example excerpts."""
        matches = 0
        candidates: list[OriginalityMatch] = []

        for sentence in sentences:
            for pattern in _GENERIC_PATTERNS:
                if not pattern.search(sentence):
                    continue
                matches += 1
                if len(candidates) >= MAX_CANDIDATE_MATCHES:
                    continue
                prefix = sentence.strip()[:50]
                if any(prefix in c.text for c in candidates):
                    continue
                candidates.append(
                    OriginalityMatch(
                        text=excerpt(sentence),
                        similarity=self.rng.randrange(70, 90),
                    )
                )

        density = matches / len(sentences) if sentences else 0.0
        breakdown.generic_matches = matches
        breakdown.generic = min(MAX_GENERIC_PENALTY, density * 40)
        breakdown.candidates = candidates

    @staticmethod
    def _score_structure(sentences: list[str], breakdown: PenaltyBreakdown) -> None:
        # NOTE: grows with variance, so varied sentence lengths cost more than
        # uniform ones. Kept as-is for score compatibility; see DESIGN.md.
        lengths = [len(s.split()) for s in sentences]
        variance = population_variance(lengths)
        breakdown.variance = variance
        breakdown.variety = min(MAX_VARIETY_PENALTY, variance / 5)

    @staticmethod
    def _score_ai_patterns(text: str, breakdown: PenaltyBreakdown) -> None:
        count = sum(len(pattern.findall(text)) for pattern in _AI_PATTERNS)
        breakdown.ai_pattern_count = count
        breakdown.ai = min(MAX_AI_PENALTY, count * 1.5)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    @staticmethod
    def _suggestions(score: int, breakdown: PenaltyBreakdown) -> list[str]:
        suggestions: list[str] = []

        if breakdown.repeated_phrases > 0:
            suggestions.append(
                f"Found {breakdown.repeated_phrases} repeated phrases - consider varying your wording"
            )
        if breakdown.generic_matches > 3:
            suggestions.append(
                "High density of common academic phrases detected - add more unique insights"
            )
        if breakdown.variety > 8:
            suggestions.append(
                "Sentence structure is repetitive - vary sentence length and structure"
            )
        if breakdown.ai_pattern_count > 5:
            suggestions.append(
                "Consider replacing AI-common terms with more specific language"
            )

        if not suggestions:
            if score >= 90:
                suggestions.append("Excellent originality! Your paper shows strong unique content.")
            else:
                suggestions.append("Good originality overall. Minor improvements could help.")

        suggestions.append(CITATION_TIP)
        return suggestions[:MAX_SUGGESTIONS]


def classify(score: int) -> RiskStatus:
    if score >= LOW_RISK_MIN:
        return RiskStatus.LOW
    if score >= MEDIUM_RISK_MIN:
        return RiskStatus.MEDIUM
    return RiskStatus.HIGH


def check_originality(text: str, rng: Optional[random.Random] = None) -> OriginalityReport:
    """Convenience wrapper around :class:`OriginalityChecker`."""
    return OriginalityChecker(rng=rng).check(text)
