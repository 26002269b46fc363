"""Tests for the heuristic originality checker."""

from __future__ import annotations

import random

import pytest

from paperforge.knowledge_base.models import RiskStatus
from paperforge.originality.checker import (
    CITATION_TIP,
    OriginalityChecker,
    PenaltyBreakdown,
    check_originality,
    classify,
)


class FixedRandom(random.Random):
    """Deterministic stand-in: fixed jitter, lowest similarity."""

    def __init__(self, jitter: int = 0):
        super().__init__(0)
        self.jitter = jitter

    def randint(self, a, b):
        return self.jitter

    def randrange(self, start, stop=None, step=1):
        return start


# Three six-word sentences: no shared phrasing, no filler, zero length variance
UNIFORM_TEXT = (
    "Copper wires carry electric current efficiently. "
    "Glass fibers transmit light pulses quickly. "
    "Solar panels convert sunlight into power."
)

REPEATED_TEXT = " ".join(
    ["The quick brown fox jumps over the lazy dog near the river bank."] * 10
)

GENERIC_TEXT = (
    "This paper presents a study of urban heat islands in coastal cities. "
    "In recent years, many cities have grown warmer during summer nights. "
    "Furthermore, the results show that tree cover reduces surface temperature. "
    "Moreover, it is important to note that asphalt retains heat for hours. "
    "In conclusion, according to the measurements, parks cool nearby streets. "
    "Based on the findings, the data suggests that planting is worthwhile."
)

AI_HEAVY_TEXT = (
    "We utilize a cutting-edge framework to leverage significant gains. "
    "This groundbreaking and innovative method can facilitate substantial progress. "
    "Teams implement state-of-the-art tooling with considerable and notable success. "
    "The significant outcome shows a substantial improvement for everyone involved."
)

# No filler, no inflated vocabulary, no repeated three-word phrases, uneven sentence lengths
VARIED_CLEAN_TEXT = (
    "Tidal wetlands store carbon. "
    "Mangrove roots trap fine sediment during each incoming flood tide, building soil "
    "layers that can persist for centuries when left undisturbed by dredging or shrimp ponds. "
    "Salt marsh grasses behave differently. "
    "Researchers sampled forty coastal plots along two estuaries. "
    "Peat cores were dated with lead isotopes!"
)


class TestScoreInvariants:
    @pytest.mark.parametrize(
        "text",
        [UNIFORM_TEXT, REPEATED_TEXT, GENERIC_TEXT, AI_HEAVY_TEXT, VARIED_CLEAN_TEXT],
    )
    def test_score_range_and_status_consistent(self, text):
        checker = OriginalityChecker()
        for _ in range(50):
            report = checker.check(text)
            assert 50 <= report.score <= 98
            assert report.status == classify(report.score)
            assert len(report.matches) <= 3
            assert len(report.suggestions) <= 4

    def test_seeded_runs_are_reproducible(self):
        first = OriginalityChecker(random.Random(42)).check(GENERIC_TEXT)
        second = OriginalityChecker(random.Random(42)).check(GENERIC_TEXT)
        assert first == second

    def test_word_count_uses_whitespace_tokens(self):
        report = check_originality(UNIFORM_TEXT)
        assert report.analyzed_word_count == 18

    def test_serializes_with_camel_case_word_count(self):
        data = check_originality(UNIFORM_TEXT).model_dump(by_alias=True)
        assert data["analyzedWordCount"] == 18
        assert data["status"] in {"low-risk", "medium-risk", "high-risk"}


class TestClassification:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (98, RiskStatus.LOW),
            (85, RiskStatus.LOW),
            (84, RiskStatus.MEDIUM),
            (70, RiskStatus.MEDIUM),
            (69, RiskStatus.HIGH),
            (50, RiskStatus.HIGH),
        ],
    )
    def test_thresholds(self, score, expected):
        assert classify(score) == expected


class TestPenalties:
    def test_clean_uniform_text_is_capped_at_ceiling(self):
        report = OriginalityChecker(FixedRandom(0)).check(UNIFORM_TEXT)
        assert report.score == 98
        assert report.status == RiskStatus.LOW
        assert report.matches == []
        assert report.suggestions == [
            "Excellent originality! Your paper shows strong unique content.",
            CITATION_TIP,
        ]

    def test_jitter_applies_below_ceiling(self):
        report = OriginalityChecker(FixedRandom(-5)).check(UNIFORM_TEXT)
        assert report.score == 95

    def test_repeated_sentence_triggers_repetition_penalty(self):
        breakdown = PenaltyBreakdown()
        sentences = [s for s in REPEATED_TEXT.split(".") if len(s.strip()) > 10]
        OriginalityChecker._score_repetition(sentences, breakdown)
        assert breakdown.repeated_phrases > 0
        assert breakdown.repetition == 20

    def test_repeated_sentence_suggests_varying_wording(self):
        for _ in range(20):
            report = check_originality(REPEATED_TEXT)
            assert any("repeated phrases" in s for s in report.suggestions)
            assert report.suggestions[-1] == CITATION_TIP

    def test_generic_phrases_collect_matches(self):
        report = OriginalityChecker(FixedRandom(0)).check(GENERIC_TEXT)
        assert len(report.matches) == 3
        for match in report.matches:
            assert 70 <= match.similarity < 90
            assert len(match.text) <= 83
        assert any("common academic phrases" in s for s in report.suggestions)

    def test_similarity_drawn_from_range(self):
        checker = OriginalityChecker(random.Random(7))
        for _ in range(30):
            for match in checker.check(GENERIC_TEXT).matches:
                assert 70 <= match.similarity < 90

    def test_long_sentence_excerpt_is_truncated(self):
        long_sentence = "In conclusion " + "the tide line moves across mud flats " * 5
        text = long_sentence + ". A second sentence of plain description follows here."
        report = OriginalityChecker(FixedRandom(0)).check(text)
        assert report.matches[0].text.endswith("...")
        assert len(report.matches[0].text) == 83

    def test_ai_vocabulary_counted_case_insensitively(self):
        breakdown = PenaltyBreakdown()
        OriginalityChecker._score_ai_patterns("Utilize, LEVERAGE and Significant.", breakdown)
        assert breakdown.ai_pattern_count == 3
        assert breakdown.ai == pytest.approx(4.5)

    def test_ai_heavy_text_gets_suggestion(self):
        report = OriginalityChecker(FixedRandom(0)).check(AI_HEAVY_TEXT)
        assert any("AI-common terms" in s for s in report.suggestions)

    def test_ai_penalty_capped(self):
        breakdown = PenaltyBreakdown()
        OriginalityChecker._score_ai_patterns("significant " * 40, breakdown)
        assert breakdown.ai == 15

    def test_variety_penalty_grows_with_variance(self):
        uniform = PenaltyBreakdown()
        OriginalityChecker._score_structure(["one two three four", "five six seven eight"], uniform)
        assert uniform.variety == 0

        varied = PenaltyBreakdown()
        OriginalityChecker._score_structure(["a b", "c d e f g h i j k l m n o p q r s t u v"], varied)
        assert varied.variance == pytest.approx(81.0)
        assert varied.variety == 15

    def test_heavy_penalties_clamped_to_floor(self):
        text = (GENERIC_TEXT + " " + AI_HEAVY_TEXT + " ") * 3
        report = OriginalityChecker(FixedRandom(-5)).check(text)
        assert report.score == 50
        assert report.status == RiskStatus.HIGH
        assert "repeated phrases" in report.suggestions[0]

    def test_suggestions_truncated_to_four(self):
        long_sentence = " ".join(f"token{i}" for i in range(80))
        text = " ".join([GENERIC_TEXT, AI_HEAVY_TEXT, REPEATED_TEXT, long_sentence + "."])
        report = OriginalityChecker(FixedRandom(0)).check(text)
        assert len(report.suggestions) == 4
        assert CITATION_TIP not in report.suggestions
        assert any("Sentence structure" in s for s in report.suggestions)


class TestCleanText:
    def test_clean_varied_text_scores_in_upper_half(self):
        checker = OriginalityChecker()
        scores = [checker.check(VARIED_CLEAN_TEXT).score for _ in range(200)]
        assert min(scores) >= 74
        assert sum(scores) / len(scores) >= 80

    def test_text_without_sentences_does_not_fail(self):
        text = "Go home. " * 20
        report = OriginalityChecker(FixedRandom(0)).check(text)
        assert report.score == 98
        assert report.matches == []
        assert report.analyzed_word_count == 40
