"""Unit tests for the rule-based sentiment classifier."""

from __future__ import annotations

import pytest

from src.models.sentiment import SentimentLabel
from src.services.rule_classifier import RuleBasedClassifier


@pytest.fixture()
def classifier() -> RuleBasedClassifier:
    return RuleBasedClassifier()


class TestNumericRatings:
    @pytest.mark.parametrize(
        ("text", "label", "score"),
        [
            ("5", SentimentLabel.POSITIVE, 0.7),
            ("4", SentimentLabel.POSITIVE, 0.7),
            ("4.5", SentimentLabel.POSITIVE, 0.7),
            ("3", SentimentLabel.NEUTRAL, 0.0),
            ("3.9", SentimentLabel.NEUTRAL, 0.0),
            ("2", SentimentLabel.NEGATIVE, -0.6),
            ("1", SentimentLabel.NEGATIVE, -0.6),
        ],
    )
    def test_rating_scale(self, classifier, text, label, score) -> None:
        result = classifier.classify(text)
        assert result.label == label
        assert result.score == score

    def test_three_is_neutral_zero(self, classifier) -> None:
        result = classifier.classify("3")
        assert result.label == SentimentLabel.NEUTRAL
        assert result.score == 0.0


class TestExactPhrases:
    @pytest.mark.parametrize("text", ["Good", "  EXCELLENT  ", "Very good!", "yes"])
    def test_positive_phrases(self, classifier, text) -> None:
        result = classifier.classify(text)
        assert result.label == SentimentLabel.POSITIVE
        assert result.score > 0

    @pytest.mark.parametrize("text", ["Needs Improvement", "poor.", "Not satisfied"])
    def test_negative_phrases(self, classifier, text) -> None:
        result = classifier.classify(text)
        assert result.label == SentimentLabel.NEGATIVE
        assert result.score < 0

    @pytest.mark.parametrize("text", ["Average", "ok", "N/A", "No comments"])
    def test_neutral_phrases(self, classifier, text) -> None:
        result = classifier.classify(text)
        assert result.label == SentimentLabel.NEUTRAL
        assert result.score == 0.0


class TestKeywords:
    def test_strong_and_plain_positive_words(self, classifier) -> None:
        result = classifier.classify("excellent, really helpful")
        assert result.label == SentimentLabel.POSITIVE
        assert result.score >= 0.6

    def test_negative_sentence(self, classifier) -> None:
        result = classifier.classify("The pacing was slow and the slides were confusing")
        assert result.label == SentimentLabel.NEGATIVE
        assert -0.85 <= result.score < 0

    def test_score_is_capped(self, classifier) -> None:
        result = classifier.classify(
            "amazing amazing excellent wonderful fantastic brilliant perfect best"
        )
        assert result.score == 0.85

    def test_negation_flips_keyword(self, classifier) -> None:
        result = classifier.classify("the lecture was not helpful at all")
        assert result.label == SentimentLabel.NEGATIVE

    def test_keyword_confidence_is_lower_than_phrase(self, classifier) -> None:
        keyword = classifier.classify("the workshop was good and useful")
        phrase = classifier.classify("good")
        assert keyword.confidence < phrase.confidence

    def test_tie_is_neutral(self, classifier) -> None:
        result = classifier.classify("good content but bad audio")
        assert result.label == SentimentLabel.NEUTRAL
        assert result.score == 0.0
        assert result.confidence == 0.4

    @pytest.mark.parametrize(
        "text",
        ["I felt unhappy with the pacing", "The handouts were unhelpful for the exam"],
    )
    def test_un_prefixed_words_are_negative(self, classifier, text) -> None:
        result = classifier.classify(text)
        assert result.label == SentimentLabel.NEGATIVE

    @pytest.mark.parametrize(
        "text",
        ["Certificates were issued on Friday", "They bestow the award every year"],
    )
    def test_words_sharing_a_prefix_do_not_match(self, classifier, text) -> None:
        result = classifier.classify(text)
        assert result.label == SentimentLabel.NEUTRAL
        assert result.score == 0.0

    def test_stems_match_inflections(self, classifier) -> None:
        result = classifier.classify("I was frustrated and confused by the labs")
        assert result.label == SentimentLabel.NEGATIVE


class TestTotality:
    @pytest.mark.parametrize("text", ["", "   ", "lorem ipsum dolor", "🙂", "12abc", "!!!"])
    def test_always_returns_a_result(self, classifier, text) -> None:
        result = classifier.classify(text)
        assert result.label in set(SentimentLabel)
        assert -1.0 <= result.score <= 1.0
        assert 0.0 <= result.confidence <= 1.0
        assert result.provider_used == "fallback"

    def test_deterministic(self, classifier) -> None:
        text = "Great instructor, but the room was awful"
        assert classifier.classify(text) == classifier.classify(text)
