"""Rule-based sentiment classifier: the last link of the provider chain.

Deterministic and total: every string (including the empty string) gets a
label, no I/O happens and nothing raises.  Three rules are tried in order:

1. **Numeric rating**: ``"4"``, ``"2.5"``: mapped onto a 1-5 scale.
2. **Exact phrase**: whole-answer matches such as ``"Needs Improvement"``
   or ``"Average"`` (the stock options of review forms).
3. **Weighted keywords**: positive and negative words or stems, strong words
   counting double; a negator right before a keyword flips its side.

Keyword verdicts carry a lower confidence than the other two rules since
they ignore most of the sentence.
"""

from __future__ import annotations

import re

from src.models.sentiment import FALLBACK_PROVIDER, SentimentLabel, SentimentResult

_NUMERIC_PATTERN = re.compile(r"^[+-]?\d+(?:\.\d+)?$")
_TOKEN_PATTERN = re.compile(r"[a-z']+")
_TRAILING_PUNCTUATION = " \t\r\n.!?,;:"

_POSITIVE_PHRASES = frozenset({
    "good", "very good", "great", "excellent", "awesome", "amazing", "outstanding",
    "satisfied", "very satisfied", "happy", "helpful", "very helpful", "loved it",
    "love it", "perfect", "superb", "nice", "well done", "yes", "agree",
    "strongly agree", "recommended", "highly recommended",
})

_NEGATIVE_PHRASES = frozenset({
    "bad", "very bad", "poor", "very poor", "terrible", "awful", "horrible",
    "needs improvement", "need improvement", "not good", "not satisfied",
    "unsatisfied", "dissatisfied", "disappointed", "unhelpful", "not helpful",
    "no", "disagree", "strongly disagree", "worst", "useless",
})

_NEUTRAL_PHRASES = frozenset({
    "average", "ok", "okay", "fine", "neutral", "fair", "so so", "so-so", "n/a",
    "na", "none", "nothing", "nil", "no comment", "no comments", "not sure",
    "maybe", "satisfactory", "moderate", "normal", "-",
})

# Keyword -> weight.  A plain keyword matches the whole token; a trailing
# ``*`` marks a stem that matches any token starting with it.
_POSITIVE_KEYWORDS: dict[str, int] = {
    "excellent": 2, "amazing": 2, "awesome": 2, "wonderful": 2, "fantastic": 2,
    "outstanding": 2, "brilliant*": 2, "superb": 2, "incredibl*": 2, "perfect*": 2,
    "love": 2, "loved": 2, "loves": 2, "loving": 2, "best": 2,
    "good": 1, "great": 1, "helpful": 1, "happy": 1, "thank*": 1, "nice": 1,
    "enjoy*": 1, "clear": 1, "clearly": 1, "useful": 1, "informative": 1,
    "interesting": 1, "satisf*": 1, "recommend*": 1, "friendly": 1, "engaging": 1,
    "easy": 1, "easier": 1,
}

_NEGATIVE_KEYWORDS: dict[str, int] = {
    "terrible": 2, "worst": 2, "awful": 2, "horrible": 2, "hate*": 2, "useless": 2,
    "pathetic": 2, "disgusting": 2, "waste*": 2,
    "bad": 1, "poor": 1, "poorly": 1, "disappoint*": 1, "boring": 1, "bored": 1,
    "frustrat*": 1, "annoy*": 1, "fail*": 1, "confus*": 1, "difficult*": 1,
    "slow*": 1, "unclear": 1, "rude": 1, "problem": 1, "problems": 1, "issue": 1,
    "issues": 1, "lack": 1, "lacks": 1, "lacking": 1, "worse": 1, "dissatisf*": 1,
    "unsatisf*": 1, "unhappy": 1, "unhelpful": 1,
}

_NEGATORS = frozenset({
    "not", "no", "never", "hardly", "isn't", "wasn't", "don't", "didn't",
    "doesn't", "aren't", "weren't", "nothing", "without",
})


class RuleBasedClassifier:
    """Local, dependency-free sentiment classifier."""

    def classify(self, text: str) -> SentimentResult:
        normalized = (text or "").strip().lower().rstrip(_TRAILING_PUNCTUATION)

        if _NUMERIC_PATTERN.match(normalized):
            return self._classify_rating(float(normalized))

        phrase_result = self._classify_phrase(normalized)
        if phrase_result is not None:
            return phrase_result

        return self._classify_keywords(normalized)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    @staticmethod
    def _classify_rating(value: float) -> SentimentResult:
        if value >= 4:
            return _result(SentimentLabel.POSITIVE, 0.7, 0.6)
        if value >= 3:
            return _result(SentimentLabel.NEUTRAL, 0.0, 0.6)
        return _result(SentimentLabel.NEGATIVE, -0.6, 0.6)

    @staticmethod
    def _classify_phrase(normalized: str) -> SentimentResult | None:
        if normalized in _POSITIVE_PHRASES:
            return _result(SentimentLabel.POSITIVE, 0.6, 0.6)
        if normalized in _NEGATIVE_PHRASES:
            return _result(SentimentLabel.NEGATIVE, -0.6, 0.6)
        if normalized in _NEUTRAL_PHRASES:
            return _result(SentimentLabel.NEUTRAL, 0.0, 0.6)
        return None

    @staticmethod
    def _classify_keywords(normalized: str) -> SentimentResult:
        positive = 0
        negative = 0
        tokens = _TOKEN_PATTERN.findall(normalized)
        for position, token in enumerate(tokens):
            pos_weight = _match_weight(token, _POSITIVE_KEYWORDS)
            neg_weight = _match_weight(token, _NEGATIVE_KEYWORDS)
            if not pos_weight and not neg_weight:
                continue
            negated = position > 0 and tokens[position - 1] in _NEGATORS
            if negated:
                pos_weight, neg_weight = neg_weight, pos_weight
            positive += pos_weight
            negative += neg_weight

        if positive > negative:
            return _result(SentimentLabel.POSITIVE, min(0.3 + 0.12 * positive, 0.85), 0.45)
        if negative > positive:
            return _result(SentimentLabel.NEGATIVE, max(-(0.3 + 0.12 * negative), -0.85), 0.45)
        return _result(SentimentLabel.NEUTRAL, 0.0, 0.4)


def _match_weight(token: str, keywords: dict[str, int]) -> int:
    for keyword, weight in keywords.items():
        if keyword.endswith("*"):
            if token.startswith(keyword[:-1]):
                return weight
        elif token == keyword:
            return weight
    return 0


def _result(label: SentimentLabel, score: float, confidence: float) -> SentimentResult:
    return SentimentResult(
        label=label,
        score=round(score, 4),
        confidence=confidence,
        provider_used=FALLBACK_PROVIDER,
    )
