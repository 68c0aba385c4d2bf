"""Lead qualification score from a sentiment history."""

from collections.abc import Sequence

from voice_gateway.qualification.sentiment import SentimentAnalysis
from voice_gateway.qualification.transcript import clamp

SENTIMENT_WEIGHT = 0.3
INTENT_WEIGHT = 0.5
URGENCY_WEIGHT = 0.2

INTENT_SCORES = {
    "purchase": 1.0,
    "demo": 0.9,
    "pricing": 0.8,
    "information": 0.6,
    "support": 0.5,
    "general": 0.4,
}
URGENCY_SCORES = {"high": 1.0, "medium": 0.6, "low": 0.3}
UNKNOWN_SCORE = 0.5
EMPTY_HISTORY_SCORE = 0.5


def _value(member: object) -> str:
    return getattr(member, "value", member)


def calculate_qualification_score(history: Sequence[SentimentAnalysis]) -> float:
    """Weighted average of sentiment, intent and urgency, clamped to [0, 1].

    An empty history scores 0.5.
    """
    if not history:
        return EMPTY_HISTORY_SCORE

    count = len(history)
    avg_sentiment = sum(s.score for s in history) / count
    avg_intent = sum(INTENT_SCORES.get(_value(s.intent), UNKNOWN_SCORE) for s in history) / count
    avg_urgency = sum(
        URGENCY_SCORES.get(_value(s.urgency), UNKNOWN_SCORE) for s in history
    ) / count

    return clamp(
        avg_sentiment * SENTIMENT_WEIGHT
        + avg_intent * INTENT_WEIGHT
        + avg_urgency * URGENCY_WEIGHT
    )
