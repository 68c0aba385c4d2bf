"""Sentiment, intent and urgency classification for chat messages.

Two classifiers share the ``classify(text)`` interface:

- ModelSentimentClassifier asks an OpenAI-compatible chat model for a JSON
  verdict and falls back to keyword matching on any failure.
- KeywordSentimentClassifier is deterministic and needs no API key.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from voice_gateway.providers.llm import LLMProvider
from voice_gateway.qualification.transcript import calculate_confidence, clamp

logger = logging.getLogger("voice-gateway-sentiment")


class Intent(str, Enum):
    INFORMATION = "information"
    DEMO = "demo"
    PRICING = "pricing"
    SUPPORT = "support"
    PURCHASE = "purchase"
    GENERAL = "general"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class SentimentAnalysis:
    """Classification of a single message."""

    score: float = 0.5
    intent: Intent = Intent.GENERAL
    urgency: Urgency = Urgency.MEDIUM
    keywords: tuple[str, ...] = field(default_factory=tuple)


DEFAULT_ANALYSIS = SentimentAnalysis()


class SentimentClassifier(Protocol):
    async def classify(self, text: str) -> SentimentAnalysis: ...


# Checked in order, first intent with a hit wins
INTENT_KEYWORDS: tuple[tuple[Intent, tuple[str, ...]], ...] = (
    (Intent.PURCHASE, ("buy", "purchase", "sign up", "subscribe")),
    (Intent.DEMO, ("demo", "book", "try", "trial")),
    (Intent.PRICING, ("price", "cost", "how much", "pricing", "plan")),
    (Intent.SUPPORT, ("support", "help", "problem", "issue")),
    (Intent.INFORMATION, ("what", "how", "feature", "tell me")),
)

URGENCY_KEYWORDS: tuple[tuple[Urgency, tuple[str, ...]], ...] = (
    (Urgency.HIGH, ("urgent", "asap", "today", "now", "immediately")),
    (Urgency.LOW, ("later", "maybe", "someday", "just looking")),
)


def coerce_analysis(data: Any) -> SentimentAnalysis:
    """Build an analysis from untrusted model output.

    Unknown intents and urgencies fall back to the defaults; the score is
    clamped to [0, 1].
    """
    if not isinstance(data, dict):
        raise ValueError("Sentiment analysis must be a JSON object")

    try:
        raw_score = data.get("score")
        score = DEFAULT_ANALYSIS.score if raw_score is None else clamp(float(raw_score))
    except (TypeError, ValueError):
        score = DEFAULT_ANALYSIS.score

    try:
        intent = Intent(data.get("intent"))
    except ValueError:
        intent = Intent.GENERAL

    try:
        urgency = Urgency(data.get("urgency"))
    except ValueError:
        urgency = Urgency.MEDIUM

    keywords = data.get("keywords")
    if not isinstance(keywords, list):
        keywords = []

    return SentimentAnalysis(
        score=score,
        intent=intent,
        urgency=urgency,
        keywords=tuple(str(k) for k in keywords),
    )


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring of ``text``."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        start = text.find("{", start + 1)
    return None


class KeywordSentimentClassifier:
    """Deterministic classifier over fixed keyword tables."""

    async def classify(self, text: str) -> SentimentAnalysis:
        return self.classify_sync(text)

    def classify_sync(self, text: str) -> SentimentAnalysis:
        lowered = text.lower()
        keywords: list[str] = []

        intent = Intent.GENERAL
        for candidate, words in INTENT_KEYWORDS:
            hits = [word for word in words if word in lowered]
            if hits:
                intent = candidate
                keywords.extend(hits)
                break

        urgency = Urgency.MEDIUM
        for candidate, words in URGENCY_KEYWORDS:
            hits = [word for word in words if word in lowered]
            if hits:
                urgency = candidate
                keywords.extend(hits)
                break

        return SentimentAnalysis(
            score=calculate_confidence(text),
            intent=intent,
            urgency=urgency,
            keywords=tuple(keywords),
        )


ANALYSIS_PROMPT = """Analyze this customer message for sentiment, intent, and urgency. Return ONLY a JSON object with this exact structure:
{{
  "score": 0.0-1.0,
  "intent": "information|demo|pricing|support|purchase|general",
  "urgency": "low|medium|high",
  "keywords": ["keyword1", "keyword2"]
}}

Customer message: "{message}"

Analysis:"""


class ModelSentimentClassifier:
    """Classifier backed by a chat-completion model.

    Never raises: API errors, timeouts and unparseable replies are logged
    and answered by the keyword classifier.
    """

    def __init__(
        self,
        provider: LLMProvider,
        fallback: KeywordSentimentClassifier | None = None,
    ):
        self.provider = provider
        self.fallback = fallback or KeywordSentimentClassifier()

    async def classify(self, text: str) -> SentimentAnalysis:
        try:
            completion = await self.provider.client.chat.completions.create(
                model=self.provider.analysis_model,
                messages=[{"role": "user", "content": ANALYSIS_PROMPT.format(message=text)}],
                temperature=0.3,
                max_tokens=150,
            )
            reply = completion.choices[0].message.content or ""
            raw = extract_json_object(reply)
            if raw is None:
                raise ValueError("Invalid sentiment analysis response")
            return coerce_analysis(json.loads(raw))
        except Exception as e:
            logger.warning(
                f"[{self.provider.name}] Sentiment analysis failed, using keywords: {e!s}"
            )
            return await self.fallback.classify(text)


def build_classifier(provider: LLMProvider | None) -> SentimentClassifier:
    """Pick the model classifier when a provider is configured."""
    if provider is None:
        return KeywordSentimentClassifier()
    return ModelSentimentClassifier(provider)
