"""Keyword heuristics for lead extraction from call transcripts."""

import re
from dataclasses import dataclass

QUALIFYING_KEYWORDS = ("interested", "sign up", "buy", "purchase", "book", "yes")
POSITIVE_KEYWORDS = ("interested", "yes", "definitely", "sure", "absolutely")
NEGATIVE_KEYWORDS = ("no", "not interested", "maybe", "later")

BASE_CONFIDENCE = 0.5
POSITIVE_WEIGHT = 0.1
NEGATIVE_WEIGHT = 0.15

# Checked in order, first match wins
CALL_INTENTS = (
    ("booking", ("book", "reservation")),
    ("pricing_inquiry", ("price", "cost", "how much")),
    ("service_interest", ("interested", "sign up")),
    ("support", ("support", "help")),
    ("cancellation", ("cancel", "refund")),
)
DEFAULT_CALL_INTENT = "general_inquiry"

NAME_PATTERNS = (
    re.compile(r"my name is ([a-z]+(?:\s[a-z]+)?)", re.IGNORECASE),
    re.compile(r"i'm ([a-z]+(?:\s[a-z]+)?)", re.IGNORECASE),
    re.compile(r"this is ([a-z]+(?:\s[a-z]+)?)", re.IGNORECASE),
)
EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+)")


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def extract_call_intent(transcript: str) -> str:
    """Map a transcript onto a coarse call intent."""
    text = transcript.lower()
    for intent, keywords in CALL_INTENTS:
        if any(keyword in text for keyword in keywords):
            return intent
    return DEFAULT_CALL_INTENT


def is_qualified(transcript: str) -> bool:
    text = transcript.lower()
    return any(keyword in text for keyword in QUALIFYING_KEYWORDS)


def calculate_confidence(text: str) -> float:
    """Score interest from positive and negative keywords, clamped to [0, 1].

    Each keyword counts once regardless of how often it appears.
    """
    lowered = text.lower()
    positives = sum(1 for keyword in POSITIVE_KEYWORDS if keyword in lowered)
    negatives = sum(1 for keyword in NEGATIVE_KEYWORDS if keyword in lowered)
    return clamp(BASE_CONFIDENCE + positives * POSITIVE_WEIGHT - negatives * NEGATIVE_WEIGHT)


def extract_name(transcript: str) -> str | None:
    for pattern in NAME_PATTERNS:
        match = pattern.search(transcript)
        if match:
            return match.group(1).strip()
    return None


def extract_email(transcript: str) -> str | None:
    match = EMAIL_PATTERN.search(transcript)
    return match.group(1) if match else None


@dataclass
class ExtractedLead:
    """Lead details recovered from a transcript."""

    intent: str
    is_qualified: bool
    confidence: float
    name: str | None = None
    email: str | None = None


def extract_lead(transcript: str) -> ExtractedLead:
    """Run every transcript heuristic over one call."""
    return ExtractedLead(
        intent=extract_call_intent(transcript),
        is_qualified=is_qualified(transcript),
        confidence=calculate_confidence(transcript),
        name=extract_name(transcript),
        email=extract_email(transcript),
    )
