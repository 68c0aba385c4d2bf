"""Lead qualification: message classification, scoring and transcript heuristics."""

from voice_gateway.qualification.scoring import calculate_qualification_score
from voice_gateway.qualification.sentiment import (
    Intent,
    KeywordSentimentClassifier,
    ModelSentimentClassifier,
    SentimentAnalysis,
    SentimentClassifier,
    Urgency,
    build_classifier,
)
from voice_gateway.qualification.transcript import ExtractedLead, extract_lead

__all__ = [
    "ExtractedLead",
    "Intent",
    "KeywordSentimentClassifier",
    "ModelSentimentClassifier",
    "SentimentAnalysis",
    "SentimentClassifier",
    "Urgency",
    "build_classifier",
    "calculate_qualification_score",
    "extract_lead",
]
