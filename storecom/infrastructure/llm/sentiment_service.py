"""
Sentiment Service - Hybrid Rule-Based + LLM Review Sentiment
=============================================================

ARCHITECTURAL DECISION:
- Rule-based phrase counting runs first; it is free and instant
- The LLM (OpenRouter) is consulted only when the rules are unsure
  (confidence below 0.6)
- If the LLM is missing or fails, the rule result is returned, marked hybrid
- Labels are lowercase: positive, neutral, negative

EXTENSIBILITY:
- To tune rule coverage: edit POSITIVE_PHRASES / NEGATIVE_PHRASES
- To use a different model: change LLM_MODEL (see LLMSettings)
"""

import re
import json
import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Iterable, List, Optional

from .openrouter import OpenRouterClient

logger = logging.getLogger(__name__)


class Sentiment(Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class AnalysisMethod(Enum):
    RULE_BASED = "rule-based"
    AI = "ai"
    HYBRID = "hybrid"


class SentimentServiceError(Exception):
    """Base exception for sentiment service errors."""
    pass


# Confidence thresholds
HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6

BATCH_SIZE = 10


@dataclass
class SentimentResult:
    sentiment: str
    confidence: float
    score: float
    method: str
    reasoning: str

    def to_dict(self) -> dict:
        return asdict(self)


def _phrase_pattern(phrases: Iterable[str]) -> List[re.Pattern]:
    return [re.compile(rf"\b{re.escape(p)}\b", re.IGNORECASE) for p in phrases]


class SentimentService:
    """
    Hybrid sentiment classification.

    USAGE:
        service = SentimentService()
        result = service.analyze("Great food, friendly staff!")
        print(result.sentiment)  # "positive"
    """

    POSITIVE_PHRASES = [
        "good", "great", "excellent", "amazing", "wonderful", "fantastic", "love", "perfect",
        "best", "awesome", "outstanding", "brilliant", "superb", "delicious", "fresh", "clean",
        "friendly", "helpful", "fast", "quick", "easy", "convenient", "affordable", "cheap",
        "value", "recommend", "satisfied", "happy", "pleased", "excellent service",
        "great food", "amazing experience", "must try", "highly recommend", "will come back",
        "worth it", "value for money", "pocket friendly", "fair price", "reasonable price",
    ]

    NEGATIVE_PHRASES = [
        "bad", "terrible", "awful", "horrible", "worst", "hate", "disappointed", "disgusting",
        "dirty", "slow", "rude", "expensive", "overpriced", "waste", "regret", "avoid",
        "complaint", "problem", "issue", "wrong", "broken", "poor", "unacceptable",
        "frustrated", "angry", "upset", "never again", "don't go", "rip off",
        "worst experience", "waste of money", "unfriendly", "unclean", "stale", "cold",
        "burnt", "undercooked", "overcooked", "tasteless", "bland", "so so", "mediocre",
        "average", "okay", "not great", "could be better", "disappointing", "let down",
    ]

    PROMPT_TEMPLATE = (
        'Analyze sentiment of: "{text}"\n\n'
        "Return ONLY this JSON format:\n"
        '{{"sentiment": "positive", "confidence": 0.8, "score": 0.7, "reasoning": "brief explanation"}}\n\n'
        "Rules:\n"
        '- sentiment: "positive", "negative", or "neutral"\n'
        "- confidence: 0.0 to 1.0\n"
        "- score: -1.0 to 1.0\n"
        "- reasoning: short explanation\n"
        "- JSON only, no other text"
    )

    _positive_patterns = _phrase_pattern(POSITIVE_PHRASES)
    _negative_patterns = _phrase_pattern(NEGATIVE_PHRASES)

    def __init__(self, client: Optional[OpenRouterClient] = None):
        self._client = client or OpenRouterClient()

        if not self._client.is_configured:
            logger.warning(
                "No OPENROUTER_API_KEY set. "
                "Sentiment analysis will use rule-based scoring only."
            )

    def analyze(self, text: str) -> SentimentResult:
        """
        Classify one review comment.

        Empty text is neutral with zero confidence. Confident rule results are
        returned as-is; otherwise the LLM decides.
        """
        if not text or not text.strip():
            return SentimentResult(
                Sentiment.NEUTRAL.value, 0.0, 0.0, AnalysisMethod.RULE_BASED.value, "Empty text"
            )

        rule_result = self.analyze_with_rules(text)
        if rule_result.confidence >= MEDIUM_CONFIDENCE:
            return rule_result

        try:
            ai_result = self._analyze_with_llm(text)
        except SentimentServiceError as e:
            logger.debug(f"AI analysis failed, using rule-based result: {e}")
            return SentimentResult(
                sentiment=rule_result.sentiment,
                confidence=rule_result.confidence,
                score=rule_result.score,
                method=AnalysisMethod.HYBRID.value,
                reasoning=f"Hybrid (AI failed): {rule_result.reasoning}",
            )

        return SentimentResult(
            sentiment=ai_result.sentiment,
            confidence=max(rule_result.confidence, ai_result.confidence),
            score=ai_result.score,
            method=AnalysisMethod.HYBRID.value,
            reasoning=(f"Hybrid: Rule-based ({rule_result.confidence:.2f}) + "
                       f"AI ({ai_result.confidence:.2f})"),
        )

    def analyze_with_rules(self, text: str) -> SentimentResult:
        """Count whole-word phrase hits and derive sentiment from their balance."""
        lower_text = text.lower()
        positive = sum(len(p.findall(lower_text)) for p in self._positive_patterns)
        negative = sum(len(p.findall(lower_text)) for p in self._negative_patterns)

        total = positive - negative
        confidence = min((abs(total) + 1) / 10, 1.0)

        if total > 0:
            sentiment, score = Sentiment.POSITIVE, min(total / 5, 1.0)
        elif total < 0:
            sentiment, score = Sentiment.NEGATIVE, max(total / 5, -1.0)
        else:
            sentiment, score = Sentiment.NEUTRAL, 0.0

        return SentimentResult(
            sentiment=sentiment.value,
            confidence=confidence,
            score=score,
            method=AnalysisMethod.RULE_BASED.value,
            reasoning=f"Rule-based analysis: +{positive}, -{negative}",
        )

    def analyze_batch(self, texts: List[str]) -> List[SentimentResult]:
        """Analyze texts in order, in batches of BATCH_SIZE."""
        results = []
        for start in range(0, len(texts), BATCH_SIZE):
            batch = texts[start:start + BATCH_SIZE]
            results.extend(self.analyze(text) for text in batch)
            logger.debug(f"Analyzed sentiment batch {start // BATCH_SIZE + 1} ({len(batch)} texts)")
        return results

    @staticmethod
    def get_stats(results: List[SentimentResult]) -> dict:
        if not results:
            return {
                "total": 0, "positive": 0, "negative": 0, "neutral": 0,
                "average_confidence": 0, "average_score": 0,
                "high_confidence": 0, "medium_confidence": 0, "low_confidence": 0,
            }

        total = len(results)
        return {
            "total": total,
            "positive": sum(1 for r in results if r.sentiment == Sentiment.POSITIVE.value),
            "negative": sum(1 for r in results if r.sentiment == Sentiment.NEGATIVE.value),
            "neutral": sum(1 for r in results if r.sentiment == Sentiment.NEUTRAL.value),
            "average_confidence": sum(r.confidence for r in results) / total,
            "average_score": sum(r.score for r in results) / total,
            "high_confidence": sum(1 for r in results if r.confidence >= HIGH_CONFIDENCE),
            "medium_confidence": sum(
                1 for r in results if MEDIUM_CONFIDENCE <= r.confidence < HIGH_CONFIDENCE
            ),
            "low_confidence": sum(1 for r in results if r.confidence < MEDIUM_CONFIDENCE),
        }

    # ── LLM ────────────────────────────────────────────────────────

    def _analyze_with_llm(self, text: str) -> SentimentResult:
        if not self._client.is_configured:
            raise SentimentServiceError("LLM not configured")

        content = self._client.complete(self.PROMPT_TEMPLATE.format(text=text), max_tokens=150)
        if not content:
            raise SentimentServiceError("LLM returned no content")
        return self._parse_llm_response(content)

    def _parse_llm_response(self, content: str) -> SentimentResult:
        """Parse the JSON reply, falling back to regex scraping of free text."""
        cleaned = content.strip()
        if cleaned.startswith("```") and cleaned.endswith("```"):
            cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
            cleaned = re.sub(r"\s*```$", "", cleaned)

        try:
            parsed = json.loads(cleaned)
            if not isinstance(parsed, dict):
                raise ValueError("not an object")
            sentiment = str(parsed.get("sentiment") or "neutral").lower()
            if sentiment not in {s.value for s in Sentiment}:
                sentiment = Sentiment.NEUTRAL.value
            return SentimentResult(
                sentiment=sentiment,
                confidence=min(max(float(parsed.get("confidence") or 0.5), 0.0), 1.0),
                score=min(max(float(parsed.get("score") or 0.0), -1.0), 1.0),
                method=AnalysisMethod.AI.value,
                reasoning=parsed.get("reasoning") or "AI analysis",
            )
        except (TypeError, ValueError):
            logger.debug(f"LLM reply is not JSON, using regex fallback: {content[:80]!r}")

        match = re.search(r"\b(positive|negative|neutral)\b", content, re.IGNORECASE)
        sentiment = match.group(1).lower() if match else Sentiment.NEUTRAL.value

        number = re.search(r"(\d+(?:\.\d+)?)%?", content)
        confidence = min(max(float(number.group(1)) / 100, 0.0), 1.0) if number else 0.5

        score = {"positive": 0.7, "negative": -0.7}.get(sentiment, 0.0)
        return SentimentResult(sentiment, confidence, score, AnalysisMethod.AI.value, content[:200])
