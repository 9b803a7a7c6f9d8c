"""
Sentiment Rollup - Period Aggregation of Per-Review Sentiment
==============================================================

Pure functions turning (comment, sentiment result) pairs into the stored
analytics document: per-period counts and percentages, insights, themes,
trend and recommendations.

Each comment is paired with its own result, so themes are always counted
against the sentiment of the review they came from.
"""

from collections import Counter
from typing import Dict, List, Sequence, Tuple

# Window name -> days back from now
PERIODS = {"7d": 7, "30d": 30, "60d": 60, "90d": 90}

POSITIVE_THEMES = [
    "excellent", "amazing", "great", "good", "wonderful", "fantastic",
    "delicious", "friendly", "clean", "fast", "quick", "helpful",
]
NEGATIVE_THEMES = [
    "terrible", "awful", "bad", "poor", "slow", "dirty", "rude",
    "expensive", "cold", "burnt", "tasteless",
]

TOP_THEMES = 5

# (comment, {"sentiment", "score", "confidence", ...})
AnalyzedComment = Tuple[str, dict]


def empty_period(period: str, total_reviews: int, insight: str) -> dict:
    return {
        "period": period,
        "total_reviews": total_reviews,
        "sentiment": {"positive": 0, "negative": 0, "neutral": 0},
        "percentages": {"positive": 0.0, "negative": 0.0, "neutral": 0.0},
        "average_score": 0.0,
        "average_confidence": 0.0,
        "trend": "stable",
        "key_insights": [insight],
        "top_positive_themes": [],
        "top_negative_themes": [],
    }


def summarize_period(period: str, total_reviews: int,
                     analyzed: Sequence[AnalyzedComment]) -> dict:
    """
    Aggregate one time window.

    Args:
        period: Window name ("7d", "30d", ...)
        total_reviews: Active reviews in the window, with or without comment
        analyzed: Commented reviews in the window with their sentiment
    """
    if total_reviews == 0:
        return empty_period(period, 0, "No reviews in this period")
    if not analyzed:
        return empty_period(period, total_reviews, "No review comments to analyze")

    counts = Counter(result.get("sentiment", "neutral") for _, result in analyzed)
    sentiment = {
        "positive": counts.get("positive", 0),
        "negative": counts.get("negative", 0),
        "neutral": counts.get("neutral", 0),
    }
    n = len(analyzed)
    percentages = {label: count / n * 100 for label, count in sentiment.items()}
    average_score = sum(result.get("score", 0) or 0 for _, result in analyzed) / n
    average_confidence = sum(result.get("confidence", 0) or 0 for _, result in analyzed) / n

    if percentages["positive"] > 70:
        trend = "improving"
    elif percentages["negative"] > 50:
        trend = "declining"
    else:
        trend = "stable"

    positive_themes, negative_themes = extract_themes(analyzed)

    return {
        "period": period,
        "total_reviews": total_reviews,
        "sentiment": sentiment,
        "percentages": percentages,
        "average_score": average_score,
        "average_confidence": average_confidence,
        "trend": trend,
        "key_insights": generate_insights(sentiment, percentages, average_score),
        "top_positive_themes": positive_themes,
        "top_negative_themes": negative_themes,
    }


def generate_insights(sentiment: Dict[str, int], percentages: Dict[str, float],
                      average_score: float) -> List[str]:
    insights = []

    if percentages["positive"] > 80:
        insights.append("Excellent customer satisfaction with overwhelmingly positive sentiment")
    elif percentages["positive"] > 60:
        insights.append("Good customer satisfaction with mostly positive sentiment")
    elif percentages["negative"] > 50:
        insights.append("Customer satisfaction needs attention with negative sentiment trend")
    else:
        insights.append("Mixed customer sentiment with room for improvement")

    if average_score > 0.5:
        insights.append("Strong positive sentiment score indicates satisfied customers")
    elif average_score < -0.3:
        insights.append("Negative sentiment score suggests customer concerns need addressing")

    if sentiment["neutral"] > sentiment["positive"] + sentiment["negative"]:
        insights.append(
            "High neutral sentiment suggests customers are neither very satisfied nor dissatisfied"
        )

    return insights


def extract_themes(analyzed: Sequence[AnalyzedComment]) -> Tuple[List[str], List[str]]:
    """Top keywords among positive comments and among negative comments."""
    positive: Counter = Counter()
    negative: Counter = Counter()

    for comment, result in analyzed:
        text = (comment or "").lower()
        label = result.get("sentiment")
        if label == "positive":
            positive.update(k for k in POSITIVE_THEMES if k in text)
        elif label == "negative":
            negative.update(k for k in NEGATIVE_THEMES if k in text)

    return (
        [theme for theme, _ in positive.most_common(TOP_THEMES)],
        [theme for theme, _ in negative.most_common(TOP_THEMES)],
    )


def overall_trend(periods: Dict[str, dict]) -> str:
    trends = [periods[name]["trend"] for name in PERIODS if name in periods]
    improving = trends.count("improving")
    declining = trends.count("declining")
    if improving > declining:
        return "improving"
    if declining > improving:
        return "declining"
    return "stable"


def generate_recommendations(periods: Dict[str, dict]) -> List[str]:
    recent = periods["7d"]
    monthly = periods["30d"]
    recommendations = []

    if recent["percentages"]["negative"] > 30:
        recommendations.append("Address recent negative feedback immediately")

    if recent["percentages"]["positive"] < 50:
        recommendations.append("Focus on improving customer experience in the short term")

    if recent["percentages"]["positive"] < monthly["percentages"]["positive"]:
        recommendations.append("Sentiment declining recently - investigate recent changes")

    if monthly["percentages"]["positive"] > 70:
        recommendations.append("Maintain current high satisfaction levels")

    if "slow" in recent["top_negative_themes"]:
        recommendations.append("Improve service speed based on customer feedback")

    if "rude" in recent["top_negative_themes"]:
        recommendations.append("Provide staff training on customer service")

    if "friendly" in recent["top_positive_themes"]:
        recommendations.append("Continue emphasizing friendly service")

    return recommendations


def overall_sentiment(score: float) -> str:
    if score > 0.1:
        return "positive"
    if score < -0.1:
        return "negative"
    return "neutral"
