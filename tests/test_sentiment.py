import pytest
import requests

from conftest import FakeLLM, FakeResponse, make_brand, make_review, make_store

from storecom.application import SentimentWorkflow
from storecom.domain import sentiment_rollup as rollup
from storecom.infrastructure.config import LLMSettings
from storecom.infrastructure.llm import OpenRouterClient, ReplyGenerator, SentimentService

POSITIVE_TEXT = "Great food, friendly staff! Highly recommend."
NEGATIVE_TEXT = "Terrible service, rude staff, never again."


# ══════════════════════════════════════════════════════════════════
#  SENTIMENT SERVICE
# ══════════════════════════════════════════════════════════════════

def test_confident_rules_skip_the_llm():
    llm = FakeLLM('{"sentiment": "negative"}')
    result = SentimentService(llm).analyze(POSITIVE_TEXT)
    assert result.sentiment == "positive"
    assert result.method == "rule-based"
    assert result.confidence == pytest.approx(0.6)
    assert result.score == 1.0
    assert llm.prompts == []


def test_unsure_rules_fall_back_when_llm_unavailable():
    result = SentimentService(FakeLLM(configured=False)).analyze(NEGATIVE_TEXT)
    assert result.sentiment == "negative"
    assert result.method == "hybrid"
    assert result.confidence == pytest.approx(0.4)
    assert result.reasoning.startswith("Hybrid (AI failed)")


def test_unsure_rules_defer_to_llm():
    llm = FakeLLM('```json\n{"sentiment": "Negative", "confidence": 0.9, "score": -0.8, '
                  '"reasoning": "rude staff"}\n```')
    result = SentimentService(llm).analyze(NEGATIVE_TEXT)
    assert result.sentiment == "negative"
    assert result.method == "hybrid"
    assert result.confidence == pytest.approx(0.9)
    assert result.score == pytest.approx(-0.8)
    assert NEGATIVE_TEXT in llm.prompts[0]


def test_empty_llm_reply_falls_back_to_rules():
    result = SentimentService(FakeLLM("")).analyze(NEGATIVE_TEXT)
    assert result.reasoning.startswith("Hybrid (AI failed)")


def test_free_text_llm_reply_is_scraped():
    service = SentimentService(FakeLLM(configured=False))
    result = service._parse_llm_response("The sentiment is Positive with 85% confidence")
    assert result.sentiment == "positive"
    assert result.confidence == pytest.approx(0.85)
    assert result.score == pytest.approx(0.7)


def test_empty_text_is_neutral():
    result = SentimentService(FakeLLM(configured=False)).analyze("   ")
    assert result.sentiment == "neutral"
    assert result.confidence == 0.0


def test_rules_match_whole_words_only():
    result = SentimentService(FakeLLM(configured=False)).analyze_with_rules("goodness gracious")
    assert result.sentiment == "neutral"


def test_batch_and_stats():
    service = SentimentService(FakeLLM(configured=False))
    results = service.analyze_batch([POSITIVE_TEXT, NEGATIVE_TEXT, ""] * 4)
    assert len(results) == 12

    stats = service.get_stats(results)
    assert stats["positive"] == 4
    assert stats["negative"] == 4
    assert stats["neutral"] == 4
    assert stats["medium_confidence"] == 4
    assert stats["low_confidence"] == 8
    assert service.get_stats([])["total"] == 0


# ══════════════════════════════════════════════════════════════════
#  REPLY GENERATOR & OPENROUTER
# ══════════════════════════════════════════════════════════════════

def test_reply_from_llm_is_unquoted():
    llm = FakeLLM('"Thank you so much, Asha!"')
    draft = ReplyGenerator(llm).generate("Great coffee", 5, "Acme MG Road", "Asha")
    assert draft["reply"] == "Thank you so much, Asha!"
    assert "fallback" not in draft["metadata"]
    assert draft["metadata"]["word_count"] == 5
    assert "Acme MG Road" in llm.prompts[0]


@pytest.mark.parametrize("rating,phrase", [
    (5, "thrilled"),
    (3, "would love to hear more"),
    (1, "sincerely apologize"),
])
def test_fallback_reply_depends_on_rating(rating, phrase):
    draft = ReplyGenerator(FakeLLM(configured=False)).generate("", rating, "Acme", "Ravi")
    assert phrase in draft["reply"]
    assert "Ravi" in draft["reply"]
    assert draft["metadata"]["fallback"] is True


def test_openrouter_returns_message_content(monkeypatch):
    captured = {}

    def fake_post(url, headers, json, timeout):
        captured.update(json)
        return FakeResponse(200, {"choices": [{"message": {"content": "  hello  "}}]})

    monkeypatch.setattr(requests, "post", fake_post)
    client = OpenRouterClient(LLMSettings(api_key="key", model="test-model"))
    assert client.complete("hi", max_tokens=5) == "hello"
    assert captured["model"] == "test-model"
    assert captured["max_tokens"] == 5


def test_openrouter_swallows_network_errors(monkeypatch):
    def fake_post(*args, **kwargs):
        raise requests.Timeout("slow")

    monkeypatch.setattr(requests, "post", fake_post)
    assert OpenRouterClient(LLMSettings(api_key="key")).complete("hi") is None
    assert OpenRouterClient(LLMSettings(api_key="")).is_configured is False


# ══════════════════════════════════════════════════════════════════
#  ROLLUP
# ══════════════════════════════════════════════════════════════════

def test_summarize_empty_periods():
    assert rollup.summarize_period("7d", 0, [])["key_insights"] == ["No reviews in this period"]
    summary = rollup.summarize_period("7d", 3, [])
    assert summary["total_reviews"] == 3
    assert summary["key_insights"] == ["No review comments to analyze"]


def test_summarize_period_counts_and_trend():
    analyzed = [
        ("Great and friendly", {"sentiment": "positive", "score": 0.8, "confidence": 0.7}),
        ("Friendly staff", {"sentiment": "positive", "score": 0.6, "confidence": 0.5}),
        ("Slow and rude", {"sentiment": "negative", "score": -0.6, "confidence": 0.4}),
        ("great great", {"sentiment": "positive", "score": 0.4, "confidence": 0.6}),
    ]
    summary = rollup.summarize_period("30d", 5, analyzed)
    assert summary["total_reviews"] == 5
    assert summary["sentiment"] == {"positive": 3, "negative": 1, "neutral": 0}
    assert summary["percentages"]["positive"] == pytest.approx(75.0)
    assert summary["trend"] == "improving"
    assert summary["top_positive_themes"] == ["great", "friendly"]
    assert summary["top_negative_themes"] == ["slow", "rude"]


def test_themes_follow_each_comments_own_sentiment():
    positive, negative = rollup.extract_themes([
        ("not bad, actually great", {"sentiment": "positive"}),
    ])
    assert positive == ["great"]
    assert negative == []


def test_insights_and_overall_helpers():
    insights = rollup.generate_insights(
        {"positive": 9, "negative": 1, "neutral": 0},
        {"positive": 90.0, "negative": 10.0, "neutral": 0.0},
        0.6,
    )
    assert insights[0].startswith("Excellent customer satisfaction")
    assert insights[1].startswith("Strong positive sentiment")

    periods = {"7d": {"trend": "declining"}, "30d": {"trend": "declining"},
               "60d": {"trend": "improving"}, "90d": {"trend": "stable"}}
    assert rollup.overall_trend(periods) == "declining"
    assert rollup.overall_sentiment(0.2) == "positive"
    assert rollup.overall_sentiment(-0.05) == "neutral"


# ══════════════════════════════════════════════════════════════════
#  WORKFLOW
# ══════════════════════════════════════════════════════════════════

@pytest.fixture
def workflow(db):
    return SentimentWorkflow(db, SentimentService(FakeLLM(configured=False)))


@pytest.fixture
def store(db):
    brand_id = make_brand(db)
    store_id = make_store(db, brand_id)
    make_review(db, store_id, brand_id, "r1", rating=5, comment=POSITIVE_TEXT, days=2)
    make_review(db, store_id, brand_id, "r2", rating=1, comment=NEGATIVE_TEXT, days=20)
    make_review(db, store_id, brand_id, "r3", rating=4, comment="", days=3)
    return store_id, brand_id


def test_status_before_analysis(workflow, store):
    store_id, _ = store
    status = workflow.get_analysis_status(store_id)
    assert status["total_reviews"] == 2
    assert status["analyzed_reviews"] == 0
    assert status["analysis_progress"] == 0
    assert status["needs_analysis"] is True
    assert status["last_analyzed"] is None


def test_analyze_and_save_builds_rollup(workflow, store, db):
    store_id, _ = store
    analytics = workflow.analyze_and_save(store_id)

    assert analytics.total_reviews == 3
    assert analytics.overall_sentiment == "positive"
    assert analytics.score == pytest.approx(0.2)
    assert analytics.confidence == pytest.approx(0.2)
    assert analytics.overall_trend == "improving"
    assert analytics.periods["7d"]["sentiment"]["positive"] == 1
    assert analytics.periods["30d"]["trend"] == "stable"
    assert "friendly" in analytics.top_positive_themes
    assert "rude" in analytics.top_negative_themes
    assert analytics.recommendations == ["Continue emphasizing friendly service"]

    stored = db.get_review_by_gmb_id("r1").sentiment_analysis
    assert stored["sentiment"] == "positive"
    assert stored["analyzed_at"]


def test_analysis_is_incremental(workflow, store, db):
    store_id, brand_id = store
    workflow.analyze_and_save(store_id)
    assert workflow.needs_analysis(store_id) is False
    assert workflow.get_analysis_status(store_id)["analysis_progress"] == 100

    make_review(db, store_id, brand_id, "r4", comment="Good coffee", days=0)
    assert workflow.needs_analysis(store_id) is True


def test_brand_rollup_covers_its_stores(workflow, store):
    _, brand_id = store
    analytics = workflow.analyze_and_save(brand_id, "brand")
    assert analytics.entity_type == "brand"
    assert analytics.total_reviews == 3


def test_entity_without_reviews(workflow, db):
    store_id = make_store(db, make_brand(db))
    analytics = workflow.analyze_and_save(store_id)
    assert analytics.overall_trend == "new"
    assert analytics.overall_sentiment == "neutral"
    assert analytics.recommendations == []
    assert workflow.needs_analysis(store_id) is False
