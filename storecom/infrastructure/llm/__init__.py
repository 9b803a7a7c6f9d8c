from .openrouter import OpenRouterClient
from .reply_generator import ReplyGenerator
from .sentiment_service import (
    AnalysisMethod,
    Sentiment,
    SentimentResult,
    SentimentService,
    SentimentServiceError,
)
