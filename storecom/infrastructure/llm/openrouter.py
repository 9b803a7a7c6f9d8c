"""
OpenRouter Chat Client
======================

Minimal OpenAI-compatible chat completion call shared by sentiment analysis
and reply drafting.

FALLBACK BEHAVIOR:
- No API key: `is_configured` is False and callers skip the LLM
- Timeout / HTTP error: logged, `complete()` returns None
"""

import logging
from typing import Optional

import requests

from ..config import LLMSettings, get_settings

logger = logging.getLogger(__name__)


class OpenRouterClient:
    """
    USAGE:
        client = OpenRouterClient()
        if client.is_configured:
            text = client.complete("Say hi", max_tokens=20)
    """

    def __init__(self, settings: Optional[LLMSettings] = None):
        settings = settings or get_settings().llm
        self._api_key = settings.api_key
        self._api_url = settings.api_url
        self._model = settings.model
        self._temperature = settings.temperature
        self._timeout = settings.timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def complete(self, prompt: str, max_tokens: int = 200,
                 temperature: Optional[float] = None) -> Optional[str]:
        """
        Send one user message and return the reply text.

        Returns:
            Reply content, or None if the API call fails.
        """
        if not self._api_key:
            return None

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": "StoreCom Dashboard",
        }

        payload = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._temperature if temperature is None else temperature,
            "max_tokens": max_tokens,
        }

        try:
            response = requests.post(
                self._api_url,
                headers=headers,
                json=payload,
                timeout=self._timeout
            )
            response.raise_for_status()
            return self._extract_response_content(response.json())

        except requests.Timeout:
            logger.warning("LLM API timeout")
            return None

        except requests.RequestException as e:
            logger.warning(f"LLM API error: {e}")
            return None

        except ValueError as e:
            logger.warning(f"LLM API returned invalid JSON: {e}")
            return None

    def _extract_response_content(self, data: dict) -> str:
        """Extract text content from API response."""
        try:
            choices = data.get("choices", [])
            if choices:
                message = choices[0].get("message", {})
                return (message.get("content") or "").strip()
        except (AttributeError, IndexError, TypeError):
            pass
        return ""
