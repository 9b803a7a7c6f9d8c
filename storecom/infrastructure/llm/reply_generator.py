"""
Review Reply Generator - LLM-drafted owner responses.

Falls back to a rating-based template whenever the LLM is unavailable.
"""

import re
import logging
from typing import Optional

from .openrouter import OpenRouterClient
from ..persistence.timestamps import now_iso

logger = logging.getLogger(__name__)


class ReplyGenerator:

    PROMPT_TEMPLATE = (
        'You are a professional customer service representative for "{store_name}". '
        "Generate a professional, courteous reply to this customer review.\n\n"
        "Review Details:\n"
        "- Customer: {customer_name}\n"
        "- Rating: {rating}/5 stars\n"
        '- Review: "{review_text}"\n'
        "- Platform: {platform}\n\n"
        "Guidelines for the reply:\n"
        "1. Be professional and courteous\n"
        "2. Thank the customer for their feedback\n"
        "3. Address any specific concerns mentioned in the review\n"
        "4. For low ratings (1-2 stars), acknowledge the issue and offer to resolve it\n"
        "5. For high ratings (4-5 stars), express genuine appreciation\n"
        "6. For medium ratings (3 stars), thank them and ask for suggestions\n"
        "7. Keep the reply concise (50-150 words)\n"
        "8. End with a positive note about serving them again\n\n"
        "Reply with the response text only."
    )

    def __init__(self, client: Optional[OpenRouterClient] = None):
        self._client = client or OpenRouterClient()

    def generate(self, review_text: str, rating: int, store_name: str,
                 customer_name: str = "", platform: str = "Google") -> dict:
        """
        Draft a reply.

        Returns:
            {"reply": str, "metadata": {rating, platform, generated_at, word_count[, fallback]}}
        """
        reply = None
        if self._client.is_configured:
            content = self._client.complete(
                self.PROMPT_TEMPLATE.format(
                    store_name=store_name,
                    customer_name=customer_name or "Anonymous",
                    rating=rating,
                    review_text=review_text,
                    platform=platform,
                ),
                max_tokens=300,
                temperature=0.7,
            )
            if content:
                # Models sometimes wrap the whole reply in quotes
                reply = re.sub(r"^[\"']|[\"']$", "", content.strip()).strip()

        metadata = {"rating": rating, "platform": platform, "generated_at": now_iso()}
        if not reply:
            logger.info("LLM reply unavailable, using template reply")
            reply = self.fallback_reply(rating, store_name, customer_name)
            metadata["fallback"] = True

        metadata["word_count"] = len(reply.split())
        return {"reply": reply, "metadata": metadata}

    @staticmethod
    def fallback_reply(rating: int, store_name: str, customer_name: str = "") -> str:
        name = customer_name or "valued customer"
        if rating >= 4:
            return (f"Thank you for the {rating}-star review, {name}! We're thrilled you had a "
                    f"great experience at {store_name}. We appreciate your business and look "
                    f"forward to serving you again soon!")
        if rating >= 3:
            return (f"Thank you for your {rating}-star review, {name}. We appreciate your "
                    f"feedback about {store_name} and would love to hear more about your "
                    f"experience so we can continue improving our service.")
        return (f"Thank you for your feedback, {name}. We sincerely apologize that your "
                f"experience at {store_name} didn't meet your expectations. We'd like to discuss "
                f"this with you further - please contact us directly so we can make this right.")
