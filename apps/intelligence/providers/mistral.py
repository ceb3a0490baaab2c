"""
Mistral AI reasoning provider.

Uses the Mistral Python SDK in JSON response mode.
"""

from apps.intelligence.providers.ai_base import BaseAIProvider


class MistralReasoningProvider(BaseAIProvider):
    """Mistral AI reasoning provider."""

    name = "mistral"
    description = "Mistral AI reasoning provider"
    default_model = "mistral-small-latest"

    def _call_api(self, prompt: str) -> str:
        from mistralai import Mistral, SystemMessage, UserMessage

        client = Mistral(api_key=self.api_key, timeout_ms=self.timeout_s * 1000)
        response = client.chat.complete(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=0.3,
            response_format={"type": "json_object"},
            messages=[
                SystemMessage(content=self.SYSTEM_PROMPT),
                UserMessage(content=prompt),
            ],
        )
        content = response.choices[0].message.content
        if isinstance(content, str):
            return content
        return ""
