"""
OpenAI reasoning provider.

Uses the Chat Completions API in JSON mode.
"""

from apps.intelligence.providers.ai_base import BaseAIProvider


class OpenAIReasoningProvider(BaseAIProvider):
    """OpenAI-powered reasoning provider."""

    name = "openai"
    description = "OpenAI reasoning provider"
    default_model = "gpt-4o-mini"

    def _call_api(self, prompt: str) -> str:
        from openai import OpenAI

        client = OpenAI(api_key=self.api_key, timeout=self.timeout_s)
        response = client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=0.3,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": self.SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
        return response.choices[0].message.content or ""
