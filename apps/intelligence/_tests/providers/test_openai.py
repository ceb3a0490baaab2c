"""Tests for the OpenAIReasoningProvider."""

from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase

from apps.intelligence.providers.openai import OpenAIReasoningProvider


class OpenAIProviderTests(SimpleTestCase):
    @patch("openai.OpenAI")
    def test_call_api(self, mock_openai_class):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = '{"hypotheses": []}'
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = response
        mock_openai_class.return_value = mock_client

        provider = OpenAIReasoningProvider(api_key="sk-test", model="gpt-4o")
        result = provider._call_api("prompt")

        assert result == '{"hypotheses": []}'
        mock_openai_class.assert_called_once_with(api_key="sk-test", timeout=30)
        call_kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o"
        assert call_kwargs["response_format"] == {"type": "json_object"}
        assert call_kwargs["messages"][0]["role"] == "system"

    @patch("openai.OpenAI")
    def test_empty_content(self, mock_openai_class):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = None
        mock_openai_class.return_value.chat.completions.create.return_value = response

        assert OpenAIReasoningProvider(api_key="k")._call_api("p") == ""
