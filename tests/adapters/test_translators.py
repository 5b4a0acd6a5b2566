from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from adapters.anthropic_translator import AnthropicTranslator
from adapters.openai_translator import OpenAITranslator, build_translation_prompt


class TestTranslationPrompt:
    def test_uses_language_names(self):
        prompt = build_translation_prompt("Hola", "es", "en")
        assert prompt == 'Translate the following text from Spanish to English: "Hola"'

    def test_unknown_codes_fall_back(self):
        prompt = build_translation_prompt("x", "xx", "yy")
        assert "from the source language to the target language" in prompt


class TestOpenAITranslator:
    @pytest.mark.asyncio
    async def test_translate(self):
        translator = OpenAITranslator(api_key="test-key", model="openai/gpt-4o-mini")
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=" Hello world \n"))])
        translator._client.chat.completions.create = AsyncMock(return_value=response)

        result = await translator.translate("Hola mundo", "es", "en")

        assert result == "Hello world"
        kwargs = translator._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0
        assert "Spanish to English" in kwargs["messages"][-1]["content"]

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        translator = OpenAITranslator(api_key="test-key")
        translator._client.chat.completions.create = AsyncMock(side_effect=RuntimeError("rate limited"))

        with pytest.raises(RuntimeError):
            await translator.translate("Hola", "es", "en")


class TestAnthropicTranslator:
    @pytest.mark.asyncio
    async def test_translate_joins_text_blocks(self):
        translator = AnthropicTranslator(api_key="test-key")
        message = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Good "),
                SimpleNamespace(type="text", text="morning"),
            ]
        )
        translator._client.messages.create = AsyncMock(return_value=message)

        assert await translator.translate("Buenos días", "es", "en") == "Good morning"
