import logging

import anthropic

from adapters.openai_translator import TRANSLATION_SYSTEM_PROMPT, build_translation_prompt

logger = logging.getLogger(__name__)


class AnthropicTranslator:
    def __init__(self, api_key: str, model: str = "claude-3-5-haiku-latest") -> None:
        self._client = anthropic.AsyncAnthropic(api_key=api_key or None)
        self._model = model.removeprefix("anthropic/")

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=1024,
                system=TRANSLATION_SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": build_translation_prompt(text, source_language, target_language)},
                ],
            )
        except anthropic.APIStatusError as exc:
            logger.error("Anthropic API error: %s %s", exc.status_code, exc.message)
            raise

        return "".join(block.text for block in message.content if block.type == "text").strip()
