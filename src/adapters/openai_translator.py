import logging

from openai import AsyncOpenAI

from domain.languages import language_name

logger = logging.getLogger(__name__)

TRANSLATION_SYSTEM_PROMPT = (
    "You are a translation engine. Reply with the translation only, "
    "without quotes, notes or explanations."
)


def build_translation_prompt(text: str, source_language: str, target_language: str) -> str:
    source_name = language_name(source_language, "the source language")
    target_name = language_name(target_language, "the target language")
    return f'Translate the following text from {source_name} to {target_name}: "{text}"'


class OpenAITranslator:
    def __init__(self, api_key: str, model: str = "gpt-4o-mini") -> None:
        self._client = AsyncOpenAI(api_key=api_key or None)
        self._model = model.removeprefix("openai/")

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": TRANSLATION_SYSTEM_PROMPT},
                {"role": "user", "content": build_translation_prompt(text, source_language, target_language)},
            ],
            temperature=0,
        )
        content = response.choices[0].message.content or ""
        logger.debug("OpenAI translation (%s -> %s): %s", source_language, target_language, content)
        return content.strip()
