from domain.errors import UnsupportedLanguageError

LANGUAGES: dict[str, str] = {
    "ar": "Arabic",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "hi": "Hindi",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "pl": "Polish",
    "pt": "Portuguese",
    "ru": "Russian",
    "sv": "Swedish",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "zh": "Chinese",
}


def language_name(code: str, fallback: str) -> str:
    return LANGUAGES.get(code, fallback)


def validate_language(code: str) -> str:
    if code not in LANGUAGES:
        raise UnsupportedLanguageError(f"Unsupported language code: {code!r}")
    return code
