from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.languages import validate_language


class LiveTranslatorConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LIVE_TRANSLATOR_")

    source_language: str = "es"
    target_language: str = "en"

    stt_engine: Literal["websocket", "deepgram"] = "websocket"
    stt_websocket_url: str = "ws://localhost:8765/transcribe"
    stt_api_key_file: str = ""
    deepgram_api_key_file: str = ""
    deepgram_model: str = "nova-2"

    translation_engine: Literal["openai", "anthropic", "none"] = "openai"
    translation_model: str = ""
    openai_api_key_file: str = ""
    anthropic_api_key_file: str = ""
    translation_timeout_seconds: float | None = 30.0
    drain_timeout_seconds: float | None = 5.0

    capture_device: str = ""
    block_size: int = 4096

    socket_path: str = "/tmp/live-translator.sock"
    log_file: str = ""

    @field_validator("source_language", "target_language")
    @classmethod
    def _known_language(cls, value: str) -> str:
        return validate_language(value)

    def read_secret(self, path: str) -> str:
        if not path:
            return ""
        try:
            with open(path) as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""
