import logging
import os

from config import LiveTranslatorConfig
from adapters.unix_control import UnixSocketControlServer
from domain.controller import SessionController, TransportFactory
from domain.encoder import SAMPLE_RATE
from ports.audio import AudioCapturePort
from ports.control import ControlPort
from ports.transcriber import TranscriptionTransportPort
from ports.translator import TranslatorPort

logger = logging.getLogger(__name__)


def create_capture(config: LiveTranslatorConfig) -> AudioCapturePort:
    from adapters.sounddevice_audio import SounddeviceCapture

    return SounddeviceCapture(
        device=config.capture_device or None,
        sample_rate=SAMPLE_RATE,
        block_size=config.block_size,
    )


def create_transport_factory(config: LiveTranslatorConfig) -> TransportFactory:
    if config.stt_engine == "deepgram":
        from adapters.deepgram_transport import DeepgramTranscriptionTransport

        deepgram_api_key = config.read_secret(config.deepgram_api_key_file) or os.environ.get("DEEPGRAM_API_KEY", "")

        def deepgram_transport(source_language: str) -> TranscriptionTransportPort:
            return DeepgramTranscriptionTransport(
                api_key=deepgram_api_key,
                source_language=source_language,
                model=config.deepgram_model,
                sample_rate=SAMPLE_RATE,
            )

        return deepgram_transport

    from adapters.websocket_transport import WebSocketTranscriptionTransport

    stt_api_key = config.read_secret(config.stt_api_key_file)

    def websocket_transport(source_language: str) -> TranscriptionTransportPort:
        return WebSocketTranscriptionTransport(
            url=config.stt_websocket_url,
            api_key=stt_api_key,
            source_language=source_language,
        )

    return websocket_transport


def create_translator(config: LiveTranslatorConfig) -> TranslatorPort | None:
    if config.translation_engine == "none":
        logger.info("Translation disabled")
        return None

    model_override = {"model": config.translation_model} if config.translation_model else {}

    if config.translation_engine == "anthropic":
        from adapters.anthropic_translator import AnthropicTranslator

        anthropic_api_key = config.read_secret(config.anthropic_api_key_file)
        return AnthropicTranslator(api_key=anthropic_api_key, **model_override)

    from adapters.openai_translator import OpenAITranslator

    openai_api_key = config.read_secret(config.openai_api_key_file)
    return OpenAITranslator(api_key=openai_api_key, **model_override)


def create_controller(config: LiveTranslatorConfig) -> SessionController:
    return SessionController(
        capture_factory=lambda: create_capture(config),
        transport_factory=create_transport_factory(config),
        translator=create_translator(config),
        source_language=config.source_language,
        target_language=config.target_language,
        translation_timeout=config.translation_timeout_seconds,
        drain_timeout=config.drain_timeout_seconds,
    )


def create_daemon(
    config: LiveTranslatorConfig,
) -> tuple[SessionController, ControlPort]:
    controller = create_controller(config)
    control = UnixSocketControlServer(socket_path=config.socket_path)
    return controller, control
