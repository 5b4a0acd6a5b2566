import logging
import os
from dataclasses import dataclass

import sounddevice as sd

from config import LiveTranslatorConfig

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


def run_startup_checks(config: LiveTranslatorConfig) -> list[HealthCheckResult]:
    results = [
        _check_audio_device(config),
        _check_api_keys(config),
    ]

    passed = sum(1 for r in results if r.passed)

    logger.info("Health check: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    critical_checks = {"audio_device", "api_keys"}
    return any(not r.passed and r.name in critical_checks for r in results)


def _check_audio_device(config: LiveTranslatorConfig) -> HealthCheckResult:
    name = "audio_device"
    try:
        if config.capture_device:
            for dev in sd.query_devices():
                if config.capture_device.lower() in dev["name"].lower() and dev["max_input_channels"] > 0:
                    return HealthCheckResult(name=name, passed=True, detail=f"Device '{dev['name']}' found")

        default = sd.query_devices(kind="input")
        detail = f"default input: {default['name']}"
        if config.capture_device:
            detail = f"'{config.capture_device}' not in PortAudio (will use PIPEWIRE_NODE), {detail}"
        return HealthCheckResult(name=name, passed=True, detail=detail)
    except sd.PortAudioError:
        return HealthCheckResult(name=name, passed=False, detail="No input devices available")
    except Exception as exc:
        return HealthCheckResult(name=name, passed=False, detail=str(exc))


def _check_api_keys(config: LiveTranslatorConfig) -> HealthCheckResult:
    name = "api_keys"
    missing = []

    if config.stt_engine == "deepgram" and not _has_key(config, config.deepgram_api_key_file, "DEEPGRAM_API_KEY"):
        missing.append(f"deepgram ({config.deepgram_api_key_file or 'not configured'})")

    if config.translation_engine == "openai" and not _has_key(config, config.openai_api_key_file, "OPENAI_API_KEY"):
        missing.append(f"openai ({config.openai_api_key_file or 'not configured'})")

    if config.translation_engine == "anthropic" and not _has_key(config, config.anthropic_api_key_file, "ANTHROPIC_API_KEY"):
        missing.append(f"anthropic ({config.anthropic_api_key_file or 'not configured'})")

    if missing:
        return HealthCheckResult(name=name, passed=False, detail=f"Missing: {', '.join(missing)}")

    return HealthCheckResult(name=name, passed=True, detail="All API keys loaded")


def _has_key(config: LiveTranslatorConfig, path: str, env_var: str) -> bool:
    return bool(config.read_secret(path) or os.environ.get(env_var))
