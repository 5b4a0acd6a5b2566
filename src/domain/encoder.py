import base64
from dataclasses import dataclass
from functools import cached_property

import numpy as np

SAMPLE_RATE = 16000
CHANNELS = 1
PCM16_FORMAT = "pcm16@16kHz"

_NEGATIVE_SCALE = 32768.0
_POSITIVE_SCALE = 32767.0


def quantize(samples: np.ndarray) -> np.ndarray:
    """Scale float samples in [-1.0, 1.0] to signed 16-bit integers.

    Negative samples use 32768 and non-negative samples 32767 so that +1.0
    does not overflow. Values are truncated toward zero and never clipped.
    """
    floats = np.asarray(samples, dtype=np.float64)
    scaled = np.where(floats < 0, floats * _NEGATIVE_SCALE, floats * _POSITIVE_SCALE)
    return scaled.astype("<i2")


def to_pcm16_bytes(samples: np.ndarray) -> bytes:
    return quantize(samples).tobytes()


def encode_samples(samples: np.ndarray) -> str:
    return base64.b64encode(to_pcm16_bytes(samples)).decode("ascii")


@dataclass(frozen=True)
class AudioPayload:
    pcm: bytes
    format: str = PCM16_FORMAT

    @classmethod
    def from_samples(cls, samples: np.ndarray) -> "AudioPayload":
        return cls(pcm=to_pcm16_bytes(samples))

    @cached_property
    def data(self) -> str:
        return base64.b64encode(self.pcm).decode("ascii")

    @property
    def sample_count(self) -> int:
        return len(self.pcm) // 2

    def to_message(self) -> dict[str, str]:
        return {"audioPayload": self.data, "format": self.format}
