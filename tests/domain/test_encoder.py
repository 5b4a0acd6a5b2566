import base64

import numpy as np

from domain.encoder import PCM16_FORMAT, AudioPayload, encode_samples, quantize


class TestQuantize:
    def test_asymmetric_scaling(self):
        samples = np.array([-1.0, 1.0, 0.0, -0.5, 0.5], dtype=np.float32)
        assert quantize(samples).tolist() == [-32768, 32767, 0, -16384, 16383]

    def test_truncates_toward_zero(self):
        samples = np.array([0.25, -0.1], dtype=np.float32)
        assert quantize(samples).tolist() == [8191, -3276]

    def test_output_is_int16(self):
        assert quantize(np.zeros(4, dtype=np.float32)).dtype == np.dtype("<i2")


class TestEncodeSamples:
    def test_positive_full_scale_little_endian(self):
        assert base64.b64decode(encode_samples(np.array([1.0]))) == b"\xff\x7f"

    def test_negative_full_scale_little_endian(self):
        assert base64.b64decode(encode_samples(np.array([-1.0]))) == b"\x00\x80"

    def test_standard_base64_text(self):
        assert encode_samples(np.array([1.0, -1.0])) == "/38AgA=="

    def test_empty_block(self):
        assert encode_samples(np.array([], dtype=np.float32)) == ""

    def test_two_bytes_per_sample(self):
        block = np.linspace(-1.0, 1.0, 4096, dtype=np.float32)
        assert len(base64.b64decode(encode_samples(block))) == 4096 * 2


class TestAudioPayload:
    def test_from_samples(self):
        block = np.array([0.5, -0.5], dtype=np.float32)
        payload = AudioPayload.from_samples(block)
        assert payload.sample_count == 2
        assert payload.data == encode_samples(block)
        assert payload.format == PCM16_FORMAT

    def test_to_message(self):
        payload = AudioPayload.from_samples(np.array([1.0]))
        assert payload.to_message() == {"audioPayload": "/38=", "format": "pcm16@16kHz"}
