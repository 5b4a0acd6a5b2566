import asyncio
import logging
import os
from collections.abc import AsyncIterator

import janus
import numpy as np
import sounddevice as sd

from domain.errors import NoDeviceError, PermissionDeniedError

logger = logging.getLogger(__name__)

_PERMISSION_MARKERS = ("permission", "denied", "not authorized", "unauthorized")


class SounddeviceCapture:
    def __init__(
        self,
        device: str | int | None = None,
        sample_rate: int = 16000,
        block_size: int = 4096,
        queue_size: int = 64,
    ) -> None:
        self._device = device
        self._sample_rate = sample_rate
        self._block_size = block_size
        self._queue_size = queue_size
        self._stream: sd.InputStream | None = None
        self._queue: janus.Queue[np.ndarray] | None = None

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def block_size(self) -> int:
        return self._block_size

    async def start(self) -> None:
        queue: janus.Queue[np.ndarray] = janus.Queue(maxsize=self._queue_size)

        def audio_callback(indata: np.ndarray, frames: int, time_info, status) -> None:
            if status:
                logger.warning("Audio capture status: %s", status)
            try:
                queue.sync_q.put_nowait(indata[:, 0].copy())
            except janus.SyncQueueFull:
                logger.debug("Audio queue full, dropping block")

        device = self._resolve_device()
        try:
            stream = sd.InputStream(
                device=device,
                samplerate=self._sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self._block_size,
                callback=audio_callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            queue.close()
            await queue.wait_closed()
            raise _translate_device_error(exc) from exc

        self._stream = stream
        self._queue = queue
        logger.info(
            "Audio capture started (device=%s, rate=%d, block=%d)",
            device, self._sample_rate, self._block_size,
        )

    async def stop(self) -> None:
        stream, self._stream = self._stream, None
        queue, self._queue = self._queue, None
        try:
            if stream is not None:
                stream.stop()
                stream.close()
        finally:
            if queue is not None:
                queue.close()
                await queue.wait_closed()
        if stream is not None:
            logger.info("Audio capture stopped")

    async def read_blocks(self) -> AsyncIterator[np.ndarray]:
        queue = self._queue
        if queue is None:
            return
        while True:
            try:
                block = await asyncio.wait_for(queue.async_q.get(), timeout=1.0)
            except asyncio.TimeoutError:
                if queue.closed:
                    break
                continue
            except (janus.AsyncQueueShutDown, RuntimeError):
                break
            yield block

    def _resolve_device(self) -> str | int | None:
        if self._device is None or self._device == "":
            return None
        if isinstance(self._device, int):
            return self._device
        try:
            return int(self._device)
        except ValueError:
            pass
        for i, dev in enumerate(sd.query_devices()):
            if self._device.lower() in dev["name"].lower() and dev["max_input_channels"] > 0:
                logger.info("Resolved device '%s' -> %d (%s)", self._device, i, dev["name"])
                return i
        os.environ["PIPEWIRE_NODE"] = self._device
        logger.info("Device '%s' not in PortAudio, set PIPEWIRE_NODE for PipeWire routing", self._device)
        return None


def _translate_device_error(exc: Exception) -> Exception:
    message = str(exc)
    if any(marker in message.lower() for marker in _PERMISSION_MARKERS):
        return PermissionDeniedError(f"Microphone access denied: {message}")
    return NoDeviceError(f"No usable audio input: {message}")
