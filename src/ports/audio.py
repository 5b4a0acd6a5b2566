from collections.abc import AsyncIterator
from typing import Protocol

import numpy as np


class AudioCapturePort(Protocol):
    @property
    def sample_rate(self) -> int: ...

    @property
    def block_size(self) -> int: ...

    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    def read_blocks(self) -> AsyncIterator[np.ndarray]: ...
