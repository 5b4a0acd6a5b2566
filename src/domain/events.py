from dataclasses import dataclass, field
from time import time


@dataclass(frozen=True)
class StreamEvent:
    timestamp: float = field(default_factory=time)


@dataclass(frozen=True)
class FragmentReceived(StreamEvent):
    text: str = ""


@dataclass(frozen=True)
class TurnCompleted(StreamEvent):
    pass


@dataclass(frozen=True)
class StreamFailed(StreamEvent):
    detail: str = ""


@dataclass(frozen=True)
class StreamClosed(StreamEvent):
    reason: str = ""
