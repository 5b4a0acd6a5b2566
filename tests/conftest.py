import pytest

from domain.controller import SessionController
from fakes import FakeCapture, FakeTransport, FakeTranslator, RecordingObserver


class SessionRig:
    """Builds a fresh fake microphone and transport for every session."""

    def __init__(self) -> None:
        self.captures: list[FakeCapture] = []
        self.transports: list[FakeTransport] = []
        self.capture_options: dict = {}
        self.transport_options: dict = {}
        self.open_gate = None

    def capture_factory(self) -> FakeCapture:
        capture = FakeCapture(**self.capture_options)
        self.captures.append(capture)
        return capture

    def transport_factory(self, source_language: str) -> FakeTransport:
        transport = FakeTransport(**self.transport_options)
        transport.source_language = source_language
        transport.open_gate = self.open_gate
        self.transports.append(transport)
        return transport

    @property
    def capture(self) -> FakeCapture:
        return self.captures[-1]

    @property
    def transport(self) -> FakeTransport:
        return self.transports[-1]


@pytest.fixture
def rig():
    return SessionRig()


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def make_controller(rig, observer):
    def build(translator=None, **kwargs) -> SessionController:
        kwargs.setdefault("drain_timeout", 1.0)
        controller = SessionController(
            capture_factory=rig.capture_factory,
            transport_factory=rig.transport_factory,
            translator=translator,
            **kwargs,
        )
        controller.add_observer(observer)
        return controller

    return build


@pytest.fixture
def controller(make_controller, translator):
    return make_controller(translator)
