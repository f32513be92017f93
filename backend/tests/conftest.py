"""
Colaboradores falsos compartidos por las pruebas.
"""

import asyncio
import threading

import numpy as np
import pytest

from emomusic.core.emotion.base import ExpressionDetector, FaceDetection
from emomusic.core.errors import CameraAccessError, ModelLoadError
from emomusic.core.playback.device import PlaybackDevice
from emomusic.core.playback.models import PlayerEvent, Track
from emomusic.core.recommendation.base import RecommendationFetcher
from emomusic.core.utils.metrics import PerformanceMetrics


def make_track(name: str) -> Track:
    return Track(id=name, title=f"Song {name}", artist=f"Artist {name}", uri=f"spotify:track:{name}")


def make_face(confidence: float = 0.99, **expressions) -> FaceDetection:
    return FaceDetection(expressions=expressions, bounding_box=(0, 0, 10, 10), confidence=confidence)


async def drain(rounds: int = 20):
    """Cede el control al loop para que se procesen eventos pendientes."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeCamera:
    def __init__(self, fail_start: bool = False, fail_reads: int = 0):
        self.fail_start = fail_start
        self.fail_reads = fail_reads
        self.started = False
        self.released = False
        self.reads = 0

    def start(self):
        if self.fail_start:
            raise CameraAccessError("cámara ocupada")
        self.started = True

    def read(self):
        self.reads += 1
        if self.reads <= self.fail_reads:
            return False, None
        return True, np.zeros((4, 4, 3), dtype=np.uint8)

    def release(self):
        self.released = True


class FakeDetector(ExpressionDetector):
    """Devuelve las listas de rostros de ``results`` en orden; después, ninguna."""

    def __init__(self, results=None, fail_load: bool = False, gate: threading.Event = None):
        self.results = list(results or [])
        self.fail_load = fail_load
        self.gate = gate
        self.entered = threading.Event()
        self.calls = 0

    def load_models(self):
        if self.fail_load:
            raise ModelLoadError("pesos no encontrados")

    def detect(self, frame):
        self.calls += 1
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        return self.results.pop(0) if self.results else []


class FakeFetcher(RecommendationFetcher):
    def __init__(self, catalog=None):
        self.catalog = catalog or {}
        self.requests = []
        self.gates = {}
        self.error = None

    async def request(self, mood, limit):
        self.requests.append((mood, limit))
        gate = self.gates.get(mood)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.catalog.get(mood, []))[:limit]


class FakeDevice(PlaybackDevice):
    def __init__(self, device_id: str = "device-1", auto_ready: bool = True):
        self.device_id = device_id
        self.auto_ready = auto_ready
        self.events = None
        self.connect_error = None
        self.dispatch_error = None
        self.on_toggle = None
        self.dispatched = []
        self.toggles = 0
        self.skips = []
        self.disconnects = 0
        self.current_state = None

    async def connect(self, events):
        if self.connect_error is not None:
            raise self.connect_error
        self.events = events
        if self.auto_ready:
            events.publish(PlayerEvent.ready(self.device_id))

    async def disconnect(self):
        self.disconnects += 1
        self.events = None

    async def dispatch(self, uri, device_id):
        if self.dispatch_error is not None:
            raise self.dispatch_error
        self.dispatched.append(uri)

    async def toggle_play(self, device_id):
        self.toggles += 1
        if self.on_toggle is not None:
            await self.on_toggle()

    async def next_track(self, device_id):
        self.skips.append('next')

    async def previous_track(self, device_id):
        self.skips.append('previous')

    async def get_current_state(self):
        return self.current_state


@pytest.fixture
def metrics():
    return PerformanceMetrics()


@pytest.fixture
def catalog():
    return {
        'sad': [make_track('S1'), make_track('S2')],
        'neutral': [make_track('N1')],
        'happy': [make_track('A'), make_track('B'), make_track('C')],
        'energetic': [make_track('E1'), make_track('E2')],
    }
