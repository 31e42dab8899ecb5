import asyncio
import numpy as np
import pytest

from booklens                                import ImageBuffer, RecognitionEngine, RecognitionResult
from booklens.core.recognition_engine.engine import report_progress

# -------------------- Stub Engine --------------------

class StubEngine(RecognitionEngine):
    """
    Recognition engine with scripted behaviour.

    Each recognition consumes the next scripted response: a RecognitionResult is
    returned, an exception is raised, and a callable is invoked with the buffer.
    """

    def __init__(self, responses = None, init_error = None, init_delay = 0.0, gate = None):
        super().__init__()
        self.responses  = list(responses or [])
        self.init_error = init_error
        self.init_delay = init_delay
        self.gate       = gate
        self.init_calls = 0
        self.released   = []
        self.seen       = []

    async def create_handle(self, language, on_progress):
        self.init_calls += 1
        if self.init_delay:
            await asyncio.sleep(self.init_delay)
        if self.init_error is not None:
            raise self.init_error
        return {'language': language, 'generation': self.init_calls}

    async def run_recognition(self, handle, buffer, on_progress):
        self.seen.append(buffer)
        report_progress(on_progress, 'recognizing text', 0.5)

        if self.gate is not None:
            await self.gate.wait()

        response = self.responses.pop(0) if self.responses else RecognitionResult(text = '', confidence = 0.0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(buffer)
        return response

    async def release_handle(self, handle):
        self.released.append(handle)

# -------------------- Image Helpers --------------------

def make_text_image(width = 300, height = 200, bars = ((60, 66), (95, 101), (130, 136)), margin = 50):
    """
    White RGBA image with dark horizontal bars standing in for lines of text.
    """
    data = np.full((height, width, 4), 255, dtype = np.uint8)
    for top, bottom in bars:
        data[top:bottom, margin:width - margin, :3] = 20
    return ImageBuffer(data = data)

@pytest.fixture
def text_image():
    return make_text_image()

@pytest.fixture
def noisy_image():
    rng = np.random.default_rng(7)
    return ImageBuffer(data = rng.integers(0, 256, size = (24, 32, 4), dtype = np.uint8))

@pytest.fixture
def stub_engine():
    return StubEngine()

@pytest.fixture
def make_engine():
    return StubEngine

@pytest.fixture
def make_image():
    return make_text_image
