"""Shared fixtures for audiobook designer tests."""

import asyncio

import numpy as np
import pytest

from audiobook_designer.models import Speaker, SpeakerSetting, Project


class FakeSpeechClient:
    """Returns deterministic PCM per request; optional per-text failures and delays."""

    def __init__(self, fail_on=(), delays=None, empty_on=()):
        self.fail_on = set(fail_on)
        self.empty_on = set(empty_on)
        self.delays = delays or {}
        self.calls = []

    async def synthesize(self, request):
        self.calls.append(request)
        text = request.part.text
        await asyncio.sleep(self.delays.get(text, 0))
        if text in self.fail_on:
            raise RuntimeError(f"boom: {text}")
        if text in self.empty_on:
            return b""
        return tone_pcm(100, seed=len(text))


def tone_pcm(duration_ms=100, seed=0, sample_rate=24000):
    """Mono 16-bit little-endian noise, reproducible per seed."""
    rng = np.random.default_rng(seed)
    samples = rng.integers(-5000, 5000, int(sample_rate * duration_ms / 1000), dtype=np.int16)
    return samples.astype("<i2").tobytes()


@pytest.fixture
def speakers():
    return [
        Speaker(id="spk_1", name="Narrator", display_name="Narrator", voice="kore"),
        Speaker(id="spk_2", name="Voice A", display_name="Alice", voice="puck"),
    ]


@pytest.fixture
def sample_project(speakers):
    return Project(
        version=2,
        title="Test Book",
        text='It was dark. "Who is there?" asked Alice. Nobody answered.',
        speakers=speakers,
        speaker_colors={"spk_1": "#818CF8", "spk_2": "#ff0000"},
        speaker_settings={"spk_1": SpeakerSetting(), "spk_2": SpeakerSetting()},
    )


@pytest.fixture
def fake_client():
    return FakeSpeechClient()


@pytest.fixture
def client_factory():
    """Build a FakeSpeechClient with custom failures or delays."""
    return FakeSpeechClient


@pytest.fixture
def pcm():
    """Factory for reproducible mono PCM fragments."""
    return tone_pcm
