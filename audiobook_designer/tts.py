"""Speech synthesis clients returning mono 16-bit 24 kHz PCM."""

import io
import logging
from typing import Protocol

import edge_tts
from google import genai
from google.genai import types
from pydub import AudioSegment

from audiobook_designer.constants import (
    CHANNELS,
    CONCURRENCY_LIMIT,
    EDGE_SPEED_RATES,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
    TTS_MODEL,
    TTS_RATE,
)
from audiobook_designer.errors import RemoteServiceFailure
from audiobook_designer.executor import run_bounded
from audiobook_designer.models import SynthesisRequest

logger = logging.getLogger(__name__)


class SpeechClient(Protocol):
    async def synthesize(self, request: SynthesisRequest) -> bytes: ...


class GeminiSpeechClient:
    """Gemini TTS: the instruction prompt steers mood and pace."""

    def __init__(self, api_key: str | None = None, model: str = TTS_MODEL, client=None):
        self.model = model
        self.client = client or genai.Client(api_key=api_key)

    def _config(self, voice: str) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice)
                )
            ),
        )

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=[types.Part.from_text(text=request.prompt)])],
                config=self._config(request.voice),
            )
        except Exception as e:
            raise RemoteServiceFailure(f"Speech synthesis failed for {request.part.text[:30]!r}: {e}") from e

        audio = _inline_audio(response)
        if not audio:
            raise RemoteServiceFailure(f"Speech service returned no audio for {request.part.text[:30]!r}")
        return audio


def _inline_audio(response) -> bytes | None:
    for candidate in response.candidates or []:
        if candidate.content is None:
            continue
        for part in candidate.content.parts or []:
            if part.inline_data and part.inline_data.data:
                return part.inline_data.data
    return None


class EdgeSpeechClient:
    """edge-tts backend.

    Edge voices read instructions aloud, so the literal part text is spoken
    and speed maps to an edge rate instead. The MP3 stream is decoded and
    resampled to the PCM contract.
    """

    def __init__(self, rates: dict[str, str] | None = None):
        self.rates = rates or EDGE_SPEED_RATES

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        rate = self.rates.get(request.part.speed, TTS_RATE)
        data = bytearray()
        try:
            communicate = edge_tts.Communicate(request.part.text, request.voice, rate=rate)
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    data.extend(chunk["data"])
        except Exception as e:
            raise RemoteServiceFailure(f"edge-tts failed for {request.part.text[:30]!r}: {e}") from e

        # 0-byte output counts as failure
        if not data:
            raise RemoteServiceFailure(f"edge-tts produced no audio for {request.part.text[:30]!r}")
        return mp3_to_pcm(bytes(data))


def mp3_to_pcm(mp3_bytes: bytes) -> bytes:
    """Decode MP3 and convert to mono 16-bit PCM at the service sample rate."""
    audio = AudioSegment.from_file(io.BytesIO(mp3_bytes), format="mp3")
    audio = audio.set_frame_rate(SAMPLE_RATE).set_channels(CHANNELS).set_sample_width(SAMPLE_WIDTH)
    return audio.raw_data


async def synthesize_all(
    requests: list[SynthesisRequest],
    client: SpeechClient,
    limit: int = CONCURRENCY_LIMIT,
) -> tuple[list[bytes | None], dict[int, BaseException]]:
    """Synthesize every request, at most ``limit`` at a time.

    Returns buffers in request order (None where a request failed) and the
    errors keyed by request index.
    """
    errors: dict[int, BaseException] = {}
    total = len(requests)

    def thunk(index: int, request: SynthesisRequest):
        async def run():
            logger.info("Synthesizing segment %d/%d (%s)", index + 1, total, request.voice)
            return await client.synthesize(request)
        return run

    buffers = await run_bounded([thunk(i, r) for i, r in enumerate(requests)], limit, errors)
    return buffers, errors
