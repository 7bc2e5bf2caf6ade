"""Stitch raw PCM fragments together and encode them as one MP3."""

import io
import logging
from typing import Callable, Protocol

import numpy as np
from pydub import AudioSegment

from audiobook_designer.constants import (
    BITRATES,
    CHANNELS,
    DEFAULT_BITRATE,
    ENCODER_BLOCK_SIZE,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
)
from audiobook_designer.errors import InputValidationError, NoAudioProducedError

logger = logging.getLogger(__name__)


class Encoder(Protocol):
    def encode_buffer(self, samples: np.ndarray) -> bytes: ...

    def flush(self) -> bytes: ...


class Mp3Encoder:
    """Block encoder backed by pydub/ffmpeg.

    encode_buffer() only collects the blocks and always returns b"". ffmpeg
    encodes the whole stream at a constant bit rate in flush(), so the block
    size used by assemble() has no effect on the output. Streaming encoders
    that emit frames per block plug into the same Encoder protocol.
    """

    def __init__(
        self,
        bitrate: int = DEFAULT_BITRATE,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        tags: dict | None = None,
    ):
        self.bitrate = bitrate
        self.sample_rate = sample_rate
        self.channels = channels
        self.tags = tags or {}
        self._blocks: list[bytes] = []

    def encode_buffer(self, samples: np.ndarray) -> bytes:
        self._blocks.append(samples.astype("<i2").tobytes())
        return b""

    def flush(self) -> bytes:
        pcm = b"".join(self._blocks)
        self._blocks = []
        if not pcm:
            return b""
        audio = AudioSegment(
            data=pcm,
            sample_width=SAMPLE_WIDTH,
            frame_rate=self.sample_rate,
            channels=self.channels,
        )
        out = io.BytesIO()
        audio.export(out, format="mp3", bitrate=f"{self.bitrate}k", tags=self.tags or None)
        return out.getvalue()


def validate_bitrate(bitrate: int) -> int:
    if bitrate not in BITRATES:
        raise InputValidationError(
            f"Unsupported bit rate: {bitrate}. Choose one of {', '.join(str(b) for b in BITRATES)} kbps."
        )
    return bitrate


def pcm_duration_seconds(byte_count: int) -> float:
    """Duration of mono 16-bit PCM at the service sample rate."""
    return byte_count / (SAMPLE_RATE * SAMPLE_WIDTH * CHANNELS)


def concatenate_pcm(buffers: list[bytes | None]) -> bytes:
    """Join non-empty fragments in order, trimming any dangling odd byte."""
    kept = []
    for i, buf in enumerate(buffers):
        if not buf:
            continue
        if len(buf) % SAMPLE_WIDTH:
            logger.debug("Fragment %d has odd length %d; dropping last byte", i, len(buf))
            buf = buf[:len(buf) - len(buf) % SAMPLE_WIDTH]
        if buf:
            kept.append(buf)
    return b"".join(kept)


def assemble(
    buffers: list[bytes | None],
    bitrate: int = DEFAULT_BITRATE,
    encoder_factory: Callable[..., Encoder] = Mp3Encoder,
    tags: dict | None = None,
) -> bytes:
    """Concatenate PCM fragments in order and encode them.

    Missing and empty fragments are skipped. Raises NoAudioProducedError
    when nothing is left.
    """
    validate_bitrate(bitrate)
    pcm = concatenate_pcm(buffers)
    if not pcm:
        raise NoAudioProducedError(
            "Audio generation failed: the speech service returned no audio for any section."
        )

    samples = np.frombuffer(pcm, dtype="<i2")
    encoder = encoder_factory(bitrate=bitrate, tags=tags)
    chunks = []
    for i in range(0, len(samples), ENCODER_BLOCK_SIZE):
        chunk = encoder.encode_buffer(samples[i:i + ENCODER_BLOCK_SIZE])
        if chunk:
            chunks.append(chunk)
    tail = encoder.flush()
    if tail:
        chunks.append(tail)

    logger.info("Encoded %.1fs of audio at %d kbps", pcm_duration_seconds(len(pcm)), bitrate)
    return b"".join(chunks)
