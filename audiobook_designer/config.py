"""Runtime configuration from the environment (and an optional .env file)."""

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from audiobook_designer.constants import (
    ANALYSIS_MODEL,
    BITRATES,
    CONCURRENCY_LIMIT,
    DEFAULT_BITRATE,
    TTS_MODEL,
)
from audiobook_designer.errors import ConfigError

BACKENDS = ("gemini", "edge")


@dataclass(frozen=True)
class Config:
    api_key: str | None = None
    tts_model: str = TTS_MODEL
    analysis_model: str = ANALYSIS_MODEL
    concurrency: int = CONCURRENCY_LIMIT
    bitrate: int = DEFAULT_BITRATE
    backend: str = "gemini"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def load_config(dotenv: bool = True) -> Config:
    if dotenv:
        # .env from the working directory
        load_dotenv(find_dotenv(usecwd=True))

    concurrency = _int_env("AUDIOBOOK_CONCURRENCY", CONCURRENCY_LIMIT)
    if concurrency < 1:
        raise ConfigError("AUDIOBOOK_CONCURRENCY must be at least 1")
    bitrate = _int_env("AUDIOBOOK_BITRATE", DEFAULT_BITRATE)
    if bitrate not in BITRATES:
        raise ConfigError(f"AUDIOBOOK_BITRATE must be one of {BITRATES}, got {bitrate}")
    backend = os.getenv("AUDIOBOOK_BACKEND", "gemini").strip().lower() or "gemini"
    if backend not in BACKENDS:
        raise ConfigError(f"AUDIOBOOK_BACKEND must be one of {BACKENDS}, got {backend!r}")

    return Config(
        api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or None,
        tts_model=os.getenv("AUDIOBOOK_TTS_MODEL") or TTS_MODEL,
        analysis_model=os.getenv("AUDIOBOOK_ANALYSIS_MODEL") or ANALYSIS_MODEL,
        concurrency=concurrency,
        bitrate=bitrate,
        backend=backend,
    )


def require_api_key(config: Config) -> str:
    if not config.api_key:
        raise ConfigError("API key is not set. Set GEMINI_API_KEY in the environment or a .env file.")
    return config.api_key
