"""Turn speech parts into TTS requests with spoken-style instructions."""

import logging

from audiobook_designer.errors import UnresolvedSpeakerError
from audiobook_designer.models import Speaker, SpeechPart, SynthesisRequest

logger = logging.getLogger(__name__)

MOOD_PHRASES = {
    "normal": "",
    "cheerful": "cheerfully",
    "sad": "sadly",
    "angry": "angrily",
    "whispering": "in a whisper",
    "excited": "excitedly",
    "mysterious": "mysteriously",
    "ironic": "sarcastically",
    "friendly": "kindly",
    "formal": "formally",
    "anxious": "anxiously",
}

SPEED_PHRASES = {
    "normal": "",
    "slow": "slowly",
    "fast": "quickly",
}


def build_prompt(text: str, mood: str = "normal", speed: str = "normal") -> str:
    """Prefix text with "Say <mood> and <speed>: " when either applies."""
    phrases = [p for p in (MOOD_PHRASES.get(mood, ""), SPEED_PHRASES.get(speed, "")) if p]
    if phrases:
        return f"Say {' and '.join(phrases)}: {text}"
    return text


def plan(parts: list[SpeechPart], speakers: list[Speaker]) -> list[SynthesisRequest]:
    """Build one request per part, skipping parts whose speaker no longer exists."""
    voices = {s.id: s.voice for s in speakers}
    requests = []
    for part in parts:
        voice = voices.get(part.speaker_id)
        if voice is None:
            logger.warning("%s; skipping text %r", UnresolvedSpeakerError(part.speaker_id), part.text[:30])
            continue
        requests.append(SynthesisRequest(
            prompt=build_prompt(part.text, part.mood, part.speed),
            voice=voice,
            part=part,
        ))
    return requests
