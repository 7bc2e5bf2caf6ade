"""AI character and mood analysis via Gemini, plus response validation."""

import json
import logging
from typing import Protocol

from google import genai
from google.genai import types

from audiobook_designer.constants import ANALYSIS_MODEL, MOODS, MOOD_ALIASES
from audiobook_designer.errors import MalformedRemoteResponseError, RemoteServiceFailure
from audiobook_designer.models import ProposedSegment

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """You are preparing a book text for a multi-voice audiobook.
Split the text below into consecutive segments, in reading order, so that every
piece of direct speech is its own segment and the surrounding prose belongs to
the narrator. Copy each segment's text exactly as it appears in the source.

For each segment give:
- "text": the exact text of the segment
- "speakerName": "{narrator}" for narration, otherwise the character's name
- "mood": one of {moods}
- "atmosphere": optional short description of the scene's sound atmosphere

Known speakers (reuse these names where they fit): {known}

Text:
{text}
"""

RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "text": {"type": "STRING"},
            "speakerName": {"type": "STRING"},
            "mood": {"type": "STRING", "enum": list(MOODS)},
            "atmosphere": {"type": "STRING"},
        },
        "required": ["text", "speakerName", "mood"],
    },
}


class AnalysisClient(Protocol):
    async def analyze(self, text: str, known_speaker_names: list[str]) -> str: ...


class GeminiAnalysisClient:
    def __init__(self, api_key: str | None = None, model: str = ANALYSIS_MODEL, client=None):
        self.model = model
        self.client = client or genai.Client(api_key=api_key)

    def build_prompt(self, text: str, known_speaker_names: list[str]) -> str:
        narrator = known_speaker_names[0] if known_speaker_names else "Narrator"
        return ANALYSIS_PROMPT.format(
            narrator=narrator,
            moods=", ".join(MOODS),
            known=", ".join(known_speaker_names) or "none",
            text=text,
        )

    async def analyze(self, text: str, known_speaker_names: list[str]) -> str:
        """Return the model's raw JSON answer."""
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=self.build_prompt(text, known_speaker_names),
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=RESPONSE_SCHEMA,
                ),
            )
        except Exception as e:
            raise RemoteServiceFailure(f"Text analysis failed: {e}") from e
        if not response.text:
            raise MalformedRemoteResponseError("The analysis service returned an empty response.")
        return response.text


def _normalize_mood(value) -> str:
    if not isinstance(value, str):
        raise MalformedRemoteResponseError(f"Invalid mood in analysis response: {value!r}")
    mood = value.strip().lower()
    mood = MOOD_ALIASES.get(mood, mood)
    if mood not in MOODS:
        raise MalformedRemoteResponseError(f"Invalid mood in analysis response: {value!r}")
    return mood


def parse_analysis_response(raw: str) -> list[ProposedSegment]:
    """Validate the analysis JSON and convert it to proposed segments.

    Accepts a bare array or an object with a "segments" array.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedRemoteResponseError(f"Analysis response is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("segments")
    if not isinstance(data, list):
        raise MalformedRemoteResponseError("Analysis response must be a list of segments.")

    segments = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedRemoteResponseError(f"Segment {i} is not an object.")
        text = item.get("text")
        speaker = item.get("speakerName")
        if not isinstance(text, str) or not text.strip():
            raise MalformedRemoteResponseError(f"Segment {i} has no text.")
        if not isinstance(speaker, str) or not speaker.strip():
            raise MalformedRemoteResponseError(f"Segment {i} has no speakerName.")
        atmosphere = item.get("atmosphere")
        if atmosphere is not None and not isinstance(atmosphere, str):
            raise MalformedRemoteResponseError(f"Segment {i} has an invalid atmosphere.")
        segments.append(ProposedSegment(
            text=text,
            speaker_name=speaker.strip(),
            mood=_normalize_mood(item.get("mood", "normal")),
            atmosphere=atmosphere or None,
        ))

    logger.info("Analysis proposed %d segments", len(segments))
    return segments
