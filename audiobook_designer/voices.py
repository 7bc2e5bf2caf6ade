"""Voice catalogue and speaker management."""

import dataclasses
import logging
import random
import re
import string

from audiobook_designer.constants import (
    MOODS,
    SPEEDS,
    NARRATOR_ID,
    NARRATOR_NAME,
    NARRATOR_VOICE,
    NARRATOR_COLOR,
)
from audiobook_designer.errors import InputValidationError, UnresolvedSpeakerError
from audiobook_designer.models import Project, Speaker, SpeakerSetting

logger = logging.getLogger(__name__)

# Gemini prebuilt voices (avoids network call at startup)
MALE_VOICES = [
    "charon", "fenrir", "iapetus", "orus", "puck", "umbriel", "zephyr", "achernar",
    "achird", "alnilam", "enceladus", "gacrux", "rasalgethi", "sadaltager", "zubenelgenubi",
]
FEMALE_VOICES = [
    "aoede", "autonoe", "callirrhoe", "despina", "erinome", "kore", "laomedeia",
    "leda", "algenib", "algieba", "pulcherrima", "sadachbia", "schedar", "sulafat",
    "vindemiatrix",
]
ALL_VOICES = sorted(MALE_VOICES + FEMALE_VOICES)

# English edge-tts voices for the offline-friendly backend
EDGE_VOICE_POOL = [
    "en-US-AriaNeural",
    "en-US-DavisNeural",
    "en-US-TonyNeural",
    "en-US-JennyNeural",
    "en-US-SaraNeural",
    "en-GB-SoniaNeural",
    "en-GB-ThomasNeural",
    "en-AU-NatashaNeural",
    "en-AU-WilliamNeural",
    "en-CA-ClaraNeural",
    "en-CA-LiamNeural",
    "en-IN-NeerjaNeural",
    "en-IN-PrabhatNeural",
    "en-IE-EmilyNeural",
]

_VOICE_LETTER_RE = re.compile(r"^Voice ([A-Z])")


def initial_speakers() -> list[Speaker]:
    """The default speaker list: just the narrator."""
    return [Speaker(id=NARRATOR_ID, name=NARRATOR_NAME, display_name=NARRATOR_NAME, voice=NARRATOR_VOICE)]


def initial_colors() -> dict[str, str]:
    return {NARRATOR_ID: NARRATOR_COLOR}


def random_color(rng: random.Random | None = None) -> str:
    """Random #rrggbb display color."""
    rng = rng or random
    return "#" + format(rng.randrange(0x1000000), "06x")


def next_voice(speakers: list[Speaker], pool: list[str] = ALL_VOICES) -> str:
    """Round-robin voice for the next speaker to be added."""
    return pool[len(speakers) % len(pool)]


def next_speaker_id(speakers: list[Speaker]) -> str:
    """Return spk_<n> with n one past the highest numeric suffix in use."""
    highest = 0
    for speaker in speakers:
        suffix = speaker.id.rsplit("_", 1)[-1]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"spk_{highest + 1}"


def _next_default_name(speakers: list[Speaker]) -> str:
    used = set()
    for speaker in speakers:
        match = _VOICE_LETTER_RE.match(speaker.name)
        if match:
            used.add(match.group(1))
    for letter in string.ascii_uppercase:
        if letter not in used:
            return f"Voice {letter}"
    return f"Voice {len(speakers)}"


def validate_setting(mood: str, speed: str) -> SpeakerSetting:
    if mood not in MOODS:
        raise InputValidationError(f"Unknown mood: {mood}. Valid moods: {', '.join(MOODS)}")
    if speed not in SPEEDS:
        raise InputValidationError(f"Unknown speed: {speed}. Valid speeds: {', '.join(SPEEDS)}")
    return SpeakerSetting(mood=mood, speed=speed)


def add_speaker(
    speakers: list[Speaker],
    colors: dict[str, str],
    settings: dict[str, SpeakerSetting],
    name: str | None = None,
    rng: random.Random | None = None,
) -> tuple[list[Speaker], dict[str, str], dict[str, SpeakerSetting], Speaker]:
    """Create a new speaker with a round-robin voice and a random color.

    Returns updated copies of the three collections plus the new speaker.
    """
    speaker_name = name.strip() if name and name.strip() else _next_default_name(speakers)
    speaker = Speaker(
        id=next_speaker_id(speakers),
        name=speaker_name,
        display_name=speaker_name,
        voice=next_voice(speakers),
    )
    logger.info("Added speaker %s (%s) with voice %s", speaker.id, speaker_name, speaker.voice)
    return (
        speakers + [speaker],
        {**colors, speaker.id: random_color(rng)},
        {**settings, speaker.id: SpeakerSetting()},
        speaker,
    )


def _require_speaker(project: Project, speaker_id: str) -> Speaker:
    speaker = project.speaker_by_id(speaker_id)
    if speaker is None:
        raise UnresolvedSpeakerError(speaker_id)
    return speaker


def _replace_speaker(project: Project, updated: Speaker) -> Project:
    speakers = [updated if s.id == updated.id else s for s in project.speakers]
    return dataclasses.replace(project, speakers=speakers)


def delete_speaker(project: Project, speaker_id: str) -> Project:
    """Remove a speaker together with its assignments, color and setting."""
    _require_speaker(project, speaker_id)
    if speaker_id == project.narrator.id:
        raise InputValidationError("The narrator cannot be deleted.")
    return dataclasses.replace(
        project,
        speakers=[s for s in project.speakers if s.id != speaker_id],
        assignments=[a for a in project.assignments if a.speaker_id != speaker_id],
        speaker_colors={k: v for k, v in project.speaker_colors.items() if k != speaker_id},
        speaker_settings={k: v for k, v in project.speaker_settings.items() if k != speaker_id},
    )


def rename_speaker(project: Project, speaker_id: str, display_name: str) -> Project:
    speaker = _require_speaker(project, speaker_id)
    if speaker_id == project.narrator.id:
        raise InputValidationError("The narrator cannot be renamed.")
    if not display_name.strip():
        raise InputValidationError("Speaker name cannot be empty.")
    return _replace_speaker(project, dataclasses.replace(speaker, display_name=display_name.strip()))


def set_speaker_voice(project: Project, speaker_id: str, voice: str) -> Project:
    speaker = _require_speaker(project, speaker_id)
    if voice not in ALL_VOICES and voice not in EDGE_VOICE_POOL:
        logger.warning("Voice %s is not in the known catalogue", voice)
    return _replace_speaker(project, dataclasses.replace(speaker, voice=voice))


def set_speaker_color(project: Project, speaker_id: str, color: str) -> Project:
    _require_speaker(project, speaker_id)
    if not re.fullmatch(r"#[0-9a-fA-F]{6}", color):
        raise InputValidationError(f"Invalid color: {color} (expected #rrggbb)")
    return dataclasses.replace(project, speaker_colors={**project.speaker_colors, speaker_id: color})


def set_speaker_setting(project: Project, speaker_id: str, mood: str | None = None,
                        speed: str | None = None) -> Project:
    """Update mood and/or speed used for new assignments of a speaker."""
    _require_speaker(project, speaker_id)
    current = project.speaker_settings.get(speaker_id, SpeakerSetting())
    setting = validate_setting(mood or current.mood, speed or current.speed)
    return dataclasses.replace(project, speaker_settings={**project.speaker_settings, speaker_id: setting})


def to_edge_voices(speakers: list[Speaker]) -> list[Speaker]:
    """Give every speaker without an edge voice one from EDGE_VOICE_POOL, by position."""
    return [
        s if s.voice in EDGE_VOICE_POOL
        else dataclasses.replace(s, voice=EDGE_VOICE_POOL[i % len(EDGE_VOICE_POOL)])
        for i, s in enumerate(speakers)
    ]


def find_speaker(speakers: list[Speaker], key: str) -> Speaker | None:
    """Look a speaker up by id, display name or internal name (case-insensitive)."""
    folded = key.strip().casefold()
    for speaker in speakers:
        if speaker.id == key:
            return speaker
    for speaker in speakers:
        if folded in (speaker.display_name.casefold(), speaker.name.casefold()):
            return speaker
    return None
