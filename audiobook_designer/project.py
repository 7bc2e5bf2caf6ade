"""Project directories, project files and speaker settings files."""

import json
import os
import re

from audiobook_designer.constants import (
    DEFAULT_TITLE,
    MOODS,
    MOOD_ALIASES,
    OUTPUT_DIR,
    PROJECT_FILE_VERSION,
    PROJECT_FILENAME,
    SPEEDS,
    SPEED_ALIASES,
)
from audiobook_designer.errors import (
    CorruptProjectError,
    CorruptSettingsError,
    InputValidationError,
)
from audiobook_designer.models import (
    Assignment,
    AtmosphereSuggestion,
    Project,
    Speaker,
    SpeakerSetting,
)
from audiobook_designer.voices import initial_colors, initial_speakers

SUPPORTED_IMPORTS = (".txt",)


def slug_from_path(path: str) -> str:
    """Convert a source filename to a project directory slug.

    "Tell-Tale Heart.txt" → "tell_tale_heart"
    "/path/to/The Open Window.hbproj" → "the_open_window"
    """
    basename = os.path.splitext(os.path.basename(path))[0]
    # Replace non-alphanumeric with underscore, collapse multiples, strip edges
    return re.sub(r"[^a-zA-Z0-9]+", "_", basename).strip("_").lower()


def init_project_dir(slug: str, output_base: str = OUTPUT_DIR) -> str:
    """Create output/<slug>/ and its final/ subdirectory."""
    project_dir = os.path.join(output_base, slug)
    os.makedirs(os.path.join(project_dir, "final"), exist_ok=True)
    return project_dir


def list_projects(output_base: str = OUTPUT_DIR) -> list[str]:
    """Slugs of every directory under output_base holding a project file."""
    if not os.path.isdir(output_base):
        return []
    return sorted(
        name for name in os.listdir(output_base)
        if os.path.exists(os.path.join(output_base, name, PROJECT_FILENAME))
    )


def write_artifact(project_dir: str, filename: str, data: dict) -> str:
    """Write JSON artifact to project_dir/filename.

    Returns path to the written file.
    """
    path = os.path.join(project_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def load_artifact(project_dir: str, filename: str) -> dict | None:
    """Read JSON artifact. Returns None if file doesn't exist."""
    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def import_text(path: str) -> str:
    """Read book text from a supported file."""
    ext = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_IMPORTS:
        raise InputValidationError(f"Unsupported file format: {ext or path}. Please use .txt.")
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise InputValidationError(f"{path} is not valid UTF-8 text: {e}") from e


def new_project(text: str, title: str = DEFAULT_TITLE) -> Project:
    speakers = initial_speakers()
    return Project(
        version=PROJECT_FILE_VERSION,
        title=title,
        text=text,
        speakers=speakers,
        speaker_colors=initial_colors(),
        speaker_settings={s.id: SpeakerSetting() for s in speakers},
    )


# --- (de)serialization ---

def _mood(value, error) -> str:
    mood = MOOD_ALIASES.get(value, value) if value is not None else "normal"
    if mood not in MOODS:
        raise error(f"Invalid mood: {value!r}")
    return mood


def _speed(value, error) -> str:
    speed = SPEED_ALIASES.get(value, value) if value is not None else "normal"
    if speed not in SPEEDS:
        raise error(f"Invalid speed: {value!r}")
    return speed


def _speakers_from_list(items, error) -> list[Speaker]:
    speakers = []
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("id"), str):
            raise error("Invalid speaker entry.")
        name = item.get("name", item["id"])
        display_name = item.get("displayName", name)
        voice = item.get("voice", "")
        if not all(isinstance(v, str) for v in (name, display_name, voice)):
            raise error(f"Invalid speaker entry: {item['id']}")
        speakers.append(Speaker(id=item["id"], name=name, display_name=display_name, voice=voice))
    return speakers


def _id(item, error) -> int:
    value = item.get("id", 0)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise error(f"Invalid id: {value!r}")
    return value


def _settings_from_dict(data, error) -> dict[str, SpeakerSetting]:
    if not isinstance(data, dict):
        raise error("speakerSettings must be an object.")
    settings = {}
    for speaker_id, value in data.items():
        if not isinstance(value, dict):
            raise error(f"Invalid setting for speaker {speaker_id}.")
        settings[speaker_id] = SpeakerSetting(
            mood=_mood(value.get("mood"), error),
            speed=_speed(value.get("speed"), error),
        )
    return settings


def _range_bounds(item: dict, error) -> tuple[int, int]:
    start, end = item.get("start"), item.get("end")
    if not isinstance(start, int) or not isinstance(end, int) or start < 0 or end < start:
        raise error(f"Invalid range: {item!r}")
    return start, end


def _speakers_to_list(speakers: list[Speaker]) -> list[dict]:
    return [
        {"id": s.id, "name": s.name, "displayName": s.display_name, "voice": s.voice}
        for s in speakers
    ]


def _settings_to_dict(settings: dict[str, SpeakerSetting]) -> dict:
    return {k: {"mood": v.mood, "speed": v.speed} for k, v in settings.items()}


def project_to_dict(project: Project) -> dict:
    return {
        "version": project.version,
        "title": project.title,
        "text": project.text,
        "assignments": [
            {"id": a.id, "start": a.start, "end": a.end, "speakerId": a.speaker_id,
             "mood": a.mood, "speed": a.speed}
            for a in project.assignments
        ],
        "atmosphereSuggestions": [
            {"id": s.id, "start": s.start, "end": s.end, "description": s.description}
            for s in project.atmosphere_suggestions
        ],
        "speakers": _speakers_to_list(project.speakers),
        "speakerColors": dict(project.speaker_colors),
        "speakerSettings": _settings_to_dict(project.speaker_settings),
    }


def project_from_dict(data) -> Project:
    """Validate and convert a project document. Nothing is partially loaded."""
    error = CorruptProjectError
    if not isinstance(data, dict):
        raise error("Invalid or corrupt project file.")
    version = data.get("version")
    if not isinstance(version, int) or isinstance(version, bool) or version < 1:
        raise error("Invalid or corrupt project file: missing version.")
    if not isinstance(data.get("text"), str):
        raise error("Invalid or corrupt project file: missing text.")
    if not isinstance(data.get("assignments"), list):
        raise error("Invalid or corrupt project file: assignments must be a list.")
    if not isinstance(data.get("speakers"), list) or not data["speakers"]:
        raise error("Invalid or corrupt project file: speakers must be a non-empty list.")

    assignments = []
    for item in data["assignments"]:
        if not isinstance(item, dict) or not isinstance(item.get("speakerId"), str):
            raise error(f"Invalid assignment: {item!r}")
        start, end = _range_bounds(item, error)
        assignments.append(Assignment(
            start=start,
            end=end,
            speaker_id=item["speakerId"],
            mood=_mood(item.get("mood"), error),
            speed=_speed(item.get("speed"), error),
            id=_id(item, error),
        ))

    suggestions = []
    for item in data.get("atmosphereSuggestions") or []:
        if not isinstance(item, dict) or not isinstance(item.get("description"), str):
            raise error(f"Invalid atmosphere suggestion: {item!r}")
        start, end = _range_bounds(item, error)
        suggestions.append(AtmosphereSuggestion(
            start=start, end=end, description=item["description"], id=_id(item, error),
        ))

    colors = data.get("speakerColors") or {}
    if not isinstance(colors, dict):
        raise error("speakerColors must be an object.")

    return Project(
        version=version,
        title=data.get("title") or DEFAULT_TITLE,
        text=data["text"],
        assignments=assignments,
        atmosphere_suggestions=suggestions,
        speakers=_speakers_from_list(data["speakers"], error),
        speaker_colors=dict(colors),
        speaker_settings=_settings_from_dict(data.get("speakerSettings") or {}, error),
    )


def load_project(path: str) -> Project:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptProjectError(f"Invalid or corrupt project file: {e}") from e
    return project_from_dict(data)


def save_project(project: Project, path: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(project_to_dict(project), f, indent=2, ensure_ascii=False)
    return path


def settings_to_dict(project: Project) -> dict:
    return {
        "speakers": _speakers_to_list(project.speakers),
        "speakerColors": dict(project.speaker_colors),
        "speakerSettings": _settings_to_dict(project.speaker_settings),
    }


def settings_from_dict(data) -> tuple[list[Speaker], dict[str, str], dict[str, SpeakerSetting]]:
    error = CorruptSettingsError
    if (
        not isinstance(data, dict)
        or not isinstance(data.get("speakers"), list)
        or not data["speakers"]
        or not isinstance(data.get("speakerColors"), dict)
        or not isinstance(data.get("speakerSettings"), dict)
    ):
        raise error("Invalid settings file format.")
    return (
        _speakers_from_list(data["speakers"], error),
        dict(data["speakerColors"]),
        _settings_from_dict(data["speakerSettings"], error),
    )


def load_settings(path: str) -> tuple[list[Speaker], dict[str, str], dict[str, SpeakerSetting]]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptSettingsError(f"Invalid settings file: {e}") from e
    return settings_from_dict(data)


def save_settings(project: Project, path: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings_to_dict(project), f, indent=2, ensure_ascii=False)
    return path
