"""Tests for project directories and project/settings files."""

import json
import os

import pytest

from audiobook_designer.constants import NARRATOR_ID, PROJECT_FILE_VERSION, PROJECT_FILENAME
from audiobook_designer.errors import CorruptProjectError, CorruptSettingsError, InputValidationError
from audiobook_designer.models import Assignment, AtmosphereSuggestion, SpeakerSetting
from audiobook_designer.project import (
    import_text,
    init_project_dir,
    list_projects,
    load_artifact,
    load_project,
    load_settings,
    new_project,
    project_from_dict,
    project_to_dict,
    save_project,
    save_settings,
    settings_from_dict,
    slug_from_path,
    write_artifact,
)


def _minimal_doc(**overrides):
    doc = {
        "version": 2,
        "title": "Book",
        "text": "Hello there.",
        "assignments": [],
        "speakers": [{"id": "spk_1", "name": "Narrator", "displayName": "Narrator", "voice": "kore"}],
        "speakerColors": {"spk_1": "#818CF8"},
        "speakerSettings": {"spk_1": {"mood": "normal", "speed": "normal"}},
    }
    doc.update(overrides)
    return doc


# --- Directories and artifacts ---

def test_slug_from_path():
    assert slug_from_path("Tell-Tale Heart.txt") == "tell_tale_heart"
    assert slug_from_path("/path/to/The Open Window.txt") == "the_open_window"


def test_init_project_dir(tmp_path):
    project_dir = init_project_dir("book", str(tmp_path))
    assert os.path.isdir(os.path.join(project_dir, "final"))


def test_list_projects(tmp_path):
    for slug in ("b_book", "a_book"):
        d = init_project_dir(slug, str(tmp_path))
        save_project(new_project("x"), os.path.join(d, PROJECT_FILENAME))
    init_project_dir("empty", str(tmp_path))
    assert list_projects(str(tmp_path)) == ["a_book", "b_book"]
    assert list_projects(str(tmp_path / "missing")) == []


def test_artifact_round_trip(tmp_path):
    write_artifact(str(tmp_path), "data.json", {"a": "ü"})
    assert load_artifact(str(tmp_path), "data.json") == {"a": "ü"}
    assert load_artifact(str(tmp_path), "nope.json") is None


def test_import_text(tmp_path):
    path = tmp_path / "story.txt"
    path.write_text("Once upon a time.", encoding="utf-8")
    assert import_text(str(path)) == "Once upon a time."


def test_import_rejects_other_formats(tmp_path):
    path = tmp_path / "story.pdf"
    path.write_bytes(b"%PDF")
    with pytest.raises(InputValidationError, match="Unsupported"):
        import_text(str(path))


def test_import_rejects_non_utf8(tmp_path):
    path = tmp_path / "story.txt"
    path.write_bytes(b"\xff\xfe caf\xe9")
    with pytest.raises(InputValidationError, match="UTF-8"):
        import_text(str(path))


# --- Project documents ---

def test_new_project_has_narrator():
    project = new_project("Text", "Title")
    assert project.version == PROJECT_FILE_VERSION
    assert [s.id for s in project.speakers] == [NARRATOR_ID]
    assert NARRATOR_ID in project.speaker_colors
    assert project.speaker_settings[NARRATOR_ID] == SpeakerSetting()


def test_project_document_uses_camel_case(sample_project):
    sample_project.assignments = [Assignment(start=13, end=28, speaker_id="spk_2", mood="anxious", id=1)]
    doc = project_to_dict(sample_project)
    assert set(doc) == {
        "version", "title", "text", "assignments", "atmosphereSuggestions",
        "speakers", "speakerColors", "speakerSettings",
    }
    assert doc["assignments"][0]["speakerId"] == "spk_2"
    assert doc["speakers"][1]["displayName"] == "Alice"


def test_save_and_load_project(tmp_path, sample_project):
    sample_project.assignments = [Assignment(start=13, end=28, speaker_id="spk_2", speed="slow", id=1)]
    sample_project.atmosphere_suggestions = [AtmosphereSuggestion(start=0, end=12, description="night", id=1)]
    path = str(tmp_path / PROJECT_FILENAME)
    save_project(sample_project, path)
    assert load_project(path) == sample_project


def test_v1_document_without_atmosphere():
    project = project_from_dict(_minimal_doc(version=1))
    assert project.atmosphere_suggestions == []


def test_german_labels_accepted():
    doc = _minimal_doc(
        assignments=[{"id": 1, "start": 0, "end": 5, "speakerId": "spk_1", "mood": "traurig", "speed": "langsam"}],
        speakerSettings={"spk_1": {"mood": "fröhlich", "speed": "schnell"}},
    )
    project = project_from_dict(doc)
    assert (project.assignments[0].mood, project.assignments[0].speed) == ("sad", "slow")
    assert project.speaker_settings["spk_1"] == SpeakerSetting(mood="cheerful", speed="fast")


@pytest.mark.parametrize("overrides", [
    {"version": None},
    {"version": "2"},
    {"text": 5},
    {"assignments": {}},
    {"speakers": []},
    {"assignments": [{"start": 0, "end": 3}]},
    {"assignments": [{"start": 4, "end": 3, "speakerId": "spk_1"}]},
    {"assignments": [{"start": 0, "end": 3, "speakerId": "spk_1", "mood": "bored"}]},
    {"atmosphereSuggestions": [{"start": 0, "end": 3}]},
    {"speakerColors": ["#ffffff"]},
    {"speakerSettings": {"spk_1": "loud"}},
    {"speakers": [{"id": "spk_1", "name": None}]},
    {"speakers": [{"id": "spk_1", "name": "Narrator", "displayName": 5}]},
    {"speakers": [{"id": "spk_1", "name": "Narrator", "voice": None}]},
    {"assignments": [{"id": "x", "start": 0, "end": 3, "speakerId": "spk_1"}]},
    {"assignments": [{"id": True, "start": 0, "end": 3, "speakerId": "spk_1"}]},
    {"atmosphereSuggestions": [{"id": "x", "start": 0, "end": 3, "description": "rain"}]},
])
def test_corrupt_documents_rejected(overrides):
    with pytest.raises(CorruptProjectError):
        project_from_dict(_minimal_doc(**overrides))


def test_load_project_invalid_json(tmp_path):
    path = tmp_path / PROJECT_FILENAME
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CorruptProjectError):
        load_project(str(path))


def test_load_project_not_utf8(tmp_path):
    path = tmp_path / PROJECT_FILENAME
    path.write_bytes(b'{"version": 1, "text": "\xff\xfe"}')
    with pytest.raises(CorruptProjectError):
        load_project(str(path))


# --- Settings files ---

def test_settings_round_trip(tmp_path, sample_project):
    path = str(tmp_path / "settings.json")
    save_settings(sample_project, path)
    with open(path, encoding="utf-8") as f:
        assert set(json.load(f)) == {"speakers", "speakerColors", "speakerSettings"}
    speakers, colors, settings = load_settings(path)
    assert speakers == sample_project.speakers
    assert colors == sample_project.speaker_colors
    assert settings == sample_project.speaker_settings


@pytest.mark.parametrize("data", [
    [],
    {"speakers": [], "speakerColors": {}, "speakerSettings": {}},
    {"speakers": [{"id": "spk_1"}], "speakerSettings": {}},
    {"speakers": [{"id": "spk_1"}], "speakerColors": {}, "speakerSettings": {"spk_1": {"speed": "warp"}}},
    {"speakers": [{"id": "spk_1", "displayName": None}], "speakerColors": {}, "speakerSettings": {}},
])
def test_invalid_settings_rejected(data):
    with pytest.raises(CorruptSettingsError):
        settings_from_dict(data)


def test_load_settings_not_utf8(tmp_path):
    path = tmp_path / "settings.json"
    path.write_bytes(b'{"speakers": [{"id": "spk_1", "name": "\xe9"}]}')
    with pytest.raises(CorruptSettingsError):
        load_settings(str(path))


def test_missing_ids_default_to_zero():
    doc = _minimal_doc(
        assignments=[{"start": 0, "end": 5, "speakerId": "spk_1"}],
        atmosphereSuggestions=[{"start": 0, "end": 5, "description": "rain"}],
    )
    project = project_from_dict(doc)
    assert project.assignments[0].id == 0
    assert project.atmosphere_suggestions[0].id == 0
