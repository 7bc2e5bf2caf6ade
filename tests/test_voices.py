"""Tests for voices module."""

import logging
import random

import pytest

from audiobook_designer.constants import NARRATOR_ID, NARRATOR_VOICE
from audiobook_designer.errors import InputValidationError, UnresolvedSpeakerError
from audiobook_designer.models import Assignment, SpeakerSetting
from audiobook_designer.voices import (
    ALL_VOICES,
    EDGE_VOICE_POOL,
    add_speaker,
    delete_speaker,
    find_speaker,
    initial_speakers,
    next_speaker_id,
    next_voice,
    random_color,
    rename_speaker,
    set_speaker_color,
    set_speaker_setting,
    set_speaker_voice,
    to_edge_voices,
)


# --- Catalogue ---

def test_initial_speakers_narrator_only():
    (narrator,) = initial_speakers()
    assert narrator.id == NARRATOR_ID
    assert narrator.voice == NARRATOR_VOICE


def test_voice_catalogue_sorted_and_unique():
    assert ALL_VOICES == sorted(set(ALL_VOICES))


def test_next_voice_round_robin(speakers):
    assert next_voice(speakers) == ALL_VOICES[2]
    assert next_voice(speakers * len(ALL_VOICES)) == ALL_VOICES[0]


def test_next_speaker_id_skips_used(speakers):
    assert next_speaker_id(speakers) == "spk_3"
    assert next_speaker_id([]) == "spk_1"


def test_random_color_format():
    color = random_color(random.Random(3))
    assert color.startswith("#")
    assert len(color) == 7
    int(color[1:], 16)


# --- add_speaker ---

def test_add_speaker_default_names(speakers):
    """Default names take the first free "Voice <letter>"."""
    _, colors, settings, speaker = add_speaker(speakers, {}, {}, rng=random.Random(0))
    assert speaker.name == "Voice B"
    assert speaker.id == "spk_3"
    assert settings[speaker.id] == SpeakerSetting()
    assert speaker.id in colors


def test_add_speaker_named(speakers):
    updated, _, _, speaker = add_speaker(speakers, {}, {}, name="  Bob ")
    assert speaker.display_name == "Bob"
    assert updated[-1] == speaker
    assert len(speakers) == 2


# --- Editing ---

def test_delete_speaker_cascades(sample_project):
    sample_project.assignments = [
        Assignment(start=0, end=5, speaker_id="spk_2", id=1),
        Assignment(start=6, end=9, speaker_id="spk_1", id=2),
    ]
    updated = delete_speaker(sample_project, "spk_2")
    assert [s.id for s in updated.speakers] == ["spk_1"]
    assert [a.id for a in updated.assignments] == [2]
    assert "spk_2" not in updated.speaker_colors
    assert "spk_2" not in updated.speaker_settings
    # Original left untouched
    assert len(sample_project.speakers) == 2


def test_narrator_cannot_be_deleted_or_renamed(sample_project):
    with pytest.raises(InputValidationError):
        delete_speaker(sample_project, NARRATOR_ID)
    with pytest.raises(InputValidationError):
        rename_speaker(sample_project, NARRATOR_ID, "Storyteller")


def test_unknown_speaker(sample_project):
    with pytest.raises(UnresolvedSpeakerError, match="spk_9"):
        delete_speaker(sample_project, "spk_9")


def test_rename_speaker(sample_project):
    updated = rename_speaker(sample_project, "spk_2", " Alicia ")
    assert updated.speaker_by_id("spk_2").display_name == "Alicia"
    assert updated.speaker_by_id("spk_2").name == "Voice A"
    with pytest.raises(InputValidationError):
        rename_speaker(sample_project, "spk_2", "   ")


def test_set_speaker_voice_warns_on_unknown(sample_project, caplog):
    with caplog.at_level(logging.WARNING):
        updated = set_speaker_voice(sample_project, "spk_2", "robot")
    assert updated.speaker_by_id("spk_2").voice == "robot"
    assert "not in the known catalogue" in caplog.text


def test_set_speaker_color(sample_project):
    updated = set_speaker_color(sample_project, "spk_2", "#00ff00")
    assert updated.speaker_colors["spk_2"] == "#00ff00"
    with pytest.raises(InputValidationError):
        set_speaker_color(sample_project, "spk_2", "green")


def test_set_speaker_setting(sample_project):
    updated = set_speaker_setting(sample_project, "spk_2", mood="sad")
    updated = set_speaker_setting(updated, "spk_2", speed="slow")
    assert updated.speaker_settings["spk_2"] == SpeakerSetting(mood="sad", speed="slow")
    with pytest.raises(InputValidationError):
        set_speaker_setting(sample_project, "spk_2", mood="bored")


# --- Lookup and backend mapping ---

def test_find_speaker(speakers):
    assert find_speaker(speakers, "spk_2").display_name == "Alice"
    assert find_speaker(speakers, "ALICE").id == "spk_2"
    assert find_speaker(speakers, "voice a").id == "spk_2"
    assert find_speaker(speakers, "Zed") is None


def test_to_edge_voices(speakers):
    mapped = to_edge_voices(speakers)
    assert all(s.voice in EDGE_VOICE_POOL for s in mapped)
    assert mapped[0].voice != mapped[1].voice
    assert [s.id for s in mapped] == [s.id for s in speakers]
