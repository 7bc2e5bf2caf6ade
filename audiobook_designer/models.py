"""Data models for audiobook design."""

from dataclasses import dataclass, field

from audiobook_designer.errors import InputValidationError


@dataclass(frozen=True)
class TextRange:
    start: int         # inclusive character offset
    end: int           # exclusive character offset

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise InputValidationError(f"Invalid text range [{self.start}, {self.end})")

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, other: "TextRange") -> bool:
        return other.start >= self.start and other.end <= self.end


@dataclass(frozen=True)
class Assignment(TextRange):
    speaker_id: str = ""
    mood: str = "normal"
    speed: str = "normal"    # "slow", "normal" or "fast"
    id: int = 0              # creation order


@dataclass(frozen=True)
class AtmosphereSuggestion(TextRange):
    description: str = ""
    id: int = 0


@dataclass(frozen=True)
class Speaker:
    id: str
    name: str            # internal name, e.g. "Narrator", "Voice A"
    display_name: str    # user-editable
    voice: str           # TTS voice identifier


@dataclass(frozen=True)
class SpeakerSetting:
    mood: str = "normal"
    speed: str = "normal"


@dataclass(frozen=True)
class SpeechPart:
    text: str
    speaker_id: str
    mood: str = "normal"
    speed: str = "normal"
    start: int = 0
    end: int = 0


@dataclass(frozen=True)
class SynthesisRequest:
    prompt: str          # instruction text sent to the TTS service
    voice: str
    part: SpeechPart


@dataclass(frozen=True)
class ProposedSegment:
    text: str
    speaker_name: str
    mood: str = "normal"
    atmosphere: str | None = None


@dataclass
class Project:
    version: int
    title: str
    text: str
    assignments: list[Assignment] = field(default_factory=list)
    atmosphere_suggestions: list[AtmosphereSuggestion] = field(default_factory=list)
    speakers: list[Speaker] = field(default_factory=list)
    speaker_colors: dict[str, str] = field(default_factory=dict)
    speaker_settings: dict[str, SpeakerSetting] = field(default_factory=dict)

    @property
    def narrator(self) -> Speaker:
        return self.speakers[0]

    def speaker_by_id(self, speaker_id: str) -> Speaker | None:
        for speaker in self.speakers:
            if speaker.id == speaker_id:
                return speaker
        return None
