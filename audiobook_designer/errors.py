"""Exception taxonomy shared by the pipeline, the file loaders and the CLI."""


class AudiobookError(Exception):
    """Base class for every user-facing error."""


class InputValidationError(AudiobookError, ValueError):
    """Blank, oversized or otherwise unusable input."""


class EmptyInputError(InputValidationError):
    """Reconciliation produced no parts for non-blank text."""


class UnresolvedSpeakerError(AudiobookError, LookupError):
    def __init__(self, speaker_id: str) -> None:
        super().__init__(f"Unknown speaker: {speaker_id}")
        self.speaker_id = speaker_id


class SegmentLocationFailure(AudiobookError):
    def __init__(self, message: str, *, index: int | None = None, text: str = "") -> None:
        super().__init__(message)
        self.index = index
        self.text = text


class RemoteServiceFailure(AudiobookError):
    """A synthesis or analysis call failed or returned nothing."""


class MalformedRemoteResponseError(AudiobookError):
    """The analysis response is not valid JSON or does not fit the schema."""


class NoAudioProducedError(AudiobookError):
    """No usable audio fragment was left to assemble."""


class CorruptProjectError(AudiobookError):
    pass


class CorruptSettingsError(AudiobookError):
    pass


class ConfigError(AudiobookError):
    pass
