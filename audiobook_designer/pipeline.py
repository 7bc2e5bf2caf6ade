"""End-to-end flows: render an audiobook, analyze a text, preview a voice."""

import dataclasses
import logging
from dataclasses import dataclass, field

from audiobook_designer.analysis import AnalysisClient, parse_analysis_response
from audiobook_designer.assembly import assemble, validate_bitrate
from audiobook_designer.constants import CHAR_LIMIT, CONCURRENCY_LIMIT, DEFAULT_BITRATE, VOICE_TEST_PHRASE
from audiobook_designer.errors import (
    InputValidationError,
    NoAudioProducedError,
    RemoteServiceFailure,
    SegmentLocationFailure,
)
from audiobook_designer.locator import locate
from audiobook_designer.models import (
    Assignment,
    Project,
    Speaker,
    SpeakerSetting,
    SpeechPart,
    SynthesisRequest,
)
from audiobook_designer.planner import plan
from audiobook_designer.reconcile import POLICY_FIRST, add_assignment, next_assignment_id, reconcile
from audiobook_designer.tts import SpeechClient, synthesize_all

logger = logging.getLogger(__name__)


@dataclass
class AudiobookResult:
    audio: bytes
    parts: list[SpeechPart]
    requests: list[SynthesisRequest]
    errors: dict[int, BaseException] = field(default_factory=dict)

    @property
    def failed_count(self) -> int:
        return len(self.errors)


def _check_text(text: str) -> None:
    if not text.strip():
        raise InputValidationError("Please enter some text first.")
    if len(text) > CHAR_LIMIT:
        raise InputValidationError(f"Text is too long: {len(text):,} characters (limit {CHAR_LIMIT:,}).")


async def generate_audiobook(
    text: str,
    assignments: list[Assignment],
    speakers: list[Speaker],
    client: SpeechClient,
    bitrate: int = DEFAULT_BITRATE,
    limit: int = CONCURRENCY_LIMIT,
    policy: str = POLICY_FIRST,
    tags: dict | None = None,
) -> AudiobookResult:
    """Reconcile, synthesize and encode ``text`` as one MP3."""
    _check_text(text)
    validate_bitrate(bitrate)
    if not speakers:
        raise InputValidationError("At least the narrator speaker is required.")

    parts = reconcile(text, assignments, speakers[0].id, policy=policy)
    requests = plan(parts, speakers)
    logger.info("Planned %d requests from %d parts", len(requests), len(parts))

    buffers, errors = await synthesize_all(requests, client, limit)
    try:
        audio = assemble(buffers, bitrate=bitrate, tags=tags)
    except NoAudioProducedError as e:
        raise NoAudioProducedError(f"{e} ({len(errors)} of {len(requests)} requests failed)") from e
    if errors:
        logger.warning("%d of %d segments failed and were left out", len(errors), len(requests))
    return AudiobookResult(audio=audio, parts=parts, requests=requests, errors=errors)


async def render_project(project: Project, client: SpeechClient, **kwargs) -> AudiobookResult:
    tags = {"title": project.title} if project.title else None
    return await generate_audiobook(
        project.text, project.assignments, project.speakers, client, tags=tags, **kwargs,
    )


async def analyze_project(project: Project, analyzer: AnalysisClient) -> Project:
    """Ask the analyzer for segments and merge the located ones into a new project.

    Located assignments supersede assignments they fully enclose; atmosphere
    suggestions are replaced; unseen speaker names become new speakers.
    """
    _check_text(project.text)
    names = [s.display_name for s in project.speakers]
    raw = await analyzer.analyze(project.text, names)
    proposed = parse_analysis_response(raw)

    result = locate(
        project.text,
        proposed,
        project.speakers,
        first_id=next_assignment_id(project.assignments),
        colors=project.speaker_colors,
    )
    if not result.assignments:
        raise SegmentLocationFailure(
            f"None of the {len(proposed)} analyzed segments could be found in the text."
        )

    assignments = list(project.assignments)
    for assignment in result.assignments:
        assignments = add_assignment(assignments, assignment)

    return dataclasses.replace(
        project,
        assignments=assignments,
        atmosphere_suggestions=result.atmosphere_suggestions,
        speakers=project.speakers + result.new_speakers,
        speaker_colors={**project.speaker_colors, **result.speaker_colors},
        speaker_settings={**project.speaker_settings, **result.speaker_settings},
    )


async def preview_voice(
    speaker: Speaker,
    setting: SpeakerSetting,
    client: SpeechClient,
    bitrate: int = DEFAULT_BITRATE,
) -> bytes:
    """Short MP3 of ``speaker`` saying the test phrase with ``setting``."""
    part = SpeechPart(
        text=VOICE_TEST_PHRASE,
        speaker_id=speaker.id,
        mood=setting.mood,
        speed=setting.speed,
        end=len(VOICE_TEST_PHRASE),
    )
    (request,) = plan([part], [speaker])
    audio = await client.synthesize(request)
    if not audio:
        raise RemoteServiceFailure(f"Voice test failed for {speaker.display_name}.")
    return assemble([audio], bitrate=bitrate)
