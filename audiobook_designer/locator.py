"""Re-anchor analyzer-proposed segments to exact offsets in the source text.

The analysis model echoes the text it was shown, but it may have swapped
quote styles or collapsed whitespace. Each proposed segment is first searched
verbatim; failing that, noise characters (whitespace and quotes) are stripped
from both the proposal and a short window of the source and the match found
there is mapped back to the source characters. The search cursor only moves
forward, so segments are consumed in order and already-matched text can never
be matched twice.
"""

import logging
import random
from dataclasses import dataclass, field

from audiobook_designer.constants import FUZZY_WINDOW_PADDING, MOODS, NOISE_CHARS, QUOTE_CHARS
from audiobook_designer.errors import SegmentLocationFailure
from audiobook_designer.models import (
    Assignment,
    AtmosphereSuggestion,
    ProposedSegment,
    Speaker,
    SpeakerSetting,
)
from audiobook_designer.voices import add_speaker

logger = logging.getLogger(__name__)

_NOISE = frozenset(NOISE_CHARS)
_QUOTES = frozenset(QUOTE_CHARS)


@dataclass
class LocateResult:
    assignments: list[Assignment] = field(default_factory=list)
    atmosphere_suggestions: list[AtmosphereSuggestion] = field(default_factory=list)
    new_speakers: list[Speaker] = field(default_factory=list)
    speaker_colors: dict[str, str] = field(default_factory=dict)
    speaker_settings: dict[str, SpeakerSetting] = field(default_factory=dict)
    failures: list[SegmentLocationFailure] = field(default_factory=list)


def normalize(text: str) -> str:
    """Drop every noise character."""
    return "".join(ch for ch in text if ch not in _NOISE)


def _align(window: str) -> tuple[str, list[int]]:
    """Normalize ``window`` and map each kept character to its index in the window."""
    kept = []
    positions = []
    for i, ch in enumerate(window):
        if ch not in _NOISE:
            kept.append(ch)
            positions.append(i)
    return "".join(kept), positions


def _quote_run(chars) -> int:
    count = 0
    for ch in chars:
        if ch not in _QUOTES:
            break
        count += 1
    return count


def _widen_over_quotes(source: str, start: int, end: int, proposed: str, floor: int) -> tuple[int, int]:
    """Pull adjacent source quotes into the span, at most as many as the proposal has at each edge."""
    stripped = proposed.strip()
    leading = _quote_run(stripped)
    trailing = _quote_run(reversed(stripped))
    while leading and start > floor and source[start - 1] in _QUOTES:
        start -= 1
        leading -= 1
    while trailing and end < len(source) and source[end] in _QUOTES:
        end += 1
        trailing -= 1
    return start, end


def find_span(source: str, text: str, current_index: int) -> tuple[int, int] | None:
    """Locate ``text`` in ``source`` at or after ``current_index``.

    Returns the half-open span in ``source``, or None.
    """
    if not text:
        return None
    exact = source.find(text, current_index)
    if exact != -1:
        return exact, exact + len(text)

    needle = normalize(text)
    if not needle:
        return None
    window = source[current_index:current_index + len(text) + FUZZY_WINDOW_PADDING]
    haystack, positions = _align(window)
    found = haystack.find(needle)
    if found == -1:
        return None
    start = current_index + positions[found]
    end = current_index + positions[found + len(needle) - 1] + 1
    return _widen_over_quotes(source, start, end, text, current_index)


def locate(
    source_text: str,
    proposed: list[ProposedSegment],
    speakers: list[Speaker],
    first_id: int = 1,
    colors: dict[str, str] | None = None,
    rng: random.Random | None = None,
) -> LocateResult:
    """Turn proposed segments into assignments anchored in ``source_text``.

    Unknown speaker names create new speakers, reused for repeated names
    within the same call. Segments that cannot be found are recorded in
    ``failures`` and skipped.
    """
    result = LocateResult()
    all_speakers = list(speakers)
    all_colors = dict(colors or {})
    settings: dict[str, SpeakerSetting] = {}
    lookup = {}
    for speaker in speakers:
        lookup.setdefault(speaker.display_name.strip().casefold(), speaker.id)
        lookup.setdefault(speaker.name.strip().casefold(), speaker.id)

    current_index = 0
    next_id = first_id
    for index, segment in enumerate(proposed):
        span = find_span(source_text, segment.text, current_index)
        if span is None:
            failure = SegmentLocationFailure(
                f"Segment {index} not found in source text: {segment.text[:40]!r}",
                index=index,
                text=segment.text,
            )
            logger.warning("%s", failure)
            result.failures.append(failure)
            continue
        start, end = span
        current_index = end

        key = segment.speaker_name.strip().casefold()
        speaker_id = lookup.get(key)
        if speaker_id is None:
            all_speakers, all_colors, settings, speaker = add_speaker(
                all_speakers, all_colors, settings, name=segment.speaker_name, rng=rng,
            )
            result.new_speakers.append(speaker)
            lookup[key] = speaker_id = speaker.id

        mood = segment.mood if segment.mood in MOODS else "normal"
        result.assignments.append(Assignment(
            start=start, end=end, speaker_id=speaker_id, mood=mood, id=next_id,
        ))
        if segment.atmosphere and segment.atmosphere.strip():
            result.atmosphere_suggestions.append(AtmosphereSuggestion(
                start=start, end=end, description=segment.atmosphere.strip(), id=next_id,
            ))
        next_id += 1

    result.speaker_colors = {s.id: all_colors[s.id] for s in result.new_speakers}
    result.speaker_settings = settings
    logger.info(
        "Located %d of %d proposed segments (%d new speakers)",
        len(result.assignments), len(proposed), len(result.new_speakers),
    )
    return result
