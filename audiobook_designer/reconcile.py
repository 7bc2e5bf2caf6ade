"""Turn overlapping speaker assignments into an ordered, text-covering partition."""

import logging
from itertools import groupby

from audiobook_designer.errors import EmptyInputError, InputValidationError
from audiobook_designer.models import Assignment, SpeechPart

logger = logging.getLogger(__name__)

POLICY_FIRST = "first"   # first assignment in start order wins an overlap
POLICY_LAST = "last"     # later-created assignments paint over earlier ones
POLICIES = (POLICY_FIRST, POLICY_LAST)


def next_assignment_id(assignments: list[Assignment]) -> int:
    """Return an id greater than every existing assignment id."""
    return max((a.id for a in assignments), default=0) + 1


def add_assignment(assignments: list[Assignment], new: Assignment) -> list[Assignment]:
    """Insert ``new``, dropping every assignment it fully encloses.

    Partially overlapping and disjoint assignments are kept, so redoing a
    sub-selection replaces only what lies inside it.
    """
    if new.start == new.end:
        raise InputValidationError("Cannot assign an empty selection.")
    kept = [a for a in assignments if not new.contains(a)]
    return kept + [new]


def _emit(parts: list[SpeechPart], text: str, start: int, end: int,
          speaker_id: str, mood: str = "normal", speed: str = "normal") -> None:
    """Append a part for text[start:end] unless it is whitespace-only."""
    chunk = text[start:end]
    if not chunk.strip():
        return
    parts.append(SpeechPart(
        text=chunk,
        speaker_id=speaker_id,
        mood=mood,
        speed=speed,
        start=start,
        end=start + len(chunk),
    ))


def _reconcile_first(text: str, assignments: list[Assignment], narrator_id: str) -> list[SpeechPart]:
    parts = []
    cursor = 0
    for assignment in sorted(assignments, key=lambda a: a.start):
        if assignment.start < cursor:
            logger.debug(
                "Skipping assignment %s [%d, %d): overlaps text already covered up to %d",
                assignment.id, assignment.start, assignment.end, cursor,
            )
            continue
        if assignment.start > cursor:
            _emit(parts, text, cursor, assignment.start, narrator_id)
        _emit(parts, text, assignment.start, assignment.end,
              assignment.speaker_id, assignment.mood, assignment.speed)
        cursor = assignment.end

    if cursor < len(text):
        _emit(parts, text, cursor, len(text), narrator_id)
    return parts


def _reconcile_last(text: str, assignments: list[Assignment], narrator_id: str) -> list[SpeechPart]:
    owners: list[Assignment | None] = [None] * len(text)
    for assignment in sorted(assignments, key=lambda a: a.id):
        end = min(assignment.end, len(text))
        if assignment.start < end:
            owners[assignment.start:end] = [assignment] * (end - assignment.start)

    parts = []
    pos = 0
    for owner, run in groupby(owners):
        length = sum(1 for _ in run)
        if owner is None:
            _emit(parts, text, pos, pos + length, narrator_id)
        else:
            _emit(parts, text, pos, pos + length, owner.speaker_id, owner.mood, owner.speed)
        pos += length
    return parts


def reconcile(
    text: str,
    assignments: list[Assignment],
    narrator_id: str,
    policy: str = POLICY_FIRST,
) -> list[SpeechPart]:
    """Partition ``text`` into speakable parts.

    Gaps between assignments go to the narrator with neutral mood and speed.
    Whitespace-only spans are dropped. With ``policy="first"`` an assignment
    starting inside text already covered is ignored entirely; with
    ``policy="last"`` the most recently created assignment owns each
    character.
    """
    if not text.strip():
        raise InputValidationError("Please enter some text to generate an audiobook.")
    if policy == POLICY_FIRST:
        parts = _reconcile_first(text, assignments, narrator_id)
    elif policy == POLICY_LAST:
        parts = _reconcile_last(text, assignments, narrator_id)
    else:
        raise InputValidationError(f"Unknown overlap policy: {policy}")

    if not parts:
        # Non-blank text whose assigned spans were all whitespace
        _emit(parts, text, 0, len(text), narrator_id)
    if not parts:
        raise EmptyInputError("No valid text found for audio generation.")
    return parts
