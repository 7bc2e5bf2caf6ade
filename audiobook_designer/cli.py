"""CLI interface with subcommand routing and pipeline orchestration."""

import argparse
import asyncio
import logging
import os
import shutil
import sys

from audiobook_designer.analysis import GeminiAnalysisClient
from audiobook_designer.config import BACKENDS, load_config, require_api_key
from audiobook_designer.constants import (
    BITRATES,
    CHAR_LIMIT,
    MOODS,
    OUTPUT_DIR,
    PROJECT_FILENAME,
    SPEEDS,
    VERSION,
)
from audiobook_designer.errors import AudiobookError, UnresolvedSpeakerError
from audiobook_designer.exporter import export
from audiobook_designer.models import Assignment, SpeakerSetting
from audiobook_designer.pipeline import analyze_project, preview_voice, render_project
from audiobook_designer.project import (
    import_text,
    init_project_dir,
    list_projects,
    load_artifact,
    load_project,
    load_settings,
    new_project,
    save_project,
    save_settings,
    slug_from_path,
)
from audiobook_designer.reconcile import POLICIES, add_assignment, next_assignment_id
from audiobook_designer.tts import EdgeSpeechClient, GeminiSpeechClient
from audiobook_designer.voices import (
    ALL_VOICES,
    EDGE_VOICE_POOL,
    add_speaker,
    delete_speaker,
    find_speaker,
    rename_speaker,
    set_speaker_color,
    set_speaker_setting,
    set_speaker_voice,
    to_edge_voices,
)

logger = logging.getLogger(__name__)


def _check_ffmpeg():
    """Verify ffmpeg is installed."""
    if not shutil.which("ffmpeg"):
        print("Error: ffmpeg is required but not found.", file=sys.stderr)
        print("Install with: brew install ffmpeg", file=sys.stderr)
        raise SystemExit(1)


def _positive_int(value):
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    raise SystemExit(1)


def _output_base(args) -> str:
    return getattr(args, "output_dir", None) or OUTPUT_DIR


def _get_project_dir(args) -> str:
    """Get project directory path, verify it holds a project file."""
    project_dir = os.path.join(_output_base(args), args.slug)
    if not os.path.exists(os.path.join(project_dir, PROJECT_FILENAME)):
        print(f"Error: Project '{args.slug}' not found.", file=sys.stderr)
        print("Run 'audiobook-designer new <file>' to create a project.", file=sys.stderr)
        raise SystemExit(1)
    return project_dir


def _load(args):
    project_dir = _get_project_dir(args)
    return project_dir, load_project(os.path.join(project_dir, PROJECT_FILENAME))


def _save(project_dir, project):
    save_project(project, os.path.join(project_dir, PROJECT_FILENAME))


def _resolve_speaker(project, key):
    speaker = find_speaker(project.speakers, key)
    if speaker is None:
        raise UnresolvedSpeakerError(key)
    return speaker


def _speech_client(config, backend):
    if backend == "edge":
        return EdgeSpeechClient()
    return GeminiSpeechClient(api_key=require_api_key(config), model=config.tts_model)


def _create(args, project):
    slug = args.slug
    project_dir = os.path.join(_output_base(args), slug)
    if os.path.exists(os.path.join(project_dir, PROJECT_FILENAME)):
        print(f"Error: Project '{slug}' already exists.", file=sys.stderr)
        print(f"Use 'audiobook-designer status {slug}' to review it.", file=sys.stderr)
        raise SystemExit(1)
    project_dir = init_project_dir(slug, output_base=_output_base(args))
    _save(project_dir, project)
    return project_dir


def cmd_new(args):
    """Create a new project from a text file."""
    if not os.path.exists(args.file):
        _fail(f"File not found: {args.file}")
    text = import_text(args.file)
    if not text.strip():
        _fail(f"File is empty: {args.file}")
    if len(text) > CHAR_LIMIT:
        print(f"Warning: text has {len(text):,} characters (limit {CHAR_LIMIT:,}).", file=sys.stderr)

    args.slug = args.slug or slug_from_path(args.file)
    title = args.title or os.path.splitext(os.path.basename(args.file))[0]
    _create(args, new_project(text, title=title))

    print(f"Created project: {args.slug}")
    print(f"{len(text.split()):,} words / {len(text):,} characters")
    print(f"Run 'audiobook-designer analyze {args.slug}' or 'audiobook-designer assign {args.slug} ...' next.")


def cmd_open(args):
    """Create a project directory from an existing project file."""
    if not os.path.exists(args.file):
        _fail(f"File not found: {args.file}")
    project = load_project(args.file)
    args.slug = args.slug or slug_from_path(args.file)
    _create(args, project)
    print(f"Imported project: {args.slug} ({len(project.assignments)} assignments, {len(project.speakers)} speakers)")


def cmd_status(args):
    """Show project status."""
    project_dir, project = _load(args)
    print(f"Project: {args.slug}")
    print(f"Title:   {project.title}")
    print(f"Text:    {len(project.text):,} characters")
    print("Speakers:")
    for i, speaker in enumerate(project.speakers):
        setting = project.speaker_settings.get(speaker.id, SpeakerSetting())
        marker = "*" if i == 0 else " "
        print(f" {marker}{speaker.id:<8} {speaker.display_name:<15} → {speaker.voice:<14} "
              f"{setting.mood}/{setting.speed}")
    print(f"Assignments: {len(project.assignments)}")
    for a in sorted(project.assignments, key=lambda a: a.start):
        preview = project.text[a.start:a.end][:40].replace("\n", " ")
        print(f"  [{a.start:>6}, {a.end:>6}) {a.speaker_id:<8} {a.mood}/{a.speed}  {preview!r}")
    if project.atmosphere_suggestions:
        print(f"Atmosphere: {len(project.atmosphere_suggestions)} suggestions")
        for s in project.atmosphere_suggestions:
            print(f"  [{s.start:>6}, {s.end:>6}) {s.description}")
    final = os.path.join(project_dir, "final", f"{args.slug}.mp3")
    if not os.path.exists(final):
        print("Output: (not rendered)")
        return
    print(f"Output: {final}")
    manifest = load_artifact(os.path.join(project_dir, "final"), "output.json")
    if manifest:
        stats = manifest.get("stats", {})
        print(f"  rendered {manifest.get('generated_at', '?')}: "
              f"{stats.get('requests', 0)} segments, {stats.get('failed', 0)} failed")


def cmd_list(args):
    """List all projects."""
    projects = list_projects(output_base=_output_base(args))
    if not projects:
        print("No projects found.")
        return
    print("Projects:")
    for name in projects:
        final = os.path.join(_output_base(args), name, "final", f"{name}.mp3")
        marker = "[done]" if os.path.exists(final) else "[----]"
        print(f"  {marker} {name}")


def cmd_voices(args):
    """List available voices."""
    voices = EDGE_VOICE_POOL if args.backend == "edge" else ALL_VOICES
    if args.filter:
        voices = [v for v in voices if args.filter.lower() in v.lower()]
    if not voices:
        print("No matching voices found.")
        return
    print("Available voices:")
    for v in voices:
        print(f"  {v}")


def cmd_assign(args):
    """Assign a text range to a speaker."""
    project_dir, project = _load(args)
    speaker = _resolve_speaker(project, args.speaker)
    setting = project.speaker_settings.get(speaker.id, SpeakerSetting())
    if args.end > len(project.text):
        _fail(f"Range end {args.end} is beyond the text length {len(project.text)}.")
    assignment = Assignment(
        start=args.start,
        end=args.end,
        speaker_id=speaker.id,
        mood=args.mood or setting.mood,
        speed=args.speed or setting.speed,
        id=next_assignment_id(project.assignments),
    )
    before = len(project.assignments)
    project.assignments = add_assignment(project.assignments, assignment)
    _save(project_dir, project)
    replaced = before + 1 - len(project.assignments)
    print(f"Assigned [{args.start}, {args.end}) → {speaker.display_name} ({assignment.mood}/{assignment.speed})")
    if replaced:
        print(f"Replaced {replaced} enclosed assignment(s)")


def cmd_speaker(args):
    """Add, remove or edit speakers."""
    project_dir, project = _load(args)
    action = args.action
    values = args.values

    if action == "add":
        name = " ".join(values) if values else None
        project.speakers, project.speaker_colors, project.speaker_settings, speaker = add_speaker(
            project.speakers, project.speaker_colors, project.speaker_settings, name=name,
        )
        print(f"Added: {speaker.id} {speaker.display_name} → {speaker.voice}")
    else:
        if not values:
            _fail(f"'speaker {action}' requires <speaker>")
        speaker = _resolve_speaker(project, values[0])
        if action == "remove":
            project = delete_speaker(project, speaker.id)
            print(f"Removed: {speaker.display_name} and its assignments")
        else:
            if len(values) < 2:
                _fail(f"'speaker {action}' requires <speaker> and a value")
            value = " ".join(values[1:]) if action == "rename" else values[1]
            if action == "rename":
                project = rename_speaker(project, speaker.id, value)
            elif action == "voice":
                project = set_speaker_voice(project, speaker.id, value)
            elif action == "color":
                project = set_speaker_color(project, speaker.id, value)
            elif action == "mood":
                project = set_speaker_setting(project, speaker.id, mood=value)
            elif action == "speed":
                project = set_speaker_setting(project, speaker.id, speed=value)
            print(f"Updated: {speaker.display_name} {action} → {value}")
    _save(project_dir, project)


def cmd_analyze(args):
    """Run the AI character and mood analysis."""
    project_dir, project = _load(args)
    config = load_config()
    analyzer = GeminiAnalysisClient(api_key=require_api_key(config), model=config.analysis_model)
    print("Analyzing text...")
    updated = asyncio.run(analyze_project(project, analyzer))
    _save(project_dir, updated)
    new_speakers = updated.speakers[len(project.speakers):]
    print(f"Assignments: {len(updated.assignments)} (was {len(project.assignments)})")
    if new_speakers:
        print("New speakers: " + ", ".join(f"{s.display_name} → {s.voice}" for s in new_speakers))
    print(f"Atmosphere suggestions: {len(updated.atmosphere_suggestions)}")


def cmd_run(args):
    """Render the audiobook."""
    _check_ffmpeg()
    project_dir, project = _load(args)
    config = load_config()
    backend = args.backend or config.backend
    bitrate = args.bitrate or config.bitrate
    limit = args.concurrency if args.concurrency is not None else config.concurrency
    client = _speech_client(config, backend)
    if backend == "edge":
        project.speakers = to_edge_voices(project.speakers)

    print(f"Generating audiobook '{project.title}' ({backend}, {bitrate} kbps, {limit} parallel)...")
    result = asyncio.run(render_project(
        project, client, bitrate=bitrate, limit=limit, policy=args.policy,
    ))
    if result.errors:
        print(f"Warning: {result.failed_count} of {len(result.requests)} segments failed and were skipped.",
              file=sys.stderr)

    settings = {"backend": backend, "bitrate": bitrate, "concurrency": limit, "policy": args.policy}
    stats = {
        "parts": len(result.parts),
        "requests": len(result.requests),
        "failed": result.failed_count,
    }
    output_path = export(result.audio, project_dir, args.slug, project, settings, stats)
    print(f"Done: {output_path}")


def cmd_test_voice(args):
    """Render a short voice sample for one speaker."""
    _check_ffmpeg()
    project_dir, project = _load(args)
    config = load_config()
    backend = args.backend or config.backend
    speaker = _resolve_speaker(project, args.speaker)
    if backend == "edge":
        speaker = next(s for s in to_edge_voices(project.speakers) if s.id == speaker.id)
    setting = project.speaker_settings.get(speaker.id, SpeakerSetting())
    audio = asyncio.run(preview_voice(speaker, setting, _speech_client(config, backend), bitrate=config.bitrate))
    path = os.path.join(project_dir, "final", f"voice_test_{speaker.id}.mp3")
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(audio)
    print(f"Voice sample: {path}")


def cmd_save(args):
    """Write the project file somewhere else (e.g. to share it)."""
    _, project = _load(args)
    path = save_project(project, args.path)
    print(f"Saved project to {path}")


def cmd_settings(args):
    """Export or import speaker settings."""
    project_dir, project = _load(args)
    if args.action == "export":
        print(f"Saved speaker settings to {save_settings(project, args.path)}")
        return
    speakers, colors, settings = load_settings(args.path)
    project.speakers, project.speaker_colors, project.speaker_settings = speakers, colors, settings
    # Assignments refer to the old speaker ids
    project.assignments = []
    _save(project_dir, project)
    print(f"Loaded {len(speakers)} speakers; assignments cleared")


def _build_parser():
    parser = argparse.ArgumentParser(
        prog="audiobook-designer",
        description="Audiobook Designer: turn text into a multi-voice audiobook",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show progress logging")
    parser.add_argument("--output-dir", help=f"Projects directory (default: {OUTPUT_DIR})")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    new_parser = subparsers.add_parser("new", help="Create a new project from a text file")
    new_parser.add_argument("file", help="Path to a .txt file")
    new_parser.add_argument("--title", help="Audiobook title (default: file name)")
    new_parser.add_argument("--slug", help="Project slug (default: from file name)")
    new_parser.set_defaults(func=cmd_new)

    open_parser = subparsers.add_parser("open", help="Import a saved project file")
    open_parser.add_argument("file", help="Path to a project file")
    open_parser.add_argument("--slug", help="Project slug (default: from file name)")
    open_parser.set_defaults(func=cmd_open)

    status_parser = subparsers.add_parser("status", help="Show project status")
    status_parser.add_argument("slug", help="Project slug")
    status_parser.set_defaults(func=cmd_status)

    list_parser = subparsers.add_parser("list", help="List all projects")
    list_parser.set_defaults(func=cmd_list)

    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.add_argument("--backend", choices=BACKENDS, default="gemini")
    voices_parser.set_defaults(func=cmd_voices)

    assign_parser = subparsers.add_parser("assign", help="Assign a text range to a speaker")
    assign_parser.add_argument("slug", help="Project slug")
    assign_parser.add_argument("start", type=int, help="Start offset (inclusive)")
    assign_parser.add_argument("end", type=int, help="End offset (exclusive)")
    assign_parser.add_argument("speaker", help="Speaker id or name")
    assign_parser.add_argument("--mood", choices=MOODS)
    assign_parser.add_argument("--speed", choices=SPEEDS)
    assign_parser.set_defaults(func=cmd_assign)

    speaker_parser = subparsers.add_parser("speaker", help="Manage speakers")
    speaker_parser.add_argument("slug", help="Project slug")
    speaker_parser.add_argument("action", choices=["add", "remove", "rename", "voice", "color", "mood", "speed"])
    speaker_parser.add_argument("values", nargs="*", help="Speaker and value")
    speaker_parser.set_defaults(func=cmd_speaker)

    analyze_parser = subparsers.add_parser("analyze", help="Detect characters and moods with AI")
    analyze_parser.add_argument("slug", help="Project slug")
    analyze_parser.set_defaults(func=cmd_analyze)

    run_parser = subparsers.add_parser("run", help="Render the audiobook")
    run_parser.add_argument("slug", help="Project slug")
    run_parser.add_argument("--bitrate", type=int, choices=BITRATES)
    run_parser.add_argument("--backend", choices=BACKENDS)
    run_parser.add_argument("--concurrency", type=_positive_int)
    run_parser.add_argument("--policy", choices=POLICIES, default="first",
                            help="Overlap rule: first in text order wins, or last created wins")
    run_parser.set_defaults(func=cmd_run)

    test_parser = subparsers.add_parser("test-voice", help="Render a short voice sample")
    test_parser.add_argument("slug", help="Project slug")
    test_parser.add_argument("speaker", help="Speaker id or name")
    test_parser.add_argument("--backend", choices=BACKENDS)
    test_parser.set_defaults(func=cmd_test_voice)

    save_parser = subparsers.add_parser("save", help="Save the project file to a path")
    save_parser.add_argument("slug", help="Project slug")
    save_parser.add_argument("path", help="Destination file")
    save_parser.set_defaults(func=cmd_save)

    settings_parser = subparsers.add_parser("settings", help="Export or import speaker settings")
    settings_parser.add_argument("slug", help="Project slug")
    settings_parser.add_argument("action", choices=["export", "import"])
    settings_parser.add_argument("path", help="Settings JSON file")
    settings_parser.set_defaults(func=cmd_settings)

    return parser


def main():
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    try:
        args.func(args)
    except AudiobookError as e:
        _fail(str(e))
