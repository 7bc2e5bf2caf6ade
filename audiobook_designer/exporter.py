"""Write the rendered audiobook and its provenance manifest."""

import os
from datetime import datetime, timezone

from audiobook_designer.constants import VERSION
from audiobook_designer.models import Project
from audiobook_designer.project import write_artifact


def export(
    audio: bytes,
    project_dir: str,
    slug: str,
    project: Project,
    settings: dict,
    stats: dict,
) -> str:
    """Write the final MP3 and a manifest.

    Creates:
      - output/<slug>/final/<slug>.mp3 (the production)
      - output/<slug>/final/output.json (provenance manifest)

    Returns path to the final MP3 file.
    """
    final_dir = os.path.join(project_dir, "final")
    os.makedirs(final_dir, exist_ok=True)

    output_path = os.path.join(final_dir, f"{slug}.mp3")
    with open(output_path, "wb") as f:
        f.write(audio)

    manifest = {
        "project": slug,
        "title": project.title,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "designer_version": VERSION,
        "speakers": {
            s.id: {"name": s.display_name, "voice": s.voice}
            for s in project.speakers
        },
        "settings": settings,
        "stats": {
            **stats,
            "characters": len(project.text),
            "assignments": len(project.assignments),
            "bytes": len(audio),
        },
    }

    write_artifact(final_dir, "output.json", manifest)

    return output_path
