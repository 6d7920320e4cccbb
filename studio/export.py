"""Export completed results to disk with descriptive filenames.

Filenames encode the settings that produced the image, e.g.
``pro_red_mug_metal_pat40_elev20_ang135.png``.
"""

from __future__ import annotations

import logging
import mimetypes
import re
from collections.abc import Iterable
from pathlib import Path

from studio.models import PATINA_MATERIALS, Job, JobStatus

logger = logging.getLogger(__name__)


def _clean_stem(filename: str) -> str:
    stem = filename.rsplit(".", 1)[0]
    return re.sub(r"[^a-z0-9]", "_", stem.lower()) or "image"


def _extension(media_type: str) -> str:
    return mimetypes.guess_extension(media_type) or ".png"


def export_filename(job: Job) -> str:
    """Build the download name for ``job``'s result."""
    config = job.config
    material = config.material
    extra = ""
    if material.type in PATINA_MATERIALS and material.patina_intensity > 0:
        extra += f"_pat{material.patina_intensity}"
    if material.type == "texture" and material.texture_intensity:
        extra += f"_tex{material.texture_intensity}"
    if config.elevation > 0:
        extra += f"_elev{config.elevation}"
    ext = _extension(job.result.media_type) if job.result else ".png"
    return f"pro_{_clean_stem(job.filename)}_{material.type}{extra}_ang{config.shadow_angle}{ext}"


def export_jobs(jobs: Iterable[Job], directory: Path) -> list[Path]:
    """Write the result of every completed job into ``directory``.

    Name clashes get a ``_2``, ``_3`` ... suffix.  Returns the written paths.
    """
    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for job in jobs:
        if job.status != JobStatus.COMPLETED or job.result is None:
            continue
        base = directory / export_filename(job)
        path, n = base, 2
        while path.exists() or path in written:
            path = base.with_name(f"{base.stem}_{n}{base.suffix}")
            n += 1
        path.write_bytes(job.result.data)
        written.append(path)
    logger.info("Exported %d image(s) to %s", len(written), directory)
    return written
