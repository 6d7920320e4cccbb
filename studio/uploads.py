"""File input — turns filesystem paths into validated uploads.

Only files with an ``image/*`` media type and at most ``max_bytes`` bytes are
accepted.  Rejection happens here, before any ``Job`` exists.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Iterable
from pathlib import Path
from typing import NamedTuple

from studio.config import MAX_UPLOAD_BYTES

logger = logging.getLogger(__name__)

INVALID_UPLOAD_MESSAGE = "No valid images selected (Max 10MB, JPG/PNG/WEBP)."

# Not every platform's mimetypes table knows webp.
mimetypes.add_type("image/webp", ".webp")


class UploadedFile(NamedTuple):
    filename: str
    data: bytes
    media_type: str


class RejectedFile(NamedTuple):
    path: Path
    reason: str


def guess_media_type(path: Path) -> str | None:
    media_type, _ = mimetypes.guess_type(path.name)
    return media_type


def check_upload(path: Path, max_bytes: int = MAX_UPLOAD_BYTES) -> str | None:
    """Return the rejection reason for ``path``, or None if it is acceptable."""
    if not path.is_file():
        return "not a file"
    media_type = guess_media_type(path)
    if not media_type or not media_type.startswith("image/"):
        return "not an image"
    if path.stat().st_size > max_bytes:
        return f"larger than {max_bytes // (1024 * 1024)}MB"
    return None


def load_uploads(
    paths: Iterable[str | Path],
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> tuple[list[UploadedFile], list[RejectedFile]]:
    """Read every acceptable file in ``paths``; report the rest as rejected."""
    accepted: list[UploadedFile] = []
    rejected: list[RejectedFile] = []
    for raw in paths:
        path = Path(raw).expanduser()
        reason = check_upload(path, max_bytes)
        if reason is None:
            try:
                data = path.read_bytes()
            except OSError as exc:
                reason = f"unreadable ({exc.strerror or exc})"
            else:
                accepted.append(UploadedFile(path.name, data, guess_media_type(path) or ""))
                continue
        logger.warning("Rejected upload %s: %s", path, reason)
        rejected.append(RejectedFile(path, reason))
    return accepted, rejected
