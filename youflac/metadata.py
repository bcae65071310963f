"""Tag arguments for ffmpeg and explicit-content detection."""

from __future__ import annotations

import re

from youflac.naming import Metadata

__all__ = ["get_mkv_metadata_args", "detect_explicit"]

_EXPLICIT = re.compile(
    r"(\[explicit\]|\(explicit\)|\bexplicit\s+version\b)", re.IGNORECASE | re.ASCII
)


def get_mkv_metadata_args(metadata: Metadata) -> list[str]:
    """Return the ffmpeg ``-metadata`` arguments that embed ``metadata``."""
    tags: list[str] = []
    text_tags = (
        ("title", metadata.title),
        ("artist", metadata.artist),
        ("album_artist", metadata.album_artist),
        ("album", metadata.album),
    )
    tags.extend(f"{key}={value}" for key, value in text_tags if value)
    if metadata.year > 0:
        tags.append(f"date={metadata.year}")
    more_text = (
        ("genre", metadata.genre),
        ("isrc", metadata.isrc),
        ("copyright", metadata.copyright),
        ("publisher", metadata.label),
    )
    tags.extend(f"{key}={value}" for key, value in more_text if value)
    if metadata.disc_number > 0:
        tags.append(f"disc={metadata.disc_number}")
    if metadata.total_discs > 0:
        tags.append(f"totaldiscs={metadata.total_discs}")
    if metadata.youtube_url:
        tags.append(f"YOUTUBE_URL={metadata.youtube_url}")
    if metadata.view_count > 0:
        tags.append(f"VIEW_COUNT={metadata.view_count}")
    upload = metadata.upload_date
    if len(upload) == 8:
        tags.append(f"date={upload[:4]}-{upload[4:6]}-{upload[6:8]}")

    args: list[str] = []
    for tag in tags:
        args.extend(("-metadata", tag))
    return args


def detect_explicit(title: str) -> bool:
    """Return True when ``title`` carries an explicit-content marker."""
    return bool(title) and _EXPLICIT.search(title) is not None