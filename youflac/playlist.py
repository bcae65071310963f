"""M3U8 playlists of finished downloads."""

from __future__ import annotations

import os
from collections.abc import Iterable

import requests

from youflac.naming import sanitize_file_name
from youflac.queue import QueueItem

__all__ = ["generate_m3u8", "generate_m3u8_with_cover"]

_DOWNLOAD_TIMEOUT = 30


def _playlist_stem(playlist_name: str) -> str:
    return sanitize_file_name(playlist_name) or "playlist"


def _relative(path: str, start: str) -> str:
    if os.path.isabs(path) != os.path.isabs(start):
        return path
    try:
        return os.path.relpath(path, start)
    except ValueError:
        return path


def generate_m3u8(
    items: Iterable[QueueItem], output_dir: str, playlist_name: str
) -> str | None:
    """Write ``<output_dir>/<playlist_name>.m3u8`` listing items that have an output file.

    Paths are relative to ``output_dir``. Returns the playlist path, or None
    when there are no items and nothing was written.
    """
    items = list(items)
    if not items:
        return None

    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as exc:
        raise OSError(f"failed to create output directory: {exc}") from exc

    m3u8_path = os.path.join(output_dir, _playlist_stem(playlist_name) + ".m3u8")
    lines = ["#EXTM3U"]
    for item in items:
        if not item.output_path:
            continue
        duration = int(item.duration)
        if duration <= 0:
            duration = -1
        track_info = f"{item.artist} - {item.title}" if item.artist else item.title
        lines.append(f"#EXTINF:{duration},{track_info}")
        lines.append(_relative(item.output_path, output_dir))

    with open(m3u8_path, "w", encoding="utf-8", newline="") as handle:
        handle.write("\n".join(lines) + "\n")
    return m3u8_path


def _download_file(url: str, destination: str) -> None:
    response = requests.get(url, timeout=_DOWNLOAD_TIMEOUT)
    response.raise_for_status()
    with open(destination, "wb") as handle:
        handle.write(response.content)


def generate_m3u8_with_cover(
    items: Iterable[QueueItem], output_dir: str, playlist_name: str, thumb_url: str
) -> str | None:
    """Write the playlist and, if ``thumb_url`` is given, a cover image beside it."""
    path = generate_m3u8(items, output_dir, playlist_name)
    if thumb_url:
        jpg_path = os.path.join(output_dir, _playlist_stem(playlist_name) + ".jpg")
        _download_file(thumb_url, jpg_path)
    return path