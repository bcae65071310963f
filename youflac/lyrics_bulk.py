"""Fetching lyrics for every audio file under a directory."""

from __future__ import annotations

import os
from collections.abc import Callable

from youflac.lyrics import fetch_lyrics_with_fallback
from youflac.lyrics_format import LyricsResult

__all__ = ["AUDIO_EXTENSIONS", "LyricsResolver", "bulk_fetch_lyrics"]

AUDIO_EXTENSIONS = frozenset(
    {".flac", ".mka", ".mkv", ".mp3", ".m4a", ".opus", ".ogg", ".wav"}
)

LyricsResolver = Callable[[str, str, str, str], LyricsResult]


def _raise(error: OSError) -> None:
    raise error


def bulk_fetch_lyrics(
    directory: str, resolver: LyricsResolver | None = None
) -> dict[str, Exception | None]:
    """Write a .lrc file beside every audio file under ``directory``.

    File names of the form "Artist - Title" give the artist and title;
    otherwise the whole name is the title.  Returns a map from each audio
    file's path to the error it met, or None on success.
    """
    resolve = resolver or fetch_lyrics_with_fallback
    results: dict[str, Exception | None] = {}

    for root, dirs, files in os.walk(directory, onerror=_raise):
        dirs.sort()
        for name in sorted(files):
            path = os.path.join(root, name)
            ext = os.path.splitext(name)[1].lower()
            if ext not in AUDIO_EXTENSIONS:
                continue

            base = name.removesuffix(ext)
            artist, title = "", base
            idx = base.find(" - ")
            if idx > 0:
                artist, title = base[:idx], base[idx + 3:]

            try:
                lyrics = resolve(artist, title, "", "")
            except Exception as exc:  # the resolver's failure is recorded per file
                results[path] = exc
                continue

            text = lyrics.synced_lyrics or lyrics.plain_text
            lrc_path = path.removesuffix(ext) + ".lrc"
            try:
                with open(lrc_path, "w", encoding="utf-8", newline="") as handle:
                    handle.write(text)
            except OSError as exc:
                results[path] = exc
            else:
                results[path] = None
    return results