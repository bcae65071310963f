"""Fetching lyrics from LRCLIB and YouTube captions, and embedding them with ffmpeg."""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import tempfile
import time
from collections.abc import Iterable
from typing import Any

import requests

from youflac.lyrics_format import (
    LyricsEmbedMode,
    LyricsResult,
    clean_search_term,
    convert_lrc_to_srt,
    parse_timed_text,
    save_lrc_file,
    save_plain_lyrics_file,
)

__all__ = [
    "YOUTUBE_TIMED_TEXT_URL",
    "LRCLIB_SEARCH_URL",
    "LRCLIB_GET_URL",
    "LyricsError",
    "fetch_youtube_captions",
    "fetch_lyrics_with_fallback",
    "fetch_lyrics",
    "fetch_lyrics_with_album",
    "fetch_lyrics_by_duration",
    "embed_lyrics_in_file",
    "fetch_and_embed_lyrics",
    "has_lyrics",
    "extract_lyrics",
    "lrclib_batch_search",
]

YOUTUBE_TIMED_TEXT_URL = "https://www.youtube.com/api/timedtext"
LRCLIB_SEARCH_URL = "https://lrclib.net/api/search"
LRCLIB_GET_URL = "https://lrclib.net/api/get"

_TIMEOUT = 15
_USER_AGENT = "YouFlac/1.0"
_BATCH_DELAY = 0.2
_LYRICS_TAGS = frozenset({"lyrics", "unsyncedlyrics", "syncedlyrics"})

_log = logging.getLogger(__name__)


class LyricsError(Exception):
    """Lyrics could not be fetched, read or embedded."""


def _get(url: str, failure: str, params: dict[str, str] | None = None) -> requests.Response:
    try:
        return requests.get(
            url, params=params, headers={"User-Agent": _USER_AGENT}, timeout=_TIMEOUT
        )
    except requests.RequestException as exc:
        raise LyricsError(f"{failure}: {exc}") from exc


def _json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise LyricsError(f"failed to parse LRCLIB response: {exc}") from exc


def _convert_lrclib(data: dict[str, Any]) -> LyricsResult:
    synced = data.get("syncedLyrics") or ""
    return LyricsResult(
        plain_text=data.get("plainLyrics") or "",
        synced_lyrics=synced,
        source="lrclib",
        has_sync=bool(synced),
        track_name=data.get("trackName") or "",
        artist_name=data.get("artistName") or "",
        album_name=data.get("albumName") or "",
        duration=int(data.get("duration") or 0),
    )


def fetch_youtube_captions(video_id: str, base_url: str = YOUTUBE_TIMED_TEXT_URL) -> LyricsResult:
    """Fetch the English captions of a YouTube video as lyrics."""
    url = f"{base_url}?v={video_id}&lang=en&fmt=xml"
    response = _get(url, "youtube captions request failed")
    if response.status_code == 404:
        raise LyricsError(f"youtube captions not found for video {video_id}")
    if response.status_code != 200:
        raise LyricsError(f"youtube captions not available: status {response.status_code}")

    try:
        plain, synced = parse_timed_text(response.text)
    except ValueError as exc:
        raise LyricsError(str(exc)) from exc
    return LyricsResult(
        plain_text=plain,
        synced_lyrics=synced,
        source="youtube-captions",
        has_sync=bool(synced),
    )


def fetch_lyrics_with_fallback(
    artist: str, title: str, album: str = "", video_id: str = ""
) -> LyricsResult:
    """Try LRCLIB first, then the video's YouTube captions."""
    _log.debug("fetching lyrics via LRCLIB", extra={"artist": artist, "title": title})
    try:
        return fetch_lyrics_with_album(artist, title, album)
    except LyricsError as lrclib_error:
        if video_id:
            _log.debug(
                "LRCLIB failed, trying YouTube captions",
                extra={"videoID": video_id, "err": str(lrclib_error)},
            )
            try:
                return fetch_youtube_captions(video_id)
            except LyricsError as caption_error:
                _log.debug("YouTube captions failed", extra={"err": str(caption_error)})
    raise LyricsError(f"lyrics not found for {artist} - {title}")


def fetch_lyrics(artist: str, title: str) -> LyricsResult:
    """Fetch lyrics from LRCLIB."""
    return fetch_lyrics_with_album(artist, title, "")


def fetch_lyrics_with_album(artist: str, title: str, album: str = "") -> LyricsResult:
    """Fetch lyrics from LRCLIB, searching first and then asking for the exact track."""
    if not artist or not title:
        raise LyricsError("artist and title are required")
    artist = clean_search_term(artist)
    title = clean_search_term(title)

    try:
        return _search_lrclib(artist, title)
    except LyricsError:
        pass
    try:
        return _get_lrclib_direct(artist, title, album)
    except LyricsError:
        pass
    raise LyricsError(f"lyrics not found for {artist} - {title}")


def fetch_lyrics_by_duration(
    artist: str, title: str, album: str, duration_sec: int
) -> LyricsResult:
    """Fetch the LRCLIB lyrics of the track with this duration."""
    if not artist or not title:
        raise LyricsError("artist and title are required")
    artist = clean_search_term(artist)
    title = clean_search_term(title)
    return _get_lrclib_direct(artist, title, album, duration_sec)


def _search_lrclib(artist: str, title: str) -> LyricsResult:
    response = _get(LRCLIB_SEARCH_URL, "LRCLIB search failed", {"q": f"{artist} {title}"})
    if response.status_code != 200:
        raise LyricsError(f"LRCLIB error: {response.status_code}")
    results = _json(response)
    if not isinstance(results, list):
        raise LyricsError("failed to parse LRCLIB response: expected a list")
    if not results:
        raise LyricsError("no results found")

    best: dict[str, Any] | None = None
    for candidate in results:
        if not isinstance(candidate, dict) or candidate.get("instrumental"):
            continue
        if not candidate.get("plainLyrics") and not candidate.get("syncedLyrics"):
            continue
        if best is None or (candidate.get("syncedLyrics") and not best.get("syncedLyrics")):
            best = candidate
    if best is None:
        raise LyricsError("no suitable lyrics found")
    return _convert_lrclib(best)


def _get_lrclib_direct(
    artist: str, title: str, album: str, duration_sec: int | None = None
) -> LyricsResult:
    params = {"artist_name": artist, "track_name": title}
    if album:
        params["album_name"] = album
    if duration_sec is not None:
        params["duration"] = str(duration_sec)

    response = _get(LRCLIB_GET_URL, "LRCLIB request failed", params)
    if response.status_code == 404:
        raise LyricsError("lyrics not found")
    if response.status_code != 200:
        raise LyricsError(f"LRCLIB error: {response.status_code}")
    data = _json(response)
    if not isinstance(data, dict):
        raise LyricsError("failed to parse LRCLIB response: expected an object")
    return _convert_lrclib(data)


def _tool(name: str) -> str:
    return shutil.which(name) or name


def _run_ffmpeg(args: list[str], temp_path: str, failure: str) -> None:
    try:
        result = subprocess.run(
            [_tool("ffmpeg"), *args], stdout=subprocess.DEVNULL, stderr=subprocess.PIPE
        )
    except OSError as exc:
        _remove_quietly(temp_path)
        raise LyricsError(f"{failure}: {exc}") from exc
    if result.returncode != 0:
        _remove_quietly(temp_path)
        stderr = (result.stderr or b"").decode("utf-8", errors="replace")
        raise LyricsError(f"{failure}: exit status {result.returncode} - {stderr}")


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        pass


def _replace(temp_path: str, target: str) -> None:
    try:
        os.replace(temp_path, target)
    except OSError as exc:
        _remove_quietly(temp_path)
        raise LyricsError(f"failed to replace file: {exc}") from exc


def embed_lyrics_in_file(media_path: str, lyrics: LyricsResult) -> None:
    """Embed lyrics in a FLAC (tags) or MKV (subtitle track) file in place."""
    ext = os.path.splitext(media_path)[1].lower()
    if ext == ".flac":
        _embed_in_flac(media_path, lyrics)
    elif ext == ".mkv":
        _embed_in_mkv(media_path, lyrics)
    else:
        raise LyricsError(f"unsupported format for lyrics embedding: {ext}")


def _embed_in_flac(flac_path: str, lyrics: LyricsResult) -> None:
    text = lyrics.synced_lyrics or lyrics.plain_text
    if not text:
        raise LyricsError("no lyrics to embed")

    temp_path = flac_path + ".tmp"
    args = ["-y", "-i", flac_path, "-c", "copy", "-metadata", f"LYRICS={text}"]
    if lyrics.synced_lyrics and lyrics.plain_text:
        args += ["-metadata", f"UNSYNCEDLYRICS={lyrics.plain_text}"]
    args.append(temp_path)

    _run_ffmpeg(args, temp_path, "ffmpeg failed")
    _replace(temp_path, flac_path)


def _embed_in_mkv(mkv_path: str, lyrics: LyricsResult) -> None:
    if not lyrics.synced_lyrics and not lyrics.plain_text:
        raise LyricsError("no lyrics to embed")

    if lyrics.synced_lyrics:
        srt = convert_lrc_to_srt(lyrics.synced_lyrics)
    else:
        srt = f"1\n00:00:00,000 --> 99:59:59,999\n{lyrics.plain_text}\n"

    fd, srt_path = tempfile.mkstemp(suffix=".srt", prefix="lyrics-")
    try:
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(srt)
        except OSError as exc:
            raise LyricsError(f"failed to create SRT file: {exc}") from exc

        temp_path = mkv_path + ".tmp"
        args = [
            "-y",
            "-i", mkv_path,
            "-i", srt_path,
            "-c", "copy",
            "-c:s", "srt",
            "-map", "0",
            "-map", "1",
            "-metadata:s:s:0", "language=eng",
            "-metadata:s:s:0", "title=Lyrics",
            temp_path,
        ]
        _run_ffmpeg(args, temp_path, "ffmpeg mux failed")
        _replace(temp_path, mkv_path)
    finally:
        _remove_quietly(srt_path)


def fetch_and_embed_lyrics(
    media_path: str, artist: str, title: str, mode: LyricsEmbedMode | str
) -> None:
    """Fetch lyrics and store them with the media file as ``mode`` says."""
    try:
        lyrics = fetch_lyrics(artist, title)
    except LyricsError as exc:
        raise LyricsError(f"failed to fetch lyrics: {exc}") from exc

    try:
        mode = LyricsEmbedMode(mode)
    except ValueError as exc:
        raise LyricsError(f"unknown embed mode: {mode}") from exc

    if mode is LyricsEmbedMode.FILE:
        embed_lyrics_in_file(media_path, lyrics)
    elif mode is LyricsEmbedMode.LRC:
        if lyrics.has_sync:
            save_lrc_file(lyrics, media_path)
        else:
            save_plain_lyrics_file(lyrics, media_path)
    else:
        if lyrics.has_sync:
            try:
                save_lrc_file(lyrics, media_path)
            except (ValueError, OSError) as exc:
                _log.warning("failed to save LRC file", extra={"err": str(exc)})
        embed_lyrics_in_file(media_path, lyrics)


def _probe_tags(media_path: str) -> dict[str, str]:
    args = [_tool("ffprobe"), "-v", "quiet", "-print_format", "json", "-show_format", media_path]
    try:
        result = subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL)
    except OSError as exc:
        raise LyricsError(f"ffprobe failed: {exc}") from exc
    if result.returncode != 0:
        raise LyricsError(f"ffprobe failed: exit status {result.returncode}")
    try:
        data = json.loads(result.stdout or b"{}")
    except ValueError as exc:
        raise LyricsError(f"failed to parse ffprobe output: {exc}") from exc
    tags = (data.get("format") or {}).get("tags") or {}
    return {str(key): str(value) for key, value in tags.items()}


def has_lyrics(media_path: str) -> bool:
    """True if the media file carries a lyrics tag."""
    return any(key.lower() in _LYRICS_TAGS for key in _probe_tags(media_path))


def extract_lyrics(media_path: str) -> LyricsResult:
    """Read the lyrics embedded in a media file."""
    result = LyricsResult(source="embedded")
    for key, value in _probe_tags(media_path).items():
        name = key.lower()
        if name in ("lyrics", "syncedlyrics"):
            if "[" in value and "]" in value:
                result.synced_lyrics = value
                result.has_sync = True
            else:
                result.plain_text = value
        elif name == "unsyncedlyrics":
            result.plain_text = value
        elif name == "title":
            result.track_name = value
        elif name == "artist":
            result.artist_name = value
        elif name == "album":
            result.album_name = value

    if not result.plain_text and not result.synced_lyrics:
        raise LyricsError("no embedded lyrics found")
    return result


def lrclib_batch_search(tracks: Iterable[tuple[str, str]]) -> dict[str, LyricsResult]:
    """Fetch lyrics for ``(artist, title)`` pairs, keyed "artist - title".

    Tracks without lyrics are left out; requests are spaced out to spare the API.
    """
    results: dict[str, LyricsResult] = {}
    for artist, title in tracks:
        try:
            results[f"{artist} - {title}"] = fetch_lyrics(artist, title)
        except LyricsError:
            pass
        time.sleep(_BATCH_DELAY)
    return results