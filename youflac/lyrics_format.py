"""Lyrics data and the text formats around it: YouTube timed text, LRC and SRT."""

from __future__ import annotations

import html
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "LyricsResult",
    "LyricsEmbedMode",
    "parse_timed_text",
    "strip_xml_tags",
    "convert_lrc_to_srt",
    "parse_lrc_time",
    "format_srt_time",
    "clean_search_term",
    "save_lrc_file",
    "save_plain_lyrics_file",
    "read_lrc_file",
    "extract_lrc_tag",
]


@dataclass
class LyricsResult:
    """Lyrics of a track, plain and, when known, time-synced (LRC)."""

    plain_text: str = ""
    synced_lyrics: str = ""
    source: str = ""
    has_sync: bool = False
    track_name: str = ""
    artist_name: str = ""
    album_name: str = ""
    duration: int = 0  # seconds


class LyricsEmbedMode(str, Enum):
    """How lyrics are saved alongside a media file."""

    FILE = "embed"  # embedded in the media file
    LRC = "lrc"  # separate .lrc file
    BOTH = "both"


_FEATURING_SEPARATORS = (" ft.", " ft ", " feat.", " feat ", " featuring ")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _element_text(element: ET.Element) -> str:
    """Character data directly inside ``element``, skipping child elements."""
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return "".join(parts)


def _lrc_timestamp(total_secs: float) -> str:
    mins = int(total_secs) // 60
    secs = total_secs - mins * 60
    centis = int(secs * 100) % 100
    return f"[{mins:02d}:{int(secs):02d}.{centis:02d}]"


def parse_timed_text(xml_body: str) -> tuple[str, str]:
    """Turn YouTube timed-text XML into ``(plain_text, synced_lrc)``.

    Raises ValueError if the XML cannot be parsed.
    """
    try:
        root = ET.fromstring(xml_body.encode("utf-8"))
    except ET.ParseError as exc:
        raise ValueError(f"failed to parse timedtext XML: {exc}") from exc

    plain_lines: list[str] = []
    lrc_lines: list[str] = []
    for entry in root.findall("text"):
        try:
            start = float(entry.get("start", "0") or 0)
        except ValueError as exc:
            raise ValueError(f"failed to parse timedtext XML: {exc}") from exc
        text = strip_xml_tags(html.unescape(_element_text(entry))).strip()
        if not text:
            continue
        plain_lines.append(text)
        lrc_lines.append(_lrc_timestamp(start) + text)

    plain = "\n".join(plain_lines)
    synced = "\n".join(lrc_lines) + "\n" if lrc_lines else ""
    return plain, synced


def strip_xml_tags(s: str) -> str:
    """Remove anything that looks like an XML/HTML tag from ``s``."""
    kept: list[str] = []
    in_tag = False
    for ch in s:
        if ch == "<":
            in_tag = True
        elif ch == ">":
            in_tag = False
        elif not in_tag:
            kept.append(ch)
    return "".join(kept)


def convert_lrc_to_srt(lrc: str) -> str:
    """Convert LRC synced lyrics to SRT subtitles.

    Each line lasts until the next one starts; the last lasts five seconds.
    """
    parsed: list[tuple[int, str]] = []
    for raw in lrc.split("\n"):
        line = raw.strip()
        if not line:
            continue
        # Metadata tags such as [ti:...] do not start with a digit.
        if line.startswith("[") and not (len(line) > 1 and line[1] in "0123456789"):
            continue
        if len(line.encode("utf-8")) < 10 or line[0] != "[":
            continue
        close = line.find("]")
        if close < 0:
            continue
        text = line[close + 1:].strip()
        if not text:
            continue
        ms = parse_lrc_time(line[1:close])
        if ms >= 0:
            parsed.append((ms, text))

    srt_lines: list[str] = []
    for number, ((start, text), following) in enumerate(
        zip(parsed, parsed[1:] + [None]), start=1
    ):
        end = following[0] if following is not None else start + 5000
        srt_lines.extend(
            (str(number), f"{format_srt_time(start)} --> {format_srt_time(end)}", text, "")
        )
    return "\n".join(srt_lines)


def parse_lrc_time(time_str: str) -> int:
    """Milliseconds of an LRC timestamp (mm:ss.xx, mm:ss:xx or m:ss.xx); -1 if malformed."""
    parts = time_str.split(":")
    if len(parts) < 2:
        return -1

    mins_match = _LEADING_INT.match(parts[0])
    mins = int(mins_match.group(1)) if mins_match else 0

    sec_part = parts[1]
    if len(parts) > 2:
        sec_part = f"{parts[1]}.{parts[2]}"
    sec_part = sec_part.replace(":", ".", 1)
    secs_match = _LEADING_FLOAT.match(sec_part)
    secs = float(secs_match.group(1)) if secs_match else 0.0

    return mins * 60000 + int(secs * 1000)


def format_srt_time(ms: int) -> str:
    """Format milliseconds as an SRT timestamp, HH:MM:SS,mmm."""
    hours = ms // 3_600_000
    minutes = (ms % 3_600_000) // 60_000
    seconds = (ms % 60_000) // 1000
    millis = ms % 1000
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def clean_search_term(s: str) -> str:
    """Drop featured artists and trailing parenthesised notes from a search term."""
    s = s.strip()
    for separator in _FEATURING_SEPARATORS:
        idx = s.lower().find(separator)
        if idx > 0:
            s = s[:idx]
    idx = s.find("(")
    if idx > 3:
        s = s[:idx].strip()
    return s


def _replace_extension(path: str, new_ext: str) -> str:
    dot = path.rfind(".")
    last_sep = max(path.rfind("/"), path.rfind(os.sep))
    stem = path[:dot] if dot > last_sep else path
    return stem + new_ext


def _write_text(path: str, content: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(content)


def save_lrc_file(lyrics: LyricsResult, media_file_path: str) -> str:
    """Write synced lyrics next to the media file as .lrc; return its path."""
    if not lyrics.synced_lyrics:
        raise ValueError("no synced lyrics available")

    lrc_path = _replace_extension(media_file_path, ".lrc")
    header: list[str] = []
    if lyrics.track_name:
        header.append(f"[ti:{lyrics.track_name}]\n")
    if lyrics.artist_name:
        header.append(f"[ar:{lyrics.artist_name}]\n")
    if lyrics.album_name:
        header.append(f"[al:{lyrics.album_name}]\n")
    if lyrics.duration > 0:
        mins, secs = divmod(lyrics.duration, 60)
        header.append(f"[length:{mins:02d}:{secs:02d}]\n")
    header.append("[by:YouFlac]\n")
    header.append(f"[re:{lyrics.source or 'LRCLIB'}]\n\n")

    _write_text(lrc_path, "".join(header) + lyrics.synced_lyrics)
    return lrc_path


def save_plain_lyrics_file(lyrics: LyricsResult, media_file_path: str) -> str:
    """Write plain lyrics next to the media file as .txt; return its path."""
    if not lyrics.plain_text:
        raise ValueError("no plain lyrics available")

    txt_path = _replace_extension(media_file_path, ".txt")
    header = ""
    if lyrics.track_name and lyrics.artist_name:
        header = f"{lyrics.artist_name} - {lyrics.track_name}\n" + "-" * 40 + "\n\n"

    _write_text(txt_path, header + lyrics.plain_text)
    return txt_path


def read_lrc_file(lrc_path: str) -> LyricsResult:
    """Read an .lrc file, taking title, artist and album from its tags."""
    with open(lrc_path, encoding="utf-8", newline="") as handle:
        content = handle.read()

    result = LyricsResult(source="lrc", synced_lyrics=content, has_sync=True)
    for raw in content.split("\n"):
        line = raw.strip()
        if line.startswith("[ti:"):
            result.track_name = extract_lrc_tag(line, "ti")
        elif line.startswith("[ar:"):
            result.artist_name = extract_lrc_tag(line, "ar")
        elif line.startswith("[al:"):
            result.album_name = extract_lrc_tag(line, "al")
    return result


def extract_lrc_tag(line: str, tag: str) -> str:
    """Value of an LRC ``[tag:value]`` line, or "" if the line is not that tag."""
    prefix = f"[{tag}:"
    if not line.startswith(prefix):
        return ""
    rest = line[len(prefix):]
    end = rest.find("]")
    return rest[:end].strip() if end >= 0 else ""