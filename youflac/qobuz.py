"""Qobuz URL parsing and quality tiers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "QobuzTrackInfo",
    "QobuzQuality",
    "parse_qobuz_url",
    "is_qobuz_url",
    "get_qobuz_priority",
    "get_qobuz_quality_label",
    "parse_qobuz_quality_from_string",
]


@dataclass
class QobuzTrackInfo:
    """Track metadata as known on Qobuz."""

    id: str = ""
    title: str = ""
    artist: str = ""
    album: str = ""
    isrc: str = ""
    duration: float = 0.0
    quality: str = ""  # e.g. "24-bit/96kHz"
    cover_url: str = ""
    track_number: int = 0
    album_id: str = ""
    release_date: str = ""
    label: str = ""
    composer: str = ""
    sample_rate: int = 0
    bit_depth: int = 0


class QobuzQuality(str, Enum):
    """Qobuz audio quality tiers."""

    MP3_320 = "MP3_320"
    CD = "CD"
    HIRES_96 = "HIRES_96"
    HIRES_192 = "HIRES_192"


# Checked in this order; the first match wins.
_URL_PATTERNS = (
    (re.compile(r"qobuz\.com/[a-z]{2}-[a-z]{2}/track/([a-zA-Z0-9]+)"), "track"),
    (re.compile(r"qobuz\.com/track/([a-zA-Z0-9]+)"), "track"),
    (re.compile(r"qobuz\.com/[a-z]{2}-[a-z]{2}/album/[^/]+/([a-zA-Z0-9]+)"), "album"),
    (re.compile(r"qobuz\.com/album/[^/]+/([a-zA-Z0-9]+)"), "album"),
    (re.compile(r"qobuz\.com/[a-z]{2}-[a-z]{2}/playlist/([a-zA-Z0-9]+)"), "playlist"),
)

_QUALITY_LABELS = {
    QobuzQuality.MP3_320: "MP3 320 kbps",
    QobuzQuality.CD: "CD Quality (16-bit/44.1kHz FLAC)",
    QobuzQuality.HIRES_96: "Hi-Res (24-bit/96kHz FLAC)",
    QobuzQuality.HIRES_192: "Hi-Res (24-bit/192kHz FLAC)",
}

_QUALITY_ALIASES = {
    "24-bit/192kHz": QobuzQuality.HIRES_192,
    "24bit/192kHz": QobuzQuality.HIRES_192,
    "192kHz": QobuzQuality.HIRES_192,
    "24-bit/96kHz": QobuzQuality.HIRES_96,
    "24bit/96kHz": QobuzQuality.HIRES_96,
    "96kHz": QobuzQuality.HIRES_96,
    "16-bit/44.1kHz": QobuzQuality.CD,
    "CD": QobuzQuality.CD,
    "44.1kHz": QobuzQuality.CD,
}


def parse_qobuz_url(raw_url: str) -> tuple[str, str]:
    """Return ``(id, kind)`` for a Qobuz track, album or playlist URL."""
    for pattern, kind in _URL_PATTERNS:
        match = pattern.search(raw_url)
        if match:
            return match.group(1), kind
    raise ValueError(f"could not parse Qobuz URL: {raw_url}")


def is_qobuz_url(raw_url: str) -> bool:
    """Return True if ``raw_url`` points at Qobuz content."""
    return any(pattern.search(raw_url) for pattern, _ in _URL_PATTERNS)


def get_qobuz_priority() -> int:
    """Download priority of Qobuz: the fallback after Tidal."""
    return 2


def get_qobuz_quality_label(quality: QobuzQuality | str) -> str:
    """Human-readable label of a quality tier; unknown tiers are returned as given."""
    try:
        return _QUALITY_LABELS[QobuzQuality(quality)]
    except ValueError:
        return str(quality)


def parse_qobuz_quality_from_string(quality_str: str) -> QobuzQuality:
    """Map a quality string such as "24-bit/96kHz" to a tier; CD by default."""
    return _QUALITY_ALIASES.get(quality_str, QobuzQuality.CD)