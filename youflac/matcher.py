"""Matching a video against candidate lossless audio sources.

Matches are tried in order of strength:

1. ISRC exact match: full confidence.
2. Duration within tolerance plus metadata agreement.
3. Fuzzy metadata match on title and artist.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

__all__ = [
    "DURATION_TOLERANCE",
    "MIN_CONFIDENCE_THRESHOLD",
    "ISRC_CONFIDENCE",
    "DURATION_CONFIDENCE",
    "MatchMethod",
    "VideoInfo",
    "AudioCandidate",
    "MatchResult",
    "MatchOptions",
    "match_video_to_audio",
    "match_by_isrc",
    "match_by_duration",
    "compute_title_similarity",
    "compute_artist_similarity",
    "normalize_title",
    "normalize_artist",
    "extract_primary_artist",
    "remove_common_suffixes",
    "string_similarity",
    "levenshtein_distance",
    "get_match_confidence_label",
    "get_match_method_label",
]

DURATION_TOLERANCE = 2.0  # seconds
MIN_CONFIDENCE_THRESHOLD = 0.6
ISRC_CONFIDENCE = 1.0
DURATION_CONFIDENCE = 0.9


class MatchMethod(str, Enum):
    """How a match was found."""

    ISRC = "isrc"
    DURATION = "duration"
    METADATA = "metadata"
    NONE = "none"


@dataclass
class VideoInfo:
    """The video (or track) side of a match."""

    id: str = ""
    title: str = ""
    artist: str = ""
    duration: float = 0.0  # seconds
    isrc: str = ""
    thumbnail: str = ""
    url: str = ""


@dataclass
class AudioCandidate:
    """A potential audio source for a video."""

    platform: str = ""  # tidal, qobuz, amazon, deezer
    url: str = ""
    title: str = ""
    artist: str = ""
    album: str = ""
    isrc: str = ""
    duration: float = 0.0  # seconds
    quality: str = ""
    priority: int = 0  # lower is preferred


@dataclass
class MatchResult:
    """The outcome of matching a video to an audio source."""

    video: VideoInfo | None = None
    audio: AudioCandidate | None = None
    confidence: float = 0.0
    match_method: MatchMethod = MatchMethod.NONE
    duration_diff: float = 0.0
    title_score: float = 0.0
    artist_score: float = 0.0
    is_valid: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class MatchOptions:
    """Tunes how strict matching is."""

    require_isrc: bool = False
    max_duration_diff: float = DURATION_TOLERANCE
    min_metadata_confidence: float = 0.7
    preferred_platform: str = ""


_MEDIA_WORDS = "video|audio|lyric|official|hd|hq|4k|remaster|remix|version|edit|live|acoustic"
_PAREN_META = re.compile(r"\([^)]*(?:" + _MEDIA_WORDS + r")\w*[^)]*\)", re.ASCII)
_BRACKET_META = re.compile(r"\[[^\]]*(?:" + _MEDIA_WORDS + r")\w*[^\]]*\]", re.ASCII)
_VERSION_THEN_YEAR = re.compile(
    r"\s*-?\s*(remaster(ed)?|version|edition|mix)\s*\d{4}\s*\Z", re.ASCII
)
_YEAR_THEN_VERSION = re.compile(
    r"\s*-?\s*\d{4}\s*(remaster(ed)?|version|edition|mix)?\s*\Z", re.ASCII
)
_TITLE_SUFFIXES = (
    "official video", "official music video", "music video",
    "official audio", "audio", "lyric video", "lyrics",
    "hd", "hq", "4k", "uhd",
    "visualizer", "visualiser",
    "remastered", "remaster",
)
_SUFFIX_PATTERNS = tuple(
    (
        re.compile(r"\s*-\s*" + re.escape(suffix) + r"\s*\Z", re.ASCII),
        re.compile(r"\s+" + re.escape(suffix) + r"\s*\Z", re.ASCII),
    )
    for suffix in _TITLE_SUFFIXES
)
_TRAILING_DASH = re.compile(r"\s*-\s*\Z", re.ASCII)
_WHITESPACE = re.compile(r"\s+", re.ASCII)

_YEAR_ANYWHERE = re.compile(r"\s*-?\s*\d{4}\s*(remaster|version|edition|mix)?", re.ASCII)
_VERSION_INDICATORS = tuple(
    re.compile(pattern, re.ASCII)
    for pattern in (
        r"\s*\(remaster(ed)?\)",
        r"\s*\(deluxe\s*(edition)?\)",
        r"\s*\(expanded\s*(edition)?\)",
        r"\s*\(anniversary\s*(edition)?\)",
        r"\s*\(single\s*(version)?\)",
        r"\s*\(album\s*(version)?\)",
        r"\s*\(radio\s*(edit)?\)",
        r"\s*\(extended\s*(version|mix)?\)",
    )
)
_PRIMARY_SEPARATORS = (" feat.", " feat ", " ft.", " ft ", " featuring ", " x ", " & ", ", ")


def match_video_to_audio(
    video: VideoInfo | None,
    candidates: list[AudioCandidate],
    opts: MatchOptions | None = None,
) -> MatchResult:
    """Pick the best audio candidate for ``video``."""
    if video is None:
        raise ValueError("video info is nil")
    if not candidates:
        raise ValueError("no audio candidates provided")
    opts = opts or MatchOptions()

    results = [
        result
        for result in (_match_single(video, candidate, opts) for candidate in candidates)
        if result.confidence >= MIN_CONFIDENCE_THRESHOLD
    ]
    if not results:
        return MatchResult(
            video=video,
            match_method=MatchMethod.NONE,
            is_valid=False,
            warnings=["No matching audio found above confidence threshold"],
        )

    results.sort(key=lambda r: (-r.confidence, r.audio.priority))

    if opts.preferred_platform:
        for result in results:
            if result.audio.platform == opts.preferred_platform and result.confidence >= 0.9:
                return result
    return results[0]


def _match_single(video: VideoInfo, audio: AudioCandidate, opts: MatchOptions) -> MatchResult:
    result = MatchResult(video=video, audio=audio)
    duration_diff = abs(video.duration - audio.duration)

    if match_by_isrc(video.isrc, audio.isrc):
        result.match_method = MatchMethod.ISRC
        result.confidence = ISRC_CONFIDENCE
        result.duration_diff = duration_diff
        result.is_valid = True
        if duration_diff > 5.0:
            result.warnings.append(
                f"ISRC match but duration differs by {duration_diff:.1f}s"
                " - may be different version"
            )
        return result

    if opts.require_isrc:
        result.warnings.append("ISRC match required but not found")
        return result

    result.duration_diff = duration_diff
    duration_matches = duration_diff <= opts.max_duration_diff

    result.title_score = compute_title_similarity(video.title, audio.title)
    result.artist_score = compute_artist_similarity(video.artist, audio.artist)
    metadata_score = result.title_score * 0.6 + result.artist_score * 0.4

    if duration_matches and metadata_score >= opts.min_metadata_confidence:
        result.match_method = MatchMethod.DURATION
        result.confidence = DURATION_CONFIDENCE * metadata_score
        result.is_valid = True
    elif duration_matches and metadata_score >= 0.5:
        result.match_method = MatchMethod.DURATION
        result.confidence = 0.8 * metadata_score
        result.is_valid = metadata_score >= MIN_CONFIDENCE_THRESHOLD
        result.warnings.append("Partial metadata match")
    elif metadata_score >= 0.85:
        result.match_method = MatchMethod.METADATA
        result.confidence = metadata_score * 0.85
        result.is_valid = result.confidence >= MIN_CONFIDENCE_THRESHOLD
        if duration_diff > opts.max_duration_diff:
            result.warnings.append(f"Duration difference: {duration_diff:.1f}s")
    else:
        result.confidence = metadata_score * 0.5
        result.is_valid = False
    return result


def _normalize_isrc(isrc: str) -> str:
    return isrc.upper().replace("-", "").replace(" ", "")


def match_by_isrc(video_isrc: str, audio_isrc: str) -> bool:
    """True if both ISRCs are present and equal, ignoring case, hyphens and spaces."""
    if not video_isrc or not audio_isrc:
        return False
    return _normalize_isrc(video_isrc) == _normalize_isrc(audio_isrc)


def match_by_duration(video_duration: float, audio_duration: float) -> bool:
    """True if the durations differ by no more than the tolerance."""
    return abs(video_duration - audio_duration) <= DURATION_TOLERANCE


def compute_title_similarity(video_title: str, audio_title: str) -> float:
    """Similarity of two titles, from 0.0 to 1.0."""
    v = normalize_title(video_title)
    a = normalize_title(audio_title)
    if v == a:
        return 1.0
    v_clean = remove_common_suffixes(v)
    a_clean = remove_common_suffixes(a)
    if v_clean == a_clean:
        return 0.95
    return string_similarity(v_clean, a_clean)


def compute_artist_similarity(video_artist: str, audio_artist: str) -> float:
    """Similarity of two artist names, from 0.0 to 1.0."""
    v = normalize_artist(video_artist)
    a = normalize_artist(audio_artist)
    if v == a:
        return 1.0
    if a in v or v in a:
        return 0.9
    v_primary = extract_primary_artist(v)
    a_primary = extract_primary_artist(a)
    if v_primary == a_primary:
        return 0.95
    return string_similarity(v_primary, a_primary)


def normalize_title(title: str) -> str:
    """Lower-case a title and strip video-specific decorations."""
    title = title.strip().lower()
    title = _PAREN_META.sub("", title)
    title = _BRACKET_META.sub("", title)
    title = _VERSION_THEN_YEAR.sub("", title)
    title = _YEAR_THEN_VERSION.sub("", title)
    for dashed, spaced in _SUFFIX_PATTERNS:
        title = dashed.sub("", title)
        title = spaced.sub("", title)
    title = _TRAILING_DASH.sub("", title)
    title = _WHITESPACE.sub(" ", title)
    return title.strip()


def normalize_artist(artist: str) -> str:
    """Lower-case an artist name and drop channel decorations such as VEVO."""
    artist = artist.strip().lower()
    artist = artist.replace(" vevo", "").replace("vevo", "").replace(" - topic", "")
    artist = _WHITESPACE.sub(" ", artist)
    return artist.strip()


def extract_primary_artist(artist: str) -> str:
    """The main artist, before any featured artists."""
    result = artist
    for separator in _PRIMARY_SEPARATORS:
        idx = result.lower().find(separator)
        if idx > 0:
            result = result[:idx]
    return result.strip()


def remove_common_suffixes(title: str) -> str:
    """Remove year and edition indicators from a title."""
    title = _YEAR_ANYWHERE.sub("", title)
    for pattern in _VERSION_INDICATORS:
        title = pattern.sub("", title)
    return title.strip()


def string_similarity(a: str, b: str) -> float:
    """Edit-distance similarity normalised by the longer string's encoded length."""
    a = a.strip().lower()
    b = b.strip().lower()
    if a == b:
        return 1.0
    a_len = len(a.encode("utf-8"))
    b_len = len(b.encode("utf-8"))
    if a_len == 0 or b_len == 0:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max(a_len, b_len)


def levenshtein_distance(a: str, b: str) -> int:
    """Case-insensitive edit distance between two strings."""
    if not a:
        return len(b)
    if not b:
        return len(a)
    b_lower = [ch.lower() for ch in b]
    previous = list(range(len(b) + 1))
    for i, ch_a in enumerate(a, start=1):
        lowered = ch_a.lower()
        current = [i]
        for j, ch_b in enumerate(b_lower, start=1):
            cost = 0 if lowered == ch_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def get_match_confidence_label(confidence: float) -> str:
    """Human-readable label of a confidence value."""
    if confidence >= 0.95:
        return "Excellent"
    if confidence >= 0.85:
        return "Very Good"
    if confidence >= 0.75:
        return "Good"
    if confidence >= 0.65:
        return "Fair"
    if confidence >= MIN_CONFIDENCE_THRESHOLD:
        return "Acceptable"
    return "Poor"


_METHOD_LABELS = {
    MatchMethod.ISRC: "ISRC Match (Exact)",
    MatchMethod.DURATION: "Duration + Metadata Match",
    MatchMethod.METADATA: "Metadata Match",
    MatchMethod.NONE: "No Match",
}


def get_match_method_label(method: MatchMethod | str) -> str:
    """Human-readable label of a match method; unknown methods are returned as given."""
    try:
        return _METHOD_LABELS[MatchMethod(method)]
    except ValueError:
        return str(method)