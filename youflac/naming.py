"""File naming, folder layout and NFO generation for music video libraries.

Paths follow the conventions that Jellyfin, Plex and Kodi expect for music
videos.
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

__all__ = [
    "Metadata",
    "FolderLayout",
    "NamingTemplate",
    "OrganizeResult",
    "MediaInfo",
    "NFOOptions",
    "RenameOptions",
    "RenameResult",
    "DEFAULT_TEMPLATE",
    "PLAYLIST_TEMPLATE",
    "PREDEFINED_TEMPLATES",
    "generate_file_path",
    "apply_template",
    "format_artist_name",
    "sanitize_file_name",
    "generate_jellyfin_path",
    "generate_plex_path",
    "generate_flat_path",
    "generate_playlist_file_path",
    "generate_path_for_layout",
    "preview_naming",
    "get_available_templates",
    "validate_template",
    "generate_nfo_path",
    "generate_poster_path",
    "generate_fanart_path",
    "create_directory_structure",
    "organize_output",
    "generate_nfo",
    "write_nfo",
    "download_poster",
    "rename_mkv",
    "check_file_conflict",
    "resolve_conflict",
]


@dataclass
class Metadata:
    """Everything known about a track, used for naming and NFO generation."""

    title: str = ""
    artist: str = ""
    album_artist: str = ""
    album: str = ""
    year: int = 0
    release_date: str = ""  # YYYY-MM-DD or YYYY
    isrc: str = ""
    duration: float = 0.0
    genre: str = ""
    track: int = 0
    disc_number: int = 0
    total_discs: int = 0
    copyright: str = ""
    explicit: bool = False
    label: str = ""
    description: str = ""
    youtube_id: str = ""
    youtube_url: str = ""
    view_count: int = 0
    upload_date: str = ""  # YYYYMMDD
    thumbnail: str = ""
    directors: list[str] = field(default_factory=list)
    studios: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


class FolderLayout(str, Enum):
    """How output files are organised on disk."""

    JELLYFIN = "jellyfin"  # {artist}/{title}/{title}.mkv
    PLEX = "plex"  # {artist}/{title}.mkv
    FLAT = "flat"  # {artist} - {title}.mkv
    CUSTOM = "custom"  # user-defined template


@dataclass(frozen=True)
class NamingTemplate:
    """A named path template with a description and example output."""

    name: str
    template: str
    description: str
    example: str


PREDEFINED_TEMPLATES: tuple[NamingTemplate, ...] = (
    NamingTemplate(
        "Jellyfin",
        "{artist}/{title}/{title}",
        "Artist folder → Title folder → Title.mkv (Jellyfin music videos)",
        "Rick Astley/Never Gonna Give You Up/Never Gonna Give You Up.mkv",
    ),
    NamingTemplate(
        "Plex",
        "{artist}/{title}",
        "Artist folder → Title.mkv (Plex music videos)",
        "Rick Astley/Never Gonna Give You Up.mkv",
    ),
    NamingTemplate(
        "Flat",
        "{artist} - {title}",
        "All files in root folder",
        "Rick Astley - Never Gonna Give You Up.mkv",
    ),
    NamingTemplate(
        "Album",
        "{artist}/{album}/{title}",
        "Artist folder → Album folder → Title.mkv",
        "Rick Astley/Whenever You Need Somebody/Never Gonna Give You Up.mkv",
    ),
    NamingTemplate(
        "Year",
        "{year}/{artist} - {title}",
        "Year folder → Artist - Title.mkv",
        "1987/Rick Astley - Never Gonna Give You Up.mkv",
    ),
    NamingTemplate(
        "Album Tracks",
        "{artist} - {album}/{track} {title}",
        "Artist - Album folder → Track# Title.mkv",
        "Rick Astley - Whenever You Need Somebody/01 Never Gonna Give You Up.mkv",
    ),
    NamingTemplate(
        "Genre",
        "{genre}/{artist}/{title}",
        "Genre folder → Artist folder → Title.mkv",
        "Pop/Rick Astley/Never Gonna Give You Up.mkv",
    ),
    NamingTemplate(
        "Date",
        "{date}/{artist} - {title}",
        "Release date folder → Artist - Title.mkv",
        "2024-01-15/Rick Astley - Never Gonna Give You Up.mkv",
    ),
)

DEFAULT_TEMPLATE = "{artist}/{title}/{title}"
PLAYLIST_TEMPLATE = "{track} - {artist} - {title}/{track} - {artist} - {title}"

_PLACEHOLDERS = (
    "{artist}",
    "{title}",
    "{album}",
    "{albumArtist}",
    "{year}",
    "{date}",
    "{track}",
    "{genre}",
    "{youtube_id}",
    "{youtube_url}",
    "{view_count}",
)

_INVALID_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"[\t\n\f\r ]+")
_MULTI_SLASH = re.compile(r"[/\\]+")
_INVALID_TEMPLATE_CHARS = re.compile(r'[<>:"|?*]')
_ARTIST_DELIMITERS = ("; ", ", ", " & ", " feat. ", " ft. ", " featuring ", " x ")
_MAX_NAME_BYTES = 200


@dataclass
class OrganizeResult:
    """Paths prepared for a single output file."""

    mkv_path: str = ""
    nfo_path: str = ""
    poster_path: str = ""
    created: bool = False
    directory_created: bool = False


@dataclass
class MediaInfo:
    """Technical stream information of a media file."""

    duration: float = 0.0
    video_codec: str = ""
    audio_codec: str = ""
    width: int = 0
    height: int = 0
    channels: int = 0


@dataclass
class NFOOptions:
    """Controls which optional sections appear in a generated NFO."""

    include_file_info: bool = False
    include_thumbnail: bool = False
    media_info: MediaInfo | None = None


@dataclass
class RenameOptions:
    """Settings for renaming an existing file into the library layout."""

    template: str = ""
    layout: FolderLayout = FolderLayout.JELLYFIN
    dry_run: bool = False
    create_nfo: bool = False
    download_art: bool = False


@dataclass
class RenameResult:
    """Outcome of a rename operation."""

    old_path: str = ""
    new_path: str = ""
    success: bool = False
    error: str = ""
    nfo_path: str = ""
    dry_run: bool = False


def _extension(path: str) -> str:
    """Return the extension of the last path element, including the dot."""
    base = os.path.basename(path)
    idx = base.rfind(".")
    return base[idx:] if idx >= 0 else ""


def _strip_extension(path: str) -> str:
    ext = _extension(path)
    return path[: len(path) - len(ext)] if ext else path


def _sanitize_or_empty(name: str) -> str:
    return sanitize_file_name(name) if name else ""


def _iso_upload_date(upload_date: str) -> str | None:
    if len(upload_date) == 8:
        return f"{upload_date[:4]}-{upload_date[4:6]}-{upload_date[6:8]}"
    return None


def _cleanup_path(path: str) -> str:
    """Collapse separators and drop segments left empty by missing values."""
    path = _MULTI_SLASH.sub(lambda _m: os.sep, path).strip(os.sep)
    parts = (part.strip() for part in path.split(os.sep))
    return os.sep.join(part for part in parts if part and part != "-")


def sanitize_file_name(name: str) -> str:
    """Remove characters that are invalid in file or folder names."""
    if not name:
        return "Unknown"
    sanitized = _INVALID_NAME_CHARS.sub("", name)
    sanitized = _WHITESPACE.sub(" ", sanitized)
    sanitized = sanitized.strip(". ")
    encoded = sanitized.encode("utf-8")
    if len(encoded) > _MAX_NAME_BYTES:
        sanitized = encoded[:_MAX_NAME_BYTES].decode("utf-8", errors="ignore")
    return sanitized or "Unknown"


def apply_template(template: str, metadata: Metadata | None) -> str:
    """Substitute metadata values into a naming template."""
    if metadata is None:
        return template

    date_value = _sanitize_or_empty(metadata.release_date)
    iso = _iso_upload_date(metadata.upload_date)
    if iso is not None:
        date_value = iso

    replacements = (
        ("{artist}", _sanitize_or_empty(metadata.artist)),
        ("{title}", _sanitize_or_empty(metadata.title)),
        ("{album}", _sanitize_or_empty(metadata.album)),
        ("{year}", str(metadata.year) if metadata.year > 0 else ""),
        ("{track}", f"{metadata.track:02d}" if metadata.track > 0 else ""),
        ("{genre}", _sanitize_or_empty(metadata.genre)),
        ("{albumArtist}", _sanitize_or_empty(metadata.album_artist)),
        ("{date}", date_value),
        ("{youtube_url}", _sanitize_or_empty(metadata.youtube_url)),
        ("{view_count}", str(metadata.view_count) if metadata.view_count > 0 else ""),
        ("{youtube_id}", metadata.youtube_id),
    )
    path = template
    for placeholder, value in replacements:
        path = path.replace(placeholder, value)
    return _cleanup_path(path)


def generate_file_path(
    metadata: Metadata | None, template: str, base_dir: str, extension: str
) -> str:
    """Build the full output path for ``metadata`` under ``base_dir``."""
    if not template:
        template = DEFAULT_TEMPLATE
    relative = apply_template(template, metadata)
    return os.path.normpath(os.path.join(base_dir, relative + extension))


def format_artist_name(artist: str, separator: str, first_only: bool) -> str:
    """Apply the artist separator or reduce to the first artist."""
    if not artist:
        return artist

    if first_only:
        lowered = artist.lower()
        for delimiter in _ARTIST_DELIMITERS:
            idx = lowered.find(delimiter.lower())
            if idx > 0:
                return artist[:idx].strip()
        return artist

    if separator in ("", "; "):
        return artist

    result = artist
    for delimiter in _ARTIST_DELIMITERS:
        needle = delimiter.lower()
        start = 0
        while (idx := result.lower().find(needle, start)) >= 0:
            result = result[:idx] + separator + result[idx + len(delimiter):]
            start = idx + len(separator)
    return result


def generate_jellyfin_path(metadata: Metadata, base_dir: str) -> str:
    """Artist/Title/Title.mkv, as Jellyfin expects for music videos."""
    return generate_file_path(metadata, "{artist}/{title}/{title}", base_dir, ".mkv")


def generate_plex_path(metadata: Metadata, base_dir: str) -> str:
    """Artist/Title.mkv, as Plex expects for music videos."""
    return generate_file_path(metadata, "{artist}/{title}", base_dir, ".mkv")


def generate_flat_path(metadata: Metadata, base_dir: str) -> str:
    """Artist - Title.mkv directly in ``base_dir``."""
    return generate_file_path(metadata, "{artist} - {title}", base_dir, ".mkv")


def generate_playlist_file_path(metadata: Metadata, base_dir: str, extension: str) -> str:
    """Path for a playlist item, prefixed with its track number."""
    return generate_file_path(metadata, PLAYLIST_TEMPLATE, base_dir, extension)


def generate_path_for_layout(
    metadata: Metadata, layout: FolderLayout | str, base_dir: str, custom_template: str
) -> str:
    """Build the output path for the given folder layout."""
    if layout == FolderLayout.PLEX:
        return generate_plex_path(metadata, base_dir)
    if layout == FolderLayout.FLAT:
        return generate_flat_path(metadata, base_dir)
    if layout == FolderLayout.CUSTOM:
        return generate_file_path(metadata, custom_template, base_dir, ".mkv")
    return generate_jellyfin_path(metadata, base_dir)


def preview_naming(metadata: Metadata, template: str) -> str:
    """Show the relative file name a template produces."""
    return apply_template(template, metadata) + ".mkv"


def get_available_templates() -> list[NamingTemplate]:
    """Return the predefined naming templates."""
    return list(PREDEFINED_TEMPLATES)


def validate_template(template: str) -> None:
    """Raise ValueError if ``template`` is not usable."""
    if not template:
        raise ValueError("template cannot be empty")
    if not any(p in template for p in _PLACEHOLDERS):
        raise ValueError(
            "template must contain at least one placeholder: " + " ".join(_PLACEHOLDERS)
        )
    if _INVALID_TEMPLATE_CHARS.search(template):
        raise ValueError("template contains invalid characters")


def generate_nfo_path(mkv_path: str) -> str:
    """The NFO file that sits next to a media file."""
    return _strip_extension(mkv_path) + ".nfo"


def generate_poster_path(mkv_path: str) -> str:
    """The poster image in the media file's folder."""
    return os.path.join(os.path.dirname(mkv_path), "poster.jpg")


def generate_fanart_path(mkv_path: str) -> str:
    """The fanart image in the media file's folder."""
    return os.path.join(os.path.dirname(mkv_path), "fanart.jpg")


def create_directory_structure(output_path: str) -> None:
    """Create the parent directories of ``output_path``."""
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, mode=0o755, exist_ok=True)


def organize_output(
    metadata: Metadata, layout: FolderLayout | str, base_dir: str, custom_template: str
) -> OrganizeResult:
    """Create the target folder and return the paths of all output files."""
    mkv_path = generate_path_for_layout(metadata, layout, base_dir, custom_template)
    result = OrganizeResult(
        mkv_path=mkv_path,
        nfo_path=generate_nfo_path(mkv_path),
        poster_path=generate_poster_path(mkv_path),
    )
    directory = os.path.dirname(mkv_path)
    if directory and not os.path.exists(directory):
        try:
            os.makedirs(directory, mode=0o755, exist_ok=True)
        except OSError as exc:
            raise OSError(f"failed to create directory {directory}: {exc}") from exc
        result.directory_created = True
    result.created = True
    return result


def _add(parent: ET.Element, tag: str, text: str = "", **attrs: str) -> ET.Element:
    element = ET.SubElement(parent, tag, attrs)
    element.text = text
    return element


def _add_if(parent: ET.Element, tag: str, value: str | int) -> None:
    if value:
        _add(parent, tag, str(value))


def generate_nfo(metadata: Metadata | None, opts: NFOOptions | None = None) -> bytes:
    """Render Kodi/Jellyfin music video NFO XML."""
    if metadata is None:
        raise ValueError("metadata is required")

    root = ET.Element("musicvideo")
    _add(root, "title", metadata.title)
    _add(root, "artist", metadata.artist)
    _add_if(root, "album", metadata.album)
    _add_if(root, "year", metadata.year)
    if metadata.duration > 0:
        _add_if(root, "runtime", int(metadata.duration / 60))
    _add_if(root, "plot", metadata.description)
    _add_if(root, "genre", metadata.genre)
    for director in metadata.directors:
        _add(root, "director", director)
    for studio in metadata.studios:
        _add(root, "studio", studio)
    for tag in metadata.tags:
        _add(root, "tag", tag)
    _add_if(root, "label", metadata.label)
    _add_if(root, "credits", metadata.copyright)

    if metadata.youtube_id:
        _add(root, "uniqueid", metadata.youtube_id, type="youtube", default="true")
    if metadata.isrc:
        _add(root, "uniqueid", metadata.isrc, type="isrc")

    include_thumb = opts is not None and opts.include_thumbnail and metadata.thumbnail
    if include_thumb:
        _add(root, "thumb", metadata.thumbnail, aspect="poster")
        fanart = ET.SubElement(root, "fanart")
        _add(fanart, "thumb", metadata.thumbnail)

    _add(root, "dateadded", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    if opts is not None and opts.include_file_info and opts.media_info is not None:
        mi = opts.media_info
        details = ET.SubElement(ET.SubElement(root, "fileinfo"), "streamdetails")
        video = ET.SubElement(details, "video")
        _add_if(video, "codec", mi.video_codec)
        if mi.width > 0 and mi.height > 0:
            _add(video, "aspect", f"{mi.width / mi.height:.2f}")
        _add_if(video, "width", mi.width)
        _add_if(video, "height", mi.height)
        _add_if(video, "durationinseconds", int(mi.duration))
        audio = ET.SubElement(details, "audio")
        _add_if(audio, "codec", mi.audio_codec)
        _add_if(audio, "channels", mi.channels)

    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    return ('<?xml version="1.0" encoding="UTF-8"?>\n' + body).encode("utf-8")


def write_nfo(metadata: Metadata, nfo_path: str, opts: NFOOptions | None = None) -> None:
    """Generate an NFO and write it to ``nfo_path``."""
    content = generate_nfo(metadata, opts)
    create_directory_structure(nfo_path)
    with open(nfo_path, "wb") as handle:
        handle.write(content)


def download_poster(thumbnail_url: str, poster_path: str) -> None:
    """Fetch a thumbnail with ffmpeg and store it as a JPEG poster."""
    if not thumbnail_url:
        raise ValueError("thumbnail URL is empty")
    create_directory_structure(poster_path)

    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise FileNotFoundError("ffmpeg not found, cannot download thumbnail")

    args = [ffmpeg, "-y", "-i", thumbnail_url, "-vframes", "1", "-q:v", "2", poster_path]
    proc = subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=False)
    if proc.returncode != 0:
        output = proc.stdout.decode("utf-8", errors="replace")
        raise RuntimeError(
            f"failed to download poster: exit status {proc.returncode}, output: {output}"
        )


def rename_mkv(
    mkv_path: str, metadata: Metadata, base_dir: str, opts: RenameOptions | None = None
) -> RenameResult:
    """Move a media file to where the naming template says it belongs."""
    opts = opts or RenameOptions()
    result = RenameResult(old_path=mkv_path, dry_run=opts.dry_run)

    if opts.template:
        new_path = generate_file_path(metadata, opts.template, base_dir, ".mkv")
    else:
        new_path = generate_path_for_layout(metadata, opts.layout, base_dir, "")
    result.new_path = new_path

    if mkv_path == new_path or opts.dry_run:
        result.success = True
        return result

    create_directory_structure(new_path)
    os.rename(mkv_path, new_path)
    result.success = True

    if opts.create_nfo:
        nfo_path = generate_nfo_path(new_path)
        try:
            write_nfo(metadata, nfo_path)
        except OSError:
            pass
        else:
            result.nfo_path = nfo_path
    return result


def check_file_conflict(output_path: str) -> bool:
    """Return True if something already exists at ``output_path``."""
    try:
        os.stat(output_path)
    except FileNotFoundError:
        return False
    return True


def resolve_conflict(output_path: str) -> str:
    """Return a free path by appending " (n)" before the extension."""
    ext = _extension(output_path)
    base = _strip_extension(output_path)
    for n in range(1, 101):
        candidate = f"{base} ({n}){ext}"
        if not os.path.exists(candidate):
            return candidate
    return f"{base}_{int(time.time())}{ext}"