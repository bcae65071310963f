import os
import xml.etree.ElementTree as ET
from unittest import mock

import pytest

from youflac.naming import (
    FolderLayout,
    MediaInfo,
    Metadata,
    NFOOptions,
    RenameOptions,
    apply_template,
    check_file_conflict,
    create_directory_structure,
    download_poster,
    format_artist_name,
    generate_fanart_path,
    generate_file_path,
    generate_flat_path,
    generate_jellyfin_path,
    generate_nfo,
    generate_nfo_path,
    generate_path_for_layout,
    generate_playlist_file_path,
    generate_plex_path,
    generate_poster_path,
    get_available_templates,
    organize_output,
    preview_naming,
    rename_mkv,
    resolve_conflict,
    sanitize_file_name,
    validate_template,
    write_nfo,
)


def test_apply_template_extra_placeholders():
    m = Metadata(
        title="Song",
        artist="Artist",
        youtube_id="abc12345678",
        youtube_url="https://www.youtube.com/watch?v=abc12345678",
        view_count=1234567,
        upload_date="20240115",
    )
    assert (
        apply_template("{artist}/{title} [{youtube_url}]", m)
        == "Artist/Song [httpswww.youtube.comwatchv=abc12345678]"
    )
    assert apply_template("{artist} - {view_count}", m) == "Artist - 1234567"
    assert apply_template("{date}/{title}", m) == "2024-01-15/Song"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Normal Name", "Normal Name"),
        ("With: Colon", "With Colon"),
        ("With/Slash", "WithSlash"),
        ("With\\Backslash", "WithBackslash"),
        ("With<Brackets>", "WithBrackets"),
        ("With|Pipe", "WithPipe"),
        ("With?Question", "WithQuestion"),
        ("With*Star", "WithStar"),
        ('With"Quotes"', "WithQuotes"),
        ("  Extra   Spaces  ", "Extra Spaces"),
        ("", "Unknown"),
        ("...dots...", "dots"),
        ("   ", "Unknown"),
    ],
)
def test_sanitize_file_name(name, expected):
    assert sanitize_file_name(name) == expected


FULL = Metadata(
    title="Never Gonna Give You Up",
    artist="Rick Astley",
    album="Whenever You Need Somebody",
    year=1987,
    track=1,
    genre="Pop",
    youtube_id="dQw4w9WgXcQ",
)


@pytest.mark.parametrize(
    "template, expected",
    [
        ("{artist}/{title}/{title}", "Rick Astley/Never Gonna Give You Up/Never Gonna Give You Up"),
        ("{artist}/{title}", "Rick Astley/Never Gonna Give You Up"),
        ("{artist} - {title}", "Rick Astley - Never Gonna Give You Up"),
        ("{artist}/{album}/{title}", "Rick Astley/Whenever You Need Somebody/Never Gonna Give You Up"),
        ("{year}/{artist} - {title}", "1987/Rick Astley - Never Gonna Give You Up"),
        ("{track} - {title}", "01 - Never Gonna Give You Up"),
        ("{genre}/{artist}/{title}", "Pop/Rick Astley/Never Gonna Give You Up"),
        ("{youtube_id}", "dQw4w9WgXcQ"),
    ],
)
def test_apply_template(template, expected):
    assert apply_template(template, FULL) == expected


@pytest.mark.parametrize(
    "template, expected",
    [
        ("{year}/{artist}/{title}", "Artist Name/Song Title"),
        ("{artist}/{album}/{title}", "Artist Name/Song Title"),
        ("{track} - {title}", "- Song Title"),
        ("{track}/{title}", "Song Title"),
    ],
)
def test_apply_template_missing_fields(template, expected):
    m = Metadata(title="Song Title", artist="Artist Name")
    assert apply_template(template, m) == expected


def test_apply_template_none_metadata_returns_template():
    assert apply_template("{artist}/{title}", None) == "{artist}/{title}"


@pytest.mark.parametrize(
    "template, expected",
    [
        ("{artist}/{title}/{title}", "/music/videos/Rick Astley/Never Gonna Give You Up/Never Gonna Give You Up.mkv"),
        ("{artist}/{title}", "/music/videos/Rick Astley/Never Gonna Give You Up.mkv"),
        ("{artist} - {title}", "/music/videos/Rick Astley - Never Gonna Give You Up.mkv"),
    ],
)
def test_generate_file_path(template, expected):
    m = Metadata(title="Never Gonna Give You Up", artist="Rick Astley")
    assert generate_file_path(m, template, "/music/videos", ".mkv") == expected


def test_generate_file_path_default_template():
    m = Metadata(title="T", artist="A")
    assert generate_file_path(m, "", "/m", ".mkv") == "/m/A/T/T.mkv"


def test_generate_jellyfin_path():
    m = Metadata(title="Never Gonna Give You Up", artist="Rick Astley")
    assert (
        generate_jellyfin_path(m, "/srv/jellyfin/MusicVideos")
        == "/srv/jellyfin/MusicVideos/Rick Astley/Never Gonna Give You Up/Never Gonna Give You Up.mkv"
    )


def test_generate_plex_path():
    m = Metadata(title="Never Gonna Give You Up", artist="Rick Astley")
    assert (
        generate_plex_path(m, "/srv/plex/MusicVideos")
        == "/srv/plex/MusicVideos/Rick Astley/Never Gonna Give You Up.mkv"
    )


def test_generate_flat_path():
    m = Metadata(title="Never Gonna Give You Up", artist="Rick Astley")
    assert generate_flat_path(m, "/music/videos") == "/music/videos/Rick Astley - Never Gonna Give You Up.mkv"


def test_generate_playlist_file_path():
    m = Metadata(title="T", artist="A", track=1)
    assert generate_playlist_file_path(m, "/m", ".mkv") == "/m/01 - A - T/01 - A - T.mkv"


@pytest.mark.parametrize(
    "layout, expected",
    [
        (FolderLayout.JELLYFIN, "/music/Test Artist/Test Song/Test Song.mkv"),
        (FolderLayout.PLEX, "/music/Test Artist/Test Song.mkv"),
        (FolderLayout.FLAT, "/music/Test Artist - Test Song.mkv"),
        ("unknown", "/music/Test Artist/Test Song/Test Song.mkv"),
    ],
)
def test_generate_path_for_layout(layout, expected):
    m = Metadata(title="Test Song", artist="Test Artist")
    assert generate_path_for_layout(m, layout, "/music", "") == expected


def test_generate_path_for_layout_custom():
    m = Metadata(title="Test Song", artist="Test Artist", year=2023)
    assert (
        generate_path_for_layout(m, FolderLayout.CUSTOM, "/music", "{year}/{artist}/{title}")
        == "/music/2023/Test Artist/Test Song.mkv"
    )


@pytest.mark.parametrize("template", ["{artist}/{title}", "{title}", "{year}/{artist}"])
def test_validate_template_valid(template):
    assert validate_template(template) is None


@pytest.mark.parametrize(
    "template", ["", "no placeholders", "{artist}:{title}", "{artist}|{title}"]
)
def test_validate_template_invalid(template):
    with pytest.raises(ValueError):
        validate_template(template)


def test_preview_naming():
    m = Metadata(title="Test Song", artist="Test Artist")
    assert preview_naming(m, "{artist} - {title}") == "Test Artist - Test Song.mkv"


def test_get_available_templates():
    templates = get_available_templates()
    assert len(templates) >= 3
    for tmpl in templates:
        assert tmpl.name
        assert tmpl.template
        assert tmpl.description
        assert tmpl.example


@pytest.mark.parametrize(
    "mkv, expected",
    [
        ("/path/to/video.mkv", "/path/to/video.nfo"),
        ("/path/to/Artist - Song.mkv", "/path/to/Artist - Song.nfo"),
    ],
)
def test_generate_nfo_path(mkv, expected):
    assert generate_nfo_path(mkv) == expected


def test_generate_poster_path():
    assert generate_poster_path("/path/to/Artist/Song/Song.mkv") == "/path/to/Artist/Song/poster.jpg"


def test_generate_fanart_path():
    assert generate_fanart_path("/path/to/Artist/Song/Song.mkv") == "/path/to/Artist/Song/fanart.jpg"


def test_generate_nfo_basic():
    m = Metadata(
        title="Never Gonna Give You Up",
        artist="Rick Astley",
        album="Whenever You Need Somebody",
        year=1987,
        duration=213.0,
        youtube_id="dQw4w9WgXcQ",
        isrc="GBARL9300135",
    )
    content = generate_nfo(m, None)
    text = content.decode("utf-8")
    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<musicvideo>" in text
    assert "<title>Never Gonna Give You Up</title>" in text
    assert "<artist>Rick Astley</artist>" in text
    assert "<album>Whenever You Need Somebody</album>" in text
    assert "<year>1987</year>" in text
    assert "<runtime>3</runtime>" in text
    root = ET.fromstring(content)
    assert root.findtext("title") == m.title


def test_generate_nfo_with_unique_ids():
    m = Metadata(title="Test Song", artist="Test Artist", youtube_id="abc123xyz", isrc="USRC11700001")
    root = ET.fromstring(generate_nfo(m, None))
    ids = [(u.get("type"), u.text, u.get("default")) for u in root.findall("uniqueid")]
    assert ids == [("youtube", "abc123xyz", "true"), ("isrc", "USRC11700001", None)]


def test_generate_nfo_with_thumbnail():
    url = "https://i.ytimg.com/vi/abc123/maxresdefault.jpg"
    m = Metadata(title="Test Song", artist="Test Artist", thumbnail=url)
    root = ET.fromstring(generate_nfo(m, NFOOptions(include_thumbnail=True)))
    thumbs = root.findall("thumb")
    assert len(thumbs) == 1
    assert thumbs[0].get("aspect") == "poster"
    assert thumbs[0].text == url
    assert [t.text for t in root.findall("fanart/thumb")] == [url]


def test_generate_nfo_without_thumbnail_option():
    m = Metadata(title="T", artist="A", thumbnail="https://img.example.com/x.jpg")
    root = ET.fromstring(generate_nfo(m, None))
    assert root.findall("thumb") == []
    assert root.find("fanart") is None


def test_generate_nfo_with_media_info():
    m = Metadata(title="Test Song", artist="Test Artist")
    opts = NFOOptions(
        include_file_info=True,
        media_info=MediaInfo(
            duration=213.0, video_codec="h264", audio_codec="flac", width=1920, height=1080, channels=2
        ),
    )
    root = ET.fromstring(generate_nfo(m, opts))
    video = root.find("fileinfo/streamdetails/video")
    audio = root.find("fileinfo/streamdetails/audio")
    assert video.findtext("codec") == "h264"
    assert video.findtext("width") == "1920"
    assert video.findtext("height") == "1080"
    assert video.findtext("aspect") == "1.78"
    assert video.findtext("durationinseconds") == "213"
    assert audio.findtext("codec") == "flac"
    assert audio.findtext("channels") == "2"


def test_generate_nfo_nil_metadata():
    with pytest.raises(ValueError):
        generate_nfo(None, None)


def test_create_directory_structure(tmp_path):
    output = tmp_path / "Artist" / "Album" / "Song.mkv"
    create_directory_structure(str(output))
    assert output.parent.is_dir()


def test_organize_output(tmp_path):
    m = Metadata(title="Test Song", artist="Test Artist")
    result = organize_output(m, FolderLayout.JELLYFIN, str(tmp_path), "")
    assert result.created is True
    assert result.directory_created is True
    assert result.mkv_path == str(tmp_path / "Test Artist" / "Test Song" / "Test Song.mkv")
    assert result.nfo_path == str(tmp_path / "Test Artist" / "Test Song" / "Test Song.nfo")
    assert result.poster_path == str(tmp_path / "Test Artist" / "Test Song" / "poster.jpg")
    assert os.path.isdir(os.path.dirname(result.mkv_path))


def test_organize_output_existing_directory(tmp_path):
    m = Metadata(title="S", artist="A")
    organize_output(m, FolderLayout.PLEX, str(tmp_path), "")
    again = organize_output(m, FolderLayout.PLEX, str(tmp_path), "")
    assert again.directory_created is False
    assert again.created is True


def test_write_nfo(tmp_path):
    m = Metadata(title="Test Song", artist="Test Artist", album="Test Album", year=2023, youtube_id="abc123")
    nfo_path = tmp_path / "Artist" / "Song" / "Song.nfo"
    write_nfo(m, str(nfo_path), None)
    assert "<title>Test Song</title>" in nfo_path.read_text(encoding="utf-8")


def test_check_file_conflict(tmp_path):
    assert check_file_conflict(str(tmp_path / "nonexistent.mkv")) is False
    existing = tmp_path / "existing.mkv"
    existing.write_bytes(b"test")
    assert check_file_conflict(str(existing)) is True


def test_resolve_conflict(tmp_path):
    base = tmp_path / "Song.mkv"
    base.write_bytes(b"test")
    (tmp_path / "Song (1).mkv").write_bytes(b"test")
    (tmp_path / "Song (2).mkv").write_bytes(b"test")
    result = resolve_conflict(str(base))
    assert result == str(tmp_path / "Song (3).mkv")
    assert not os.path.exists(result)


def test_sanitize_file_name_long_name():
    assert len(sanitize_file_name("a" * 300)) == 200


def test_sanitize_file_name_long_multibyte_stays_valid():
    result = sanitize_file_name("é" * 150)
    assert len(result.encode("utf-8")) <= 200
    assert set(result) == {"é"}


def test_apply_template_special_characters():
    m = Metadata(title='Song: The "Best" Version', artist="Artist/Name")
    result = apply_template("{artist} - {title}", m)
    assert "/" not in result
    assert ":" not in result
    assert '"' not in result
    assert result == "ArtistName - Song The Best Version"


def test_generate_file_path_empty_metadata():
    assert generate_file_path(Metadata(), "{artist}/{title}", "/music", ".mkv") == "/music/.mkv"


def test_generate_file_path_partial_metadata():
    m = Metadata(title="Song Title")
    assert generate_file_path(m, "{artist}/{title}", "/music", ".mkv") == "/music/Song Title.mkv"


@pytest.mark.parametrize(
    "artist, separator, first_only, expected",
    [
        ("A, B & C", "", True, "A"),
        ("Solo Artist", "", True, "Solo Artist"),
        ("A feat. B", "; ", False, "A feat. B"),
        ("A & B", " / ", False, "A / B"),
        ("A Feat. B", ", ", False, "A, B"),
        ("A, B", ", ", False, "A, B"),
        ("", " / ", False, ""),
    ],
)
def test_format_artist_name(artist, separator, first_only, expected):
    assert format_artist_name(artist, separator, first_only) == expected


def test_rename_mkv_dry_run(tmp_path):
    src = tmp_path / "old.mkv"
    src.write_bytes(b"x")
    m = Metadata(title="T", artist="A")
    result = rename_mkv(str(src), m, str(tmp_path), RenameOptions(layout=FolderLayout.FLAT, dry_run=True))
    assert result.success is True
    assert result.dry_run is True
    assert result.new_path == str(tmp_path / "A - T.mkv")
    assert src.exists()


def test_rename_mkv_moves_and_writes_nfo(tmp_path):
    src = tmp_path / "old.mkv"
    src.write_bytes(b"x")
    m = Metadata(title="T", artist="A")
    result = rename_mkv(str(src), m, str(tmp_path), RenameOptions(template="{artist}/{title}", create_nfo=True))
    target = tmp_path / "A" / "T.mkv"
    assert result.success is True
    assert result.new_path == str(target)
    assert target.read_bytes() == b"x"
    assert not src.exists()
    assert result.nfo_path == str(tmp_path / "A" / "T.nfo")
    assert "<title>T</title>" in (tmp_path / "A" / "T.nfo").read_text(encoding="utf-8")


def test_rename_mkv_same_path(tmp_path):
    m = Metadata(title="T", artist="A")
    path = str(tmp_path / "A - T.mkv")
    result = rename_mkv(path, m, str(tmp_path), RenameOptions(layout=FolderLayout.FLAT))
    assert result.success is True
    assert result.new_path == path


def test_rename_mkv_missing_source_raises(tmp_path):
    m = Metadata(title="T", artist="A")
    with pytest.raises(OSError):
        rename_mkv(str(tmp_path / "missing.mkv"), m, str(tmp_path), RenameOptions(layout=FolderLayout.FLAT))


def test_download_poster_empty_url(tmp_path):
    with pytest.raises(ValueError):
        download_poster("", str(tmp_path / "poster.jpg"))


def test_download_poster_without_ffmpeg(tmp_path):
    with mock.patch("youflac.naming.shutil.which", return_value=None):
        with pytest.raises(FileNotFoundError):
            download_poster("https://img.example.com/x.jpg", str(tmp_path / "d" / "poster.jpg"))
    assert (tmp_path / "d").is_dir()