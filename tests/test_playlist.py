import os

import pytest
import requests
import responses

from youflac.playlist import generate_m3u8, generate_m3u8_with_cover
from youflac.queue import QueueItem


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mocked:
        yield mocked


def test_generate_m3u8_empty(tmp_path):
    assert generate_m3u8([], str(tmp_path), "playlist") is None
    assert list(tmp_path.iterdir()) == []


def test_generate_m3u8_basic(tmp_path):
    d = str(tmp_path)
    items = [
        QueueItem(
            id="1",
            title="Never Gonna Give You Up",
            artist="Rick Astley",
            duration=213,
            output_path=os.path.join(d, "Rick Astley - Never Gonna Give You Up.mkv"),
        ),
        QueueItem(
            id="2",
            title="Take On Me",
            artist="a-ha",
            duration=225,
            output_path=os.path.join(d, "a-ha - Take On Me.mkv"),
        ),
    ]
    path = generate_m3u8(items, d, "My Playlist")
    assert path == os.path.join(d, "My Playlist.m3u8")
    content = (tmp_path / "My Playlist.m3u8").read_text(encoding="utf-8")
    assert content.startswith("#EXTM3U\n")
    assert "#EXTINF:213,Rick Astley - Never Gonna Give You Up" in content
    assert "#EXTINF:225,a-ha - Take On Me" in content
    assert "Rick Astley - Never Gonna Give You Up.mkv" in content


def test_generate_m3u8_exact_content(tmp_path):
    d = str(tmp_path)
    items = [
        QueueItem(title="Solo", duration=0, output_path=os.path.join(d, "solo.mkv")),
    ]
    path = generate_m3u8(items, d, "p")
    assert path == os.path.join(d, "p.m3u8")
    with open(path, encoding="utf-8") as handle:
        assert handle.read() == "#EXTM3U\n#EXTINF:-1,Solo\nsolo.mkv\n"


def test_generate_m3u8_skips_empty_output_path(tmp_path):
    d = str(tmp_path)
    items = [
        QueueItem(id="1", title="Track Without Path", artist="Artist", duration=100),
        QueueItem(
            id="2",
            title="Track With Path",
            artist="Artist2",
            duration=200,
            output_path=os.path.join(d, "track.mkv"),
        ),
    ]
    path = generate_m3u8(items, d, "test")
    assert path == os.path.join(d, "test.m3u8")
    with open(path, encoding="utf-8") as handle:
        content = handle.read()
    assert "Track Without Path" not in content
    assert "Track With Path" in content


def test_generate_m3u8_relative_paths(tmp_path):
    d = str(tmp_path)
    items = [
        QueueItem(
            id="1",
            title="Track",
            artist="Artist",
            duration=100,
            output_path=os.path.join(d, "subdir", "track.mkv"),
        )
    ]
    generate_m3u8(items, d, "test")
    content = (tmp_path / "test.m3u8").read_text(encoding="utf-8")
    assert d not in content
    assert os.path.join("subdir", "track.mkv") in content


def test_generate_m3u8_with_thumbnail(tmp_path, rsps):
    d = str(tmp_path)
    rsps.add(
        responses.GET,
        "http://example.com/cover.jpg",
        body=b"fakejpg",
        content_type="image/jpeg",
    )
    out = tmp_path / "a.mkv"
    out.write_bytes(b"")
    items = [QueueItem(title="T1", artist="A1", output_path=str(out), duration=120)]

    generate_m3u8_with_cover(items, d, "MyList", "http://example.com/cover.jpg")
    assert (tmp_path / "MyList.m3u8").is_file()
    assert (tmp_path / "MyList.jpg").read_bytes() == b"fakejpg"


def test_generate_m3u8_with_cover_http_error(tmp_path, rsps):
    rsps.add(responses.GET, "http://example.com/missing.jpg", status=404)
    items = [QueueItem(title="T", output_path=str(tmp_path / "t.mkv"), duration=1)]
    with pytest.raises(requests.HTTPError):
        generate_m3u8_with_cover(items, str(tmp_path), "L", "http://example.com/missing.jpg")
    assert (tmp_path / "L.m3u8").is_file()


def test_generate_m3u8_with_cover_no_url(tmp_path):
    items = [QueueItem(title="T", output_path=str(tmp_path / "t.mkv"), duration=1)]
    path = generate_m3u8_with_cover(items, str(tmp_path), "L", "")
    assert path == os.path.join(str(tmp_path), "L.m3u8")
    assert not (tmp_path / "L.jpg").exists()


def test_generate_m3u8_sanitizes_playlist_name(tmp_path):
    d = str(tmp_path)
    items = [QueueItem(id="1", title="T", artist="A", duration=60, output_path=os.path.join(d, "t.mkv"))]
    path = generate_m3u8(items, d, "My/Playlist\\Test")
    names = [p.name for p in tmp_path.iterdir() if p.name.endswith(".m3u8")]
    assert names == ["MyPlaylistTest.m3u8"]
    assert os.path.basename(path) == "MyPlaylistTest.m3u8"