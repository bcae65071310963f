# youflac

`youflac` is a library of building blocks for a music-video collection with
lossless audio.

| Module | What it does |
| --- | --- |
| `youflac.matcher` | Scores audio candidates against a video and picks the best one. It tries an ISRC match first, then duration plus title/artist agreement, then fuzzy title/artist similarity. |
| `youflac.queue` | A thread-safe download queue. It tracks item states and supports pause/resume, retry (optionally with corrected metadata), reordering and progress callbacks. |
| `youflac.naming` | Builds output paths from templates and folder layouts (Jellyfin, Plex, flat, custom). It also sanitises file names, writes Kodi/Jellyfin NFO files, resolves name conflicts and renames files into place. |
| `youflac.lyrics` | Fetches lyrics from LRCLIB, falling back to YouTube captions. It embeds lyrics into FLAC or MKV files with ffmpeg and reads embedded lyrics with ffprobe. Failures raise `LyricsError`. |
| `youflac.lyrics_format` | The `LyricsResult` type, YouTube timed-text parsing, LRC to SRT conversion, and reading and writing `.lrc`/`.txt` files. |
| `youflac.lyrics_bulk` | `bulk_fetch_lyrics` writes a `.lrc` beside every audio file under a directory. You can pass your own resolver. |
| `youflac.playlist` | Writes M3U8 playlists of finished queue items with relative paths. It can also download a cover image. |
| `youflac.metadata` | Builds the ffmpeg `-metadata` arguments for a `Metadata` and detects "explicit" markers in titles. |
| `youflac.qobuz` | Parses Qobuz track, album and playlist URLs, and provides quality tiers with their labels. |
| `youflac.preview` | `preview_audio` streams a short OGG/Vorbis preview of a YouTube video through yt-dlp and ffmpeg. |
| `youflac.logs` | Logging setup (`init_logger`). It keeps a buffer of recent lines (`get_logs`) and captures logs per item inside `item_context`. |

## Installation

```
pip install youflac
```

Some features call external programs, which must be on your `PATH`:

- Embedding lyrics and downloading posters need `ffmpeg`.
- Reading embedded lyrics needs `ffprobe`.
- Audio previews need both `yt-dlp` and `ffmpeg`.

## Examples

### Naming files for a media server

```python
from youflac.naming import Metadata, FolderLayout, generate_path_for_layout

meta = Metadata(title="Never Gonna Give You Up", artist="Rick Astley")
print(generate_path_for_layout(meta, FolderLayout.PLEX, "/music", ""))
# /music/Rick Astley/Never Gonna Give You Up.mkv
```

### Matching a video to audio candidates

```python
from youflac.matcher import VideoInfo, AudioCandidate, match_video_to_audio

video = VideoInfo(title="Song (Official Video)", artist="Artist", duration=213.0)
candidates = [AudioCandidate(platform="tidal", url="...", title="Song",
                             artist="Artist", duration=214.0, priority=1)]
result = match_video_to_audio(video, candidates, None)
print(result.match_method, result.confidence, result.is_valid)
```

### Tracking downloads in the queue

```python
from youflac.queue import Queue, DownloadRequest, QueueStatus

queue = Queue(max_concurrent=2)
queue.set_progress_callback(lambda event: print(event.type, event.item_id))
item_id = queue.add_to_queue(DownloadRequest(video_url="https://youtu.be/abc"))
queue.update_status(item_id, QueueStatus.DOWNLOADING_VIDEO, 40, "Downloading...")
print(queue.get_active_count())  # 1
```

### Fetching lyrics and saving them next to a file

```python
from youflac.lyrics import fetch_lyrics
from youflac.lyrics_format import save_lrc_file

lyrics = fetch_lyrics("Rick Astley", "Never Gonna Give You Up")
if lyrics.has_sync:
    save_lrc_file(lyrics, "/music/Rick Astley/Never Gonna Give You Up.mkv")
```

### Logging per item

```python
from youflac.logs import init_logger, item_context, register_item_logger, get_item_logs

log = init_logger("info")  # LOG_LEVEL and LOG_FORMAT=json override this
register_item_logger("item-1")
with item_context("item-1"):
    log.debug("resolving url", extra={"stage": "fetch"})
print(get_item_logs("item-1")[0].fields)  # stage=fetch
```

## Errors

Failures are raised as exceptions:

- Lyrics functions raise `youflac.lyrics.LyricsError`.
- Queue lookups of unknown items raise `KeyError`. Invalid state changes raise `ValueError`. Out-of-range moves raise `IndexError`.
- `validate_template` raises `ValueError`.

Checks such as `is_qobuz_url`, `detect_explicit`, `match_by_isrc` and
`check_file_conflict` return booleans instead.

## What this package does not do

- **No downloading.** The queue records items and their states. Nothing takes
  pending items and downloads, muxes or organises them. Callers drive each
  item's status with `update_status`, `set_item_error` and `set_item_output`.
- **No queue persistence.** The queue is not saved to or loaded from disk.
- **No source lookups.** There are no clients for streaming services and no
  ISRC or link resolution. Audio candidates for `match_video_to_audio` must be
  supplied by the caller.
- **No command-line program and no server.** This is a library only.

## Development

```
pip install -e ".[test]"
pytest
```