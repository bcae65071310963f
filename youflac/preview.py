"""Short audio previews streamed through yt-dlp and ffmpeg."""

from __future__ import annotations

import shutil
import subprocess
from types import TracebackType
from typing import IO

__all__ = ["PreviewStream", "preview_audio"]

_ALLOWED_PREFIXES = ("https://www.youtube.com/", "https://youtu.be/")


class PreviewStream:
    """OGG/Vorbis bytes from a running ffmpeg process; close it when done."""

    def __init__(self, process: subprocess.Popen) -> None:
        self._process = process
        self._stdout: IO[bytes] = process.stdout
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes of encoded audio (all of it if negative)."""
        return self._stdout.read(size)

    def close(self) -> None:
        """Stop ffmpeg and release the pipe."""
        if self._closed:
            return
        self._closed = True
        try:
            self._stdout.close()
        finally:
            try:
                self._process.kill()
            except OSError:
                pass
            self._process.wait()

    def __enter__(self) -> PreviewStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def preview_audio(video_url: str, max_seconds: int) -> PreviewStream:
    """Stream up to ``max_seconds`` seconds of a YouTube video's audio as OGG/Vorbis."""
    yt_dlp = shutil.which("yt-dlp")
    if not yt_dlp:
        raise FileNotFoundError("yt-dlp not found: install yt-dlp to enable audio preview")
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise FileNotFoundError("ffmpeg not found: install ffmpeg to enable audio preview")

    if not video_url.startswith(_ALLOWED_PREFIXES):
        raise ValueError("unsupported URL: only YouTube URLs are accepted")

    try:
        result = subprocess.run(
            [yt_dlp, "--get-url", "-f", "bestaudio[ext=webm]/bestaudio", "--no-playlist", video_url],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as exc:
        raise RuntimeError(f"yt-dlp failed: {exc}") from exc

    output = result.stdout.decode("utf-8", errors="replace")
    if result.returncode != 0:
        message = output.strip() or f"exit status {result.returncode}"
        raise RuntimeError(f"yt-dlp failed: {message}")

    audio_url = output.strip().split("\n", 1)[0]
    if not audio_url:
        raise RuntimeError(f"yt-dlp returned empty URL for {video_url}")

    try:
        process = subprocess.Popen(
            [
                ffmpeg,
                "-i", audio_url,
                "-t", str(max_seconds),
                "-acodec", "libvorbis",
                "-f", "ogg",
                "-loglevel", "error",
                "pipe:1",
            ],
            stdout=subprocess.PIPE,
        )
    except OSError as exc:
        raise OSError(f"ffmpeg start failed: {exc}") from exc

    return PreviewStream(process)