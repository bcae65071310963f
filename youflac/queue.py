"""Download queue: items, their lifecycle states and progress events."""

from __future__ import annotations

import copy
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from youflac.logs import LogEntry
from youflac.matcher import AudioCandidate, VideoInfo

__all__ = [
    "QueueStatus",
    "QueueItem",
    "MatchDiagnostics",
    "RetryOverrideRequest",
    "DownloadRequest",
    "QueueEvent",
    "QueueProgressCallback",
    "Queue",
]


class QueueStatus(str, Enum):
    """Lifecycle state of a queue item."""

    PENDING = "pending"
    FETCHING_INFO = "fetching_info"
    DOWNLOADING_VIDEO = "downloading_video"
    DOWNLOADING_AUDIO = "downloading_audio"
    MUXING = "muxing"
    ORGANIZING = "organizing"
    COMPLETE = "complete"
    SKIPPED = "skipped"
    ERROR = "error"
    CANCELLED = "cancelled"
    PAUSED = "paused"


_ACTIVE = frozenset(
    {
        QueueStatus.FETCHING_INFO,
        QueueStatus.DOWNLOADING_VIDEO,
        QueueStatus.DOWNLOADING_AUDIO,
        QueueStatus.MUXING,
        QueueStatus.ORGANIZING,
    }
)
_PAUSABLE = _ACTIVE | {QueueStatus.PENDING}
_FINISHED = frozenset(
    {QueueStatus.COMPLETE, QueueStatus.SKIPPED, QueueStatus.ERROR, QueueStatus.CANCELLED}
)


@dataclass
class MatchDiagnostics:
    """Why matching an item to an audio source failed."""

    sources_tried: list[str] = field(default_factory=list)
    failure_reason: str = ""
    best_score: float = 0.0


@dataclass
class QueueItem:
    """A single download in the queue."""

    id: str = ""
    video_url: str = ""
    spotify_url: str = ""
    title: str = ""
    artist: str = ""
    album: str = ""
    playlist_name: str = ""
    playlist_position: int = 0  # 1-based position in the playlist
    thumbnail: str = ""
    duration: float = 0.0
    status: QueueStatus = QueueStatus.PENDING
    progress: int = 0  # 0-100
    stage: str = ""
    error: str = ""
    output_path: str = ""
    video_path: str = ""
    audio_path: str = ""
    file_size: int = 0
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    match_score: int = 0
    match_confidence: str = ""
    audio_source: str = ""
    quality: str = ""
    actual_quality: str = ""
    explicit: bool = False
    audio_only: bool = False
    force_source: str = ""

    match_candidates: list[AudioCandidate] = field(default_factory=list)
    match_diagnostics: MatchDiagnostics | None = None
    logs: list[LogEntry] = field(default_factory=list)

    cancel_func: Callable[[], None] | None = field(default=None, repr=False, compare=False)


@dataclass
class RetryOverrideRequest:
    """Corrected metadata for retrying a failed item."""

    artist: str = ""
    title: str = ""
    music_url: str = ""  # direct Spotify/Tidal/Qobuz URL
    force_source: str = ""  # "tidal", "qobuz", "amazon", "lucida"


@dataclass
class DownloadRequest:
    """Input for adding an item to the queue."""

    video_url: str = ""
    spotify_url: str = ""
    quality: str = ""  # "best", "1080p", "720p", "480p"


@dataclass
class QueueEvent:
    """A progress notification about a queue item."""

    type: str  # added, updated, removed, completed, skipped, error
    item_id: str
    item: QueueItem | None = None
    progress: int = 0
    status: QueueStatus | None = None
    error: str = ""


QueueProgressCallback = Callable[[QueueEvent], None]


class Queue:
    """A thread-safe download queue that reports changes through a callback.

    Events are delivered synchronously, after the queue's lock is released,
    so a callback may safely call back into the queue.
    """

    def __init__(self, max_concurrent: int = 1) -> None:
        self.max_concurrent = max_concurrent
        self._items: list[QueueItem] = []
        self._lock = threading.Lock()
        self._callback: QueueProgressCallback | None = None

    def set_progress_callback(self, callback: QueueProgressCallback | None) -> None:
        """Set the function that receives queue events."""
        with self._lock:
            self._callback = callback

    def _emit(self, *events: QueueEvent) -> None:
        with self._lock:
            callback = self._callback
        if callback is not None:
            for event in events:
                callback(event)

    def _index(self, item_id: str) -> int | None:
        return next((i for i, item in enumerate(self._items) if item.id == item_id), None)

    def add_to_queue(self, request: DownloadRequest) -> str:
        """Append a new pending item and return its ID."""
        return self._append(
            QueueItem(video_url=request.video_url, spotify_url=request.spotify_url)
        )

    def add_to_queue_with_metadata(self, request: DownloadRequest, video_info: VideoInfo) -> str:
        """Append an item whose video metadata is already known."""
        return self.add_to_queue_with_playlist(request, video_info, "", 0)

    def add_to_queue_with_playlist(
        self,
        request: DownloadRequest,
        video_info: VideoInfo,
        playlist_name: str = "",
        playlist_position: int = 0,
    ) -> str:
        """Append an item with metadata and its place in a playlist."""
        return self._append(
            QueueItem(
                video_url=request.video_url,
                spotify_url=request.spotify_url,
                title=video_info.title,
                artist=video_info.artist,
                thumbnail=video_info.thumbnail,
                duration=video_info.duration,
                playlist_name=playlist_name,
                playlist_position=playlist_position,
            )
        )

    def _append(self, item: QueueItem) -> str:
        item.id = str(uuid.uuid4())
        item.status = QueueStatus.PENDING
        item.progress = 0
        item.stage = "Waiting..."
        item.created_at = datetime.now()
        with self._lock:
            self._items.append(item)
            snapshot = copy.copy(item)
        self._emit(QueueEvent(type="added", item_id=item.id, item=snapshot))
        return item.id

    def get_queue(self) -> list[QueueItem]:
        """Return copies of all items, in queue order."""
        with self._lock:
            return [copy.copy(item) for item in self._items]

    def get_item(self, item_id: str) -> QueueItem | None:
        """Return a copy of the item with ``item_id``, or None."""
        with self._lock:
            idx = self._index(item_id)
            return copy.copy(self._items[idx]) if idx is not None else None

    def get_pending_count(self) -> int:
        """Number of items waiting to be processed."""
        with self._lock:
            return sum(item.status == QueueStatus.PENDING for item in self._items)

    def get_active_count(self) -> int:
        """Number of items currently being processed."""
        with self._lock:
            return sum(item.status in _ACTIVE for item in self._items)

    def _update_item(self, item_id: str, updater: Callable[[QueueItem], None]) -> None:
        with self._lock:
            idx = self._index(item_id)
            if idx is None:
                return
            updater(self._items[idx])
            updated = copy.copy(self._items[idx])
        self._emit(
            QueueEvent(
                type="updated",
                item_id=item_id,
                item=updated,
                progress=updated.progress,
                status=updated.status,
            )
        )

    def update_status(
        self, item_id: str, status: QueueStatus, progress: int, stage: str = ""
    ) -> None:
        """Set an item's status, progress and (if given) stage text."""

        def apply(item: QueueItem) -> None:
            item.status = status
            item.progress = progress
            if stage:
                item.stage = stage
            if status in (QueueStatus.COMPLETE, QueueStatus.SKIPPED):
                item.completed_at = datetime.now()

        self._update_item(item_id, apply)

    def set_item_error(self, item_id: str, error: BaseException | str) -> None:
        """Mark an item as failed with ``error``."""
        message = str(error)

        def apply(item: QueueItem) -> None:
            item.status = QueueStatus.ERROR
            item.error = message
            item.stage = "Error"
            item.completed_at = datetime.now()

        self._update_item(item_id, apply)
        self._emit(QueueEvent(type="error", item_id=item_id, error=message))

    def set_item_output(self, item_id: str, output_path: str) -> None:
        """Record where an item's output file was written."""

        def apply(item: QueueItem) -> None:
            item.output_path = output_path

        self._update_item(item_id, apply)

    def remove_from_queue(self, item_id: str) -> None:
        """Remove an item, cancelling it if it is running; unknown IDs are ignored."""
        with self._lock:
            idx = self._index(item_id)
            if idx is None:
                return
            item = self._items.pop(idx)
            if item.cancel_func is not None:
                item.cancel_func()
        self._emit(QueueEvent(type="removed", item_id=item_id))

    def cancel_item(self, item_id: str) -> None:
        """Cancel an item; raises KeyError if there is no such item."""
        with self._lock:
            idx = self._index(item_id)
            if idx is None:
                raise KeyError(f"item not found: {item_id}")
            item = self._items[idx]
            if item.cancel_func is not None:
                item.cancel_func()
            item.status = QueueStatus.CANCELLED
            item.stage = "Cancelled"

    def pause_item(self, item_id: str) -> None:
        """Stop an active or pending item and mark it paused."""
        with self._lock:
            idx = self._index(item_id)
            if idx is None:
                raise KeyError(f"item not found: {item_id}")
            item = self._items[idx]
            if item.status not in _PAUSABLE:
                raise ValueError(
                    f"item {item_id} is not in a pausable state ({item.status.value})"
                )
            snapshot = self._pause(item)
        self._emit(QueueEvent(type="updated", item_id=item_id, item=snapshot))

    def resume_item(self, item_id: str) -> None:
        """Put a paused item back to pending."""
        with self._lock:
            idx = self._index(item_id)
            if idx is None:
                raise KeyError(f"item not found: {item_id}")
            item = self._items[idx]
            if item.status != QueueStatus.PAUSED:
                raise ValueError(f"item {item_id} is not paused (status: {item.status.value})")
            snapshot = self._resume(item)
        self._emit(QueueEvent(type="updated", item_id=item_id, item=snapshot))

    @staticmethod
    def _pause(item: QueueItem) -> QueueItem:
        if item.cancel_func is not None:
            item.cancel_func()
        item.status = QueueStatus.PAUSED
        item.stage = "Paused"
        return copy.copy(item)

    @staticmethod
    def _resume(item: QueueItem) -> QueueItem:
        item.status = QueueStatus.PENDING
        item.progress = 0
        item.stage = "Waiting... (resumed)"
        item.cancel_func = None
        return copy.copy(item)

    def pause_all(self) -> int:
        """Pause every active and pending item; return how many were paused."""
        with self._lock:
            paused = [self._pause(item) for item in self._items if item.status in _PAUSABLE]
        self._emit(*(QueueEvent(type="updated", item_id=i.id, item=i) for i in paused))
        return len(paused)

    def resume_all(self) -> int:
        """Resume every paused item; return how many were resumed."""
        with self._lock:
            resumed = [
                self._resume(item) for item in self._items if item.status == QueueStatus.PAUSED
            ]
        self._emit(*(QueueEvent(type="updated", item_id=i.id, item=i) for i in resumed))
        return len(resumed)

    def clear_completed(self) -> int:
        """Drop finished items (complete, skipped, failed, cancelled); return the count."""
        with self._lock:
            kept = [item for item in self._items if item.status not in _FINISHED]
            removed = len(self._items) - len(kept)
            self._items = kept
        return removed

    def get_failed_items(self) -> list[QueueItem]:
        """Return copies of all items in the error state."""
        with self._lock:
            return [copy.copy(i) for i in self._items if i.status == QueueStatus.ERROR]

    def retry_failed(self) -> int:
        """Reset every failed item to pending; return how many were reset."""
        retried: list[QueueItem] = []
        with self._lock:
            for item in self._items:
                if item.status == QueueStatus.ERROR:
                    item.status = QueueStatus.PENDING
                    item.progress = 0
                    item.error = ""
                    item.stage = "Waiting... (retry)"
                    retried.append(copy.copy(item))
        self._emit(*(QueueEvent(type="updated", item_id=i.id, item=i) for i in retried))
        return len(retried)

    def retry_with_override(self, item_id: str, request: RetryOverrideRequest) -> QueueItem:
        """Reset an item to pending with corrected metadata; return a copy of it."""
        with self._lock:
            idx = self._index(item_id)
            if idx is None:
                raise KeyError(f"item not found: {item_id}")
            item = self._items[idx]
            if request.music_url:
                item.spotify_url = request.music_url
            if request.artist:
                item.artist = request.artist
            if request.title:
                item.title = request.title
            if request.force_source:
                item.force_source = request.force_source
            item.status = QueueStatus.PENDING
            item.progress = 0
            item.error = ""
            item.stage = "Waiting... (retry with override)"
            item.match_candidates = []
            item.match_diagnostics = None
            item.cancel_func = None
            snapshot = copy.copy(item)
        self._emit(QueueEvent(type="updated", item_id=item_id, item=snapshot))
        return copy.copy(snapshot)

    def clear_all(self) -> None:
        """Cancel running items and empty the queue."""
        with self._lock:
            for item in self._items:
                if item.cancel_func is not None:
                    item.cancel_func()
            self._items = []

    def move_item(self, item_id: str, new_index: int) -> None:
        """Move an item to ``new_index`` in the queue."""
        with self._lock:
            idx = self._index(item_id)
            if idx is None:
                raise KeyError(f"item not found: {item_id}")
            if not 0 <= new_index < len(self._items):
                raise IndexError(f"invalid index: {new_index}")
            item = self._items.pop(idx)
            self._items.insert(new_index, item)