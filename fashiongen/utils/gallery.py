"""Capped, timestamped gallery of generated images kept on the client side."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

GalleryListener = Callable[["GalleryHistory"], None]


@dataclass
class GalleryItem:
    """A single gallery entry.

    Attributes:
        relative_path: URL path returned by ``/generate``, e.g. ``/images/<id>.png``
        timestamp: When the item was added, in epoch milliseconds
    """
    relative_path: str
    timestamp: int

    def to_state(self) -> Dict[str, Any]:
        """Persisted form, using the browser's key names."""
        return {"relativePath": self.relative_path, "timestamp": self.timestamp}

    def get_caption(self) -> str:
        """Caption shown under the thumbnail."""
        return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.timestamp / 1000))


class GalleryHistory:
    """Newest-first list of generated images, capped at ``max_items``.

    The container holds no I/O of its own. It is loaded from and saved to
    whatever storage the caller owns (browser localStorage in the web UI)
    through ``from_state`` and ``to_state``, and announces every change to
    its subscribers.
    """

    def __init__(self, max_items: int = 20, items: Optional[List[GalleryItem]] = None):
        """Initialize the gallery.

        Args:
            max_items: Maximum number of items kept
            items: Initial items, newest first
        """
        if max_items < 1:
            raise ValueError("max_items must be at least 1")

        self.max_items = max_items
        self.items: List[GalleryItem] = list(items or [])[:max_items]
        self._listeners: List[GalleryListener] = []

    @classmethod
    def from_state(cls, state: Any, max_items: int = 20) -> "GalleryHistory":
        """Rebuild a gallery from its persisted form.

        Entries that are not ``{relativePath, timestamp}`` objects are skipped.

        Args:
            state: Value previously produced by ``to_state``, or anything else
            max_items: Maximum number of items kept

        Returns:
            A new GalleryHistory
        """
        items = []
        for raw in state if isinstance(state, list) else []:
            if not isinstance(raw, dict) or not isinstance(raw.get("relativePath"), str):
                logger.warning(f"Skipping malformed gallery entry: {raw!r}")
                continue
            try:
                timestamp = int(raw.get("timestamp", 0))
            except (TypeError, ValueError):
                timestamp = 0
            items.append(GalleryItem(relative_path=raw["relativePath"], timestamp=timestamp))
        return cls(max_items=max_items, items=items)

    def to_state(self) -> List[Dict[str, Any]]:
        """Serializable form for persistence."""
        return [item.to_state() for item in self.items]

    def subscribe(self, listener: GalleryListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add(self, relative_path: str) -> GalleryItem:
        """Add an image at the front, dropping the oldest beyond the cap.

        Args:
            relative_path: URL path of the generated image

        Returns:
            The created GalleryItem
        """
        item = GalleryItem(relative_path=relative_path, timestamp=int(time.time() * 1000))
        self.items = [item, *self.items][:self.max_items]
        self._notify()
        return item

    def delete(self, relative_path: str) -> bool:
        """Remove every entry for ``relative_path``.

        Returns:
            True if something was removed
        """
        remaining = [item for item in self.items if item.relative_path != relative_path]
        removed = len(remaining) != len(self.items)
        if removed:
            self.items = remaining
            self._notify()
        return removed

    def clear(self) -> None:
        """Clear all items."""
        self.items = []
        self._notify()

    def get_all(self) -> List[GalleryItem]:
        return list(self.items)

    def get_count(self) -> int:
        return len(self.items)

    def get_visible(self, exists: Callable[[str], bool]) -> List[GalleryItem]:
        """Items whose image is still available, newest first."""
        return [item for item in self.items if exists(item.relative_path)]

    def get_images_for_gallery(
        self,
        resolve: Callable[[str], Any],
        exists: Optional[Callable[[str], bool]] = None
    ) -> List[tuple]:
        """Get images formatted for a Gradio Gallery.

        Args:
            resolve: Maps a relative URL path to something Gradio can display
            exists: Optional filter; items it rejects are left out

        Returns:
            List of (image, caption) tuples, newest first
        """
        items = self.get_visible(exists) if exists else self.items
        return [(resolve(item.relative_path), item.get_caption()) for item in items]

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
