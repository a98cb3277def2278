from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterable, Sequence

from page_organizer.domain.errors import InvalidSelectionError
from page_organizer.domain.models import (
    PageEntry,
    PageHandle,
    SourceDocument,
    Thumbnail,
    ThumbnailSize,
)
from page_organizer.services.source_registry import SourceRegistry
from page_organizer.services.thumbnail_cache import ThumbnailCache
from page_organizer.services.thumbnail_pipeline import (
    DEFAULT_BATCH_SIZE,
    RenderBackend,
    ThumbnailPipeline,
)

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


class PageCollection:
    def __init__(
        self,
        backend: RenderBackend,
        cache: ThumbnailCache | None = None,
        registry: SourceRegistry | None = None,
        thumbnail_size: ThumbnailSize | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._lock = threading.RLock()
        self._entries: list[PageEntry] = []
        self._selection: set[str] = set()
        self._listeners: list[ChangeListener] = []
        self.cache = cache if cache is not None else ThumbnailCache()
        self.registry = registry if registry is not None else SourceRegistry()
        self.pipeline = ThumbnailPipeline(
            backend=backend,
            cache=self.cache,
            publish=self._publish_thumbnail,
            lock=self._lock,
            size=thumbnail_size,
            batch_size=batch_size,
        )

    @property
    def entries(self) -> tuple[PageEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def selection(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._selection)

    @property
    def page_count(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def has_pages(self) -> bool:
        return self.page_count > 0

    @property
    def source_count(self) -> int:
        with self._lock:
            return len({entry.source_id for entry in self._entries})

    def get(self, entry_id: str) -> PageEntry | None:
        with self._lock:
            index = self._index_of(entry_id)
            return None if index is None else self._entries[index]

    def page_handles(self) -> list[PageHandle]:
        with self._lock:
            return [entry.page_handle for entry in self._entries]

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a no-argument callback fired after each change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_source(self, document: SourceDocument, pages: Sequence[PageHandle]) -> list[str]:
        if not pages:
            return []
        with self._lock:
            start = len(self._entries)
            new_entries = [
                PageEntry(
                    id=uuid.uuid4().hex,
                    source_id=document.source_id,
                    source_label=document.label,
                    origin_index=handle.page_index,
                    display_index=start + offset + 1,
                    page_handle=handle,
                )
                for offset, handle in enumerate(pages)
            ]
            # Publishing needs the lock, so renders cannot land before the extend.
            self.pipeline.schedule([(entry.id, entry.page_handle) for entry in new_entries])
            self.registry.register(document)
            self._entries.extend(new_entries)
        logger.info(f"Added {len(new_entries)} page(s) from {document.name}")
        self._notify()
        return [entry.id for entry in new_entries]

    def delete(self, ids: Iterable[str]) -> int:
        requested = set(ids)
        with self._lock:
            targets = {entry.id for entry in self._entries if entry.id in requested}
            if not targets:
                raise InvalidSelectionError("No pages selected.")
            if len(targets) >= len(self._entries):
                raise InvalidSelectionError("Cannot delete all pages. Use Clear to start over.")
            self._remove(targets)
        logger.info(f"Deleted {len(targets)} page(s)")
        self._notify()
        return len(targets)

    def delete_selected(self) -> int:
        return self.delete(self.selection)

    def remove_one(self, entry_id: str) -> bool:
        with self._lock:
            if self._index_of(entry_id) is None:
                return False
            self._remove({entry_id})
        self._notify()
        return True

    def move(self, id_from: str, id_to: str) -> bool:
        with self._lock:
            from_index = self._index_of(id_from)
            to_index = self._index_of(id_to)
            if from_index is None or to_index is None:
                return False
            entry = self._entries.pop(from_index)
            self._entries.insert(to_index, entry)
            self._renumber()
        self._notify()
        return True

    def reverse(self) -> None:
        with self._lock:
            self._entries.reverse()
            self._renumber()
        self._notify()

    def select(self, entry_id: str) -> None:
        with self._lock:
            if self._index_of(entry_id) is None:
                return
            self._selection.add(entry_id)
        self._notify()

    def deselect(self, entry_id: str) -> None:
        with self._lock:
            if entry_id not in self._selection:
                return
            self._selection.discard(entry_id)
        self._notify()

    def toggle(self, entry_id: str) -> None:
        with self._lock:
            if entry_id in self._selection:
                self._selection.discard(entry_id)
            elif self._index_of(entry_id) is not None:
                self._selection.add(entry_id)
            else:
                return
        self._notify()

    def select_all(self) -> None:
        with self._lock:
            self._selection = {entry.id for entry in self._entries}
        self._notify()

    def clear_selection(self) -> None:
        with self._lock:
            self._selection.clear()
        self._notify()

    def clear(self) -> None:
        with self._lock:
            cancelled = self.pipeline.cancel_all()
            self._entries.clear()
            self._selection.clear()
            self.registry.clear()
            self.cache.clear()
        logger.info(f"Cleared workspace ({cancelled} pending thumbnail(s) cancelled)")
        self._notify()

    def close(self) -> None:
        self.clear()
        self.pipeline.shutdown(wait=True)

    def _remove(self, targets: set[str]) -> None:
        for entry_id in targets:
            self.pipeline.cancel(entry_id)
        self._entries = [entry for entry in self._entries if entry.id not in targets]
        self._selection.difference_update(targets)
        self._renumber()
        self.registry.prune(entry.source_id for entry in self._entries)

    def _renumber(self) -> None:
        for position, entry in enumerate(self._entries, start=1):
            entry.display_index = position

    def _index_of(self, entry_id: str) -> int | None:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return None

    def _publish_thumbnail(self, entry_id: str, thumbnail: Thumbnail) -> bool:
        with self._lock:
            index = self._index_of(entry_id)
            if index is None:
                return False
            self._entries[index].thumbnail = thumbnail
        self._notify()
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Page collection listener failed")
