from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Protocol

from page_organizer.domain.models import PageHandle, RenderKey, Thumbnail, ThumbnailSize
from page_organizer.services.thumbnail_cache import ThumbnailCache

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5

PublishCallback = Callable[[str, Thumbnail], bool]


class RenderBackend(Protocol):
    def render(self, handle: PageHandle, size: ThumbnailSize) -> Thumbnail: ...


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


RenderJob = list[tuple[str, PageHandle, CancellationToken]]


class ThumbnailPipeline:
    def __init__(
        self,
        backend: RenderBackend,
        cache: ThumbnailCache,
        publish: PublishCallback,
        lock: threading.RLock | None = None,
        size: ThumbnailSize | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.backend = backend
        self.cache = cache
        self.size = size or ThumbnailSize()
        self.batch_size = batch_size
        self._publish = publish
        self._lock = lock or threading.RLock()
        self._pending: dict[str, CancellationToken] = {}
        self._jobs: list[Future[None]] = []
        self._closed = False
        self._driver = ThreadPoolExecutor(max_workers=1, thread_name_prefix="thumbnail-driver")
        self._workers = ThreadPoolExecutor(
            max_workers=batch_size, thread_name_prefix="thumbnail-render"
        )

    def schedule(self, requests: Sequence[tuple[str, PageHandle]]) -> Future[None] | None:
        if not requests:
            return None
        with self._lock:
            if self._closed:
                raise RuntimeError("Thumbnail pipeline has been shut down")
            job: RenderJob = []
            for entry_id, handle in requests:
                previous = self._pending.get(entry_id)
                if previous is not None:
                    previous.cancel()
                token = CancellationToken()
                self._pending[entry_id] = token
                job.append((entry_id, handle, token))
            future = self._driver.submit(self._run_job, job)
            self._jobs = [item for item in self._jobs if not item.done()]
            self._jobs.append(future)
        logger.debug(f"Scheduled {len(job)} thumbnail(s) in batches of {self.batch_size}")
        return future

    def cancel(self, entry_id: str) -> bool:
        with self._lock:
            token = self._pending.pop(entry_id, None)
        if token is None:
            return False
        token.cancel()
        return True

    def cancel_all(self) -> int:
        with self._lock:
            tokens = list(self._pending.values())
            self._pending.clear()
        for token in tokens:
            token.cancel()
        return len(tokens)

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    def is_pending(self, entry_id: str) -> bool:
        with self._lock:
            return entry_id in self._pending

    def pending_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._pending)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every queued job has settled; False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                jobs = [item for item in self._jobs if not item.done()]
            if not jobs:
                return True
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            _, not_done = wait_futures(jobs, timeout=remaining)
            if not_done:
                return False

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self.cancel_all()
        self._driver.shutdown(wait=wait)
        self._workers.shutdown(wait=wait)

    def _run_job(self, job: RenderJob) -> None:
        remaining = job
        while remaining:
            # A repeated key waits for the next batch, where it hits the cache.
            batch: RenderJob = []
            deferred: RenderJob = []
            keys: set[RenderKey] = set()
            for item in remaining:
                if item[2].cancelled:
                    continue
                key = RenderKey.for_page(item[1], self.size)
                if len(batch) < self.batch_size and key not in keys:
                    keys.add(key)
                    batch.append(item)
                else:
                    deferred.append(item)
            if not batch:
                return
            remaining = deferred
            try:
                futures = [self._workers.submit(self._render_one, *item) for item in batch]
            except RuntimeError:
                logger.debug("Render pool closed; dropping remaining thumbnail batches")
                return
            wait_futures(futures)
            for future in futures:
                error = future.exception()
                if error is not None:
                    logger.error(f"Thumbnail task crashed: {error!r}")

    def _render_one(self, entry_id: str, handle: PageHandle, token: CancellationToken) -> None:
        if token.cancelled:
            return
        key = RenderKey.for_page(handle, self.size)
        thumbnail = self.cache.get(key)
        from_cache = thumbnail is not None
        if thumbnail is None:
            try:
                thumbnail = self.backend.render(handle, self.size)
            except Exception as exc:
                logger.warning(f"Thumbnail unavailable for page entry {entry_id}: {exc}")
                self._forget(entry_id, token)
                return
        with self._lock:
            if token.cancelled:
                return
            if not from_cache:
                self.cache.put(key, thumbnail, thumbnail.cost)
            self._forget(entry_id, token)
        if not self._publish(entry_id, thumbnail):
            logger.debug(f"Dropped thumbnail for removed page entry {entry_id}")

    def _forget(self, entry_id: str, token: CancellationToken) -> None:
        with self._lock:
            if self._pending.get(entry_id) is token:
                del self._pending[entry_id]
