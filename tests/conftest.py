from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable, Iterator
from pathlib import Path

import fitz
import pytest

from page_organizer.domain.errors import RenderError
from page_organizer.domain.models import PageHandle, SourceDocument, Thumbnail, ThumbnailSize
from page_organizer.services.page_collection import PageCollection


class FakeRenderBackend:
    """Instrumented render backend that records calls and concurrency."""

    def __init__(
        self, gate: threading.Event | None = None, fail_pages: set[int] | None = None
    ) -> None:
        self.gate = gate
        self.fail_pages = fail_pages or set()
        self.calls: list[tuple[str, int]] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._lock = threading.Lock()

    def render(self, handle: PageHandle, size: ThumbnailSize) -> Thumbnail:
        with self._lock:
            self.calls.append((handle.source_id, handle.page_index))
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                self.gate.wait(timeout=10)
            if handle.page_index in self.fail_pages:
                raise RenderError(f"Unable to render page {handle.page_index + 1} thumbnail")
            data = f"{handle.source_id}:{handle.page_index}".encode()
            return Thumbnail(data=data, width=size.width, height=size.height)
        finally:
            with self._lock:
                self.in_flight -= 1

    def wait_for_in_flight(self, count: int, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            with self._lock:
                if self.in_flight >= count:
                    return True
            time.sleep(0.01)
        return False


def _pdf_bytes(pages: list[str]) -> bytes:
    document = fitz.open()
    try:
        for text in pages:
            page = document.new_page()
            page.insert_text((72, 72), text)
        return document.tobytes(deflate=True, garbage=3)
    finally:
        document.close()


@pytest.fixture
def make_pdf() -> Callable[[list[str]], bytes]:
    return _pdf_bytes


@pytest.fixture
def synthetic_pdf_bytes() -> bytes:
    return _pdf_bytes(["Cover page", "Chapter one", "Chapter two"])


@pytest.fixture
def make_source() -> Callable[[str, int], SourceDocument]:
    def factory(label: str, page_count: int) -> SourceDocument:
        return SourceDocument(
            source_id=str(uuid.uuid4()),
            name=f"{label}.pdf",
            label=label,
            size_bytes=0,
            page_count=page_count,
            content=b"",
        )

    return factory


@pytest.fixture
def backend_factory() -> type[FakeRenderBackend]:
    return FakeRenderBackend


@pytest.fixture
def fake_backend() -> FakeRenderBackend:
    return FakeRenderBackend()


@pytest.fixture
def collection(fake_backend: FakeRenderBackend) -> Iterator[PageCollection]:
    pages = PageCollection(backend=fake_backend)
    try:
        yield pages
    finally:
        pages.close()


@pytest.fixture
def real_world_fixture_paths(tmp_path: Path) -> list[Path]:
    docs_content = {
        tmp_path / "quarterly_report_2024.pdf": [
            "Quarterly Report 2024\nSummary",
            "Revenue by region",
            "Outlook",
        ],
        tmp_path / "appendix.pdf": [
            "Appendix A\nMethodology",
            "Appendix B\nGlossary",
        ],
    }
    for path, pages in docs_content.items():
        path.write_bytes(_pdf_bytes(pages))
    return list(docs_content)
