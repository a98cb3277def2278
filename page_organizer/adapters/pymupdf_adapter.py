from __future__ import annotations

import threading
from typing import cast

import fitz  # type: ignore[import-untyped]

from page_organizer.domain.errors import ExportError, RenderError, SourceOpenError
from page_organizer.domain.models import PageHandle, Thumbnail, ThumbnailSize

# MuPDF contexts are not safe to share across threads.
_FITZ_LOCK = threading.Lock()


class PyMuPdfAdapter:
    @staticmethod
    def _optimized_bytes(document: fitz.Document) -> bytes:
        return cast(
            bytes,
            document.tobytes(
                garbage=4,
                clean=True,
                deflate=True,
                deflate_images=True,
                deflate_fonts=True,
            ),
        )

    @staticmethod
    def _fit_scale(page_rect: fitz.Rect, size: ThumbnailSize) -> float:
        if page_rect.width <= 0 or page_rect.height <= 0:
            return 1.0
        return min(size.width / page_rect.width, size.height / page_rect.height)

    def get_page_count(self, pdf_bytes: bytes) -> int:
        try:
            with _FITZ_LOCK, fitz.open(stream=pdf_bytes, filetype="pdf") as document:
                if document.needs_pass:
                    raise SourceOpenError("PDF is password protected")
                return int(document.page_count)
        except SourceOpenError:
            raise
        except Exception as exc:
            raise SourceOpenError("Unable to open PDF document") from exc

    def render(self, handle: PageHandle, size: ThumbnailSize) -> Thumbnail:
        return self.render_thumbnail(handle, size)

    def render_thumbnail(self, handle: PageHandle, size: ThumbnailSize) -> Thumbnail:
        try:
            with _FITZ_LOCK, fitz.open(stream=handle.content, filetype="pdf") as document:
                page = document[handle.page_index]
                scale = self._fit_scale(page.rect, size)
                matrix = fitz.Matrix(scale, scale)
                pixmap = page.get_pixmap(matrix=matrix, alpha=False)
                return Thumbnail(
                    data=cast(bytes, pixmap.tobytes("png")),
                    width=int(pixmap.width),
                    height=int(pixmap.height),
                )
        except Exception as exc:
            raise RenderError(
                f"Unable to render page {handle.page_index + 1} thumbnail"
            ) from exc

    def merge_page_handles(self, handles: list[PageHandle]) -> bytes:
        with _FITZ_LOCK:
            output = fitz.open()
            source_docs: dict[str, fitz.Document] = {}
            try:
                runs: list[tuple[PageHandle, int, int]] = []
                if handles:
                    run_head = handles[0]
                    run_start = handles[0].page_index
                    run_end = handles[0].page_index
                    for handle in handles[1:]:
                        if (
                            handle.source_id == run_head.source_id
                            and handle.page_index == run_end + 1
                        ):
                            run_end = handle.page_index
                            continue
                        runs.append((run_head, run_start, run_end))
                        run_head = handle
                        run_start = handle.page_index
                        run_end = handle.page_index
                    runs.append((run_head, run_start, run_end))

                for head, from_page, to_page in runs:
                    if head.source_id not in source_docs:
                        source_docs[head.source_id] = fitz.open(
                            stream=head.content, filetype="pdf"
                        )
                    output.insert_pdf(
                        source_docs[head.source_id], from_page=from_page, to_page=to_page
                    )

                return self._optimized_bytes(output)
            except Exception as exc:
                raise ExportError("Unable to assemble output PDF") from exc
            finally:
                for source_doc in source_docs.values():
                    source_doc.close()
                output.close()

