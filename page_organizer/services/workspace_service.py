from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from page_organizer.adapters.pymupdf_adapter import PyMuPdfAdapter
from page_organizer.domain.errors import FileIOError, PageOrganizerError, ValidationError
from page_organizer.domain.models import (
    BatchItemResult,
    BatchOperationResult,
    ExportResult,
    ImportResult,
    OperationMessage,
    SourceDocument,
    Status,
)
from page_organizer.infrastructure.config import AppConfig
from page_organizer.services.export_service import DEFAULT_OUTPUT_NAME, ExportService
from page_organizer.services.page_collection import PageCollection
from page_organizer.services.thumbnail_cache import ThumbnailCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkspaceService:
    def __init__(
        self,
        adapter: PyMuPdfAdapter,
        config: AppConfig,
        collection: PageCollection | None = None,
        export_service: ExportService | None = None,
    ) -> None:
        self.adapter = adapter
        self.config = config
        self.collection = collection or PageCollection(
            backend=adapter,
            cache=ThumbnailCache(
                count_limit=config.cache_count_limit, cost_limit=config.cache_cost_limit
            ),
            thumbnail_size=config.thumbnail_size,
            batch_size=config.render_batch_size,
        )
        self.export_service = export_service or ExportService(adapter)
        self.is_busy = False
        self.last_message: OperationMessage | None = None

    def acknowledge(self) -> None:
        self.last_message = None

    def _validate_file(self, name: str, size_bytes: int) -> None:
        if not name.lower().endswith(".pdf"):
            raise ValidationError(f"Invalid file type for {name}. Only PDF files are allowed.")
        if size_bytes > self.config.max_pdf_size_bytes:
            raise ValidationError(
                f"{name} exceeds per-file limit of {self.config.max_pdf_size_mb} MB"
            )

    def open_document(self, name: str, content: bytes) -> SourceDocument:
        self._validate_file(name, len(content))
        page_count = self.adapter.get_page_count(content)
        return SourceDocument(
            source_id=str(uuid.uuid4()),
            name=name,
            label=Path(name).stem,
            size_bytes=len(content),
            page_count=page_count,
            content=content,
        )

    def load_files(
        self, uploaded_files: list[tuple[str, bytes]]
    ) -> tuple[list[SourceDocument], BatchOperationResult]:
        if not uploaded_files:
            return [], BatchOperationResult(items=[])

        total_size = sum(len(content) for _, content in uploaded_files)
        if total_size > self.config.max_batch_size_bytes:
            raise ValidationError(f"Batch size exceeds limit of {self.config.max_batch_size_mb} MB")

        documents: list[SourceDocument] = []
        items: list[BatchItemResult] = []
        for name, content in uploaded_files:
            try:
                document = self.open_document(name, content)
            except PageOrganizerError as exc:
                logger.warning(f"Skipping {name}: {exc}")
                items.append(
                    BatchItemResult(
                        source_name=name,
                        status=Status.ERROR,
                        messages=[OperationMessage(level="error", text=str(exc))],
                    )
                )
                continue

            if document.page_count == 0:
                items.append(
                    BatchItemResult(
                        source_name=name,
                        status=Status.WARNING,
                        messages=[OperationMessage(level="warning", text="PDF has no pages.")],
                        metrics={"pages": 0},
                    )
                )
                continue

            documents.append(document)
            items.append(
                BatchItemResult(
                    source_name=name,
                    status=Status.SUCCESS,
                    messages=[
                        OperationMessage(level="info", text=f"Added {document.page_count} page(s).")
                    ],
                    metrics={"pages": document.page_count},
                )
            )
        return documents, BatchOperationResult(items=items)

    def add_files(self, uploaded_files: list[tuple[str, bytes]]) -> ImportResult:
        self.is_busy = True
        try:
            try:
                documents, batch = self.load_files(uploaded_files)
            except PageOrganizerError as exc:
                self.last_message = OperationMessage(level="error", text=str(exc))
                return ImportResult(batch=BatchOperationResult(items=[]))

            added_ids: list[str] = []
            for document in documents:
                added_ids.extend(self.collection.add_source(document, document.page_handles()))

            result = ImportResult(batch=batch, added_ids=added_ids)
            self.last_message = self._import_message(result)
            return result
        finally:
            self.is_busy = False

    def add_paths(self, paths: list[Path]) -> ImportResult:
        uploaded: list[tuple[str, bytes]] = []
        failures: list[BatchItemResult] = []
        for path in paths:
            try:
                uploaded.append((path.name, self._read_path(path)))
            except FileIOError as exc:
                logger.warning(str(exc))
                failures.append(
                    BatchItemResult(
                        source_name=path.name,
                        status=Status.ERROR,
                        messages=[OperationMessage(level="error", text=str(exc))],
                    )
                )

        result = self.add_files(uploaded)
        if not failures:
            return result
        merged = ImportResult(
            batch=BatchOperationResult(items=result.batch.items + failures),
            added_ids=result.added_ids,
        )
        # An empty batch for non-empty input means the batch limit message is already set.
        if result.batch.items or not uploaded:
            self.last_message = self._import_message(merged)
        return merged

    @staticmethod
    def _read_path(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileIOError(f"Unable to read {path.name}") from exc

    @staticmethod
    def _import_message(result: ImportResult) -> OperationMessage:
        failed = result.batch.error_count
        if result.added_sources == 0:
            text = "No documents were added."
            if failed:
                text = f"No documents were added; {failed} file(s) could not be opened."
            return OperationMessage(level="error" if failed else "warning", text=text)
        text = f"Added {result.added_sources} document(s)"
        if failed:
            return OperationMessage(
                level="warning", text=f"{text}; {failed} file(s) could not be opened."
            )
        return OperationMessage(level="info", text=text)

    def _run(self, action: Callable[[], T], success_text: str | None = None) -> T | None:
        try:
            outcome = action()
        except PageOrganizerError as exc:
            self.last_message = OperationMessage(level="error", text=str(exc))
            return None
        if success_text is not None:
            self.last_message = OperationMessage(level="info", text=success_text)
        return outcome

    def delete_selected(self) -> int:
        count = self._run(self.collection.delete_selected)
        if count is None:
            return 0
        self.last_message = OperationMessage(
            level="info", text=f"Successfully deleted {count} page(s)!"
        )
        return count

    def remove_page(self, entry_id: str) -> bool:
        return bool(self._run(lambda: self.collection.remove_one(entry_id)))

    def move(self, id_from: str, id_to: str) -> bool:
        return bool(self._run(lambda: self.collection.move(id_from, id_to)))

    def reverse(self) -> None:
        self._run(self.collection.reverse)

    def toggle(self, entry_id: str) -> None:
        self._run(lambda: self.collection.toggle(entry_id))

    def select_all(self) -> None:
        self._run(self.collection.select_all)

    def clear_selection(self) -> None:
        self._run(self.collection.clear_selection)

    def clear(self) -> None:
        self._run(self.collection.clear)

    def export(self, output_name: str = DEFAULT_OUTPUT_NAME) -> ExportResult | None:
        self.is_busy = True
        try:
            return self._run(
                lambda: self.export_service.export(self.collection.page_handles(), output_name),
                success_text="PDF exported successfully!",
            )
        finally:
            self.is_busy = False

    def close(self) -> None:
        self.collection.close()
