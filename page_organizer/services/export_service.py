from __future__ import annotations

import logging

from page_organizer.adapters.pymupdf_adapter import PyMuPdfAdapter
from page_organizer.domain.errors import ExportError
from page_organizer.domain.models import ExportResult, PageHandle

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_NAME = "merged_document.pdf"


class ExportService:
    def __init__(self, adapter: PyMuPdfAdapter) -> None:
        self.adapter = adapter

    def export(
        self, handles: list[PageHandle], output_name: str = DEFAULT_OUTPUT_NAME
    ) -> ExportResult:
        if not handles:
            raise ExportError("Cannot export when no pages remain.")

        output = self.adapter.merge_page_handles(handles)
        logger.info(f"Exported {len(handles)} page(s) to {output_name}")
        return ExportResult(output_name=output_name, output_pdf=output, page_count=len(handles))
