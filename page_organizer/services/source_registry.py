from __future__ import annotations

import logging
from collections.abc import Iterable

from page_organizer.domain.models import SourceDocument

logger = logging.getLogger(__name__)


class SourceRegistry:
    def __init__(self) -> None:
        self._documents: dict[str, SourceDocument] = {}

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._documents

    def register(self, document: SourceDocument) -> str:
        self._documents[document.source_id] = document
        return document.source_id

    def lookup(self, source_id: str) -> SourceDocument | None:
        return self._documents.get(source_id)

    def release(self, source_id: str) -> SourceDocument | None:
        return self._documents.pop(source_id, None)

    def prune(self, live_source_ids: Iterable[str]) -> list[str]:
        """Drop documents that no page references any more."""
        live = set(live_source_ids)
        stale = [source_id for source_id in self._documents if source_id not in live]
        for source_id in stale:
            del self._documents[source_id]
        if stale:
            logger.debug(f"Released {len(stale)} unreferenced source document(s)")
        return stale

    def clear(self) -> None:
        self._documents.clear()
