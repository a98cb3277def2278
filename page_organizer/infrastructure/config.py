from __future__ import annotations

import os
from dataclasses import dataclass

from page_organizer.domain.models import ThumbnailSize


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _get_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(frozen=True)
class AppConfig:
    max_pdf_size_mb: int = _get_int_env("PAGE_ORGANIZER_MAX_PDF_MB", 50)
    max_batch_size_mb: int = _get_int_env("PAGE_ORGANIZER_MAX_BATCH_MB", 100)
    thumbnail_width: int = _get_int_env("PAGE_ORGANIZER_THUMBNAIL_WIDTH", 140)
    thumbnail_height: int = _get_int_env("PAGE_ORGANIZER_THUMBNAIL_HEIGHT", 180)
    render_batch_size: int = _get_int_env("PAGE_ORGANIZER_RENDER_BATCH_SIZE", 5)
    cache_count_limit: int = _get_int_env("PAGE_ORGANIZER_CACHE_COUNT_LIMIT", 100)
    cache_cost_mb: int = _get_int_env("PAGE_ORGANIZER_CACHE_COST_MB", 50)
    log_level: str = _get_str_env("PAGE_ORGANIZER_LOG_LEVEL", "INFO")

    @property
    def max_pdf_size_bytes(self) -> int:
        return self.max_pdf_size_mb * 1024 * 1024

    @property
    def max_batch_size_bytes(self) -> int:
        return self.max_batch_size_mb * 1024 * 1024

    @property
    def cache_cost_limit(self) -> int:
        return self.cache_cost_mb * 1024 * 1024

    @property
    def thumbnail_size(self) -> ThumbnailSize:
        return ThumbnailSize(width=self.thumbnail_width, height=self.thumbnail_height)
