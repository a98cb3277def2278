from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Status(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class PageHandle:
    source_id: str
    page_index: int
    content: bytes = field(repr=False, compare=False)


@dataclass(frozen=True)
class SourceDocument:
    source_id: str
    name: str
    label: str
    size_bytes: int
    page_count: int
    content: bytes = field(repr=False)

    def page_handles(self) -> list[PageHandle]:
        return [
            PageHandle(source_id=self.source_id, page_index=index, content=self.content)
            for index in range(self.page_count)
        ]


@dataclass(frozen=True)
class ThumbnailSize:
    width: int = 140
    height: int = 180


@dataclass(frozen=True)
class Thumbnail:
    data: bytes = field(repr=False)
    width: int
    height: int

    @property
    def cost(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class RenderKey:
    source_id: str
    page_index: int
    width: int
    height: int

    @classmethod
    def for_page(cls, handle: PageHandle, size: ThumbnailSize) -> RenderKey:
        return cls(
            source_id=handle.source_id,
            page_index=handle.page_index,
            width=size.width,
            height=size.height,
        )


@dataclass
class PageEntry:
    id: str
    source_id: str
    source_label: str
    origin_index: int
    display_index: int
    page_handle: PageHandle = field(repr=False)
    thumbnail: Thumbnail | None = None


@dataclass(frozen=True)
class OperationMessage:
    level: str
    text: str


@dataclass(frozen=True)
class BatchItemResult:
    source_name: str
    status: Status
    messages: list[OperationMessage] = field(default_factory=list)
    metrics: dict[str, int | str] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchOperationResult:
    items: list[BatchItemResult]

    @property
    def success_count(self) -> int:
        return len([item for item in self.items if item.status == Status.SUCCESS])

    @property
    def warning_count(self) -> int:
        return len([item for item in self.items if item.status == Status.WARNING])

    @property
    def error_count(self) -> int:
        return len([item for item in self.items if item.status == Status.ERROR])


@dataclass(frozen=True)
class ImportResult:
    batch: BatchOperationResult
    added_ids: list[str] = field(default_factory=list)

    @property
    def added_sources(self) -> int:
        return self.batch.success_count

    @property
    def added_pages(self) -> int:
        return len(self.added_ids)


@dataclass(frozen=True)
class ExportResult:
    output_name: str
    output_pdf: bytes
    page_count: int
