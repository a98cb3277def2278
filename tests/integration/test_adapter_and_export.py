import fitz
import pytest

from page_organizer.adapters.pymupdf_adapter import PyMuPdfAdapter
from page_organizer.domain.errors import ExportError, RenderError, SourceOpenError
from page_organizer.domain.models import PageHandle, ThumbnailSize
from page_organizer.services.export_service import ExportService


def _page_texts(pdf_bytes: bytes) -> list[str]:
    with fitz.open(stream=pdf_bytes, filetype="pdf") as document:
        return [document[index].get_text("text").strip() for index in range(document.page_count)]


@pytest.mark.integration
def test_adapter_reads_real_world_fixtures(real_world_fixture_paths) -> None:
    adapter = PyMuPdfAdapter()
    counts = [adapter.get_page_count(path.read_bytes()) for path in real_world_fixture_paths]
    assert counts == [3, 2]


@pytest.mark.integration
def test_invalid_bytes_raise_source_open_error() -> None:
    with pytest.raises(SourceOpenError):
        PyMuPdfAdapter().get_page_count(b"definitely not a pdf")


@pytest.mark.integration
def test_thumbnail_fits_target_box(synthetic_pdf_bytes: bytes) -> None:
    adapter = PyMuPdfAdapter()
    size = ThumbnailSize(width=140, height=180)

    thumbnail = adapter.render(PageHandle("doc", 0, synthetic_pdf_bytes), size)

    assert thumbnail.data.startswith(b"\x89PNG")
    assert thumbnail.width <= size.width + 1
    assert thumbnail.height <= size.height + 1
    assert thumbnail.width < thumbnail.height
    assert thumbnail.cost == len(thumbnail.data)


@pytest.mark.integration
def test_out_of_range_page_raises_render_error(synthetic_pdf_bytes: bytes) -> None:
    with pytest.raises(RenderError):
        PyMuPdfAdapter().render_thumbnail(
            PageHandle("doc", 99, synthetic_pdf_bytes), ThumbnailSize()
        )


@pytest.mark.integration
def test_export_preserves_interleaved_order(make_pdf) -> None:
    alpha = make_pdf(["alpha 1", "alpha 2", "alpha 3"])
    beta = make_pdf(["beta 1", "beta 2"])
    handles = [
        PageHandle("beta", 1, beta),
        PageHandle("alpha", 0, alpha),
        PageHandle("alpha", 1, alpha),
        PageHandle("beta", 0, beta),
        PageHandle("alpha", 2, alpha),
    ]

    result = ExportService(PyMuPdfAdapter()).export(handles)

    assert result.output_name == "merged_document.pdf"
    assert result.page_count == 5
    assert _page_texts(result.output_pdf) == ["beta 2", "alpha 1", "alpha 2", "beta 1", "alpha 3"]


@pytest.mark.integration
def test_export_with_no_pages_raises() -> None:
    with pytest.raises(ExportError):
        ExportService(PyMuPdfAdapter()).export([])


@pytest.mark.integration
def test_export_output_size_regression_guard(real_world_fixture_paths) -> None:
    source_bytes = real_world_fixture_paths[0].read_bytes()
    handles = [PageHandle("report", index, source_bytes) for index in range(3)]

    result = ExportService(PyMuPdfAdapter()).export(handles)

    assert len(result.output_pdf) <= int(len(source_bytes) * 1.5)
