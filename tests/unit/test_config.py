import pytest

from page_organizer.domain.models import ThumbnailSize
from page_organizer.infrastructure.config import AppConfig, _get_int_env, _get_str_env


@pytest.mark.unit
def test_int_env_falls_back_on_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAGE_ORGANIZER_TEST_INT", "abc")
    assert _get_int_env("PAGE_ORGANIZER_TEST_INT", 5) == 5
    monkeypatch.setenv("PAGE_ORGANIZER_TEST_INT", "-3")
    assert _get_int_env("PAGE_ORGANIZER_TEST_INT", 5) == 5
    monkeypatch.setenv("PAGE_ORGANIZER_TEST_INT", "8")
    assert _get_int_env("PAGE_ORGANIZER_TEST_INT", 5) == 8


@pytest.mark.unit
def test_str_env_ignores_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAGE_ORGANIZER_TEST_STR", "  ")
    assert _get_str_env("PAGE_ORGANIZER_TEST_STR", "INFO") == "INFO"


@pytest.mark.unit
def test_derived_limits() -> None:
    config = AppConfig(
        max_pdf_size_mb=2,
        max_batch_size_mb=3,
        thumbnail_width=140,
        thumbnail_height=180,
        cache_cost_mb=50,
    )
    assert config.max_pdf_size_bytes == 2 * 1024 * 1024
    assert config.max_batch_size_bytes == 3 * 1024 * 1024
    assert config.cache_cost_limit == 50 * 1024 * 1024
    assert config.thumbnail_size == ThumbnailSize(width=140, height=180)
