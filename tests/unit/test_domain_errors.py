from __future__ import annotations

import pytest

from src.app.domain.errors import (
    RecommendationError,
    CacheRepositoryError,
    VideoSearchError,
    VideoQuotaExceededError,
)


class TestRecommendationError:
    def test_base_exception(self) -> None:
        error = RecommendationError("Base error")
        assert str(error) == "Base error"
        assert isinstance(error, Exception)


class TestCacheRepositoryError:
    def test_operation_and_reason(self) -> None:
        error = CacheRepositoryError("insert_query", "connection reset")
        assert "insert_query" in str(error)
        assert "connection reset" in str(error)
        assert error.operation == "insert_query"
        assert error.reason == "connection reset"
        assert isinstance(error, RecommendationError)


class TestVideoSearchError:
    def test_query_and_reason(self) -> None:
        error = VideoSearchError("pad thai", "HTTP 500")
        assert "pad thai" in str(error)
        assert error.query == "pad thai"
        assert error.reason == "HTTP 500"


class TestVideoQuotaExceededError:
    def test_default_reason(self) -> None:
        error = VideoQuotaExceededError("pad thai")
        assert error.reason == "Daily quota exceeded"
        assert isinstance(error, VideoSearchError)

    def test_can_be_caught_as_search_error(self) -> None:
        with pytest.raises(VideoSearchError):
            raise VideoQuotaExceededError("pad thai")
