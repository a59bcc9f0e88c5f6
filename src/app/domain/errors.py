from __future__ import annotations


class RecommendationError(Exception):
    pass


class CacheRepositoryError(RecommendationError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Video cache repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class VideoSearchError(RecommendationError):
    def __init__(self, query: str, reason: str):
        super().__init__(f"Video search failed for '{query}': {reason}")
        self.query = query
        self.reason = reason


class VideoQuotaExceededError(VideoSearchError):
    def __init__(self, query: str, reason: str = "Daily quota exceeded"):
        super().__init__(query, reason)
