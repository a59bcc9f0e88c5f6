class ServiceError(Exception):
    pass


class InvalidInputError(ServiceError):
    pass


class InvalidURLError(InvalidInputError):
    pass


SOURCE_BLOCKED_MESSAGE = (
    "This website does not allow importing recipes. The website source has restricted "
    "access to protect intellectual property. Please try importing from a different recipe website."
)


class SourceBlockedError(ServiceError):
    def __init__(self, url: str):
        super().__init__(SOURCE_BLOCKED_MESSAGE)
        self.url = url


class UpstreamStatusError(ServiceError):
    def __init__(self, url: str, status_code: int):
        super().__init__(f"Failed to fetch page: HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class FetchFailedError(ServiceError):
    pass


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


class RecipeNotFoundError(ServiceError):
    pass


class ProviderUnavailableError(ServiceError):
    def __init__(self, provider: str):
        super().__init__(f"{provider} is not configured")
        self.provider = provider


class RateLimitedError(ServiceError):
    pass


class CompletionProviderError(ServiceError):
    pass


class ProviderMalformedResponseError(ServiceError):
    pass


class RecipeValidationError(ServiceError):
    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"Recipe {field} is required")
        self.field = field
