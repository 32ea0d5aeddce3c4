"""
Errors — Exception taxonomy for the search service.

  ConfigurationError → no usable default API keys (fatal at startup)
  ValidationError    → missing/blank query or malformed request body (400)
  NotFoundError      → unknown session id on follow-up (404)
  UpstreamError      → the Gemini call failed for any reason (500)
"""


class SearchError(Exception):
    """Base class. `message` is safe to return to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(SearchError):
    pass


class ValidationError(SearchError):
    pass


class NotFoundError(SearchError):
    pass


class UpstreamError(SearchError):
    DEFAULT_MESSAGE = "An error occurred while processing your search"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.DEFAULT_MESSAGE)
