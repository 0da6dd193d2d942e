"""LLM exception definitions.

Custom exception hierarchy for oracle operations. Every exception carries a
``code`` so callers can classify failures without inspecting messages.
"""


class LLMError(Exception):
    """Base exception for LLM operations.

    Attributes:
        code: Stable marker identifying the failure kind.
    """

    default_code = "REQUEST_FAILED"

    def __init__(self, message: str = "", code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code


class ProviderError(LLMError):
    """Error from the LLM provider.

    Attributes:
        is_retryable: Whether this error can be retried.
        status_code: HTTP status code if applicable.
    """

    def __init__(
        self,
        message: str,
        is_retryable: bool = False,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.is_retryable = is_retryable
        self.status_code = status_code


class RateLimitError(ProviderError):
    """Rate limit exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying.
    """

    default_code = "RATE_LIMITED"

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, is_retryable=True, status_code=429)
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Invalid API key or authentication failed."""

    default_code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, is_retryable=False, status_code=401)


class ContentPolicyError(ProviderError):
    """Content violated provider's usage policies."""

    default_code = "CONTENT_POLICY"

    def __init__(self, message: str = "Content policy violation") -> None:
        super().__init__(message, is_retryable=False)


class ContextLengthError(ProviderError):
    """Input exceeds model's context window.

    Attributes:
        max_tokens: Maximum tokens for the model.
    """

    default_code = "CONTEXT_LENGTH"

    def __init__(self, message: str, max_tokens: int | None = None) -> None:
        super().__init__(message, is_retryable=False)
        self.max_tokens = max_tokens


class ServiceUnavailableError(ProviderError):
    """The oracle cannot be reached at all.

    Categorical unavailability is never retried.
    """

    default_code = "SERVICE_UNAVAILABLE"

    def __init__(self, message: str = "Text generation service is not reachable") -> None:
        super().__init__(message, is_retryable=False, status_code=503)


class RequestTimeoutError(ProviderError):
    """The oracle did not answer in time."""

    default_code = "REQUEST_TIMEOUT"

    def __init__(self, message: str = "Request to text generation service timed out") -> None:
        super().__init__(message, is_retryable=True, status_code=408)


class EmptyResponseError(LLMError):
    """The oracle returned no usable text."""

    default_code = "EMPTY_RESPONSE"

    def __init__(self, message: str = "Empty response from text generation service") -> None:
        super().__init__(message)


class UnsupportedProviderError(LLMError):
    """Requested provider is not supported."""

    default_code = "UNSUPPORTED_PROVIDER"


class StructuredOutputError(LLMError):
    """Failed to parse structured output.

    Attributes:
        raw_output: The raw output that failed to parse.
    """

    default_code = "INVALID_TASK_FORMAT"

    def __init__(self, message: str, raw_output: str | None = None) -> None:
        super().__init__(message)
        self.raw_output = raw_output
