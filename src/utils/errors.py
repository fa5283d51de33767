"""Custom exception hierarchy for feedbackPulse.

All application exceptions inherit from :class:`FeedbackPulseError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "groq", "anthropic", "sqlite") caused the failure.

The hierarchy is organized by where the failure happens:

    FeedbackPulseError  (base -- catch-all for any feedbackPulse error)
    +-- LLMError                    (any sentiment provider call failure)
    |   +-- MalformedResponseError  (provider answered, but not in the JSON contract)
    +-- RateLimitError              (provider rate-limit exceeded)
    +-- RowPersistenceError         (a single row write failed)
    +-- DatasetNotFoundError        (unknown dataset id)
    +-- ReviewRequestNotFoundError  (unknown review request id)
    +-- InvalidDatasetStateError    (operation not allowed in current status)
    +-- DuplicateResponseError      (respondent already answered a request)
    +-- IngestionError              (rows / sheet could not be imported)
    +-- InvalidRequestError         (bad caller-supplied arguments)
    +-- ConfigurationError          (startup / provider chain config)

Provider-level errors (LLMError, RateLimitError) never leave the sentiment
classifier; the rest carry an HTTP status in ``status_code`` which the
error-handling middleware uses when a route lets one escape.
"""


class FeedbackPulseError(Exception):
    """Base exception for all feedbackPulse errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[groq] Rate limit exceeded``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Sentiment provider errors
# ---------------------------------------------------------------------------

class LLMError(FeedbackPulseError):
    """Raised when an LLM API call fails or returns no usable completion."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class MalformedResponseError(LLMError):
    """Raised when a provider reply does not match the sentiment JSON contract.

    Structural failure: the classifier moves to the next provider without
    any cooldown.
    """

    def __init__(
        self,
        message: str = "Provider response did not match the sentiment contract",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(FeedbackPulseError):
    """Raised when an API rate limit is exceeded.

    The sentiment classifier waits for the configured cooldown before it
    tries the next provider in the chain.
    """

    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class RowPersistenceError(FeedbackPulseError):
    """Raised when writing one row (or one chunk of rows) to the store fails."""

    def __init__(
        self,
        message: str = "Failed to persist row",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DatasetNotFoundError(FeedbackPulseError):
    """Raised when a dataset id does not exist."""

    status_code = 404

    def __init__(
        self,
        message: str = "Dataset not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ReviewRequestNotFoundError(FeedbackPulseError):
    """Raised when a review request id does not exist."""

    status_code = 404

    def __init__(
        self,
        message: str = "Review request not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidDatasetStateError(FeedbackPulseError):
    """Raised when a dataset's status does not allow the requested operation."""

    status_code = 409

    def __init__(
        self,
        message: str = "Dataset is not in a valid state for this operation",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DuplicateResponseError(FeedbackPulseError):
    """Raised when a respondent submits a second response to the same request."""

    status_code = 409

    def __init__(
        self,
        message: str = "Response already submitted",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Caller input / configuration errors
# ---------------------------------------------------------------------------

class IngestionError(FeedbackPulseError):
    """Raised when uploaded rows or a shared sheet cannot be imported."""

    status_code = 400

    def __init__(
        self,
        message: str = "Dataset import failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidRequestError(FeedbackPulseError):
    """Raised when caller-supplied arguments are out of range."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(FeedbackPulseError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
