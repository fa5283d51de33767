"""Utility modules for feedbackPulse.

- **errors** -- Domain exception hierarchy rooted at FeedbackPulseError.
- **concurrency** -- semaphore-bounded ``gather`` used by the batch advancer.
- **logging** -- structlog setup (console in development, JSON in production).
"""

from src.utils.concurrency import throttled_gather
from src.utils.errors import (
    ConfigurationError,
    DatasetNotFoundError,
    DuplicateResponseError,
    FeedbackPulseError,
    IngestionError,
    InvalidDatasetStateError,
    InvalidRequestError,
    LLMError,
    MalformedResponseError,
    RateLimitError,
    ReviewRequestNotFoundError,
    RowPersistenceError,
)
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "DatasetNotFoundError",
    "DuplicateResponseError",
    "FeedbackPulseError",
    "IngestionError",
    "InvalidDatasetStateError",
    "InvalidRequestError",
    "LLMError",
    "MalformedResponseError",
    "RateLimitError",
    "ReviewRequestNotFoundError",
    "RowPersistenceError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
