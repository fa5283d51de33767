"""Abstract base class for review request persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.models.review import ReviewQuestion, ReviewRequest, ReviewResponse


# Concrete implementation: SQLiteReviewProvider (src/providers/review/)
class IReviewStore(ABC):
    """Contract for review requests and their responses."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def create_request(self, title: str, questions: list[ReviewQuestion]) -> ReviewRequest:
        """Store a new review request."""

    @abstractmethod
    async def get_request(self, request_id: str) -> ReviewRequest | None:
        """Return the request, or ``None`` if it does not exist."""

    @abstractmethod
    async def list_requests(self) -> list[ReviewRequest]:
        """Return every request, newest first."""

    @abstractmethod
    async def submit_response(
        self,
        request_id: str,
        respondent_id: str,
        answers: dict[str, Any],
        department: str | None = None,
    ) -> ReviewResponse:
        """Store one respondent's answers.

        Raises
        ------
        src.utils.errors.DuplicateResponseError
            If the respondent already answered this request.
        """

    @abstractmethod
    async def list_responses(self, request_id: str) -> list[ReviewResponse]:
        """Return every response to a request, oldest first."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
