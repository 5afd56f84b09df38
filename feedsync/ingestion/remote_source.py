"""Remote source interface for paginated feed retrieval."""

from abc import ABC, abstractmethod

from feedsync.ingestion.errors import InvalidRequestError
from feedsync.models.record import RemotePost


class RemoteSource(ABC):
    """Abstract interface for fetching one page of remote records.

    Implementations are awaited from the sync engine's event loop. Blocking
    transports must hand their work to a worker thread so the awaiting
    coroutine resumes on the engine's loop.
    """

    @abstractmethod
    async def fetch_page(self, page_number: int, page_size: int) -> list[RemotePost]:
        """Fetch one page of records.

        Args:
            page_number: One-based page number
            page_size: Maximum number of records on the page

        Returns:
            Records of the page in remote order (empty when past the end)

        Raises:
            InvalidRequestError: If page parameters are not positive
            NoDataError: If the remote answered without a payload
            DecodeError: If the payload is malformed
            TransportError: If the network or server failed
        """
        pass


def validate_page_request(page_number: int, page_size: int) -> None:
    """Reject non-positive page parameters.

    Raises:
        InvalidRequestError: If either parameter is below one
    """
    if page_number < 1:
        raise InvalidRequestError(f"page_number must be positive, got {page_number}")
    if page_size < 1:
        raise InvalidRequestError(f"page_size must be positive, got {page_size}")
