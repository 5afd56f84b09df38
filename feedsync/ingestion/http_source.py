"""HTTP remote source backed by requests."""

import asyncio
import json
from typing import Any

import requests
import structlog
from pydantic import ValidationError
from requests.exceptions import RequestException

from feedsync.ingestion.errors import DecodeError, NoDataError, TransportError
from feedsync.ingestion.remote_source import RemoteSource, validate_page_request
from feedsync.models.record import RemotePost
from feedsync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()


class HttpRemoteSource(RemoteSource):
    """Fetches pages from a JSON array endpoint using ``_page``/``_limit`` parameters."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        retry_base_delay: float = 0.5,
        session: requests.Session | None = None,
    ):
        """
        Initialize HTTP remote source.

        Args:
            base_url: Endpoint returning a JSON array of posts
            timeout_seconds: Transport timeout for each request
            max_retries: Transport retries before the fetch fails
            retry_base_delay: Initial backoff delay in seconds
            session: Optional requests session (a new one is created if None)
        """
        self._base_url = base_url
        self._timeout = timeout_seconds
        self._session = session if session is not None else requests.Session()
        self._get_with_retry = exponential_backoff_retry(
            max_retries=max_retries,
            base_delay=retry_base_delay,
            max_delay=30.0,
            exceptions=(RequestException,),
        )(self._get)
        log.info(
            "http_remote_source_initialized",
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
        )

    async def fetch_page(self, page_number: int, page_size: int) -> list[RemotePost]:
        """
        Fetch one page over HTTP.

        The blocking request runs in a worker thread; the result is delivered
        back on the awaiting event loop.

        Args:
            page_number: One-based page number
            page_size: Maximum number of records on the page

        Returns:
            Decoded posts of the page

        Raises:
            FetchError: Classified failure (see RemoteSource.fetch_page)
        """
        validate_page_request(page_number, page_size)
        log.info("fetching_page", page_number=page_number, page_size=page_size)

        content = await asyncio.to_thread(self._download, page_number, page_size)
        posts = self._decode_page(content)

        log.info("page_fetched", page_number=page_number, record_count=len(posts))
        return posts

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def _download(self, page_number: int, page_size: int) -> bytes:
        try:
            response = self._get_with_retry(page_number, page_size)
        except RequestException as e:
            log.error(
                "page_request_failed",
                page_number=page_number,
                page_size=page_size,
                error=str(e),
            )
            raise TransportError(str(e), cause=e) from e

        if not response.content:
            raise NoDataError(f"Empty response for page {page_number}")
        return response.content

    def _get(self, page_number: int, page_size: int) -> requests.Response:
        response = self._session.get(
            self._base_url,
            params={"_page": page_number, "_limit": page_size},
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response

    def _decode_page(self, content: bytes) -> list[RemotePost]:
        """
        Convert a raw page payload into posts.

        Args:
            content: Response body

        Returns:
            Posts in payload order

        Raises:
            DecodeError: If the body is not a JSON array of valid posts
        """
        try:
            payload: Any = json.loads(content)
        except (ValueError, RecursionError) as e:
            raise DecodeError(f"Page payload is not valid JSON: {e}") from e

        if not isinstance(payload, list):
            raise DecodeError(f"Page payload must be a JSON array, got {type(payload).__name__}")

        try:
            return [RemotePost.model_validate(item) for item in payload]
        except ValidationError as e:
            log.error("page_decode_failed", error=str(e))
            raise DecodeError(f"Malformed post in page payload: {e}") from e
