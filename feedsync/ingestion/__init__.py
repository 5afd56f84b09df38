"""Remote source components for fetching feed pages"""

from feedsync.ingestion.errors import (
    DecodeError,
    FetchError,
    InvalidRequestError,
    NoDataError,
    TransportError,
)
from feedsync.ingestion.http_source import HttpRemoteSource
from feedsync.ingestion.remote_source import RemoteSource

__all__ = [
    "DecodeError",
    "FetchError",
    "HttpRemoteSource",
    "InvalidRequestError",
    "NoDataError",
    "RemoteSource",
    "TransportError",
]
