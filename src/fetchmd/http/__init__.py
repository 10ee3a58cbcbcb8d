"""HTTP transport for fetchmd."""

from .client import AsyncHttpClient, read_text_up_to
from .protocols import FetchAttempt, HttpClient, HttpResponse, ResponseEnvelope

__all__ = [
    "AsyncHttpClient",
    "FetchAttempt",
    "HttpClient",
    "HttpResponse",
    "ResponseEnvelope",
    "read_text_up_to",
]
