"""Data models for fetchmd."""

from .config import DEFAULT_TIMEOUT_MS, DEFAULT_USER_AGENT, FetchMdConfig
from .events import EventType, FetchEvent

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_USER_AGENT",
    "EventType",
    "FetchEvent",
    "FetchMdConfig",
]
