"""Core fetch API."""

from .fetcher import Fetcher, default_steps, fetch_blocking, fetch_markdown

__all__ = ["Fetcher", "default_steps", "fetch_blocking", "fetch_markdown"]
