"""Input validation for fetchmd."""

from .url_validator import UrlValidationResult, UrlValidator

__all__ = ["UrlValidationResult", "UrlValidator"]
