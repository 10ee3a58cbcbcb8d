"""Validation of the URL handed to the fetcher."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from urllib.parse import urlsplit


@dataclass
class UrlValidationResult:
    """Result of URL validation."""

    is_valid: bool
    rejection_reason: str | None = None

    @staticmethod
    def valid() -> UrlValidationResult:
        """Create a valid result."""
        return UrlValidationResult(is_valid=True)

    @staticmethod
    def invalid(reason: str) -> UrlValidationResult:
        """Create an invalid result with reason."""
        return UrlValidationResult(is_valid=False, rejection_reason=reason)


class UrlValidator:
    """
    Checks that a URL is an absolute http(s) URL with a host.

    Private and loopback addresses are allowed unless ``block_private_ips``
    is set, since fetching local documentation servers is a normal use.

    Example:
        validator = UrlValidator()
        result = validator.validate("ftp://example.com/file")
        if not result.is_valid:
            print(f"Rejected: {result.rejection_reason}")
    """

    DEFAULT_ALLOWED_SCHEMES = frozenset({"http", "https"})

    def __init__(
        self,
        allowed_schemes: set[str] | frozenset[str] | None = None,
        block_private_ips: bool = False,
    ):
        """
        Initialize the URL validator.

        Args:
            allowed_schemes: Allowed URL schemes (default: http and https)
            block_private_ips: Reject private, loopback and link-local IPs
        """
        self.allowed_schemes = frozenset(allowed_schemes or self.DEFAULT_ALLOWED_SCHEMES)
        self.block_private_ips = block_private_ips

    def validate(self, url: str) -> UrlValidationResult:
        """
        Validate a URL.

        Args:
            url: The URL to validate

        Returns:
            UrlValidationResult with is_valid and optional rejection_reason
        """
        if not isinstance(url, str) or not url.strip():
            return UrlValidationResult.invalid("URL is empty")

        try:
            parsed = urlsplit(url.strip())
            hostname = parsed.hostname
            # Accessing .port validates it
            parsed.port
        except ValueError:
            return UrlValidationResult.invalid("Invalid URL format")

        scheme = parsed.scheme.lower()
        if scheme not in self.allowed_schemes:
            allowed = ", ".join(sorted(self.allowed_schemes))
            return UrlValidationResult.invalid(
                f"Scheme '{parsed.scheme}' not allowed (allowed: {allowed})"
            )

        if not hostname:
            return UrlValidationResult.invalid("URL has no host")

        if self.block_private_ips:
            ip_result = self._check_ip_address(hostname)
            if ip_result is not None:
                return ip_result

        return UrlValidationResult.valid()

    def _check_ip_address(self, hostname: str) -> UrlValidationResult | None:
        try:
            ip = ipaddress.ip_address(hostname)
        except ValueError:
            # Not an IP address
            return None

        if ip.is_loopback:
            return UrlValidationResult.invalid(f"Loopback IP address '{hostname}' not allowed")
        if ip.is_private:
            return UrlValidationResult.invalid(f"Private IP address '{hostname}' not allowed")
        if ip.is_link_local:
            return UrlValidationResult.invalid(f"Link-local IP address '{hostname}' not allowed")
        return None
