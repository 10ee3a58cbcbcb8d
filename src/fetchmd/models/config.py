"""Pydantic configuration model for fetchmd."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = "fetchmd/1.0"
DEFAULT_TIMEOUT_MS = 30_000


class FetchMdConfig(BaseModel):
    """
    Configuration for a fetch.

    Example:
        config = FetchMdConfig(timeout_ms=10_000, absolutize_links=False)

    YAML format:
        timeout_ms: 10000
        absolutize_links: false
        headers:
          X-Api-Key: abc123
    """

    absolutize_links: bool = Field(
        True,
        description="Rewrite relative links and images to absolute URLs in HTML conversions",
    )
    timeout_ms: int = Field(
        DEFAULT_TIMEOUT_MS,
        gt=0,
        description="Per-request timeout in milliseconds",
    )
    debug: bool = Field(False, description="Trace which cascade stage fired and why")
    user_agent: str = Field(DEFAULT_USER_AGENT, description="User-Agent sent with every request")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Static headers sent with every request",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "WARNING",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    @property
    def timeout_seconds(self) -> float:
        """Per-request timeout in seconds."""
        return self.timeout_ms / 1000

    @property
    def effective_log_level(self) -> str:
        """DEBUG when tracing is on, else the configured level."""
        return "DEBUG" if self.debug else self.log_level

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "FetchMdConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "FetchMdConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())
