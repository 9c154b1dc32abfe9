"""Pydantic models describing how novels are fetched and written."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:103.0) Gecko/20100101 Firefox/103.0"
)


class HttpClientConfig(BaseModel):
    """Immutable settings for the HTTP client shared by every unit."""

    model_config = ConfigDict(frozen=True)

    user_agent: str = DEFAULT_USER_AGENT
    proxy: str | None = Field(
        default=None,
        description="Outbound proxy URL used for both HTTP and HTTPS traffic.",
    )
    timeout: float = 30.0
    follow_redirects: bool = True

    @field_validator("proxy", mode="before")
    @classmethod
    def _blank_proxy(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value


class GlobalConfig(BaseModel):
    """Run-wide controls: concurrency, pacing and output placement."""

    http: HttpClientConfig = Field(default_factory=HttpClientConfig)
    max_concurrent_fetches: int = Field(default=3, ge=1)
    pacing_delay_ms: int = Field(default=500, ge=0)
    unit_workers: int = Field(default=16, ge=1)
    output_dir: Path = Field(default=Path("."))
    title_from_content: bool = False
    enable_progress_bar: bool = True

    @field_validator("output_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)

    @property
    def pacing_delay(self) -> float:
        """Pacing delay in seconds."""

        return self.pacing_delay_ms / 1000.0


__all__ = ["DEFAULT_USER_AGENT", "GlobalConfig", "HttpClientConfig"]
