"""Pydantic models describing crawler settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class CrawlerConfig(BaseModel):
    """Engine settings; every field has a working default."""

    concurrency: int = Field(default=1, ge=1, description="Maximum simultaneous fetches.")
    retries: int = Field(default=0, ge=0, description="Extra attempts after a failed fetch.")
    retry_delay: float = Field(default=1.0, ge=0, description="Seconds between attempts.")
    idle_interval: float = Field(
        default=1.0, gt=0, description="Seconds between drained re-checks while idle."
    )
    proxies: list[str] = Field(default_factory=list)
    proxy_file: Path | None = Field(default=None, description="Newline separated proxy URLs.")
    request_timeout: float = Field(default=15.0, gt=0)
    follow_redirects: bool = False
    user_agents: list[str] | Path | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("proxies", mode="before")
    @classmethod
    def _coerce_proxies(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("proxies expects a proxy URL or a list of proxy URLs")
        return [str(item).strip() for item in value if str(item).strip()]

    @field_validator("proxy_file")
    @classmethod
    def _check_proxy_file(cls, value: Path | None) -> Path | None:
        if value is not None and not value.exists():
            raise ValueError(f"proxy file not found: {value}")
        return value

    @model_validator(mode="after")
    def _apply_user_agents(self) -> "CrawlerConfig":
        if isinstance(self.user_agents, Path):
            if not self.user_agents.exists():
                raise ValueError(f"UA file not found: {self.user_agents}")
            content = self.user_agents.read_text(encoding="utf-8").splitlines()
            self.user_agents = [line.strip() for line in content if line.strip()]
        return self


__all__ = ["CrawlerConfig"]
