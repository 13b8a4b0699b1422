"""App configuration loading helpers."""

from __future__ import annotations

import os
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

CONFIG_FILE = Path.home() / ".config" / "snowsarva" / "config.toml"
API_URL_ENV = "SNOWSARVA_API_URL"


class LayoutState(BaseModel):
    """Persisted layout hints for the TUI."""

    sidebar_width: int | None = None


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    api_base_url: str = "http://localhost:5000"
    request_timeout: float = 10.0
    session_cookie: str | None = None
    theme: str = "dark"
    log_level: str = "WARNING"
    verify_after_activate: bool = False
    activity_limit: int = Field(default=10, ge=1)
    layout: LayoutState = Field(default_factory=LayoutState)

    def with_api_base_url(self, url: str) -> AppConfig:
        """Return a copy pointing at a different backend."""

        return self.model_copy(update={"api_base_url": url})

    def with_layout(self, **updates: object) -> AppConfig:
        """Return a copy with layout state changes applied."""

        layout = self.layout.model_copy(update=updates)
        return self.model_copy(update={"layout": layout})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        config = AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        config = AppConfig()
    else:
        config = AppConfig(**data)
    override = os.environ.get(API_URL_ENV)
    if override:
        config = config.with_api_base_url(override)
    return config


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f'api_base_url = "{config.api_base_url}"',
        f"request_timeout = {config.request_timeout}",
        f'theme = "{config.theme}"',
        f'log_level = "{config.log_level}"',
        f"verify_after_activate = {str(config.verify_after_activate).lower()}",
        f"activity_limit = {config.activity_limit}",
    ]
    if config.session_cookie:
        lines.append(f'session_cookie = "{config.session_cookie}"')
    if config.layout.sidebar_width is not None:
        lines.append("")
        lines.append("[layout]")
        lines.append(f"sidebar_width = {config.layout.sidebar_width}")
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    for key in ("api_base_url", "session_cookie", "theme", "log_level"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    timeout = raw.get("request_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
        data["request_timeout"] = float(timeout)
    verify = raw.get("verify_after_activate")
    if isinstance(verify, bool):
        data["verify_after_activate"] = verify
    limit = raw.get("activity_limit")
    if isinstance(limit, int) and not isinstance(limit, bool) and limit > 0:
        data["activity_limit"] = limit
    layout = raw.get("layout")
    if isinstance(layout, dict):
        state: dict[str, object] = {}
        sidebar_width = layout.get("sidebar_width")
        if isinstance(sidebar_width, int):
            state["sidebar_width"] = sidebar_width
        data["layout"] = LayoutState(**state)
    return data
