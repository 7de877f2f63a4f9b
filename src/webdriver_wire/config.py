"""Configuration models for the WebDriver client."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import httpx
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseSettings):
    """Settings shared by every session a client opens."""

    model_config = SettingsConfigDict(
        env_prefix="WEBDRIVER_WIRE_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    server_url: str = Field(default="http://127.0.0.1:4444")
    request_timeout: float = Field(
        default=60.0,
        description="Seconds to wait for a single command round trip.",
    )
    connect_timeout: Optional[float] = Field(
        default=None,
        description="Seconds to wait for the TCP connection; defaults to request_timeout.",
    )
    capabilities: dict[str, Any] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    legacy_capabilities: bool = Field(
        default=True,
        description="Also send desiredCapabilities for pre-W3C remote ends.",
    )

    @field_validator("server_url")
    @classmethod
    def _check_server_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid server url {value!r}: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"server url must be an absolute http(s) url, got {value!r}")
        return value.rstrip("/")

    @field_validator("request_timeout", "connect_timeout")
    @classmethod
    def _check_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("timeouts must be positive")
        return value


# Keys merged entry by entry across layers; every other key is replaced whole.
MERGED_KEYS = ("capabilities", "headers")


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> ClientConfig:
    """Build client settings from the environment, a YAML file and overrides.

    Later layers win. ``capabilities`` are merged recursively, so a file can add
    ``moz:firefoxOptions`` without losing a ``browserName`` set in the
    environment, and an override can add one preference without restating the
    file's arguments. ``headers`` are merged one key at a time.
    """

    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    merged = ClientConfig(**settings_kwargs).model_dump(mode="python")
    for layer in (_read_file(path), overrides):
        for key, value in layer.items():
            if key in MERGED_KEYS and isinstance(value, Mapping):
                merged[key] = _merge_mapping(merged.get(key) or {}, value)
            else:
                merged[key] = value
    return ClientConfig.model_validate(merged)


def _read_file(path: Path | None) -> Mapping[str, Any]:
    if path is None:
        return {}
    import yaml

    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def _merge_mapping(base: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _merge_mapping(current, value)
        else:
            merged[key] = value
    return merged
