"""Configuration management with Pydantic Settings."""

from dunecli.config.settings import (
    DuneSettings,
    clear_settings_cache,
    get_settings,
    resolve_api_key,
)

__all__ = [
    "DuneSettings",
    "clear_settings_cache",
    "get_settings",
    "resolve_api_key",
]
