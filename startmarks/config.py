from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

DEFAULT_ALLOWED_ICON_TYPES = [
    "image/x-icon",
    "image/vnd.microsoft.icon",
    "image/png",
    "image/jpeg",
    "image/svg+xml",
    "image/gif",
    "image/webp",
]


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_list(name: str, default: List[str]) -> List[str]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return list(default)
    return [x.strip() for x in v.split(",") if x.strip()]


def _positive_int(block: Mapping[str, Any], key: str) -> int:
    """Integer value of ``block[key]``; 0 when it is missing or falsy."""
    v = block.get(key)
    if not v:
        return 0
    if isinstance(v, bool):
        raise ValueError(f"buildSettings.{key}: expected a positive integer, got {v!r}")
    try:
        n = int(v)
    except (TypeError, ValueError):
        raise ValueError(f"buildSettings.{key}: expected a positive integer, got {v!r}") from None
    if n < 1:
        raise ValueError(f"buildSettings.{key}: expected a positive integer, got {v!r}")
    return n


@dataclass
class Settings:
    # Fetching
    fetch_jobs: int = 20
    fetch_timeout_s: float = 8.0
    fetch_user_agent: str = DEFAULT_USER_AGENT
    fetch_enabled: bool = True

    # Icon policy
    max_icon_bytes: int = 1024 * 1024
    allowed_icon_content_types: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ICON_TYPES))
    icon_content_hash: bool = False
    placeholder_icon: str = "assets/placeholder_icon.svg"
    icons_dir_name: str = "icons"

    # Logging / UX
    log_level: str = "INFO"
    log_file: str = ""
    no_color: bool = False

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.fetch_jobs = _env_int("STARTMARKS_FETCH_JOBS", s.fetch_jobs)
        s.fetch_timeout_s = _env_float("STARTMARKS_FETCH_TIMEOUT_S", s.fetch_timeout_s)
        s.fetch_user_agent = _env_str("STARTMARKS_FETCH_UA", s.fetch_user_agent)
        s.fetch_enabled = _env_bool("STARTMARKS_FETCH", s.fetch_enabled)

        s.max_icon_bytes = _env_int("STARTMARKS_MAX_ICON_BYTES", s.max_icon_bytes)
        s.allowed_icon_content_types = _env_list("STARTMARKS_ICON_TYPES", s.allowed_icon_content_types)
        s.icon_content_hash = _env_bool("STARTMARKS_ICON_CONTENT_HASH", s.icon_content_hash)
        s.placeholder_icon = _env_str("STARTMARKS_PLACEHOLDER_ICON", s.placeholder_icon)

        s.log_level = _env_str("STARTMARKS_LOG_LEVEL", s.log_level)
        s.log_file = _env_str("STARTMARKS_LOG_FILE", s.log_file)
        s.no_color = _env_bool("STARTMARKS_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k):
                setattr(s, k, v)
        return s

    def apply_build_settings(self, build_settings: Optional[Mapping[str, Any]]) -> None:
        """Overlay the ``buildSettings`` block of the site ``config.json``.

        Missing or falsy values keep the current setting, so an empty block is a no-op.
        Raises ValueError when the block or one of its values has the wrong type.
        """
        if not build_settings:
            return
        if not isinstance(build_settings, Mapping):
            raise ValueError(f"buildSettings: expected an object, got {type(build_settings).__name__}")
        jobs = _positive_int(build_settings, "concurrentRequests")
        if jobs:
            self.fetch_jobs = jobs
        max_bytes = _positive_int(build_settings, "maxIconSizeBytes")
        if max_bytes:
            self.max_icon_bytes = max_bytes
        types = build_settings.get("allowedIconContentTypes")
        if types:
            if not isinstance(types, list) or not all(isinstance(t, str) for t in types):
                raise ValueError(f"buildSettings.allowedIconContentTypes: expected a list of strings, got {types!r}")
            self.allowed_icon_content_types = list(types)
        timeout_ms = _positive_int(build_settings, "requestTimeoutMs")
        if timeout_ms:
            self.fetch_timeout_s = timeout_ms / 1000.0
        if "iconContentHash" in build_settings:
            self.icon_content_hash = bool(build_settings["iconContentHash"])


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return Settings.from_file(Path(config_path))
    return Settings.from_env()


def load_site_config(path: Path) -> Dict[str, Any]:
    """Read the site ``config.json``.

    Raises OSError when the file cannot be read and ValueError when it is not a JSON object.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object at top level")
    return data
