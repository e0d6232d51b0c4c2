from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

DEFAULT_BINARY_CANDIDATES: list[str] = [
    # Prefer Chromium; Chrome entries kept as fallback.
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Chromium\\Application\\chrome.exe",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    # Snap last: it ignores --user-data-dir.
    "/snap/bin/chromium",
]

_TRUE_VALUES = {"1", "true", "yes", "on"}


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class ChromyConfig:
    """Session configuration. Timeouts and intervals are in milliseconds."""

    host: str = "127.0.0.1"
    port: int = 9222
    wait_timeout: int = 30000
    goto_timeout: int = 30000
    evaluate_timeout: int = 30000
    poll_interval: int = 50
    type_interval: int = 20
    launch_browser: bool = True
    visible: bool = False
    binary_path: str = ""
    profile_path: str | None = None
    extra_flags: list[str] = field(default_factory=list)
    launch_timeout: float = 10.0
    user_agent: str | None = None
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        for name in ("wait_timeout", "goto_timeout", "evaluate_timeout", "poll_interval", "type_interval"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not 1 <= int(self.port) <= 65535:
            raise ValueError(f"port must be in 1..65535, got {self.port}")
        if self.launch_timeout <= 0:
            raise ValueError("launch_timeout must be > 0")
        if not self.binary_path:
            self.binary_path = self.detect_binary()

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("CHROMY_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        return "google-chrome"

    @classmethod
    def from_env(cls) -> ChromyConfig:
        flags_raw = os.environ.get("CHROMY_FLAGS", "")
        profile = os.environ.get("CHROMY_PROFILE")
        return cls(
            host=os.environ.get("CHROMY_HOST", "127.0.0.1"),
            port=int(os.environ.get("CHROMY_PORT", "9222")),
            wait_timeout=int(os.environ.get("CHROMY_WAIT_TIMEOUT", "30000")),
            goto_timeout=int(os.environ.get("CHROMY_GOTO_TIMEOUT", "30000")),
            evaluate_timeout=int(os.environ.get("CHROMY_EVALUATE_TIMEOUT", "30000")),
            poll_interval=int(os.environ.get("CHROMY_POLL_INTERVAL", "50")),
            type_interval=int(os.environ.get("CHROMY_TYPE_INTERVAL", "20")),
            launch_browser=_env_bool("CHROMY_LAUNCH", True),
            visible=_env_bool("CHROMY_VISIBLE", False),
            binary_path=cls.detect_binary(),
            profile_path=expand_path(profile) if profile else None,
            extra_flags=[flag.strip() for flag in flags_raw.split(",") if flag.strip()],
            launch_timeout=float(os.environ.get("CHROMY_LAUNCH_TIMEOUT", "10")),
        )

    def with_options(self, **options: Any) -> ChromyConfig:
        """Return a copy with the given fields overridden."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise TypeError(f"Unknown option(s): {', '.join(unknown)}")
        return replace(self, **options)

    @property
    def http_endpoint(self) -> str:
        return f"http://{self.host}:{self.port}"
