from __future__ import annotations

import contextlib
import logging
import shutil
import socket
import subprocess
import tempfile
import time
from dataclasses import dataclass

from .config import ChromyConfig, expand_path
from .errors import LaunchError
from .http_client import HttpClientError, get_version

logger = logging.getLogger("chromy.launcher")


@dataclass
class LaunchResult:
    command: list[str]
    started: bool
    message: str


class BrowserLauncher:
    """Owns one local Chrome/Chromium process exposing the DevTools port.

    ``start()`` / ``kill()`` are blocking; sessions call them through ``asyncio.to_thread``.
    """

    def __init__(self, config: ChromyConfig | None = None) -> None:
        self.config = config or ChromyConfig.from_env()
        self.process: subprocess.Popen | None = None
        self._temp_profile: str | None = None

    def cdp_ready(self, timeout: float = 0.4) -> bool:
        """Return True if the DevTools HTTP endpoint responds."""
        try:
            get_version(self.config, timeout=timeout)
        except HttpClientError:
            return False
        return True

    def _profile_dir(self) -> str:
        if self.config.profile_path:
            return expand_path(self.config.profile_path)
        if self._temp_profile is None:
            self._temp_profile = tempfile.mkdtemp(prefix="chromy-profile-")
        return self._temp_profile

    def _build_common_flags(self) -> list[str]:
        flags = [
            f"--remote-debugging-port={self.config.port}",
            f"--user-data-dir={self._profile_dir()}",
            "--remote-allow-origins=*",
            "--no-first-run",
            "--no-default-browser-check",
            "--disable-gpu",
        ]
        if not self.config.visible:
            flags.append("--headless=new")
        return flags

    def build_launch_command(self, extra: list[str] | None = None) -> list[str]:
        flags = self._build_common_flags() + self.config.extra_flags
        if extra:
            flags.extend(extra)
        return [self.config.binary_path, *flags]

    def _port_available(self, timeout: float = 0.2) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            try:
                result = sock.connect_ex((self.config.host, self.config.port))
                return result != 0
            except OSError:
                return False

    def start(self, timeout: float | None = None) -> LaunchResult:
        """Launch the browser unless one already answers on the configured port."""
        timeout = self.config.launch_timeout if timeout is None else timeout
        if self.cdp_ready():
            return LaunchResult([], False, "Browser already listening on DevTools port")
        if not self._port_available():
            raise LaunchError(f"Port {self.config.port} is in use but DevTools is not reachable")

        cmd = self.build_launch_command()
        logger.debug("launching browser: %s", " ".join(cmd))
        try:
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise LaunchError(f"Failed to launch {cmd[0]}: {exc}") from exc

        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.cdp_ready():
                return LaunchResult(cmd, True, "Browser launched")
            if self.process.poll() is not None:
                code = self.process.returncode
                self.process = None
                raise LaunchError(f"Browser exited with code {code} before DevTools became ready")
            time.sleep(0.1)
        self.kill()
        raise LaunchError(f"Browser did not expose DevTools on port {self.config.port} within {timeout}s")

    def kill(self, *, timeout: float = 2.0) -> bool:
        """Stop the launcher-owned process. Returns False when nothing was running."""
        proc = self.process
        self.process = None
        if proc is None:
            self._drop_temp_profile()
            return False

        if proc.poll() is None:
            with contextlib.suppress(OSError):
                proc.terminate()
            try:
                proc.wait(timeout=max(0.1, float(timeout)))
            except subprocess.TimeoutExpired:
                # Escalate to kill.
                with contextlib.suppress(OSError):
                    proc.kill()
                with contextlib.suppress(subprocess.TimeoutExpired):
                    proc.wait(timeout=1.0)
        self._drop_temp_profile()
        return True

    def _drop_temp_profile(self) -> None:
        if self._temp_profile is not None:
            shutil.rmtree(self._temp_profile, ignore_errors=True)
            self._temp_profile = None

