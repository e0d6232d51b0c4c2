from __future__ import annotations

import contextlib
import os
import socket
import subprocess
import sys

import pytest

from chromy.config import ChromyConfig
from chromy.errors import LaunchError
from chromy.launcher import BrowserLauncher


def _free_port() -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


def _launcher(**options: object) -> BrowserLauncher:
    config = ChromyConfig(binary_path="/usr/bin/chrome", port=_free_port(), launch_timeout=2.0)
    return BrowserLauncher(config.with_options(**options) if options else config)


def test_launch_command_headless_with_temp_profile() -> None:
    launcher = _launcher(extra_flags=["--lang=nl"])
    cmd = launcher.build_launch_command(["--mute-audio"])
    assert cmd[0] == "/usr/bin/chrome"
    assert f"--remote-debugging-port={launcher.config.port}" in cmd
    assert "--headless=new" in cmd
    assert cmd[-2:] == ["--lang=nl", "--mute-audio"]
    profile = launcher._temp_profile
    assert profile is not None and os.path.isdir(profile)
    assert f"--user-data-dir={profile}" in cmd
    assert launcher.kill() is False
    assert not os.path.exists(profile)


def test_visible_browser_with_explicit_profile(tmp_path) -> None:
    launcher = _launcher(visible=True, profile_path=str(tmp_path))
    cmd = launcher.build_launch_command()
    assert "--headless=new" not in cmd
    assert f"--user-data-dir={tmp_path}" in cmd
    assert launcher._temp_profile is None


def test_start_reuses_running_browser(monkeypatch: pytest.MonkeyPatch) -> None:
    launcher = _launcher()
    monkeypatch.setattr(launcher, "cdp_ready", lambda timeout=0.4: True)
    result = launcher.start()
    assert result.started is False
    assert launcher.process is None


def test_start_refuses_busy_port(monkeypatch: pytest.MonkeyPatch) -> None:
    launcher = _launcher()
    monkeypatch.setattr(launcher, "cdp_ready", lambda timeout=0.4: False)
    monkeypatch.setattr(launcher, "_port_available", lambda timeout=0.2: False)
    with pytest.raises(LaunchError, match="in use"):
        launcher.start()


def test_start_missing_binary() -> None:
    launcher = _launcher(binary_path="/nonexistent/chromy-browser")
    with pytest.raises(LaunchError, match="Failed to launch"):
        launcher.start()
    launcher.kill()


def test_start_reports_early_exit() -> None:
    # The interpreter rejects the browser flags and exits immediately.
    launcher = _launcher(binary_path=sys.executable)
    with pytest.raises(LaunchError, match="exited with code"):
        launcher.start()
    assert launcher.process is None
    launcher.kill()


def test_kill_terminates_owned_process() -> None:
    launcher = _launcher()
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
    launcher.process = proc
    assert launcher.kill(timeout=5.0) is True
    assert proc.poll() is not None
    assert launcher.process is None
    assert launcher.kill() is False
