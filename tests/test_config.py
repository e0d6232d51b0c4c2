from __future__ import annotations

import os

import pytest

from chromy.config import ChromyConfig


def test_defaults() -> None:
    config = ChromyConfig(binary_path="/usr/bin/chrome")
    assert (config.wait_timeout, config.goto_timeout, config.evaluate_timeout) == (30000, 30000, 30000)
    assert config.poll_interval == 50
    assert config.type_interval == 20
    assert config.launch_browser is True
    assert config.visible is False
    assert config.http_endpoint == "http://127.0.0.1:9222"


@pytest.mark.parametrize(
    "options",
    [{"wait_timeout": -1}, {"poll_interval": -5}, {"port": 0}, {"port": 70000}, {"launch_timeout": 0}],
)
def test_invalid_values(options: dict) -> None:
    with pytest.raises(ValueError):
        ChromyConfig(binary_path="/usr/bin/chrome", **options)


def test_binary_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHROMY_BINARY", "~/bin/chrome")
    assert ChromyConfig().binary_path == os.path.expanduser("~/bin/chrome")


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHROMY_BINARY", "/opt/chrome")
    monkeypatch.setenv("CHROMY_PORT", "9333")
    monkeypatch.setenv("CHROMY_WAIT_TIMEOUT", "1500")
    monkeypatch.setenv("CHROMY_EVALUATE_TIMEOUT", "2500")
    monkeypatch.setenv("CHROMY_LAUNCH", "no")
    monkeypatch.setenv("CHROMY_VISIBLE", "1")
    monkeypatch.setenv("CHROMY_FLAGS", "--lang=nl, --mute-audio ,")
    monkeypatch.setenv("CHROMY_PROFILE", "~/profiles/chromy")

    config = ChromyConfig.from_env()
    assert config.binary_path == "/opt/chrome"
    assert config.port == 9333
    assert config.wait_timeout == 1500
    assert config.evaluate_timeout == 2500
    assert config.goto_timeout == 30000
    assert config.launch_browser is False
    assert config.visible is True
    assert config.extra_flags == ["--lang=nl", "--mute-audio"]
    assert config.profile_path == os.path.expanduser("~/profiles/chromy")


def test_with_options_copies() -> None:
    base = ChromyConfig(binary_path="/usr/bin/chrome")
    changed = base.with_options(visible=True, wait_timeout=10)
    assert changed.visible is True and changed.wait_timeout == 10
    assert base.visible is False and base.wait_timeout == 30000
    with pytest.raises(TypeError, match="Unknown option"):
        base.with_options(wait=1)
    with pytest.raises(ValueError):
        base.with_options(evaluate_timeout=-1)
