from __future__ import annotations

import pytest
from fakes import FakeTransport, attach

from chromy.chromy import Chromy
from chromy.config import ChromyConfig


@pytest.fixture
def config() -> ChromyConfig:
    return ChromyConfig(
        binary_path="/usr/bin/chrome",
        launch_browser=False,
        wait_timeout=300,
        goto_timeout=300,
        evaluate_timeout=300,
        poll_interval=10,
        type_interval=0,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(config: ChromyConfig, transport: FakeTransport) -> Chromy:
    return attach(Chromy(config), transport)
