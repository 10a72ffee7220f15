"""Pytest configuration for scratchforce tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports
_SRC = Path(__file__).parent.parent / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from scratchforce.session import Session

HUB_URL = 'https://hub.example.my.salesforce.com'


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def hub_session():
    """Authenticated dev hub session."""
    return Session(instance_url=HUB_URL, access_token='hub-access-token')
