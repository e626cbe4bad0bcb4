import os
import sys
from pathlib import Path

import pytest

# Minimal env variables so importing settings does not fail
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ipguard.services.ip_block import IpBlockManager  # noqa: E402


class FakeClock:
    """Millisecond clock controlled by the test."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def blocklist_path(tmp_path):
    return tmp_path / "data" / "ip-blocklist.json"


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "security.json"


@pytest.fixture
def make_manager(blocklist_path, config_path, clock):
    def _make() -> IpBlockManager:
        return IpBlockManager(blocklist_path=blocklist_path, config_path=config_path, clock=clock)

    return _make
