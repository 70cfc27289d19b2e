import os
from datetime import datetime, timezone
from pathlib import Path

import pytest  # noqa

# --- .env loader -----------------------------------------------------------

def _load_env_file(filename: str = '.env'):
    """Load the repo .env (if any) without overriding the real environment."""
    root = Path(__file__).resolve().parent.parent
    env_path = root / filename
    if not env_path.exists():
        return
    from dotenv import load_dotenv
    load_dotenv(env_path, override=False)

_load_env_file()

# Provide a simple marker skip for live network calls if user explicitly disables them.
LIVE_NETWORK_DISABLED = os.environ.get('DISABLE_LIVE_INTEGRATION') in ('1', 'true', 'TRUE')


def pytest_configure(config):
    config.addinivalue_line('markers', 'live_integration: talks to a real Redis/Supabase backend')


def pytest_runtest_setup(item):
    if 'live_integration' not in item.keywords:
        return
    if LIVE_NETWORK_DISABLED:
        pytest.skip('Live integration tests disabled by DISABLE_LIVE_INTEGRATION env flag')
    if not os.environ.get('REDIS_URL'):
        pytest.skip('REDIS_URL not set')


# --- shared helpers --------------------------------------------------------

class FakeClock:
    """Settable UTC clock for stores and managers."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta):
        from datetime import timedelta
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture(autouse=True)
def _reset_store_metrics():
    from campaign_engine.tools.persistence import metrics
    metrics.reset()
    yield
