import json
import sys
import threading
import time
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.config import Settings
from collector.client import CollectorClient
from observability.context import InstrumentationContext
from schemas.command import AgentRecord


class RecordingClient(CollectorClient):
    """Collector client that records posts instead of sending them."""

    def __init__(self, settings: Settings):
        super().__init__(settings, AgentRecord(name="test-agent"))
        self.posts = []
        self.delay = 0.0
        self.status = 200
        self._lock = threading.Lock()

    def post(self, body, url, analyse_response=False):
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.posts.append((json.loads(body), url, analyse_response))
        return self.status


class StubCapturer:
    """Capture primitives returning fixed bytes immediately."""

    def package(self):
        return b"pkg"

    def trace(self):
        return b"trace-out"

    def cpu_profile(self):
        return b"cpu-out"

    def mem_profile(self):
        return b"mem-out"


@pytest.fixture
def agent_settings():
    return Settings(
        token="test-token",
        environment="test",
        app_group="group-a",
        collector_base_url="http://collector.test/v1.17",
        latency_threshold_ms=500,
        no_post=False,
        print_panics=False,
    )


@pytest.fixture
def recording_client(agent_settings):
    return RecordingClient(agent_settings)


@pytest.fixture
def stub_capturer():
    return StubCapturer()


@pytest.fixture
def context(agent_settings, recording_client, stub_capturer):
    return InstrumentationContext(
        settings=agent_settings,
        client=recording_client,
        capturer=stub_capturer,
    )


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""
    def _wait(predicate, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()
    return _wait
