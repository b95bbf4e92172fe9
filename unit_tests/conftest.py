import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModels:
    """Mimics client.models: replays scripted replies, records requests."""
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if not self.replies:
            raise RuntimeError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(reply)


class FakeGenAIClient:
    def __init__(self, *replies):
        self.models = FakeModels(replies)


def make_text_client(*replies, legacy_last=False, temperature=0.2):
    """GeminiTextClient over a FakeGenAIClient with two (or three) backends."""
    from tools.gemini_client import GeminiBackend, GeminiTextClient

    backends = [GeminiBackend("model-a"), GeminiBackend("model-b")]
    if legacy_last:
        backends.append(GeminiBackend("model-legacy", legacy=True))
    return GeminiTextClient(client=FakeGenAIClient(*replies), backends=backends, temperature=temperature)


@pytest.fixture
def store(tmp_path):
    from memory.session_manager import JsonStore
    return JsonStore(str(tmp_path / "store.json"))


@pytest.fixture
def profile(store):
    """A user with biometrics: 70kg / 170cm / 25y male, sedentary, maintain."""
    created = datetime.now(timezone.utc)
    base = store.create_profile("user_1", name="Ana", now=created)
    return store.upsert_profile("user_1", base.with_biometrics(
        age=25, weight=70, height=170, gender="male", activity_level="sedentary", goal="maintain"
    ))


@pytest.fixture
def offline_client():
    """Text client whose every backend fails."""
    return make_text_client(RuntimeError("503 unavailable"), RuntimeError("503 unavailable"))


@pytest.fixture(autouse=True)
def clear_unsaved_chat():
    """Unsaved chat messages live in process memory; reset them per test."""
    yield
    from agents.coach_agent import PENDING_MESSAGES
    PENDING_MESSAGES.clear()
