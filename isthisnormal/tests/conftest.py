import json
import os
import random
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

# Keep the import-time app from picking up a developer's real key
os.environ.setdefault("AI_GATEWAY_API_KEY", "")

# Ensure the project root is on sys.path so `import isthisnormal` works when
# running pytest from the repository root without an install.
ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from isthisnormal.app import create_app
from isthisnormal.config import Settings
from isthisnormal.services.rate_limit import InMemoryRateLimitStore

GATEWAY_URL = "https://gateway.test/v1/chat/completions"


def make_analysis(**overrides: Any) -> Dict[str, Any]:
    data = {
        "acknowledgement": "Thanks for asking about your headache; it is a very common worry.",
        "commonality": "Mild headaches lasting a couple of days are something many people experience.",
        "possibleExplanations": [
            "Tension in the neck and shoulders",
            "Not drinking enough water",
            "Changes in sleep",
            "Eye strain from screens",
        ],
        "usuallyOkayIf": [
            "It eases with rest",
            "It stays mild",
            "You have no fever",
            "Your vision is normal",
        ],
        "seekHelpIf": [
            "It becomes sudden and severe",
            "You develop a stiff neck with fever",
            "You notice confusion or weakness",
            "It follows a head injury",
        ],
        "selfCareSteps": [
            "Drink water regularly",
            "Take screen breaks",
            "Keep a regular sleep schedule",
            "Try gentle neck stretches",
            "Track when the headaches happen",
        ],
        "similarQuestions": 1834,
    }
    data.update(overrides)
    return data


def completion(content: str) -> Dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class FakeGateway:
    """httpx.MockTransport handler that records calls and replays canned replies."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.status_code = 200
        self.content: Any = json.dumps(make_analysis())
        self.raise_exc: Any = None

    def reply_with(self, content: Any = None, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append({
            "url": str(request.url),
            "headers": dict(request.headers),
            "json": json.loads(request.content.decode("utf-8")),
        })
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "upstream detail"}})
        return httpx.Response(200, json=completion(self.content))


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key", gateway_url=GATEWAY_URL, model="test/model")


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore(clock=clock)


@pytest.fixture
def app_factory(settings, fake_gateway, store) -> Callable[..., Any]:
    def _make(**overrides):
        kwargs = {
            "settings": settings,
            "rate_limit_store": store,
            "transport": httpx.MockTransport(fake_gateway),
            "rng": random.Random(7),
        }
        kwargs.update(overrides)
        return create_app(**kwargs)
    return _make


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)
