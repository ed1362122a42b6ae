import pytest
from fastapi.testclient import TestClient

import main
from kisan_agent.config import Settings
from kisan_agent.errors import CompletionError

LEAF_BLIGHT_REPLY = (
    '{"disease":"Leaf Blight","confidence":0.9,"symptoms":["yellow spots"],'
    '"treatment":["fungicide"],"prevention":["rotate crops"]}'
)

IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ"


class FakeCompletionService:
    """Returns scripted replies in order; exceptions in the script are raised."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    def complete(self, model, messages, temperature, max_tokens):
        self.calls.append(
            {"model": model, "messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        if not self.replies:
            raise CompletionError("no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_service():
    return FakeCompletionService()


@pytest.fixture
def settings():
    return Settings(groq_api_key="test-key")


@pytest.fixture
def client(settings, fake_service):
    main.app.dependency_overrides[main.get_settings] = lambda: settings
    main.app.dependency_overrides[main.get_completion_service] = lambda: fake_service
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
