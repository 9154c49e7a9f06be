import pytest
import requests

from llm_client import CompletionClient
from llm_proxy import create_app
from llm_settings import Settings


class DummyResp:
    def __init__(self, status_code=200, data=None, text=None):
        self.status_code = status_code
        self._data = data
        self.text = text if text is not None else ""

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._data is None:
            raise ValueError("no JSON")
        return self._data


class StubSession(requests.Session):
    """Session whose ``post`` returns a canned reply and counts calls."""

    def __init__(self, reply=None, exc=None):
        super().__init__()
        self.reply = reply
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.reply


def completion(*texts):
    return {"choices": [{"index": i, "message": {"role": "assistant", "content": t}} for i, t in enumerate(texts)]}


ENV_VARS = (
    "GPT_KEY",
    "OPENAI_API_KEY",
    "MODEL_TEMPERATURE",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "OPENAI_TIMEOUT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    return Settings(GPT_KEY="secret", OPENAI_API_KEY="sk-test", _env_file=None)


@pytest.fixture
def make_client(settings):
    def _make(reply=None, exc=None):
        session = StubSession(reply=reply, exc=exc)
        return CompletionClient(settings, session=session), session

    return _make


@pytest.fixture
def make_test_client(settings, make_client):
    def _make(reply=None, exc=None):
        client, session = make_client(reply=reply, exc=exc)
        app = create_app(settings, client)
        app.config["TESTING"] = True
        return app.test_client(), session

    return _make
