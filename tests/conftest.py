import json
import logging
import os
import tempfile

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="chatbot-platform-logs-"))

import httpx
import pytest

from chatbot_platform.app import ChatbotPlatform
from chatbot_platform.core.config import Settings
from chatbot_platform.services.chat_client import ChatClient
from chatbot_platform.services.conversation import ConversationManager
from chatbot_platform.services.persistent_store import PersistentStore
from chatbot_platform.services.session_store import SessionStore
from chatbot_platform.utils.logger import init_logging

init_logging(level=logging.DEBUG, console=False)


def completion_body(reply: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": reply}}]}


class FakeCompletionAPI:
    """Records requests and answers with canned replies or errors."""

    def __init__(self, reply: str = "hi there", status_code: int = 200, body=None):
        self.reply = reply
        self.status_code = status_code
        self.body = body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.body is not None:
            if isinstance(self.body, (bytes, str)):
                return httpx.Response(self.status_code, content=self.body)
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, json=completion_body(self.reply))

    @property
    def payloads(self) -> list:
        return [json.loads(r.content) for r in self.requests]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def config(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'store.db'}",
        API_BASE_URL="https://api.test/v1",
        API_KEY="test-key",
        APP_REFERER="http://localhost:5173",
        PASSWORD_HASH_ROUNDS=4,
        STREAM_INTERVAL_MS=0,
    )


@pytest.fixture
def store(config):
    store = PersistentStore(config=config)
    yield store
    store.close()


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def api():
    return FakeCompletionAPI()


@pytest.fixture
def chat_client(config, api):
    return ChatClient(config, transport=api.transport)


@pytest.fixture
def conversation(store, chat_client, config):
    return ConversationManager(store, chat_client, config)


@pytest.fixture
def platform(config, store, session_store, api):
    return ChatbotPlatform(config=config, store=store, session_store=session_store, transport=api.transport)
