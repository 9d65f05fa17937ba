import json

import httpx
import pytest
from fastapi.testclient import TestClient

from mh_screener.core.config import Settings
from mh_screener.llm.anthropic_client import GatewayConfig
from mh_screener.llm.gateway import ModelGateway
from mh_screener.main import create_app


def anthropic_reply(text: str) -> dict:
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": text}],
    }


def scripted_transport(*replies):
    """MockTransport answering successive requests with the given replies.

    A dict is sent as the model's JSON text, a str as raw text, an int as a
    bare HTTP status, and an exception instance is raised.
    """
    queue = list(replies)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply, json={"error": {"type": "overloaded_error"}})
        if isinstance(reply, dict):
            reply = json.dumps(reply)
        return httpx.Response(200, json=anthropic_reply(reply))

    transport = httpx.MockTransport(handler)
    transport.seen = seen
    return transport


def make_gateway(transport=None, api_key="test-key", **overrides) -> ModelGateway:
    config = GatewayConfig(api_key=api_key, **overrides)
    return ModelGateway(config, transport=transport)


@pytest.fixture()
def settings():
    return Settings(APP_ENV="test", ANTHROPIC_API_KEY="", LOG_LEVEL="WARNING")


@pytest.fixture()
def client(settings):
    # no API key: every model call takes the fallback path
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture()
def unreachable_gateway():
    return make_gateway(scripted_transport(httpx.ConnectError("connection refused")))
