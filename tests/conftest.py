import json
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from promptbench.config import get_settings
from promptbench.core import ratelimit
from promptbench.schemas.chat import ProviderConfig


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    monkeypatch.setenv("TRUST_ENV", "0")
    get_settings.cache_clear()
    ratelimit.reset()
    yield
    get_settings.cache_clear()
    ratelimit.reset()


@pytest.fixture
def config() -> ProviderConfig:
    return ProviderConfig(
        id="local",
        name="Local",
        base_url="http://llm.local/v1/",
        api_key="sk-test",
        models=["qwen3", "llama3"],
    )


def sse_body(*frames: Dict[str, object], done: bool = True) -> bytes:
    lines = ["data: " + json.dumps(f) for f in frames]
    if done:
        lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


def delta(content: str) -> Dict[str, object]:
    return {"choices": [{"index": 0, "delta": {"content": content}}]}


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def last_json(self) -> Optional[dict]:
        if not self.requests:
            return None
        return json.loads(self.requests[-1].content.decode("utf-8"))


def chunked(*chunks: bytes):
    async def _gen():
        for c in chunks:
            yield c

    return _gen()
