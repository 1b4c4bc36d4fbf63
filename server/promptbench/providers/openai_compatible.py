from __future__ import annotations
import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence
import httpx
from pydantic import ValidationError

from promptbench.config import get_settings
from promptbench.core.errors import ConfigurationError, UpstreamError
from promptbench.providers.sse import LineBuffer, delta_content, parse_data_line
from promptbench.schemas.chat import (
    CompletionResult,
    Message,
    ModelListResult,
    ProbeResult,
    ProviderConfig,
    StreamIncrement,
    Usage,
)

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/chat/completions"
MODELS_PATH = "/models"

# InvalidURL and StreamError sit outside the HTTPError hierarchy
TRANSPORT_ERRORS = (httpx.HTTPError, httpx.StreamError, httpx.InvalidURL)


def completion_url(base_url: str) -> str:
    url = base_url[:-1] if base_url.endswith("/") else base_url
    if not url.endswith(COMPLETIONS_PATH):
        url = f"{url}{COMPLETIONS_PATH}"
    return url


def models_url(base_url: str) -> str:
    url = base_url[:-1] if base_url.endswith("/") else base_url
    if url.endswith(COMPLETIONS_PATH):
        return url[: -len(COMPLETIONS_PATH)] + MODELS_PATH
    return f"{url}{MODELS_PATH}"


def _parse_usage(raw: Any) -> Optional[Usage]:
    if not isinstance(raw, dict):
        return None
    try:
        # Some servers send explicit nulls for counts they do not track
        return Usage.model_validate({k: v for k, v in raw.items() if v is not None})
    except ValidationError:
        return None


def _error_from_body(body: bytes, status_code: int) -> UpstreamError:
    message = None
    try:
        obj = json.loads(body.decode("utf-8", errors="ignore"))
        err = obj.get("error") if isinstance(obj, dict) else None
        if isinstance(err, dict) and isinstance(err.get("message"), str) and err["message"]:
            message = err["message"]
    except ValueError:
        pass
    return UpstreamError(message or f"HTTP Error {status_code}", status_code=status_code)


def _transport_message(exc: Exception) -> str:
    text = str(exc)
    return text or exc.__class__.__name__


class OpenAICompatibleProvider:
    """Talks to any backend exposing OpenAI-style /chat/completions and /models.

    Holds no state besides the configuration snapshot it was built with; every
    call opens and closes its own client.
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._timeout = timeout

    @property
    def id(self) -> str:
        return self.config.id

    def _client(self) -> httpx.AsyncClient:
        settings = get_settings()
        timeout = self._timeout or httpx.Timeout(
            connect=settings.connect_timeout,
            read=settings.read_timeout,
            write=settings.write_timeout,
            pool=settings.pool_timeout,
        )
        return httpx.AsyncClient(timeout=timeout, trust_env=settings.trust_env, transport=self._transport)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        # Local servers such as Ollama need no key
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _payload(self, model: str, messages: Sequence[Message], stream: bool) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": get_settings().default_temperature,
            "stream": stream,
        }

    def _check_model(self, model: str) -> None:
        if not model:
            raise ConfigurationError("No model selected")
        if model not in self.config.models:
            raise ConfigurationError(f"Model '{model}' is not configured for provider '{self.config.name or self.id}'")

    async def stream(
        self,
        model: str,
        messages: Sequence[Message],
        cancel: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[StreamIncrement]:
        """Yield content/usage increments as they arrive; at most one terminal error."""
        try:
            self._check_model(model)
        except ConfigurationError as e:
            yield StreamIncrement(error=e.message)
            return

        url = completion_url(self.config.base_url)
        payload = self._payload(model, messages, stream=True)
        logger.info("stream start provider=%s model=%s messages=%d", self.id, model, len(messages))

        try:
            async with self._client() as client:
                async with client.stream("POST", url, headers=self._headers(), json=payload) as resp:
                    if not resp.is_success:
                        raise _error_from_body(await resp.aread(), resp.status_code)

                    buffer = LineBuffer()
                    async for chunk in resp.aiter_bytes():
                        if cancel is not None and cancel.is_set():
                            logger.info("stream cancelled provider=%s model=%s", self.id, model)
                            return
                        for line in buffer.feed(chunk):
                            increment = self._increment_from_line(line)
                            if increment is not None:
                                yield increment
                    for line in buffer.flush():
                        increment = self._increment_from_line(line)
                        if increment is not None:
                            yield increment
        except UpstreamError as e:
            logger.warning("stream failed provider=%s status=%s: %s", self.id, e.status_code, e.message)
            yield StreamIncrement(error=e.message)
        except TRANSPORT_ERRORS as e:
            logger.warning("stream transport error provider=%s: %s", self.id, e)
            yield StreamIncrement(error=_transport_message(e))

    @staticmethod
    def _increment_from_line(line: str) -> Optional[StreamIncrement]:
        obj = parse_data_line(line)
        if obj is None:
            return None
        content = delta_content(obj)
        usage = _parse_usage(obj.get("usage"))
        if content is None and usage is None:
            return None
        return StreamIncrement(content=content, usage=usage)

    async def complete(self, model: str, messages: Sequence[Message]) -> CompletionResult:
        """One non-streaming generation. Never raises."""
        try:
            self._check_model(model)
            url = completion_url(self.config.base_url)
            logger.info("complete provider=%s model=%s messages=%d", self.id, model, len(messages))
            async with self._client() as client:
                resp = await client.post(url, headers=self._headers(), json=self._payload(model, messages, stream=False))
            if not resp.is_success:
                raise _error_from_body(resp.content, resp.status_code)
            data = resp.json()
        except (ConfigurationError, UpstreamError) as e:
            return CompletionResult(error=e.message)
        except TRANSPORT_ERRORS as e:
            logger.warning("complete transport error provider=%s: %s", self.id, e)
            return CompletionResult(error=_transport_message(e))
        except ValueError:
            return CompletionResult(error="Invalid JSON in provider response")

        content = ""
        choices = data.get("choices") if isinstance(data, dict) else None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                content = message["content"]
        usage = _parse_usage(data.get("usage")) if isinstance(data, dict) else None
        return CompletionResult(content=content, usage=usage)

    async def list_models(self) -> ModelListResult:
        url = models_url(self.config.base_url)
        try:
            async with self._client() as client:
                resp = await client.get(url, headers=self._headers())
            if not resp.is_success:
                return ModelListResult(success=False, error=f"HTTP Error {resp.status_code}")
            data = resp.json()
        except TRANSPORT_ERRORS as e:
            logger.warning("list models failed provider=%s: %s", self.id, e)
            return ModelListResult(success=False, error=_transport_message(e))
        except ValueError:
            return ModelListResult(success=False, error="Unrecognized response format")

        models: List[str] = []
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            # OpenAI format: {"data": [{"id": "gpt-4o"}]}
            models = [m["id"] for m in data["data"] if isinstance(m, dict) and isinstance(m.get("id"), str)]
        elif isinstance(data, dict) and isinstance(data.get("models"), list):
            # Ollama format: {"models": [{"name": "llama2"}]}
            models = [m["name"] for m in data["models"] if isinstance(m, dict) and isinstance(m.get("name"), str)]
        else:
            return ModelListResult(success=False, error="Unrecognized response format")
        return ModelListResult(success=True, models=sorted(models))

    async def test_connection(self) -> ProbeResult:
        if not self.config.models:
            return ProbeResult(provider_id=self.id, success=False, message="No models configured")
        result = await self.complete(
            self.config.models[0],
            [Message(role="user", content=get_settings().probe_message)],
        )
        if result.error:
            return ProbeResult(provider_id=self.id, success=False, message=result.error)
        return ProbeResult(provider_id=self.id, success=True, message="Connected")
