from fastapi import APIRouter, HTTPException
import asyncio
from contextlib import aclosing
import logging
import json
from typing import Any, Dict, List
from fastapi import Request
from fastapi.responses import StreamingResponse

from promptbench.config import get_settings
from promptbench.core.errors import ConfigurationError
from promptbench.core.ratelimit import enforce_rate_limit
from promptbench.core.reasoning import split_reasoning
from promptbench.core.templates import build_variables, resolve
from promptbench.providers.router import router as provider_router
from promptbench.schemas.chat import GenerateRequest, Message, ProviderConfig

router = APIRouter()
logger = logging.getLogger(__name__)


def build_messages(request: GenerateRequest) -> List[Message]:
    variables = build_variables([request.system_prompt, request.user_prompt], request.variables)
    messages: List[Message] = []
    system = resolve(request.system_prompt, variables)
    if system:
        messages.append(Message(role="system", content=system))
    messages.append(Message(role="user", content=resolve(request.user_prompt, variables)))
    return messages


def _check_model(config: ProviderConfig, model: str) -> None:
    try:
        provider_router.resolve([config], f"{config.id}:{model}")
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.post("/chat/stream")
async def stream_chat(request: GenerateRequest, http_request: Request):
    """Stream a completion as SSE, attaching the reasoning split of the running text."""
    settings = get_settings()
    enforce_rate_limit(http_request, limit=settings.stream_rate_limit, window_seconds=settings.rate_limit_window_seconds)
    _check_model(request.config, request.model)

    messages = build_messages(request)
    provider = provider_router.get_provider(request.config)
    logger.info("/chat/stream start provider=%s model=%s messages=%d", provider.id, request.model, len(messages))

    async def generator():
        cancel = asyncio.Event()
        text = ""
        async with aclosing(provider.stream(request.model, messages, cancel=cancel)) as increments:
            async for increment in increments:
                if await http_request.is_disconnected():
                    cancel.set()
                    return
                event: Dict[str, Any] = increment.model_dump(exclude_none=True)
                if increment.content:
                    text += increment.content
                split = split_reasoning(text)
                event["thought"] = split.thought
                event["answer"] = split.content
                yield "data: " + json.dumps(event) + "\n\n"
        yield "data: {\"done\": true}\n\n"

    return StreamingResponse(
        generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.post("/chat/complete")
async def complete_chat(request: GenerateRequest) -> Dict[str, Any]:
    _check_model(request.config, request.model)
    messages = build_messages(request)
    provider = provider_router.get_provider(request.config)
    result = await provider.complete(request.model, messages)
    split = split_reasoning(result.content)
    body = result.model_dump()
    body["thought"] = split.thought
    body["answer"] = split.content
    return body
