from __future__ import annotations
import asyncio
from typing import AsyncIterator, Optional, Protocol, Sequence

from promptbench.schemas.chat import (
    CompletionResult,
    Message,
    ModelListResult,
    ProbeResult,
    StreamIncrement,
)


class ChatProvider(Protocol):
    id: str

    def stream(
        self,
        model: str,
        messages: Sequence[Message],
        cancel: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[StreamIncrement]:
        """Yield increments in arrival order; an increment with ``error`` ends the stream."""
        ...

    async def complete(self, model: str, messages: Sequence[Message]) -> CompletionResult:
        ...

    async def list_models(self) -> ModelListResult:
        ...

    async def test_connection(self) -> ProbeResult:
        ...
