from __future__ import annotations
import math
from typing import Iterable, Optional

from promptbench.schemas.chat import Message

# Rule of thumb for OpenAI-style tokenizers
CHARS_PER_TOKEN = 4


def estimate(text: Optional[str]) -> int:
    """Coarse token count from character length; not a tokenizer."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_messages(messages: Iterable[Message]) -> int:
    return sum(estimate(m.content) for m in messages)
