from __future__ import annotations

from promptbench.schemas.chat import ReasoningSplit

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


def split_reasoning(text: str) -> ReasoningSplit:
    """Separate a leading <think> block from the answer.

    Pure function of the accumulated output, so it is safe to call after every
    streamed increment. The first ``</think>`` closes the block, even if it
    appears inside the reasoning text itself.
    """
    if not text:
        return ReasoningSplit(thought=None, content="")

    stripped = text.lstrip()
    if not stripped.startswith(THINK_OPEN):
        return ReasoningSplit(thought=None, content=text)

    close_at = stripped.find(THINK_CLOSE, len(THINK_OPEN))
    if close_at == -1:
        # Still thinking
        return ReasoningSplit(thought=stripped[len(THINK_OPEN):].strip(), content="")

    return ReasoningSplit(
        thought=stripped[len(THINK_OPEN):close_at].strip(),
        content=stripped[close_at + len(THINK_CLOSE):].strip(),
    )
